# calls.py
"""
Call signaling relay.

A thin forwarder for WebRTC setup events. It keeps no call state: an answer, ICE
candidate or hang-up is forwarded whether or not an offer was ever seen, and
anything addressed to an offline or unknown number is dropped without telling
the caller.
"""
import logging
from typing import Any, Dict, Optional

from directory import IdentityDirectory
from hub import Emit

log = logging.getLogger("messagecaller.calls")


class CallRelay:
    def __init__(self, directory: IdentityDirectory, emit: Emit) -> None:
        self.directory = directory
        self.emit = emit

    def initiate(self, session_id: str, to: str, offer: Any) -> bool:
        caller_id = self.directory.resolve(session_id)
        if caller_id is None:
            return False
        caller = self.directory.lookup(caller_id)
        return self._forward(caller_id, to, "incomingCall", {
            "caller": {"nickname": caller.nickname, "lastname": caller.lastname, "photo": caller.photo},
            "offer": offer,
        })

    def answer(self, session_id: str, to: str, answer: Any) -> bool:
        return self._forward(self.directory.resolve(session_id), to, "callAnswered", {"answer": answer})

    def ice_candidate(self, session_id: str, to: str, candidate: Any) -> bool:
        return self._forward(self.directory.resolve(session_id), to, "iceCandidate", {"candidate": candidate})

    def end(self, session_id: str, to: str) -> bool:
        return self._forward(self.directory.resolve(session_id), to, "callEnded", {})

    def _forward(self, from_id: Optional[str], to: str, event: str, payload: Dict[str, Any]) -> bool:
        if from_id is None:
            log.debug("Dropped %s from unauthenticated connection", event)
            return False
        target = self.directory.live_session(to)
        if target is None:
            log.debug("Dropped %s from %s: %s is offline", event, from_id, to)
            return False
        self.emit(target, event, {"from": from_id, **payload})
        return True
