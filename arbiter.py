# arbiter.py
"""
Sign-in arbitration.

When a connection registers a number that is already signed in elsewhere, the
live session is asked to authorize the new device. Each request moves
Pending -> Approved or Pending -> Denied exactly once and is then forgotten.

Known gap: if the authorizing session disconnects before answering, the request
stays pending for the life of the process. Requests are only dropped eagerly
when the *requesting* connection goes away.
"""
from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from directory import IdentityDirectory
from errors import NotFound
from hub import Emit

log = logging.getLogger("messagecaller.arbiter")

AWAITING_MESSAGE = "Waiting for authorization from your other device..."


class SignInState(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


@dataclass
class SignInRequest:
    request_id: str
    target_user_id: str
    requesting_session_id: str
    state: SignInState = SignInState.PENDING


class SignInArbiter:
    def __init__(self, directory: IdentityDirectory, emit: Emit,
                 clock: Callable[[], int] = time.monotonic_ns) -> None:
        self.directory = directory
        self.emit = emit
        self._clock = clock
        self._last_id = 0
        self._requests: Dict[str, SignInRequest] = {}

    def _next_request_id(self) -> str:
        # strictly increasing even when the clock does not advance between calls
        self._last_id = max(self._clock(), self._last_id + 1)
        return str(self._last_id)

    # -------------------- lifecycle --------------------

    def open(self, target_user_id: str, requesting_session_id: str) -> SignInRequest:
        """Ask the live session of ``target_user_id`` to authorize a new device."""
        live = self.directory.live_session(target_user_id)
        if live is None:
            raise NotFound("User is not signed in")

        request = SignInRequest(
            request_id=self._next_request_id(),
            target_user_id=target_user_id,
            requesting_session_id=requesting_session_id,
        )
        self._requests[request.request_id] = request

        self.emit(live, "signInRequest", {"requestId": request.request_id})
        self.emit(requesting_session_id, "awaitingAuthorization", {"message": AWAITING_MESSAGE})
        log.info("Sign-in request %s sent to existing session for %s", request.request_id, target_user_id)
        return request

    def approve(self, request_id: str, authorizing_session_id: str) -> SignInRequest:
        request = self._authorize(request_id, authorizing_session_id)
        user = self.directory.handoff(request.target_user_id, authorizing_session_id,
                                      request.requesting_session_id)
        self._resolve(request, SignInState.APPROVED)
        self.emit(request.requesting_session_id, "signInApproved",
                  {"userId": user.number, "user": user.profile()})
        log.info("Sign-in approved for %s", user.number)
        return request

    def deny(self, request_id: str, authorizing_session_id: str) -> SignInRequest:
        request = self._authorize(request_id, authorizing_session_id)
        self._resolve(request, SignInState.DENIED)
        self.emit(request.requesting_session_id, "signInDenied", {})
        log.info("Sign-in denied for %s", request.target_user_id)
        return request

    def drop_requester(self, session_id: str) -> int:
        """Forget pending requests made by a connection that went away."""
        stale = [rid for rid, r in self._requests.items() if r.requesting_session_id == session_id]
        for rid in stale:
            self._requests.pop(rid, None)
        if stale:
            log.debug("Dropped %d pending sign-in request(s) from %s", len(stale), session_id)
        return len(stale)

    # -------------------- helpers --------------------

    def _authorize(self, request_id: str, authorizing_session_id: str) -> SignInRequest:
        request = self._requests.get(request_id)
        if request is None:
            raise NotFound("Unknown sign-in request")
        if self.directory.live_session(request.target_user_id) != authorizing_session_id:
            raise NotFound("Sign-in request does not belong to this session")
        return request

    def _resolve(self, request: SignInRequest, state: SignInState) -> None:
        if request.state is not SignInState.PENDING:
            raise NotFound("Sign-in request already resolved")
        request.state = state
        self._requests.pop(request.request_id, None)

    def get(self, request_id: str) -> Optional[SignInRequest]:
        return self._requests.get(request_id)

    def pending_for(self, user_id: str) -> List[SignInRequest]:
        return [r for r in self._requests.values() if r.target_user_id == user_id]

    def __len__(self) -> int:
        return len(self._requests)
