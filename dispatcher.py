# dispatcher.py
"""
Event dispatcher: the single entry point for everything a connection sends.

Each handler runs to completion without awaiting, so all state changes for one
event happen before the next event is looked at. Failures become an ``error``
frame for the connection that caused them.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, ValidationError

from arbiter import SignInArbiter
from calls import CallRelay
from directory import IdentityDirectory, is_valid_number
from errors import IdentityConflict, InvalidIdentifier, NotFound, RelayError
from hub import Emit
from models import (CallAnswer, CallEnd, CallOffer, ChatHistory, IceCandidate,
                    ProfileUpdate, RegisterUser, SendMessage, SignInDecision)
from relay import MessageRelay, Notifier, now_ms
from sessions import SessionRegistry

log = logging.getLogger("messagecaller.dispatcher")

Handler = Callable[[str, Any], None]


class EventDispatcher:
    def __init__(self, emit: Emit, notifier: Optional[Notifier] = None,
                 clock: Callable[[], int] = now_ms) -> None:
        self.emit = emit
        self.sessions = SessionRegistry()
        self.directory = IdentityDirectory(self.sessions)
        self.arbiter = SignInArbiter(self.directory, emit)
        self.relay = MessageRelay(self.directory, emit, notifier=notifier, clock=clock)
        self.calls = CallRelay(self.directory, emit)
        self._handlers: Dict[str, Handler] = {
            "register": self._on_register,
            "approveSignIn": self._on_approve,
            "denySignIn": self._on_deny,
            "updateProfile": self._on_update_profile,
            "getUserByNumber": self._on_get_user,
            "sendMessage": self._on_send_message,
            "getChatHistory": self._on_chat_history,
            "initiateCall": self._on_initiate_call,
            "answerCall": self._on_answer_call,
            "iceCandidate": self._on_ice_candidate,
            "endCall": self._on_end_call,
        }

    # -------------------- connection lifecycle --------------------

    def connect(self, session_id: str) -> None:
        log.info("User connected: %s", session_id)

    def disconnect(self, session_id: str) -> None:
        user_id = self.directory.unbind(session_id)
        self.arbiter.drop_requester(session_id)
        log.info("User disconnected: %s (%s)", session_id, user_id or "anonymous")

    def dispatch(self, session_id: str, event: str, data: Any = None) -> None:
        handler = self._handlers.get(event)
        if handler is None:
            self.error(session_id, f"Unknown event: {event}")
            return
        try:
            handler(session_id, data)
        except ValidationError:
            self.error(session_id, f"Invalid payload for {event}")
        except RelayError as exc:
            self.error(session_id, exc.message)

    def error(self, session_id: str, message: str) -> None:
        self.emit(session_id, "error", {"message": message})

    # -------------------- identity --------------------

    def _on_register(self, session_id: str, data: Any) -> None:
        # a bad number wins over bad profile fields
        if not is_valid_number(data.get("number") if isinstance(data, dict) else None):
            raise InvalidIdentifier()
        payload = _parse(RegisterUser, data)
        try:
            user = self.directory.create_or_bind(payload.number, session_id, payload.profile_defaults())
        except IdentityConflict as conflict:
            self.arbiter.open(conflict.user_id, session_id)
            return
        self.emit(session_id, "registered", {"userId": user.number, "user": user.profile()})

    def _on_approve(self, session_id: str, data: Any) -> None:
        decision = _parse(SignInDecision, data)
        try:
            self.arbiter.approve(decision.requestId, session_id)
        except NotFound as exc:
            log.warning("Ignored approveSignIn %s from %s: %s", decision.requestId, session_id, exc.message)

    def _on_deny(self, session_id: str, data: Any) -> None:
        decision = _parse(SignInDecision, data)
        try:
            self.arbiter.deny(decision.requestId, session_id)
        except NotFound as exc:
            log.warning("Ignored denySignIn %s from %s: %s", decision.requestId, session_id, exc.message)

    def _on_update_profile(self, session_id: str, data: Any) -> None:
        update = _parse(ProfileUpdate, data)
        user = self.directory.update_profile(session_id, update.present_fields())
        self.emit(session_id, "profileUpdated", {"user": user.profile()})

    def _on_get_user(self, session_id: str, number: Any) -> None:
        user = self.directory.get(number)
        if user is None:
            self.emit(session_id, "userNotFound", {"number": number})
            return
        self.emit(session_id, "userFound", user.public().model_dump())

    # -------------------- messages --------------------

    def _on_send_message(self, session_id: str, data: Any) -> None:
        # authentication is checked before the payload shape
        self.directory.sessions.require(session_id)
        payload = _parse(SendMessage, data)
        self.relay.send(session_id, payload.to, payload.text)

    def _on_chat_history(self, session_id: str, target: Any) -> None:
        self.directory.sessions.require(session_id)
        if not isinstance(target, str):
            self.error(session_id, "Invalid payload for getChatHistory")
            return
        messages = self.relay.history(session_id, target)
        history = ChatHistory(targetNumber=target, messages=[m.wire() for m in messages])
        self.emit(session_id, "chatHistory", history.model_dump())

    # -------------------- calls --------------------

    def _on_initiate_call(self, session_id: str, data: Any) -> None:
        payload = _parse(CallOffer, data)
        self.calls.initiate(session_id, payload.to, payload.offer)

    def _on_answer_call(self, session_id: str, data: Any) -> None:
        payload = _parse(CallAnswer, data)
        self.calls.answer(session_id, payload.to, payload.answer)

    def _on_ice_candidate(self, session_id: str, data: Any) -> None:
        payload = _parse(IceCandidate, data)
        self.calls.ice_candidate(session_id, payload.to, payload.candidate)

    def _on_end_call(self, session_id: str, data: Any) -> None:
        payload = _parse(CallEnd, data)
        self.calls.end(session_id, payload.to)


def _parse(model: type, data: Any) -> BaseModel:
    return model.model_validate(data if data is not None else {})
