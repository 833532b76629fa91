# directory.py
"""
Identity directory.

Users are keyed by their 4-digit number and live for the whole process; only the
live-session reference comes and goes. The directory owns the SessionRegistry so
both sides of a binding (user -> session, session -> user) change together.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Mapping, Optional

from errors import IdentityConflict, InvalidIdentifier, NotAuthenticated, NotFound
from models import User
from sessions import SessionRegistry

log = logging.getLogger("messagecaller.directory")

_NUMBER_RE = re.compile(r"[0-9]{4}")

PROFILE_DEFAULTS: Dict[str, Any] = {
    "nickname": "User",
    "lastname": "",
    "photo": "",
    "age": 0,
    "email": "",
    "phone": "",
    "birthday": "",
}


def is_valid_number(user_id: Any) -> bool:
    return isinstance(user_id, str) and _NUMBER_RE.fullmatch(user_id) is not None


def _with_defaults(profile: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    profile = profile or {}
    # falsy values fall back to the default, same as a fresh form submission
    return {key: profile.get(key) or default for key, default in PROFILE_DEFAULTS.items()}


class IdentityDirectory:
    def __init__(self, sessions: Optional[SessionRegistry] = None) -> None:
        self.sessions = sessions if sessions is not None else SessionRegistry()
        self._users: Dict[str, User] = {}

    # -------------------- binding --------------------

    def create_or_bind(self, user_id: Any, session_id: str,
                       profile_defaults: Optional[Mapping[str, Any]] = None) -> User:
        """Create the user if needed and make ``session_id`` its live session.

        Raises InvalidIdentifier for malformed numbers and IdentityConflict when the
        user is already signed in on another connection.
        """
        if not is_valid_number(user_id):
            raise InvalidIdentifier()

        user = self._users.get(user_id)
        if user is None:
            user = User(number=user_id, **_with_defaults(profile_defaults))
            self._users[user_id] = user
            self._bind(user, session_id)
            log.info("User registered: %s (%s)", user_id, user.nickname)
            return user

        if user.session_id is not None and user.session_id != session_id:
            raise IdentityConflict(user_id, user.session_id)

        # re-sign-in never touches the stored profile
        self._bind(user, session_id)
        log.info("User signed in: %s", user_id)
        return user

    def handoff(self, user_id: str, from_session_id: str, to_session_id: str) -> User:
        """Move the live session of ``user_id`` to another connection."""
        user = self.lookup(user_id)
        if user.session_id == from_session_id:
            self.sessions.release(from_session_id)
        self._bind(user, to_session_id)
        log.info("Session for %s handed off %s -> %s", user_id, from_session_id, to_session_id)
        return user

    def unbind(self, session_id: str) -> Optional[str]:
        """Forget ``session_id``; safe to call for unknown or already released sessions."""
        user_id = self.sessions.release(session_id)
        if user_id is None:
            return None
        user = self._users.get(user_id)
        if user is not None and user.session_id == session_id:
            user.session_id = None
        return user_id

    def _bind(self, user: User, session_id: str) -> None:
        previous = self.sessions.bind(session_id, user.number)
        if previous is not None and previous != user.number:
            old = self._users.get(previous)
            if old is not None and old.session_id == session_id:
                old.session_id = None
        user.session_id = session_id

    # -------------------- profile --------------------

    def update_profile(self, session_id: str, fields: Mapping[str, Any]) -> User:
        user = self.current_user(session_id)
        for key, value in fields.items():
            if key in PROFILE_DEFAULTS:
                setattr(user, key, value)
        return user

    # -------------------- lookups --------------------

    def get(self, user_id: Any) -> Optional[User]:
        if not isinstance(user_id, str):
            return None
        return self._users.get(user_id)

    def lookup(self, user_id: Any) -> User:
        user = self.get(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def live_session(self, user_id: Any) -> Optional[str]:
        user = self.get(user_id)
        return user.session_id if user is not None else None

    def resolve(self, session_id: str) -> Optional[str]:
        return self.sessions.resolve(session_id)

    def current_user(self, session_id: str) -> User:
        user = self._users.get(self.sessions.require(session_id))
        if user is None:
            raise NotAuthenticated()
        return user

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._users

    def __len__(self) -> int:
        return len(self._users)
