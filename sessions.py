# sessions.py
"""Session registry: which identifier each live connection is signed in as."""
import logging
from typing import Dict, Iterator, Optional

from errors import NotAuthenticated

log = logging.getLogger("messagecaller.sessions")


class SessionRegistry:
    """connection id -> user id, at most one identifier per connection."""

    def __init__(self) -> None:
        self._bindings: Dict[str, str] = {}

    def bind(self, session_id: str, user_id: str) -> Optional[str]:
        """Bind ``session_id`` to ``user_id``; returns the identifier it replaced, if any."""
        previous = self._bindings.get(session_id)
        self._bindings[session_id] = user_id
        if previous is not None and previous != user_id:
            log.debug("Session %s switched from %s to %s", session_id, previous, user_id)
        return previous

    def release(self, session_id: str) -> Optional[str]:
        return self._bindings.pop(session_id, None)

    def resolve(self, session_id: str) -> Optional[str]:
        return self._bindings.get(session_id)

    def require(self, session_id: str) -> str:
        user_id = self._bindings.get(session_id)
        if user_id is None:
            raise NotAuthenticated()
        return user_id

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._bindings))
