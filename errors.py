# errors.py
"""Failures raised by the relay components.

Everything derives from RelayError so the dispatcher can turn any of them into an
``error`` frame for the originating connection.
"""
from typing import Optional


class RelayError(Exception):
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return self.args[0]


class InvalidIdentifier(RelayError):
    default_message = "Number must be exactly 4 digits"


class NotAuthenticated(RelayError):
    default_message = "Not registered"


class NotFound(RelayError):
    default_message = "Not found"


class RecipientNotFound(NotFound):
    default_message = "Recipient not found"


class IdentityConflict(RelayError):
    """The identifier is already bound to a live session.

    Never reported to clients; the dispatcher routes it to the sign-in arbiter.
    """

    default_message = "Identifier already signed in elsewhere"

    def __init__(self, user_id: str, live_session_id: str):
        super().__init__()
        self.user_id = user_id
        self.live_session_id = live_session_id
