# relay.py
"""Text message relay: per-conversation logs plus push to online recipients."""
from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional, Protocol

from directory import IdentityDirectory
from errors import RecipientNotFound
from hub import Emit
from models import Message, User

log = logging.getLogger("messagecaller.relay")

CHAT_KEY_SEPARATOR = "-"


def now_ms() -> int:
    return int(time.time() * 1000)


def chat_key(a: str, b: str) -> str:
    """Order-independent conversation key for a pair of numbers."""
    return CHAT_KEY_SEPARATOR.join(sorted((a, b)))


class Notifier(Protocol):
    def notify(self, sender: User, recipient: User, message: Message) -> None: ...


class ConversationLogs:
    """Append-only message logs keyed by chat_key. Nothing is ever evicted."""

    def __init__(self) -> None:
        self._logs: Dict[str, List[Message]] = {}

    def append(self, key: str, message: Message) -> None:
        self._logs.setdefault(key, []).append(message)

    def get(self, key: str) -> List[Message]:
        return list(self._logs.get(key, ()))

    def __contains__(self, key: object) -> bool:
        return key in self._logs

    def __len__(self) -> int:
        return len(self._logs)


class MessageRelay:
    def __init__(self, directory: IdentityDirectory, emit: Emit,
                 notifier: Optional[Notifier] = None,
                 clock: Callable[[], int] = now_ms) -> None:
        self.directory = directory
        self.emit = emit
        self.notifier = notifier
        self.clock = clock
        self.logs = ConversationLogs()

    def send(self, session_id: str, to: str, text: str) -> Message:
        sender = self.directory.current_user(session_id)
        recipient = self.directory.get(to)
        if recipient is None:
            raise RecipientNotFound()

        message = Message(from_=sender.number, to=recipient.number, text=text, timestamp=self.clock())
        self.logs.append(chat_key(sender.number, recipient.number), message)

        self.emit(session_id, "messageSent", message.wire())
        if recipient.session_id is not None:
            self.emit(recipient.session_id, "messageReceived", message.wire())

        if self.notifier is not None and recipient.email and recipient.email.strip():
            self.notifier.notify(sender, recipient, message)

        log.info("Message sent from %s to %s", sender.number, recipient.number)
        return message

    def history(self, session_id: str, target: str) -> List[Message]:
        user_id = self.directory.sessions.require(session_id)
        return self.logs.get(chat_key(user_id, target))
