# notifier.py
"""
Email notification of new messages.

Sending is fire-and-forget: notify() only schedules a background task that
talks SMTP from a worker thread, so the relay never waits on the mail server.
"""
from __future__ import annotations

import asyncio
import html
import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Mapping, Optional, Set

import codec
from models import Message, User

log = logging.getLogger("messagecaller.notifier")


def _header(value: Any) -> str:
    """Header-safe text: line breaks would start a new header."""
    return " ".join(str(value).splitlines()).strip()


def build_email(sender: User, recipient: User, message: Message, mail_from: str) -> EmailMessage:
    full_name = f"{sender.nickname} {sender.lastname}".strip()
    body = f"""
      <div style="font-family: Arial, sans-serif; padding: 20px;">
        <h2>New Message from {html.escape(full_name)}</h2>
        <p><strong>User Code:</strong> {sender.number}</p>
        <hr>
        <p><strong>Message (Original):</strong></p>
        <p style="background: #f0f0f0; padding: 15px; border-radius: 5px;">{html.escape(message.text)}</p>
        <hr>
        <p><strong>Encoded Message:</strong></p>
        <p style="background: #e8f5e9; padding: 15px; border-radius: 5px; font-family: monospace;">{codec.encode(message.text)}</p>
        <hr>
        <p style="color: #666; font-size: 12px;">Reply to this message on MessageCaller app</p>
      </div>
    """
    mail = EmailMessage()
    mail["From"] = _header(mail_from)
    mail["To"] = _header(recipient.email)
    mail["Subject"] = _header(f"Message from {sender.nickname} ({sender.number})")
    mail.set_content(f"{full_name} ({sender.number}): {message.text}\n\nEncoded: {codec.encode(message.text)}")
    mail.add_alternative(body, subtype="html")
    return mail


class EmailNotifier:
    def __init__(self, settings: Mapping[str, Any]) -> None:
        self.enabled = bool(settings.get("email_notifications", False))
        self.host = settings.get("smtp_host", "")
        self.port = int(settings.get("smtp_port", 587))
        self.user = settings.get("smtp_user", "")
        self.password = settings.get("smtp_password", "")
        self.starttls = bool(settings.get("smtp_starttls", True))
        self.timeout = float(settings.get("smtp_timeout_secs", 10))
        self.mail_from = settings.get("email_from", "")
        self._tasks: Set[asyncio.Task] = set()

    def notify(self, sender: User, recipient: User, message: Message) -> Optional[asyncio.Task]:
        if not self.enabled or not self.host:
            log.debug("Email notifications disabled; skipping %s", recipient.number)
            return None
        task = asyncio.create_task(self._send(sender, recipient, message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _send(self, sender: User, recipient: User, message: Message) -> None:
        try:
            mail = build_email(sender, recipient, message, self.mail_from)
            await asyncio.to_thread(self._deliver, mail)
        except (smtplib.SMTPException, OSError, ValueError) as exc:
            log.warning("Email send error to %s: %s", recipient.number, exc)
        else:
            log.info("Email sent to %s", recipient.number)

    def _deliver(self, mail: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.starttls:
                smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password)
            smtp.send_message(mail)

    async def aclose(self) -> None:
        """Cancel notifications still in flight (used on shutdown)."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    @property
    def pending(self) -> int:
        return len(self._tasks)
