"""Mail a digest of events at the end of a run."""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from urllib.parse import unquote, urlsplit

from steer.channels.base import NotificationChannel
from steer.models import Level, NotificationEvent

logger = logging.getLogger(__name__)


class MailChannel(NotificationChannel):
    """``mailto:ops@example.com`` (or ``mailto://``): one mail per run.

    Deferred: events are buffered and sent as a single message on flush.
    """

    deferred = True

    def __init__(self, uri, level, settings):
        super().__init__(uri, level, settings)
        parts = urlsplit(uri)
        recipients = unquote(parts.netloc + parts.path).strip("/")
        self.recipients = [r.strip() for r in recipients.split(",") if r.strip()]
        if not self.recipients:
            raise ValueError(f"No recipient in mail notification URI: {uri}")
        self._events: list[NotificationEvent] = []

    async def deliver(self, event: NotificationEvent) -> None:
        self._events.append(event)

    def build_message(self) -> EmailMessage:
        """Compose the digest mail from buffered events."""
        worst = max(event.level for event in self._events)
        last = self._events[-1].message.splitlines()[0] if self._events[-1].message else ""
        message = EmailMessage()
        message["From"] = self.settings.mail_from
        message["To"] = ", ".join(self.recipients)
        prefix = "[steer]" if worst < Level.ERROR else f"[steer {worst.label}]"
        message["Subject"] = f"{prefix} {last}".strip()
        message.set_content(
            "\n".join(
                f"{e.timestamp:%H:%M:%S} [{e.level.name}] {e.text()}" for e in self._events
            )
            + "\n"
        )
        return message

    def _send(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=30) as smtp:
            smtp.send_message(message)

    async def flush(self) -> None:
        if not self._events:
            return
        message = self.build_message()
        logger.info(
            "Mailing %d events to %s via %s:%d",
            len(self._events),
            message["To"],
            self.settings.smtp_host,
            self.settings.smtp_port,
        )
        self._events = []
        await asyncio.to_thread(self._send, message)
