"""SMTP email channel."""

from __future__ import annotations

import asyncio
import smtplib
from email.message import EmailMessage
from typing import Any

from src.channels.base import NotificationChannel
from src.channels.exceptions import ChannelConfigError, TransportError
from src.core.config import EmailConfig


class EmailChannel(NotificationChannel):
    """Sends plain-text mail through an SMTP relay.

    ``smtplib`` is blocking, so the exchange runs in a worker thread; the
    socket timeout and the channel timeout both bound it.
    """

    name = "email"
    default_template = "{message}"

    def __init__(self, config: EmailConfig, **kwargs: Any) -> None:
        kwargs.setdefault("timeout_secs", config.timeout_secs)
        super().__init__(**kwargs)
        self._config = config

    def check_config(self, target: str | None = None) -> None:
        if not (target or self._config.to_addr):
            raise ChannelConfigError("ALERT_EMAIL_TO not configured")
        if not self._config.smtp_server:
            raise ChannelConfigError("SMTP_SERVER not configured")

    def subject_for(self, alert_type: str) -> str:
        return f"{self._config.subject_prefix} {alert_type.upper()}"

    def build_message(self, alert_type: str, text: str, to_addr: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = self.subject_for(alert_type)
        msg["From"] = self._config.from_addr
        msg["To"] = to_addr
        msg.set_content(text)
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(
            self._config.smtp_server,
            self._config.smtp_port,
            timeout=self._timeout_secs,
        ) as smtp:
            smtp.send_message(msg)

    async def _deliver(self, alert_type: str, text: str, target: str | None) -> None:
        msg = self.build_message(alert_type, text, target or self._config.to_addr)
        try:
            await asyncio.to_thread(self._send_sync, msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise TransportError(f"SMTP {type(exc).__name__}: {exc}") from exc
