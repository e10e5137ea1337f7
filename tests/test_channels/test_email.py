"""Tests for EmailChannel — message building and SMTP error mapping."""

from __future__ import annotations

import smtplib
from unittest.mock import MagicMock, patch

from src.channels.email import EmailChannel
from src.core.config import EmailConfig
from src.core.types import DeliveryStatus


def _config(**kw: object) -> EmailConfig:
    defaults: dict[str, object] = {
        "enabled": True,
        "from_addr": "alerts@example.test",
        "to_addr": "ops@example.test",
        "smtp_server": "mail.example.test",
        "smtp_port": 2525,
    }
    defaults.update(kw)
    return EmailConfig(**defaults)  # type: ignore[arg-type]


class TestEmailChannel:
    def test_subject(self) -> None:
        ch = EmailChannel(_config())
        assert ch.subject_for("disk") == "[HOSTWATCH] DISK"

    def test_build_message(self) -> None:
        ch = EmailChannel(_config())
        msg = ch.build_message("disk", "Disk /var usage 98.0% on svr01", "ops@example.test")
        assert msg["Subject"] == "[HOSTWATCH] DISK"
        assert msg["From"] == "alerts@example.test"
        assert msg["To"] == "ops@example.test"
        assert "Disk /var usage 98.0%" in msg.get_content()

    async def test_missing_recipient(self) -> None:
        ch = EmailChannel(_config(to_addr=""))
        result = await ch.send("disk", "m")
        assert result.status == DeliveryStatus.CONFIG_ERROR

    async def test_target_overrides_recipient(self) -> None:
        ch = EmailChannel(_config(to_addr=""))
        with patch("src.channels.email.smtplib.SMTP") as smtp_cls:
            result = await ch.send("disk", "m", target="oncall@example.test")
        assert result.ok
        sent = smtp_cls.return_value.__enter__.return_value.send_message.call_args[0][0]
        assert sent["To"] == "oncall@example.test"

    async def test_send_success(self) -> None:
        ch = EmailChannel(_config())
        with patch("src.channels.email.smtplib.SMTP") as smtp_cls:
            result = await ch.send("disk", "Disk full")
        assert result.ok
        smtp_cls.assert_called_once_with("mail.example.test", 2525, timeout=5.0)
        smtp = smtp_cls.return_value.__enter__.return_value
        smtp.send_message.assert_called_once()
        assert smtp.send_message.call_args[0][0].get_content().strip() == "Disk full"

    async def test_smtp_error_is_transport_failure(self) -> None:
        ch = EmailChannel(_config())
        smtp = MagicMock()
        smtp.send_message.side_effect = smtplib.SMTPRecipientsRefused({})
        with patch("src.channels.email.smtplib.SMTP") as smtp_cls:
            smtp_cls.return_value.__enter__.return_value = smtp
            result = await ch.send("disk", "m")
        assert result.status == DeliveryStatus.TRANSPORT_FAILURE
        assert "SMTP" in result.detail

    async def test_connection_refused(self) -> None:
        ch = EmailChannel(_config())
        with patch("src.channels.email.smtplib.SMTP", side_effect=ConnectionRefusedError("no")):
            result = await ch.send("disk", "m")
        assert result.status == DeliveryStatus.TRANSPORT_FAILURE
