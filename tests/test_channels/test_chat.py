"""Tests for Slack and Telegram channels — payloads, escaping, HTTP errors."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from pydantic import SecretStr

from src.channels.chat import SlackChannel, TelegramChannel, escape_telegram_markdown
from src.core.config import SlackConfig, TelegramConfig
from src.core.types import DeliveryStatus

# ── Helpers ─────────────────────────────────────────────────────


def _tg_config(**kw: object) -> TelegramConfig:
    defaults: dict[str, object] = {
        "enabled": True,
        "bot_token": SecretStr("fake-token"),
        "chat_id": "12345",
    }
    defaults.update(kw)
    return TelegramConfig(**defaults)  # type: ignore[arg-type]


def _slack_config(**kw: object) -> SlackConfig:
    defaults: dict[str, object] = {
        "enabled": True,
        "webhook_url": SecretStr("https://hooks.slack.test/fake"),
    }
    defaults.update(kw)
    return SlackConfig(**defaults)  # type: ignore[arg-type]


def _mock_response(status: int = 200, text: str = "ok") -> AsyncMock:
    resp = AsyncMock()
    resp.status = status
    resp.text = AsyncMock(return_value=text)
    resp.__aenter__ = AsyncMock(return_value=resp)
    resp.__aexit__ = AsyncMock(return_value=False)
    return resp


def _session(resp: AsyncMock) -> MagicMock:
    session = MagicMock()
    session.post = MagicMock(return_value=resp)
    session.closed = False
    return session


# ── SlackChannel ────────────────────────────────────────────────


class TestSlackChannel:
    async def test_send_success(self) -> None:
        ch = SlackChannel(_slack_config())
        session = _session(_mock_response(200))
        ch._session = session

        result = await ch.send("disk", "Disk /var usage 98.0% on svr01")

        assert result.ok
        call_args = session.post.call_args
        assert call_args[0][0] == "https://hooks.slack.test/fake"
        payload = call_args[1]["json"]
        assert payload["channel"] == "#alerts"
        assert payload["username"] == "Hostwatch Bot"
        assert payload["text"] == "\U0001f6a8 [disk] Disk /var usage 98.0% on svr01"
        assert payload["attachments"] == []

    async def test_custom_template_and_target(self) -> None:
        ch = SlackChannel(_slack_config(template="{type}: {message}"))
        session = _session(_mock_response(200))
        ch._session = session
        await ch.send("cpu", "hot", target="#ops")
        payload = session.post.call_args[1]["json"]
        assert payload["text"] == "cpu: hot"
        assert payload["channel"] == "#ops"

    async def test_rate_limited(self) -> None:
        ch = SlackChannel(_slack_config())
        ch._session = _session(_mock_response(429, "rate limited"))
        result = await ch.send("disk", "m")
        assert result.status == DeliveryStatus.TRANSPORT_FAILURE
        assert "429" in result.detail

    async def test_lazy_session_creation(self) -> None:
        ch = SlackChannel(_slack_config())
        assert ch._session is None
        session = ch._get_session()
        assert session is not None
        await ch.close()


# ── TelegramChannel ─────────────────────────────────────────────


class TestTelegramChannel:
    async def test_send_success(self) -> None:
        ch = TelegramChannel(_tg_config())
        session = _session(_mock_response(200))
        ch._session = session

        result = await ch.send("disk", "Disk /var usage 98.0% on svr01")

        assert result.ok
        call_args = session.post.call_args
        assert "fake-token" in call_args[0][0]
        payload = call_args[1]["json"]
        assert payload["chat_id"] == "12345"
        assert payload["parse_mode"] == "Markdown"
        assert payload["text"].startswith("*[DISK]*")

    async def test_markdown_escaped(self) -> None:
        ch = TelegramChannel(_tg_config())
        session = _session(_mock_response(200))
        ch._session = session
        await ch.send("disk", "usage_pct *high* on [svr01]")
        text = session.post.call_args[1]["json"]["text"]
        assert "usage\\_pct" in text
        assert "\\*high\\*" in text
        assert "\\[svr01]" in text

    def test_escape_helper(self) -> None:
        assert escape_telegram_markdown("a_b`c") == "a\\_b\\`c"

    async def test_missing_chat_id(self) -> None:
        ch = TelegramChannel(_tg_config(chat_id=""))
        result = await ch.send("disk", "m")
        assert result.status == DeliveryStatus.CONFIG_ERROR

    async def test_token_never_in_result(self) -> None:
        ch = TelegramChannel(_tg_config())
        session = MagicMock()
        session.post = MagicMock(side_effect=ConnectionError("bot fake-token unreachable"))
        session.closed = False
        ch._session = session
        result = await ch.send("disk", "m")
        assert result.status == DeliveryStatus.TRANSPORT_FAILURE
        assert "fake-token" not in result.detail
