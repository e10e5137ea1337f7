"""Chat channels — Slack incoming webhook and Telegram Bot API."""

from __future__ import annotations

import re
from typing import Any

from src.channels.base import HttpChannel
from src.channels.exceptions import ChannelConfigError
from src.core.config import SlackConfig, TelegramConfig

# Characters with meaning in Telegram's legacy Markdown parse mode.
_TELEGRAM_MD = re.compile(r"([_*\[`])")


def escape_telegram_markdown(text: str) -> str:
    return _TELEGRAM_MD.sub(r"\\\1", text)


class SlackChannel(HttpChannel):
    """Posts a templated message to a Slack incoming webhook."""

    name = "slack"

    def __init__(self, config: SlackConfig, **kwargs: Any) -> None:
        kwargs.setdefault("timeout_secs", config.timeout_secs)
        kwargs.setdefault("template", config.template)
        super().__init__(**kwargs)
        self._config = config
        self._webhook_url = config.webhook_url.get_secret_value()

    def _secrets(self) -> list[str]:
        return [self._webhook_url]

    def check_config(self, target: str | None = None) -> None:
        if not self._webhook_url:
            raise ChannelConfigError("SLACK_WEBHOOK_URL not configured")

    def build_payload(self, text: str, target: str | None = None) -> dict[str, Any]:
        return {
            "channel": target or self._config.channel,
            "text": text,
            "username": self._config.username,
            "attachments": [],
        }

    async def _deliver(self, alert_type: str, text: str, target: str | None) -> None:
        await self._post(self._webhook_url, json=self.build_payload(text, target))


class TelegramChannel(HttpChannel):
    """Delivers alerts via the Telegram Bot API (Markdown parse mode)."""

    name = "telegram"

    def __init__(self, config: TelegramConfig, **kwargs: Any) -> None:
        kwargs.setdefault("timeout_secs", config.timeout_secs)
        super().__init__(**kwargs)
        self._token = config.bot_token.get_secret_value()
        self._chat_id = config.chat_id

    def _secrets(self) -> list[str]:
        return [self._token]

    def check_config(self, target: str | None = None) -> None:
        if not self._token or not (target or self._chat_id):
            raise ChannelConfigError("TELEGRAM_BOT_TOKEN/TELEGRAM_CHAT_ID not configured")

    def format_message(self, alert_type: str, message: str) -> str:
        return f"*[{alert_type.upper()}]* {escape_telegram_markdown(message)}"

    async def _deliver(self, alert_type: str, text: str, target: str | None) -> None:
        url = f"https://api.telegram.org/bot{self._token}/sendMessage"
        payload = {
            "chat_id": target or self._chat_id,
            "text": text,
            "parse_mode": "Markdown",
        }
        await self._post(url, json=payload)
