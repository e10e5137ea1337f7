"""Twilio channels — SMS (with retries) and WhatsApp."""

from __future__ import annotations

import re
from typing import Any

import aiohttp
import structlog

from src.channels.base import HttpChannel
from src.channels.exceptions import ChannelConfigError
from src.channels.retry import RetryPolicy
from src.core.config import SmsConfig, WhatsAppConfig

logger = structlog.get_logger(__name__)

_E164 = re.compile(r"^\+?[1-9]\d{7,14}$")

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


def is_e164(number: str) -> bool:
    return bool(_E164.match(number))


class _TwilioChannel(HttpChannel):
    """Shared Twilio Messages API plumbing."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        to_number: str,
        api_url: str,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._sid = account_sid
        self._token = auth_token
        self._from = from_number
        self._to = to_number
        self._api_url = api_url

    @property
    def api_url(self) -> str:
        return self._api_url or TWILIO_MESSAGES_URL.format(sid=self._sid)

    def _secrets(self) -> list[str]:
        return [self._token]

    def check_config(self, target: str | None = None) -> None:
        if not self._sid or not self._token:
            raise ChannelConfigError("TWILIO_SID/TWILIO_TOKEN not configured")
        if not (target or self._to):
            raise ChannelConfigError(f"{self.name} destination not configured")

    async def _deliver(self, alert_type: str, text: str, target: str | None) -> None:
        to_number = target or self._to
        self._check_destination(to_number)
        data = {"To": to_number, "From": self._from, "Body": text}
        await self._post(
            self.api_url,
            data=data,
            auth=aiohttp.BasicAuth(self._sid, self._token),
        )

    def _check_destination(self, number: str) -> None:
        """Warn (never fail) on a destination that looks malformed."""


class SmsChannel(_TwilioChannel):
    """Sends ``[TYPE] message`` by SMS, retrying before the breaker counts."""

    name = "sms"

    def __init__(self, config: SmsConfig, **kwargs: Any) -> None:
        kwargs.setdefault("timeout_secs", config.timeout_secs)
        kwargs.setdefault(
            "retry",
            RetryPolicy(retries=config.retries, backoff_secs=config.backoff_secs),
        )
        super().__init__(
            account_sid=config.account_sid,
            auth_token=config.auth_token.get_secret_value(),
            from_number=config.from_number,
            to_number=config.to_number,
            api_url=config.api_url,
            **kwargs,
        )

    def _check_destination(self, number: str) -> None:
        if not is_e164(number):
            logger.warning("sms_destination_not_e164", to=number)


class WhatsAppChannel(_TwilioChannel):
    """Sends a templated WhatsApp message through Twilio."""

    name = "whatsapp"

    def __init__(self, config: WhatsAppConfig, **kwargs: Any) -> None:
        kwargs.setdefault("timeout_secs", config.timeout_secs)
        kwargs.setdefault("template", config.template)
        super().__init__(
            account_sid=config.account_sid,
            auth_token=config.auth_token.get_secret_value(),
            from_number=config.from_number,
            to_number=config.to_number,
            api_url=config.api_url,
            **kwargs,
        )

    def _check_destination(self, number: str) -> None:
        if not number.startswith("whatsapp:+"):
            logger.warning("whatsapp_destination_format", to=number)
