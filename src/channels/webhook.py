"""Generic JSON webhook channel with optional HMAC signing."""

from __future__ import annotations

import datetime
import hashlib
import hmac
import json
import socket
from typing import Any

import structlog

from src.channels.base import HttpChannel
from src.channels.exceptions import ChannelConfigError
from src.channels.retry import RetryPolicy
from src.core.config import WebhookConfig

logger = structlog.get_logger(__name__)

SIGNATURE_HEADER = "X-Alert-Signature"


def sign_body(body: bytes, secret: str) -> str:
    """``sha256=<hex>`` HMAC of the exact request body."""
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


class WebhookChannel(HttpChannel):
    """POSTs a JSON document to an arbitrary URL.

    The body is ``{type, message, timestamp, host}`` unless *target* carries
    a raw JSON document, which is then sent verbatim.  Only 5xx and 429
    responses are retried, with exponential backoff plus jitter.
    """

    name = "webhook"
    default_template = "{message}"

    def __init__(self, config: WebhookConfig, **kwargs: Any) -> None:
        kwargs.setdefault("timeout_secs", config.timeout_secs)
        kwargs.setdefault(
            "retry",
            RetryPolicy(
                retries=config.retries,
                backoff_secs=config.backoff_base_secs,
                exponential=True,
                jitter_max_secs=config.jitter_max_ms / 1000.0,
                retry_all=False,
            ),
        )
        super().__init__(**kwargs)
        self._url = config.url.get_secret_value()
        self._extra_headers = dict(config.extra_headers)
        self._hmac_secret = config.hmac_secret.get_secret_value()

    def _secrets(self) -> list[str]:
        return [self._url, self._hmac_secret]

    def check_config(self, target: str | None = None) -> None:
        if not self._url:
            raise ChannelConfigError("GENERIC_WEBHOOK_URL not configured")
        if not self._url.startswith(("http://", "https://")):
            logger.warning("webhook_url_suspicious")

    def build_body(self, alert_type: str, message: str, raw_json: str | None = None) -> bytes:
        if raw_json:
            try:
                json.loads(raw_json)
            except json.JSONDecodeError:
                logger.warning("webhook_raw_payload_invalid")
            else:
                return raw_json.encode()
        payload = {
            "type": alert_type,
            "message": message,
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(timespec="seconds"),
            "host": socket.gethostname(),
        }
        return json.dumps(payload).encode()

    def build_headers(self, body: bytes) -> dict[str, str]:
        headers = {"Content-Type": "application/json", **self._extra_headers}
        if self._hmac_secret:
            headers[SIGNATURE_HEADER] = sign_body(body, self._hmac_secret)
        return headers

    async def _deliver(self, alert_type: str, text: str, target: str | None) -> None:
        body = self.build_body(alert_type, text, target)
        await self._post(self._url, data=body, headers=self.build_headers(body))
