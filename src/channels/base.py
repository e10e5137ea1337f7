"""Channel contract — config check, circuit breaker, dry run, bounded send."""

from __future__ import annotations

import abc
import asyncio
import datetime
from typing import Any, ClassVar

import aiohttp
import structlog

from src.channels.breaker import CircuitBreaker
from src.channels.exceptions import ChannelConfigError, CircuitOpenError, TransportError
from src.channels.retry import RetryPolicy
from src.core.types import DeliveryResult, DeliveryStatus

logger = structlog.get_logger(__name__)

MAX_BODY_LOG = 400


class NotificationChannel(abc.ABC):
    """Base class for alert delivery channels.

    Subclasses implement ``check_config()`` and ``_deliver()``; ``send()``
    wraps them with the uniform policy:

    1. missing configuration → ``CONFIG_ERROR`` (breaker untouched)
    2. breaker open → ``CIRCUIT_OPEN`` (no network call)
    3. dry run → simulated ``SUCCESS``
    4. network call bounded by ``timeout_secs`` (and the retry policy, if
       any); exhaustion counts as one breaker failure, success resets it.

    ``send()`` never raises: unexpected errors from a backend are reported as
    ``TRANSPORT_FAILURE`` and counted against the breaker.
    """

    name: ClassVar[str]
    default_template: ClassVar[str] = "[{type}] {message}"

    def __init__(
        self,
        *,
        breaker: CircuitBreaker | None = None,
        retry: RetryPolicy | None = None,
        dry_run: bool = False,
        timeout_secs: float = 10.0,
        template: str | None = None,
    ) -> None:
        self._breaker = breaker
        self._retry = retry
        self._dry_run = dry_run
        self._timeout_secs = timeout_secs
        self._template = template or self.default_template

    @property
    def breaker(self) -> CircuitBreaker | None:
        return self._breaker

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    # ── Subclass hooks ──────────────────────────────────────────

    @abc.abstractmethod
    def check_config(self, target: str | None = None) -> None:
        """Raise ``ChannelConfigError`` if credentials/destination are missing."""

    @abc.abstractmethod
    async def _deliver(self, alert_type: str, text: str, target: str | None) -> None:
        """Perform one network attempt. Raise ``TransportError`` on failure."""

    def _secrets(self) -> list[str]:
        """Credential values that must never appear in logs or results."""
        return []

    # ── Formatting ──────────────────────────────────────────────

    def format_message(self, alert_type: str, message: str) -> str:
        return self._template.replace("{type}", alert_type).replace("{message}", message)

    def scrub(self, text: str) -> str:
        for secret in self._secrets():
            if secret:
                text = text.replace(secret, "***")
        return text

    # ── Send ────────────────────────────────────────────────────

    async def send(
        self,
        alert_type: str,
        message: str,
        target: str | None = None,
    ) -> DeliveryResult:
        """Deliver one alert and report what happened."""
        try:
            self.check_config(target)
        except ChannelConfigError as exc:
            logger.error("channel_config_error", channel=self.name, error=str(exc))
            return self._result(DeliveryStatus.CONFIG_ERROR, str(exc))

        if self._breaker is not None and await self._breaker.is_open():
            err = CircuitOpenError(
                f"{self.name} disabled after {self._breaker.threshold} consecutive failures"
            )
            logger.warning("channel_circuit_open", channel=self.name)
            return self._result(DeliveryStatus.CIRCUIT_OPEN, str(err))

        text = self.format_message(alert_type, message)

        if self._dry_run:
            logger.info("channel_dry_run", channel=self.name, alert_type=alert_type)
            return self._result(DeliveryStatus.SUCCESS, "dry run", dry_run=True, attempts=1)

        try:
            attempts = await self._send_with_policy(alert_type, text, target)
        except TransportError as exc:
            failures = await self.record_failure()
            body = self.scrub(exc.body)[:MAX_BODY_LOG]
            logger.warning(
                "channel_send_failed",
                channel=self.name,
                alert_type=alert_type,
                status=exc.status,
                body=body,
                attempts=exc.attempts,
                consecutive_failures=failures,
            )
            return self._result(
                DeliveryStatus.TRANSPORT_FAILURE,
                self.scrub(str(exc)),
                attempts=exc.attempts,
            )
        except Exception as exc:
            failures = await self.record_failure()
            logger.exception(
                "channel_send_error",
                channel=self.name,
                alert_type=alert_type,
                consecutive_failures=failures,
            )
            return self._result(
                DeliveryStatus.TRANSPORT_FAILURE,
                self.scrub(f"{type(exc).__name__}: {exc}"),
                attempts=1,
            )

        if self._breaker is not None:
            await self._breaker.record_success()
        logger.info("channel_send_ok", channel=self.name, alert_type=alert_type, attempts=attempts)
        return self._result(DeliveryStatus.SUCCESS, attempts=attempts)

    async def test(self) -> DeliveryResult:
        """Health probe — sends a TEST alert through the normal path."""
        now = datetime.datetime.now(datetime.UTC).isoformat(timespec="seconds")
        return await self.send("TEST", f"{self.name} channel test @ {now}")

    async def record_failure(self) -> int:
        """Count a failure against the breaker (also used for cancelled sends)."""
        if self._breaker is None:
            return 0
        return await self._breaker.record_failure()

    async def close(self) -> None:
        """Release resources (HTTP sessions, etc.)."""

    # ── Internals ───────────────────────────────────────────────

    async def _attempt(self, alert_type: str, text: str, target: str | None) -> None:
        try:
            await asyncio.wait_for(self._deliver(alert_type, text, target), self._timeout_secs)
        except TimeoutError as exc:
            raise TransportError(f"timed out after {self._timeout_secs}s") from exc

    async def _send_with_policy(self, alert_type: str, text: str, target: str | None) -> int:
        if self._retry is None:
            await self._attempt(alert_type, text, target)
            return 1
        _, attempts = await self._retry.run(
            lambda: self._attempt(alert_type, text, target),
            label=self.name,
        )
        return attempts

    def _result(
        self,
        status: DeliveryStatus,
        detail: str = "",
        *,
        dry_run: bool = False,
        attempts: int = 0,
    ) -> DeliveryResult:
        return DeliveryResult(
            channel=self.name,
            status=status,
            detail=detail,
            dry_run=dry_run,
            attempts=attempts,
        )


class HttpChannel(NotificationChannel):
    """Channel that delivers over HTTP with a lazily created aiohttp session."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def _post(self, url: str, **kwargs: Any) -> tuple[int, str]:
        """POST and return ``(status, body)``; non-2xx raises ``TransportError``."""
        try:
            session = self._get_session()
            async with session.post(url, **kwargs) as resp:
                body = await resp.text()
                if 200 <= resp.status < 300:
                    return resp.status, body
                raise TransportError(
                    f"HTTP {resp.status}",
                    status=resp.status,
                    body=body[:MAX_BODY_LOG],
                    retryable=resp.status >= 500 or resp.status == 429,
                )
        except (aiohttp.ClientError, OSError) as exc:
            raise TransportError(self.scrub(f"{type(exc).__name__}: {exc}")) from exc

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
