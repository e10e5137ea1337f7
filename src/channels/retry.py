"""Bounded retry with fixed or exponential backoff for channel sends."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from src.channels.exceptions import TransportError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


class RetryPolicy:
    """Retries a coroutine factory on ``TransportError``.

    ``retries`` is the number of extra attempts after the first one.  With
    ``exponential=False`` every wait is ``backoff_secs``; otherwise the wait
    before retry *n* is ``backoff_secs ** n`` plus up to ``jitter_max_secs``
    of random jitter.  When ``retry_all`` is False only errors flagged
    ``retryable`` (5xx / 429) are retried.
    """

    def __init__(
        self,
        retries: int = 2,
        backoff_secs: float = 2.0,
        exponential: bool = False,
        jitter_max_secs: float = 0.0,
        retry_all: bool = True,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.retries = max(0, retries)
        self.backoff_secs = backoff_secs
        self.exponential = exponential
        self.jitter_max_secs = jitter_max_secs
        self.retry_all = retry_all
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self.retries + 1

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number *attempt* (1-based)."""
        delay = self.backoff_secs ** attempt if self.exponential else self.backoff_secs
        if self.jitter_max_secs > 0:
            delay += random.uniform(0, self.jitter_max_secs)
        return delay

    async def run(self, fn: Callable[[], Awaitable[T]], label: str = "") -> tuple[T, int]:
        """Call *fn* until it succeeds or attempts run out.

        Returns ``(result, attempts)``.  The final ``TransportError`` is
        re-raised with ``attempts`` set.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await fn(), attempt
            except TransportError as exc:
                exc.attempts = attempt
                if attempt >= self.max_attempts or not (self.retry_all or exc.retryable):
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "send_retry",
                    channel=label,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    status=exc.status,
                    delay_secs=round(delay, 3),
                )
                await self._sleep(delay)
