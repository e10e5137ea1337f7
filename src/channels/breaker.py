"""Per-channel circuit breaker backed by the shared failure-counter store."""

from __future__ import annotations

import structlog

from src.store.base import StateStore
from src.store.exceptions import LockTimeoutError

logger = structlog.get_logger(__name__)


class CircuitBreaker:
    """Counts consecutive send failures for one channel.

    The breaker is open while ``consecutive_failures >= threshold``.  Only a
    successful send resets the counter; there is no time-based half-open
    state.  Counters for all channels share one ``StateStore`` document keyed
    by channel name.
    """

    def __init__(
        self,
        channel: str,
        store: StateStore,
        threshold: int = 3,
        lock_timeout_secs: float = 5.0,
    ) -> None:
        self._channel = channel
        self._store = store
        self._threshold = threshold
        self._lock_timeout_secs = lock_timeout_secs

    @property
    def channel(self) -> str:
        return self._channel

    @property
    def threshold(self) -> int:
        return self._threshold

    async def failures(self) -> int:
        """Current consecutive-failure count."""
        doc = await self._store.read(timeout=self._lock_timeout_secs)
        return self._count(doc.get(self._channel))

    async def is_open(self) -> bool:
        """True when sends must be skipped. Lock contention counts as open."""
        try:
            failures = await self.failures()
        except LockTimeoutError:
            logger.warning("breaker_lock_timeout", channel=self._channel)
            return True
        return failures >= self._threshold

    async def record_failure(self) -> int:
        """Increment the counter; returns the new value."""
        try:
            async with self._store.transaction(timeout=self._lock_timeout_secs) as doc:
                failures = self._count(doc.get(self._channel)) + 1
                doc[self._channel] = failures
        except LockTimeoutError:
            logger.warning("breaker_lock_timeout", channel=self._channel, op="record_failure")
            return -1
        if failures == self._threshold:
            logger.warning("breaker_opened", channel=self._channel, failures=failures)
        return failures

    async def record_success(self) -> None:
        """Reset the counter to zero."""
        try:
            async with self._store.transaction(timeout=self._lock_timeout_secs) as doc:
                previous = self._count(doc.get(self._channel))
                doc[self._channel] = 0
        except LockTimeoutError:
            logger.warning("breaker_lock_timeout", channel=self._channel, op="record_success")
            return
        if previous >= self._threshold:
            logger.info("breaker_closed", channel=self._channel)

    @staticmethod
    def _count(value: object) -> int:
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return value
        return 0
