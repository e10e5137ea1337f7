"""Debounce controller — at most one alert per type per window."""

from __future__ import annotations

import time
from collections.abc import Callable

import structlog
from pydantic import BaseModel

from src.store.base import StateStore
from src.store.exceptions import LockTimeoutError

logger = structlog.get_logger(__name__)


class DebounceDecision(BaseModel):
    """Result of a debounce check."""

    key: str
    allowed: bool
    remaining_secs: float = 0.0
    lock_timeout: bool = False


class DebounceController:
    """Suppresses repeated alerts of the same key inside a time window.

    The last-sent timestamps live in a shared ``StateStore`` so every
    consumer of the pipeline sees the same window.  The check and the update
    happen inside one store transaction; a lock timeout denies the alert.
    """

    def __init__(
        self,
        store: StateStore,
        window_secs: float = 300.0,
        lock_timeout_secs: float = 5.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._window_secs = window_secs
        self._lock_timeout_secs = lock_timeout_secs
        self._clock = clock

    @property
    def window_secs(self) -> float:
        return self._window_secs

    async def check(self, key: str) -> DebounceDecision:
        """Allow-and-record, or deny with the remaining wait."""
        try:
            async with self._store.transaction(timeout=self._lock_timeout_secs) as last_sent:
                now = self._clock()
                previous = last_sent.get(key, 0)
                if not isinstance(previous, int | float) or isinstance(previous, bool):
                    previous = 0
                elapsed = now - previous
                if elapsed >= self._window_secs:
                    last_sent[key] = now
                    logger.debug("debounce_allowed", alert_type=key)
                    return DebounceDecision(key=key, allowed=True)
                remaining = self._window_secs - elapsed
        except LockTimeoutError:
            logger.debug("debounce_lock_timeout", alert_type=key)
            return DebounceDecision(key=key, allowed=False, lock_timeout=True)

        logger.debug("debounce_denied", alert_type=key, remaining_secs=round(remaining, 1))
        return DebounceDecision(key=key, allowed=False, remaining_secs=remaining)

    async def can_send(self, key: str) -> bool:
        """True when an alert for *key* may go out now."""
        decision = await self.check(key)
        return decision.allowed

    async def reset(self, key: str | None = None) -> None:
        """Forget one key, or every key when *key* is None."""
        async with self._store.transaction(timeout=self._lock_timeout_secs) as last_sent:
            if key is None:
                last_sent.clear()
            else:
                last_sent.pop(key, None)
