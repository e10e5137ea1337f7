"""Persistent priority queue of pending notifications.

Persisted document::

    {"version": "0.3.1",
     "alerts": [{"id": ..., "priority": "low|medium|high", "type": ...,
                 "message": ..., "timestamp": <unix-seconds>,
                 "metadata": {...}}]}

Entries are kept in insertion order on disk; ``drain()`` and ``claim()`` hand
them out high → medium → low, FIFO within a tier. ``claim()`` leaves entries
in place until ``ack()`` removes them.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import structlog
from pydantic import ValidationError as ModelValidationError

from src.core.types import Priority, QueueEntry
from src.store.base import Document, StateStore

logger = structlog.get_logger(__name__)

QUEUE_VERSION = "0.3.1"


def order_entries(entries: list[QueueEntry]) -> list[QueueEntry]:
    """Priority-first, insertion order within a tier (``sorted`` is stable)."""
    return sorted(entries, key=lambda e: e.priority.rank)


class AlertQueue:
    """Durable, priority-ordered store of pending notifications.

    Producers (metric processors) call ``enqueue``; the alert manager is the
    sole consumer and calls ``drain``.  Every mutation runs inside a store
    transaction, so concurrent producers serialise on the store lock.
    Lock timeouts surface as ``LockTimeoutError``.
    """

    def __init__(
        self,
        store: StateStore,
        version: str = QUEUE_VERSION,
        enqueue_lock_timeout_secs: float = 5.0,
        drain_lock_timeout_secs: float = 10.0,
        promotion_age_secs: float = 3600.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._version = version
        self._enqueue_timeout = enqueue_lock_timeout_secs
        self._drain_timeout = drain_lock_timeout_secs
        self._promotion_age_secs = promotion_age_secs
        self._clock = clock

    # ── Producers ───────────────────────────────────────────────

    async def enqueue(
        self,
        priority: Priority | str,
        alert_type: str,
        message: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> QueueEntry:
        """Append one alert. Invalid metadata is replaced with ``{}``."""
        prio = Priority(priority)
        meta: dict[str, Any] = {}
        if metadata is not None:
            if isinstance(metadata, Mapping) and all(isinstance(k, str) for k in metadata):
                meta = dict(metadata)
            else:
                logger.warning("queue_invalid_metadata", alert_type=alert_type)

        entry = QueueEntry(
            priority=prio,
            type=alert_type,
            message=message,
            timestamp=self._clock(),
            metadata=meta,
        )
        async with self._store.transaction(timeout=self._enqueue_timeout) as doc:
            alerts = self._alerts(doc)
            alerts.append(entry.model_dump(mode="json"))

        logger.debug("queue_enqueued", priority=prio.value, alert_type=alert_type)
        return entry

    # ── Consumer ────────────────────────────────────────────────

    async def drain(self) -> list[QueueEntry]:
        """Remove and return every pending entry in processing order.

        Stale low-priority entries are promoted first; the previous queue
        document is backed up before it is emptied.
        """
        start = time.monotonic()
        async with self._store.transaction(timeout=self._drain_timeout, backup=True) as doc:
            entries = self._entries(doc)
            promoted = self._promote(entries)
            doc["version"] = self._version
            doc["alerts"] = []

        ordered = order_entries(entries)
        logger.info(
            "queue_drained",
            queue_processed=len(ordered),
            promoted=promoted,
            queue_processing_time=round(time.monotonic() - start, 4),
        )
        return ordered

    async def claim(self) -> list[QueueEntry]:
        """Return every pending entry in processing order, leaving it queued.

        Like ``drain()`` this backs up the document and persists promotions,
        but entries stay on disk until ``ack()`` removes them.
        """
        start = time.monotonic()
        async with self._store.transaction(timeout=self._drain_timeout, backup=True) as doc:
            entries = self._entries(doc)
            promoted = self._promote(entries)
            doc["version"] = self._version
            doc["alerts"] = [e.model_dump(mode="json") for e in entries]

        ordered = order_entries(entries)
        logger.info(
            "queue_claimed",
            queue_processed=len(ordered),
            promoted=promoted,
            queue_processing_time=round(time.monotonic() - start, 4),
        )
        return ordered

    async def ack(self, ids: Iterable[str]) -> int:
        """Remove the given entries once they are handled; returns the count."""
        done = set(ids)
        if not done:
            return 0
        async with self._store.transaction(timeout=self._drain_timeout) as doc:
            alerts = self._alerts(doc)
            kept = [a for a in alerts if not (isinstance(a, Mapping) and a.get("id") in done)]
            removed = len(alerts) - len(kept)
            doc["alerts"] = kept
        return removed

    # ── Inspection ──────────────────────────────────────────────

    async def promote_stale(self) -> int:
        """Persist one-step promotion of stale entries; returns the count."""
        async with self._store.transaction(timeout=self._enqueue_timeout, backup=True) as doc:
            entries = self._entries(doc)
            promoted = self._promote(entries)
            doc["version"] = self._version
            doc["alerts"] = [e.model_dump(mode="json") for e in entries]
        return promoted

    async def size(self) -> int:
        doc = await self._store.read(timeout=self._enqueue_timeout)
        return len(self._entries(doc))

    async def peek_pending(self) -> list[QueueEntry]:
        """Pending entries in processing order, without consuming them."""
        doc = await self._store.read(timeout=self._enqueue_timeout)
        return order_entries(self._entries(doc))

    # ── Internals ───────────────────────────────────────────────

    def _alerts(self, doc: Document) -> list[Any]:
        doc.setdefault("version", self._version)
        alerts = doc.get("alerts")
        if not isinstance(alerts, list):
            alerts = []
            doc["alerts"] = alerts
        return alerts

    def _entries(self, doc: Document) -> list[QueueEntry]:
        entries: list[QueueEntry] = []
        for item in self._alerts(doc):
            try:
                entries.append(QueueEntry.model_validate(item))
            except ModelValidationError:
                logger.warning("queue_entry_dropped", reason="unparsable", item=str(item)[:200])
        return entries

    def _promote(self, entries: list[QueueEntry]) -> int:
        # Single step: low → medium. Medium entries are never escalated.
        now = self._clock()
        promoted = 0
        for entry in entries:
            if entry.priority == Priority.LOW and now - entry.timestamp > self._promotion_age_secs:
                entry.priority = Priority.MEDIUM
                promoted += 1
        return promoted
