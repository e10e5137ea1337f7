"""Transactional JSON-document store with a bounded-wait exclusive lock."""

from __future__ import annotations

import abc
import asyncio
import copy
import json
from collections import deque
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog

from src.store.exceptions import LockTimeoutError

logger = structlog.get_logger(__name__)

Document = dict[str, Any]


class StateStore(abc.ABC):
    """Base class for the shared mutable state of the pipeline.

    Every access goes through ``transaction()`` (read-modify-write) or
    ``read()`` (snapshot).  Both acquire the store's own lock with a bounded
    wait and raise ``LockTimeoutError`` when it expires, so callers can fail
    closed.

    Usage::

        async with store.transaction(timeout=5.0) as doc:
            doc["cpu"] = now
        # committed here; an exception inside the block discards the change
    """

    def __init__(
        self,
        name: str,
        default: Document | None = None,
        lock_timeout: float = 5.0,
    ) -> None:
        self.name = name
        self._default: Document = default if default is not None else {}
        self._lock_timeout = lock_timeout
        self._lock = asyncio.Lock()

    # ── Public API ──────────────────────────────────────────────

    @asynccontextmanager
    async def transaction(
        self,
        timeout: float | None = None,
        backup: bool = False,
    ) -> AsyncIterator[Document]:
        """Hold the lock around a read-modify-write of the document.

        Args:
            timeout: Lock wait override in seconds.
            backup: Preserve the previous version before committing.
        """
        await self._acquire(timeout)
        try:
            doc = self._load()
            yield doc
            self._save(doc, backup=backup)
        finally:
            self._lock.release()

    async def read(self, timeout: float | None = None) -> Document:
        """Return a snapshot of the current document."""
        await self._acquire(timeout)
        try:
            return self._load()
        finally:
            self._lock.release()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    # ── Backing medium ──────────────────────────────────────────

    @abc.abstractmethod
    def _load(self) -> Document:
        """Read the document, healing unreadable content to the default."""

    @abc.abstractmethod
    def _save(self, doc: Document, backup: bool = False) -> None:
        """Persist the document."""

    # ── Internals ───────────────────────────────────────────────

    def _fresh_default(self) -> Document:
        return copy.deepcopy(self._default)

    def _heal(self, reason: str) -> Document:
        logger.warning("state_store_reset", store=self.name, reason=reason)
        return self._fresh_default()

    async def _acquire(self, timeout: float | None) -> None:
        wait = self._lock_timeout if timeout is None else timeout
        try:
            await asyncio.wait_for(self._lock.acquire(), wait)
        except TimeoutError as exc:
            raise LockTimeoutError(
                f"{self.name}: lock not acquired within {wait}s"
            ) from exc


class MemoryStateStore(StateStore):
    """In-process backing, used by tests and ``storage.backend: memory``."""

    def __init__(
        self,
        name: str,
        default: Document | None = None,
        lock_timeout: float = 5.0,
        max_backups: int = 7,
        initial: Any = None,
    ) -> None:
        super().__init__(name, default=default, lock_timeout=lock_timeout)
        self._data: Any = initial if initial is not None else self._fresh_default()
        self._backups: deque[Document] = deque(maxlen=max_backups)

    @property
    def backups(self) -> list[Document]:
        """Preserved prior versions, oldest first."""
        return [copy.deepcopy(b) for b in self._backups]

    def _load(self) -> Document:
        if not isinstance(self._data, dict):
            return self._heal("not a mapping")
        # JSON round-trip mirrors what the file backing can represent.
        return json.loads(json.dumps(self._data))

    def _save(self, doc: Document, backup: bool = False) -> None:
        if backup and isinstance(self._data, dict):
            self._backups.append(copy.deepcopy(self._data))
        self._data = json.loads(json.dumps(doc))
