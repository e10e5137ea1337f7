"""Tests for StateStore transactions and the in-memory backing."""

from __future__ import annotations

import asyncio

import pytest

from src.store.base import MemoryStateStore
from src.store.exceptions import LockTimeoutError, StoreError


class TestTransaction:
    async def test_commit_on_clean_exit(self) -> None:
        store = MemoryStateStore("t")
        async with store.transaction() as doc:
            doc["cpu"] = 1.0
        assert await store.read() == {"cpu": 1.0}

    async def test_discard_on_exception(self) -> None:
        store = MemoryStateStore("t", initial={"cpu": 1.0})
        with pytest.raises(RuntimeError):
            async with store.transaction() as doc:
                doc["cpu"] = 2.0
                raise RuntimeError("boom")
        assert await store.read() == {"cpu": 1.0}
        assert store.locked is False

    async def test_read_returns_snapshot(self) -> None:
        store = MemoryStateStore("t", initial={"a": [1]})
        snap = await store.read()
        snap["a"].append(2)
        assert await store.read() == {"a": [1]}

    async def test_default_document(self) -> None:
        store = MemoryStateStore("q", default={"version": "0.3.1", "alerts": []})
        assert await store.read() == {"version": "0.3.1", "alerts": []}


class TestLocking:
    async def test_lock_timeout_raises(self) -> None:
        store = MemoryStateStore("t")
        async with store.transaction():
            with pytest.raises(LockTimeoutError):
                await store.read(timeout=0.01)

    async def test_lock_timeout_is_store_error(self) -> None:
        assert issubclass(LockTimeoutError, StoreError)

    async def test_concurrent_writers_serialise(self) -> None:
        store = MemoryStateStore("t", initial={"n": 0})

        async def bump() -> None:
            async with store.transaction() as doc:
                value = doc["n"]
                await asyncio.sleep(0)
                doc["n"] = value + 1

        await asyncio.gather(*(bump() for _ in range(20)))
        assert (await store.read())["n"] == 20


class TestHealing:
    async def test_non_mapping_resets_to_default(self) -> None:
        store = MemoryStateStore("t", default={"alerts": []}, initial=["garbage"])
        assert await store.read() == {"alerts": []}

    async def test_backups_keep_previous_versions(self) -> None:
        store = MemoryStateStore("q", initial={"v": 0}, max_backups=7)
        for i in range(1, 11):
            async with store.transaction(backup=True) as doc:
                doc["v"] = i
        backups = store.backups
        assert len(backups) == 7
        assert backups[0] == {"v": 3}
        assert backups[-1] == {"v": 9}

    async def test_no_backup_by_default(self) -> None:
        store = MemoryStateStore("q")
        async with store.transaction() as doc:
            doc["v"] = 1
        assert store.backups == []
