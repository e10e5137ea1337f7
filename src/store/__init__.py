"""Shared state stores — debounce map, queue, channel failure counters."""

from src.store.backup import BackupRotator
from src.store.base import MemoryStateStore, StateStore
from src.store.exceptions import LockTimeoutError, StoreError
from src.store.file import JsonFileStateStore

__all__ = [
    "BackupRotator",
    "JsonFileStateStore",
    "LockTimeoutError",
    "MemoryStateStore",
    "StateStore",
    "StoreError",
]
