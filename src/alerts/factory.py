"""Convenience factory for wiring the alert pipeline from settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from src.alerts.audit import AuditLog
from src.alerts.debounce import DebounceController
from src.alerts.manager import AlertManager
from src.alerts.processors import build_processors
from src.alerts.queue import AlertQueue
from src.alerts.validator import EventValidator
from src.channels.registry import build_channel_registry
from src.core.config import Settings, StorageConfig
from src.store.backup import BackupRotator
from src.store.base import MemoryStateStore, StateStore
from src.store.file import JsonFileStateStore


@dataclass
class StateStores:
    """The shared mutable resources of the pipeline."""

    debounce: StateStore
    queue: StateStore
    failures: StateStore
    audit: AuditLog


def create_state_stores(storage: StorageConfig, queue_version: str = "0.3.1") -> StateStores:
    """Build the stores for ``storage.backend`` ("file" or "memory")."""
    queue_default = {"version": queue_version, "alerts": []}

    if storage.backend == "memory":
        return StateStores(
            debounce=MemoryStateStore("debounce"),
            queue=MemoryStateStore(
                "queue", default=queue_default, max_backups=storage.max_backups
            ),
            failures=MemoryStateStore("channel_failures"),
            audit=AuditLog(
                max_records=storage.audit_max_records,
                keep_records=storage.audit_keep_records,
            ),
        )

    if storage.backend != "file":
        raise ValueError(f"unknown storage backend: {storage.backend!r}")

    state_dir = Path(storage.state_dir)
    queue_path = state_dir / storage.queue_file
    rotator = BackupRotator(
        state_dir / storage.backup_dir,
        stem=queue_path.stem,
        max_backups=storage.max_backups,
    )
    return StateStores(
        debounce=JsonFileStateStore("debounce", state_dir / storage.debounce_file),
        queue=JsonFileStateStore(
            "queue", queue_path, default=queue_default, backups=rotator
        ),
        failures=JsonFileStateStore("channel_failures", state_dir / storage.failures_file),
        audit=AuditLog(
            state_dir / storage.audit_file,
            max_records=storage.audit_max_records,
            keep_records=storage.audit_keep_records,
        ),
    )


def create_alert_manager(
    settings: Settings,
    stores: StateStores | None = None,
) -> AlertManager:
    """Build a fully wired ``AlertManager``.

    Args:
        settings: Root settings.
        stores: Pre-built stores (tests); created from ``settings.storage``
            when omitted.
    """
    stores = stores or create_state_stores(settings.storage, settings.queue.version)

    queue = AlertQueue(
        stores.queue,
        version=settings.queue.version,
        enqueue_lock_timeout_secs=settings.queue.enqueue_lock_timeout_secs,
        drain_lock_timeout_secs=settings.queue.drain_lock_timeout_secs,
        promotion_age_secs=settings.queue.promotion_age_secs,
    )
    debounce = DebounceController(
        stores.debounce,
        window_secs=settings.debounce.window_secs,
        lock_timeout_secs=settings.debounce.lock_timeout_secs,
    )
    channels = build_channel_registry(
        settings.channels,
        failures_store=stores.failures,
        lock_timeout_secs=settings.debounce.lock_timeout_secs,
    )

    return AlertManager(
        validator=EventValidator(settings.validation.required_fields),
        queue=queue,
        debounce=debounce,
        processors=build_processors(settings.processors),
        channels=channels,
        audit=stores.audit,
        processor_timeout_secs=settings.processors.timeout_secs,
        debounce_by_server=settings.debounce.key_by_server,
    )
