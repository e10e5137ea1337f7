"""Core module — config, types, logging."""

from src.core.config import Settings, get_settings, load_settings, reset_settings
from src.core.logging import setup_logging
from src.core.types import (
    AlertEvent,
    AuditRecord,
    ChannelHealth,
    DeliveryResult,
    DeliveryStatus,
    HealthStatus,
    ManageOutcome,
    ManageReport,
    Priority,
    QueueEntry,
)

__all__ = [
    "AlertEvent",
    "AuditRecord",
    "ChannelHealth",
    "DeliveryResult",
    "DeliveryStatus",
    "HealthStatus",
    "ManageOutcome",
    "ManageReport",
    "Priority",
    "QueueEntry",
    "Settings",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
