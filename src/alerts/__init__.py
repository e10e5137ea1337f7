"""Alert pipeline — validation, debounce, priority queue, processors, orchestration."""

from src.alerts.audit import AuditLog
from src.alerts.debounce import DebounceController, DebounceDecision
from src.alerts.exceptions import AlertError, ValidationError, ValidationErrorKind
from src.alerts.factory import StateStores, create_alert_manager, create_state_stores
from src.alerts.manager import AlertManager
from src.alerts.processors import (
    CpuProcessor,
    DiskProcessor,
    MemoryProcessor,
    MetricProcessor,
    ThresholdEvaluator,
    build_processors,
    run_processors,
)
from src.alerts.queue import AlertQueue
from src.alerts.validator import EventValidator, validate_event

__all__ = [
    "AlertError",
    "AlertManager",
    "AlertQueue",
    "AuditLog",
    "CpuProcessor",
    "DebounceController",
    "DebounceDecision",
    "DiskProcessor",
    "EventValidator",
    "MemoryProcessor",
    "MetricProcessor",
    "StateStores",
    "ThresholdEvaluator",
    "ValidationError",
    "ValidationErrorKind",
    "build_processors",
    "create_alert_manager",
    "create_state_stores",
    "run_processors",
    "validate_event",
]
