"""Domain types shared by the alert pipeline — events, queue entries, delivery results."""

from __future__ import annotations

import time
import uuid
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

# ── Inbound event ────────────────────────────────────────────────


class CpuMetrics(BaseModel):
    """CPU slice of an event."""

    usage: float


class MemoryMetrics(BaseModel):
    """Memory slice of an event."""

    usage: float


class DiskUsage(BaseModel):
    """One mounted filesystem."""

    mount: str = ""
    usage: float


class AlertEvent(BaseModel):
    """A validated monitoring snapshot for one host."""

    timestamp: datetime
    server_id: str
    cpu: CpuMetrics | None = None
    memory: MemoryMetrics | None = None
    disks: list[DiskUsage] = Field(default_factory=list)
    raw: dict[str, Any] = Field(default_factory=dict)


# ── Queue ────────────────────────────────────────────────────────


class Priority(StrEnum):
    """Queue priority tier."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Sort key — lower ranks are processed first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK: dict[Priority, int] = {
    Priority.HIGH: 0,
    Priority.MEDIUM: 1,
    Priority.LOW: 2,
}


class QueueEntry(BaseModel):
    """A pending notification owned by the alert queue."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    priority: Priority
    type: str
    message: str
    timestamp: float = Field(default_factory=time.time)
    metadata: dict[str, Any] = Field(default_factory=dict)


# ── Processors ───────────────────────────────────────────────────


class ProcessorOutcome(BaseModel):
    """Result of running one metric processor against an event."""

    domain: str
    enqueued: int = 0
    error: str = ""
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return not self.error


# ── Delivery ─────────────────────────────────────────────────────


class DeliveryStatus(StrEnum):
    """Outcome of one channel send."""

    SUCCESS = "SUCCESS"
    TRANSPORT_FAILURE = "TRANSPORT_FAILURE"
    CONFIG_ERROR = "CONFIG_ERROR"
    CIRCUIT_OPEN = "CIRCUIT_OPEN"


class DeliveryResult(BaseModel):
    """What happened when an alert was handed to a channel."""

    channel: str
    status: DeliveryStatus
    detail: str = ""
    dry_run: bool = False
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.status == DeliveryStatus.SUCCESS


class HealthStatus(StrEnum):
    """Channel health-check verdict."""

    OK = "OK"
    FAIL = "FAIL"
    TIMEOUT = "TIMEOUT"
    UNAVAILABLE = "UNAVAILABLE"


class ChannelHealth(BaseModel):
    """Health-check result for one channel."""

    channel: str
    status: HealthStatus
    detail: str = ""

    @property
    def healthy(self) -> bool:
        return self.status == HealthStatus.OK


# ── Audit / reporting ────────────────────────────────────────────


class AuditRecord(BaseModel):
    """Append-only trace of one consumed queue entry."""

    entry_id: str
    type: str
    priority: Priority
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    context: str = ""
    enqueued_at: float = 0.0
    processed_at: float = Field(default_factory=time.time)
    suppressed: bool = False
    deliveries: list[DeliveryResult] = Field(default_factory=list)

    @property
    def delivered(self) -> bool:
        return any(d.ok for d in self.deliveries)


class ManageOutcome(StrEnum):
    """Overall verdict of one alert-management cycle."""

    SUCCESS = "SUCCESS"
    PARTIAL_FAILURE = "PARTIAL_FAILURE"
    FAILURE = "FAILURE"


class ManageReport(BaseModel):
    """Summary returned to the caller of ``AlertManager.manage``."""

    server_id: str
    context: str
    processors: list[ProcessorOutcome] = Field(default_factory=list)
    records: list[AuditRecord] = Field(default_factory=list)

    @property
    def deliveries(self) -> list[DeliveryResult]:
        return [d for r in self.records for d in r.deliveries]

    @property
    def succeeded_channels(self) -> set[str]:
        return {d.channel for d in self.deliveries if d.ok}

    @property
    def failed_channels(self) -> set[str]:
        return {d.channel for d in self.deliveries if not d.ok}

    @property
    def outcome(self) -> ManageOutcome:
        deliveries = self.deliveries
        failed = [d for d in deliveries if not d.ok]
        if not failed:
            return ManageOutcome.SUCCESS
        if len(failed) < len(deliveries):
            return ManageOutcome.PARTIAL_FAILURE
        return ManageOutcome.FAILURE
