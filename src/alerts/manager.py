"""Alert manager — validates an event, fans out processors, drains and delivers."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import structlog

from src.alerts.audit import AuditLog
from src.alerts.debounce import DebounceController
from src.alerts.processors import MetricProcessor, run_processors
from src.alerts.queue import AlertQueue
from src.alerts.validator import EventValidator
from src.channels.registry import ChannelRegistry
from src.core.types import (
    AlertEvent,
    AuditRecord,
    DeliveryResult,
    DeliveryStatus,
    ManageReport,
    QueueEntry,
)
from src.store.exceptions import LockTimeoutError

logger = structlog.get_logger(__name__)

# Lifecycle hook: called with the validated event and the context label.
CycleHook = Callable[[AlertEvent, str], Awaitable[None] | None]


class AlertManager:
    """Runs one alert-management cycle per inbound event.

    Cycle::

        validate → before hooks → processors (concurrent, joined)
        → after hooks → claim queue → per entry: debounce gate,
        send via every registered channel → audit record → ack

    An entry leaves the queue only after its audit record is written, so
    an interrupted cycle leaves the rest pending for the next one.

    A ``ValidationError`` aborts the cycle and propagates to the caller.
    Processor faults, channel failures and per-entry errors are logged,
    recorded in the report and never stop sibling work.
    """

    def __init__(
        self,
        *,
        validator: EventValidator,
        queue: AlertQueue,
        debounce: DebounceController,
        processors: Mapping[str, MetricProcessor | None],
        channels: ChannelRegistry,
        audit: AuditLog,
        processor_timeout_secs: float = 30.0,
        debounce_by_server: bool = False,
    ) -> None:
        self._validator = validator
        self._queue = queue
        self._debounce = debounce
        self._processors = dict(processors)
        self._channels = channels
        self._audit = audit
        self._processor_timeout_secs = processor_timeout_secs
        self._debounce_by_server = debounce_by_server
        self._before_hooks: list[CycleHook] = []
        self._after_hooks: list[CycleHook] = []
        self._consume_lock = asyncio.Lock()

    @property
    def queue(self) -> AlertQueue:
        return self._queue

    @property
    def channels(self) -> ChannelRegistry:
        return self._channels

    @property
    def audit(self) -> AuditLog:
        return self._audit

    def on_before_cycle(self, hook: CycleHook) -> None:
        """Register a hook run after validation, before the processors."""
        self._before_hooks.append(hook)

    def on_after_cycle(self, hook: CycleHook) -> None:
        """Register a hook run after the processors, before the queue drain."""
        self._after_hooks.append(hook)

    # ── Cycle ───────────────────────────────────────────────────

    async def manage(
        self,
        raw: str | bytes | Mapping[str, Any],
        context: str = "unspecified",
    ) -> ManageReport:
        event = self._validator.validate(raw)
        log = logger.bind(server_id=event.server_id, context=context)
        log.debug("alert_cycle_started")

        await self._run_hooks(self._before_hooks, event, context, "before")

        outcomes = await run_processors(
            self._processors,
            event,
            self._queue,
            context,
            timeout_secs=self._processor_timeout_secs,
        )

        await self._run_hooks(self._after_hooks, event, context, "after")

        records: list[AuditRecord] = []
        async with self._consume_lock:
            try:
                entries = await self._queue.claim()
            except LockTimeoutError:
                log.error("queue_drain_lock_timeout")
                entries = []

            for entry in entries:
                record = await self._process_entry(entry, context)
                records.append(record)
                try:
                    await self._audit.append(record)
                except OSError:
                    # Left queued; the next cycle retries and audits it.
                    log.exception("audit_write_failed", entry_id=entry.id)
                    continue
                try:
                    await self._queue.ack([entry.id])
                except LockTimeoutError:
                    log.error("queue_ack_lock_timeout", entry_id=entry.id)

        report = ManageReport(
            server_id=event.server_id,
            context=context,
            processors=outcomes,
            records=records,
        )
        log.info(
            "alert_cycle_finished",
            outcome=report.outcome.value,
            entries=len(records),
            succeeded=sorted(report.succeeded_channels),
            failed=sorted(report.failed_channels),
        )
        return report

    async def close(self) -> None:
        await self._channels.close()

    # ── Internals ───────────────────────────────────────────────

    def _debounce_key(self, entry: QueueEntry) -> str:
        if self._debounce_by_server:
            return f"{entry.type}:{entry.metadata.get('host', '')}"
        return entry.type

    async def _process_entry(self, entry: QueueEntry, context: str) -> AuditRecord:
        record = AuditRecord(
            entry_id=entry.id,
            type=entry.type,
            priority=entry.priority,
            message=entry.message,
            metadata=entry.metadata,
            context=context,
            enqueued_at=entry.timestamp,
        )
        try:
            decision = await self._debounce.check(self._debounce_key(entry))
        except Exception:
            logger.exception("alert_entry_error", entry_id=entry.id, alert_type=entry.type)
            record.suppressed = True
            return record

        if not decision.allowed:
            record.suppressed = True
            logger.info(
                "alert_suppressed",
                alert_type=entry.type,
                remaining_secs=round(decision.remaining_secs, 1),
                lock_timeout=decision.lock_timeout,
            )
            return record

        for channel in self._channels:
            try:
                result = await channel.send(entry.type, entry.message)
            except Exception as exc:
                logger.exception("channel_send_error", channel=channel.name, entry_id=entry.id)
                result = DeliveryResult(
                    channel=channel.name,
                    status=DeliveryStatus.TRANSPORT_FAILURE,
                    detail=f"{type(exc).__name__}: {exc}",
                )
            record.deliveries.append(result)
        return record

    async def _run_hooks(
        self,
        hooks: list[CycleHook],
        event: AlertEvent,
        context: str,
        phase: str,
    ) -> None:
        for hook in hooks:
            try:
                result = hook(event, context)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("cycle_hook_error", phase=phase)
