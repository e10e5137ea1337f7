"""Metric processors — one per domain, run concurrently for every event."""

from __future__ import annotations

import abc
import asyncio
from collections.abc import Callable, Mapping
from typing import Any, ClassVar

import structlog

from src.alerts.queue import AlertQueue
from src.core.config import ProcessorsConfig, ThresholdConfig
from src.core.types import AlertEvent, Priority, ProcessorOutcome

logger = structlog.get_logger(__name__)

# Decides whether a usage figure is abnormal and how urgent it is.
MetricEvaluator = Callable[[float], Priority | None]


class ThresholdEvaluator:
    """``usage >= critical`` → high, ``usage >= warning`` → medium."""

    def __init__(self, critical: float = 90.0, warning: float | None = None) -> None:
        self.critical = critical
        self.warning = warning

    @classmethod
    def from_config(cls, config: ThresholdConfig) -> ThresholdEvaluator:
        return cls(critical=config.critical, warning=config.warning)

    def __call__(self, usage: float) -> Priority | None:
        if usage >= self.critical:
            return Priority.HIGH
        if self.warning is not None and usage >= self.warning:
            return Priority.MEDIUM
        return None


class MetricProcessor(abc.ABC):
    """Evaluates one metric domain of an event and enqueues alerts."""

    domain: ClassVar[str]

    def __init__(self, evaluator: MetricEvaluator | None = None) -> None:
        self._evaluator: MetricEvaluator = evaluator or ThresholdEvaluator()

    @abc.abstractmethod
    def readings(self, event: AlertEvent) -> list[tuple[float, dict[str, Any]]]:
        """Usage figures this domain contributes, with per-reading metadata."""

    @abc.abstractmethod
    def describe(self, event: AlertEvent, usage: float, metadata: dict[str, Any]) -> str:
        """Human-readable alert text."""

    async def process(
        self,
        event: AlertEvent,
        timestamp: str,
        context: str,
        queue: AlertQueue,
    ) -> int:
        """Enqueue one alert per abnormal reading; returns how many."""
        enqueued = 0
        for usage, extra in self.readings(event):
            priority = self._evaluator(usage)
            if priority is None:
                continue
            metadata: dict[str, Any] = {
                "host": event.server_id,
                "usage": usage,
                "event_timestamp": timestamp,
                "context": context,
                **extra,
            }
            await queue.enqueue(
                priority,
                self.domain,
                self.describe(event, usage, metadata),
                metadata,
            )
            enqueued += 1
        return enqueued


class CpuProcessor(MetricProcessor):
    domain = "cpu"

    def readings(self, event: AlertEvent) -> list[tuple[float, dict[str, Any]]]:
        if event.cpu is None:
            return []
        return [(event.cpu.usage, {})]

    def describe(self, event: AlertEvent, usage: float, metadata: dict[str, Any]) -> str:
        return f"CPU usage {usage:.1f}% on {event.server_id}"


class MemoryProcessor(MetricProcessor):
    domain = "memory"

    def readings(self, event: AlertEvent) -> list[tuple[float, dict[str, Any]]]:
        if event.memory is None:
            return []
        return [(event.memory.usage, {})]

    def describe(self, event: AlertEvent, usage: float, metadata: dict[str, Any]) -> str:
        return f"Memory usage {usage:.1f}% on {event.server_id}"


class DiskProcessor(MetricProcessor):
    domain = "disk"

    def readings(self, event: AlertEvent) -> list[tuple[float, dict[str, Any]]]:
        return [(d.usage, {"mount": d.mount}) for d in event.disks]

    def describe(self, event: AlertEvent, usage: float, metadata: dict[str, Any]) -> str:
        mount = metadata.get("mount") or "?"
        return f"Disk {mount} usage {usage:.1f}% on {event.server_id}"


PROCESSOR_TYPES: dict[str, type[MetricProcessor]] = {
    CpuProcessor.domain: CpuProcessor,
    MemoryProcessor.domain: MemoryProcessor,
    DiskProcessor.domain: DiskProcessor,
}


def build_processors(config: ProcessorsConfig) -> dict[str, MetricProcessor | None]:
    """Instantiate the enabled processors.

    A name with no implementation maps to None and is reported as skipped
    at run time instead of failing the cycle.
    """
    thresholds: dict[str, ThresholdConfig] = {
        "cpu": config.cpu,
        "memory": config.memory,
        "disk": config.disk,
    }
    processors: dict[str, MetricProcessor | None] = {}
    for name in config.enabled:
        cls = PROCESSOR_TYPES.get(name)
        if cls is None:
            processors[name] = None
            continue
        threshold = thresholds.get(name, ThresholdConfig())
        processors[name] = cls(ThresholdEvaluator.from_config(threshold))
    return processors


async def run_processors(
    processors: Mapping[str, MetricProcessor | None],
    event: AlertEvent,
    queue: AlertQueue,
    context: str,
    timeout_secs: float = 30.0,
) -> list[ProcessorOutcome]:
    """Run every processor concurrently and wait for all of them.

    A failing or timed-out processor is logged and reported in its outcome;
    it never cancels its siblings.
    """
    timestamp = str(event.raw.get("timestamp", event.timestamp.isoformat()))

    async def _run(name: str, proc: MetricProcessor | None) -> ProcessorOutcome:
        if proc is None:
            logger.warning("processor_unavailable", processor=name)
            return ProcessorOutcome(domain=name, skipped=True)
        logger.debug("processor_started", processor=name)
        enqueued = await asyncio.wait_for(
            proc.process(event, timestamp, context, queue), timeout_secs
        )
        return ProcessorOutcome(domain=name, enqueued=enqueued)

    names = list(processors)
    results = await asyncio.gather(
        *(_run(name, processors[name]) for name in names),
        return_exceptions=True,
    )

    outcomes: list[ProcessorOutcome] = []
    for name, result in zip(names, results, strict=True):
        if isinstance(result, BaseException):
            if isinstance(result, TimeoutError):
                error = f"timed out after {timeout_secs}s"
            else:
                error = f"{type(result).__name__}: {result}"
            logger.warning("processor_failed", processor=name, error=error)
            outcomes.append(ProcessorOutcome(domain=name, error=error))
        else:
            outcomes.append(result)
    return outcomes
