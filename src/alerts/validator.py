"""Structural and type validation of inbound monitoring events.

``validate_event`` is pure: it never logs, never touches shared state and
either returns an ``AlertEvent`` or raises ``ValidationError`` describing the
first violation found.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from src.alerts.exceptions import ValidationError, ValidationErrorKind
from src.core.types import AlertEvent, CpuMetrics, DiskUsage, MemoryMetrics

TIMESTAMP_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})?$"
)

DEFAULT_REQUIRED_FIELDS: tuple[str, ...] = ("timestamp", "server_id")

_MAX_SAMPLE = 30


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid usage figure.
    return isinstance(value, int | float) and not isinstance(value, bool)


def _check_usage(value: Any, field: str) -> float:
    if not _is_number(value):
        raise ValidationError(ValidationErrorKind.BAD_TYPE, field, "must be numeric")
    if not 0 <= value <= 100:
        raise ValidationError(
            ValidationErrorKind.OUT_OF_RANGE, field, f"{value} not in [0, 100]"
        )
    return float(value)


def _parse(raw: str | bytes | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(raw, Mapping):
        return dict(raw)
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as exc:
        sample = raw[:_MAX_SAMPLE] if isinstance(raw, str | bytes) else ""
        raise ValidationError(
            ValidationErrorKind.MALFORMED, detail=f"not JSON ({sample!r}...)"
        ) from exc
    if not isinstance(data, dict):
        raise ValidationError(ValidationErrorKind.MALFORMED, detail="not a JSON object")
    return data


def _parse_timestamp(value: Any) -> datetime:
    if not isinstance(value, str) or not TIMESTAMP_RE.match(value):
        raise ValidationError(
            ValidationErrorKind.BAD_TIMESTAMP,
            "timestamp",
            "expected ISO-8601 YYYY-MM-DDTHH:MM:SS[±HH:MM|Z]",
        )
    try:
        ts = datetime.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(
            ValidationErrorKind.BAD_TIMESTAMP, "timestamp", f"not a real date: {value}"
        ) from exc
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts


def _metric(data: dict[str, Any], name: str) -> float | None:
    if name not in data:
        return None
    block = data[name]
    field = f"{name}.usage"
    if not isinstance(block, Mapping):
        raise ValidationError(ValidationErrorKind.BAD_TYPE, name, "must be an object")
    if "usage" not in block:
        raise ValidationError(ValidationErrorKind.MISSING_FIELD, field)
    return _check_usage(block["usage"], field)


def _disks(data: dict[str, Any]) -> list[DiskUsage]:
    if "disks" not in data:
        return []
    disks = data["disks"]
    if not isinstance(disks, list):
        raise ValidationError(ValidationErrorKind.BAD_TYPE, "disks", "must be an array")
    if not disks:
        raise ValidationError(ValidationErrorKind.EMPTY_DISKS, "disks", "must not be empty")

    result: list[DiskUsage] = []
    for i, disk in enumerate(disks):
        field = f"disks[{i}].usage"
        if not isinstance(disk, Mapping):
            raise ValidationError(ValidationErrorKind.BAD_TYPE, f"disks[{i}]", "must be an object")
        if "usage" not in disk:
            raise ValidationError(ValidationErrorKind.MISSING_FIELD, field)
        usage = _check_usage(disk["usage"], field)
        result.append(DiskUsage(mount=str(disk.get("mount", "")), usage=usage))
    return result


def validate_event(
    raw: str | bytes | Mapping[str, Any],
    required_fields: Iterable[str] = DEFAULT_REQUIRED_FIELDS,
) -> AlertEvent:
    """Validate a raw event and return the typed ``AlertEvent``.

    Args:
        raw: JSON text or an already-decoded mapping.
        required_fields: Top-level keys that must be present. ``timestamp``
            and ``server_id`` are always required.

    Raises:
        ValidationError: On the first structural or range violation.
    """
    data = _parse(raw)

    required = list(DEFAULT_REQUIRED_FIELDS)
    required += [f for f in required_fields if f not in required]
    for field in required:
        if field not in data or data[field] is None:
            raise ValidationError(ValidationErrorKind.MISSING_FIELD, field)

    timestamp = _parse_timestamp(data["timestamp"])

    server_id = data["server_id"]
    if not isinstance(server_id, str) or not server_id:
        raise ValidationError(
            ValidationErrorKind.BAD_TYPE, "server_id", "must be a non-empty string"
        )

    cpu = _metric(data, "cpu")
    memory = _metric(data, "memory")
    disks = _disks(data)

    return AlertEvent(
        timestamp=timestamp,
        server_id=server_id,
        cpu=CpuMetrics(usage=cpu) if cpu is not None else None,
        memory=MemoryMetrics(usage=memory) if memory is not None else None,
        disks=disks,
        raw=data,
    )


class EventValidator:
    """Holds the caller-mandated field list; see ``validate_event``."""

    def __init__(self, required_fields: Iterable[str] = DEFAULT_REQUIRED_FIELDS) -> None:
        self._required = tuple(required_fields)

    @property
    def required_fields(self) -> tuple[str, ...]:
        return self._required

    def validate(self, raw: str | bytes | Mapping[str, Any]) -> AlertEvent:
        return validate_event(raw, self._required)
