"""Alert pipeline exceptions."""

from __future__ import annotations

from enum import StrEnum


class AlertError(Exception):
    """Base exception for alert pipeline errors."""


class ValidationErrorKind(StrEnum):
    """Why an inbound event was rejected."""

    MALFORMED = "MALFORMED"
    MISSING_FIELD = "MISSING_FIELD"
    BAD_TIMESTAMP = "BAD_TIMESTAMP"
    BAD_TYPE = "BAD_TYPE"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    EMPTY_DISKS = "EMPTY_DISKS"


class ValidationError(AlertError):
    """The event is malformed or out of range; it is rejected wholesale."""

    def __init__(self, kind: ValidationErrorKind, field: str = "", detail: str = "") -> None:
        self.kind = kind
        self.field = field
        self.detail = detail
        parts = [kind.value]
        if field:
            parts.append(f"field={field}")
        if detail:
            parts.append(detail)
        super().__init__(": ".join(parts))
