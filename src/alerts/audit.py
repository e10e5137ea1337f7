"""Append-only audit log of consumed alerts with truncate-and-keep-tail rotation."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import structlog

from src.core.types import AuditRecord

# Dedicated structured logger mirroring every audit record.
audit_logger = structlog.get_logger("audit")

logger = structlog.get_logger(__name__)


class AuditLog:
    """Stores ``AuditRecord`` objects, one JSON line each.

    When the log already holds *max_records* entries, it is cut down to the
    most recent *keep_records* before the next append.  Without a *path* the
    log lives in memory (tests, ``storage.backend: memory``).
    """

    def __init__(
        self,
        path: str | Path | None = None,
        max_records: int = 100,
        keep_records: int = 50,
    ) -> None:
        self._path = Path(path) if path is not None else None
        self._max_records = max_records
        self._keep_records = keep_records
        self._lines: list[str] = []
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path | None:
        return self._path

    async def append(self, record: AuditRecord) -> None:
        line = record.model_dump_json()
        async with self._lock:
            lines = self._read_lines()
            if len(lines) >= self._max_records:
                lines = lines[-self._keep_records:]
                self._rewrite(lines)
                logger.debug("audit_rotated", kept=len(lines))
            self._append_line(line)

        audit_logger.info(
            "audit",
            entry_id=record.entry_id,
            alert_type=record.type,
            priority=record.priority.value,
            context=record.context,
            suppressed=record.suppressed,
            deliveries={d.channel: d.status.value for d in record.deliveries},
        )

    async def records(self) -> list[AuditRecord]:
        async with self._lock:
            lines = self._read_lines()
        result: list[AuditRecord] = []
        for line in lines:
            try:
                result.append(AuditRecord.model_validate_json(line))
            except ValueError:
                logger.warning("audit_line_skipped", line=line[:200])
        return result

    async def count(self) -> int:
        async with self._lock:
            return len(self._read_lines())

    # ── Backing ─────────────────────────────────────────────────

    def _read_lines(self) -> list[str]:
        if self._path is None:
            return list(self._lines)
        if not self._path.exists():
            return []
        with open(self._path, encoding="utf-8") as f:
            return [ln.rstrip("\n") for ln in f if ln.strip()]

    def _rewrite(self, lines: list[str]) -> None:
        if self._path is None:
            self._lines = list(lines)
            return
        tmp = self._path.with_name(self._path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            f.writelines(ln + "\n" for ln in lines)
        os.replace(tmp, self._path)

    def _append_line(self, line: str) -> None:
        if self._path is None:
            self._lines.append(line)
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
