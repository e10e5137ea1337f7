"""Timestamped backup snapshots with count-based retention."""

from __future__ import annotations

import datetime
import shutil
from collections.abc import Callable
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime.datetime]


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class BackupRotator:
    """Copies a file into *directory* before it is rewritten.

    Snapshot names embed a microsecond timestamp so lexical order is
    chronological; only the newest *max_backups* are kept.
    """

    def __init__(
        self,
        directory: str | Path,
        stem: str,
        max_backups: int = 7,
        clock: Clock = _utcnow,
    ) -> None:
        self._dir = Path(directory)
        self._stem = stem
        self._max_backups = max_backups
        self._clock = clock

    @property
    def directory(self) -> Path:
        return self._dir

    def backups(self) -> list[Path]:
        """Existing snapshots, oldest first."""
        if not self._dir.exists():
            return []
        return sorted(self._dir.glob(f"{self._stem}_*.bak"))

    def snapshot(self, source: str | Path) -> Path | None:
        """Copy *source* into the backup directory and prune old snapshots."""
        src = Path(source)
        if not src.exists():
            return None
        self._dir.mkdir(parents=True, exist_ok=True)

        ts = self._clock()
        target = self._target_for(ts)
        while target.exists():
            ts += datetime.timedelta(microseconds=1)
            target = self._target_for(ts)

        shutil.copy2(src, target)
        self.prune()
        return target

    def prune(self) -> list[Path]:
        """Delete all but the newest *max_backups* snapshots."""
        existing = self.backups()
        excess = existing[: max(0, len(existing) - self._max_backups)]
        for path in excess:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
        if excess:
            logger.debug("backups_pruned", removed=len(excess), kept=self._max_backups)
        return excess

    def _target_for(self, ts: datetime.datetime) -> Path:
        return self._dir / f"{self._stem}_{ts:%Y%m%d_%H%M%S_%f}.bak"
