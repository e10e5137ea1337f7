"""Tests for BackupRotator — naming, ordering, retention."""

from __future__ import annotations

import datetime
from pathlib import Path

from src.store.backup import BackupRotator


def _fixed_clock(ts: datetime.datetime):
    return lambda: ts


def _stepping_clock():
    current = [datetime.datetime(2025, 1, 1, tzinfo=datetime.UTC)]

    def now() -> datetime.datetime:
        current[0] += datetime.timedelta(minutes=1)
        return current[0]

    return now


class TestBackupRotator:
    def test_snapshot_missing_source(self, tmp_path: Path) -> None:
        rotator = BackupRotator(tmp_path / "b", stem="q")
        assert rotator.snapshot(tmp_path / "absent.json") is None
        assert rotator.backups() == []

    def test_snapshot_name_and_content(self, tmp_path: Path) -> None:
        src = tmp_path / "q.json"
        src.write_text('{"alerts": []}')
        ts = datetime.datetime(2025, 3, 4, 5, 6, 7, 890, tzinfo=datetime.UTC)
        rotator = BackupRotator(tmp_path / "b", stem="q", clock=_fixed_clock(ts))

        target = rotator.snapshot(src)

        assert target is not None
        assert target.name == "q_20250304_050607_000890.bak"
        assert target.read_text() == '{"alerts": []}'

    def test_same_instant_does_not_overwrite(self, tmp_path: Path) -> None:
        src = tmp_path / "q.json"
        src.write_text("1")
        ts = datetime.datetime(2025, 1, 1, tzinfo=datetime.UTC)
        rotator = BackupRotator(tmp_path / "b", stem="q", clock=_fixed_clock(ts))

        first = rotator.snapshot(src)
        src.write_text("2")
        second = rotator.snapshot(src)

        assert first != second
        assert len(rotator.backups()) == 2

    def test_retains_seven_most_recent(self, tmp_path: Path) -> None:
        src = tmp_path / "q.json"
        rotator = BackupRotator(tmp_path / "b", stem="q", max_backups=7, clock=_stepping_clock())
        for i in range(10):
            src.write_text(str(i))
            rotator.snapshot(src)

        backups = rotator.backups()
        assert len(backups) == 7
        assert [p.read_text() for p in backups] == [str(i) for i in range(3, 10)]

    def test_other_files_untouched(self, tmp_path: Path) -> None:
        backup_dir = tmp_path / "b"
        backup_dir.mkdir()
        unrelated = backup_dir / "notes.txt"
        unrelated.write_text("keep me")
        src = tmp_path / "q.json"
        src.write_text("x")
        rotator = BackupRotator(backup_dir, stem="q", max_backups=1, clock=_stepping_clock())
        rotator.snapshot(src)
        rotator.snapshot(src)
        assert unrelated.exists()
        assert len(rotator.backups()) == 1
