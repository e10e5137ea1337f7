"""JSON-file backing for the state store (atomic replace, self-healing reads)."""

from __future__ import annotations

import json
import os
from pathlib import Path

from src.store.backup import BackupRotator
from src.store.base import Document, StateStore


class JsonFileStateStore(StateStore):
    """Persists the document as a single JSON file.

    Writes go to ``<file>.tmp`` and are moved into place with ``os.replace``
    so readers never observe a half-written document.  A file that cannot be
    parsed, or that holds something other than a JSON object, is reset to the
    default document on the next read.
    """

    def __init__(
        self,
        name: str,
        path: str | Path,
        default: Document | None = None,
        lock_timeout: float = 5.0,
        backups: BackupRotator | None = None,
    ) -> None:
        super().__init__(name, default=default, lock_timeout=lock_timeout)
        self._path = Path(path)
        self._backups = backups

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> Document:
        if not self._path.exists():
            return self._fresh_default()
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return self._heal("unparsable")
        if not isinstance(data, dict):
            return self._heal("not a mapping")
        return data

    def _save(self, doc: Document, backup: bool = False) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        if backup and self._backups is not None:
            self._backups.snapshot(self._path)
        tmp = self._path.with_name(self._path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(doc, f, ensure_ascii=False)
        os.replace(tmp, self._path)
