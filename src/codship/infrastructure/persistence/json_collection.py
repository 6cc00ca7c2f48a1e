"""A JSON-array file holding one collection of records.

Every read goes to disk so several handles (and processes) observe each
other's writes.  Writes replace the file atomically; read-modify-write
cycles inside one process are serialized by ``lock``.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path

from codship.domain.exceptions import StoreUnavailable


class JsonCollection:

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self.lock = threading.RLock()
        self._ensure_file()

    @property
    def path(self) -> Path:
        return self._file_path

    def load(self) -> list[dict]:
        try:
            records = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StoreUnavailable(str(self._file_path), str(exc)) from exc
        if not isinstance(records, list):
            raise StoreUnavailable(str(self._file_path), "collection is not a JSON array")
        return records

    def persist(self, records: list[dict]) -> None:
        tmp = self._file_path.with_suffix(self._file_path.suffix + ".tmp")
        try:
            tmp.write_text(json.dumps(records, indent=2) + "\n", encoding="utf-8")
            tmp.replace(self._file_path)
        except OSError as exc:
            raise StoreUnavailable(str(self._file_path), str(exc)) from exc

    def _ensure_file(self) -> None:
        try:
            if not self._file_path.exists():
                self._file_path.parent.mkdir(parents=True, exist_ok=True)
                self._file_path.write_text("[]", encoding="utf-8")
        except OSError as exc:
            raise StoreUnavailable(str(self._file_path), str(exc)) from exc
