from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol

import psycopg2

from ..models.source_file import FileRecord
from .batch_upsert import BatchUpsertError, batch_upsert

"""Durable stores for the file change tracker.

Two backends share the narrow TrackerStore interface:

- JsonTrackerStore: one JSON document keyed by file name. Every write rewrites
  the document through a temp file + ``os.replace`` under a lock, so a crash
  never leaves a half-written state file.
- PostgresTrackerStore: one row per file, upserted with execute_values.

Any I/O failure surfaces as TrackerIOError, which aborts the run.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "TrackerIOError",
    "TrackerStore",
    "JsonTrackerStore",
    "PostgresTrackerStore",
    "TRACKER_COLUMNS",
]

TRACKER_COLUMNS = ("name", "size", "modified_time", "last_processed_at")


class TrackerIOError(Exception):
    pass


class TrackerStore(Protocol):
    def load(self) -> dict[str, FileRecord]:
        ...

    def put(self, record: FileRecord) -> None:
        ...

    def remove(self, names: Iterable[str]) -> None:
        ...


class JsonTrackerStore:
    """File-backed tracker store (``{"files": {name: record}}``)."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, FileRecord]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise TrackerIOError(f"cannot read tracker state {self.path}: {e}") from e
        files = data.get("files", {}) if isinstance(data, dict) else None
        if not isinstance(files, dict):
            raise TrackerIOError(f"malformed tracker state {self.path}: 'files' must be a mapping")
        try:
            return {name: FileRecord.from_dict(entry) for name, entry in files.items()}
        except (KeyError, TypeError, ValueError) as e:
            raise TrackerIOError(f"malformed tracker entry in {self.path}: {e}") from e

    def _write(self, records: dict[str, FileRecord]) -> None:
        payload = {"files": {name: rec.to_dict() for name, rec in sorted(records.items())}}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise TrackerIOError(f"cannot write tracker state {self.path}: {e}") from e

    def load(self) -> dict[str, FileRecord]:
        with self._lock:
            return self._read()

    def put(self, record: FileRecord) -> None:
        with self._lock:
            records = self._read()
            records[record.name] = record
            self._write(records)

    def remove(self, names: Iterable[str]) -> None:
        with self._lock:
            records = self._read()
            for name in names:
                records.pop(name, None)
            self._write(records)


class PostgresTrackerStore:
    """Tracker rows in a PostgreSQL table keyed by file name."""

    def __init__(self, conn: Any, table: str = "file_tracking") -> None:
        self.conn = conn
        self.table = table
        self._lock = threading.Lock()

    def _run(self, action: str, fn: Any) -> Any:
        with self._lock:
            try:
                with self.conn.cursor() as cur:
                    out = fn(cur)
                self.conn.commit()
                return out
            except (psycopg2.Error, BatchUpsertError) as e:
                try:
                    self.conn.rollback()
                except psycopg2.Error:
                    logger.debug("rollback failed after tracker %s error", action)
                raise TrackerIOError(f"tracker {action} failed on {self.table}: {e}") from e

    def ensure_table(self) -> None:
        sql = (
            f"CREATE TABLE IF NOT EXISTS {self.table} ("
            "name TEXT PRIMARY KEY, "
            "size BIGINT NOT NULL, "
            "modified_time TIMESTAMPTZ NOT NULL, "
            "last_processed_at TIMESTAMPTZ)"
        )
        self._run("create", lambda cur: cur.execute(sql))

    def load(self) -> dict[str, FileRecord]:
        cols = ", ".join(TRACKER_COLUMNS)

        def _select(cur: Any) -> list[tuple[Any, ...]]:
            cur.execute(f"SELECT {cols} FROM {self.table}")
            return cur.fetchall()

        rows = self._run("load", _select)
        return {
            row[0]: FileRecord(
                name=row[0],
                size=int(row[1]),
                modified_time=row[2],
                last_processed_at=row[3],
            )
            for row in rows
        }

    def put(self, record: FileRecord) -> None:
        row = (record.name, record.size, record.modified_time, record.last_processed_at)
        self._run(
            "upsert",
            lambda cur: batch_upsert(cur, self.table, TRACKER_COLUMNS, [row], conflict_columns=("name",)),
        )

    def remove(self, names: Iterable[str]) -> None:
        names_list = list(names)
        if not names_list:
            return
        self._run(
            "delete",
            lambda cur: cur.execute(
                f"DELETE FROM {self.table} WHERE name = ANY(%s)", (names_list,)
            ),
        )
