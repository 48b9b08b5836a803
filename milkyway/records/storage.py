# -*- coding: utf-8 -*-
"""Records — SQLite storage (the authoritative Record Store)."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Mapping

from pydantic import ValidationError

from ..app_db import db_conn, init_records_db
from ..config import settings
from ..errors import IOFailure, NotFound, ValidationFailure
from .models import RECORD_COLUMNS, Record, RecordPatch, RecordsByDate, apply_patch, parse_patch, parse_record
from .projection import group_by_date, month_prefix

logger = logging.getLogger(__name__)

_INSERT_SQL = "INSERT INTO records ({cols}) VALUES ({marks})".format(
    cols=", ".join(RECORD_COLUMNS),
    marks=", ".join("?" for _ in RECORD_COLUMNS),
)
_UPDATE_SQL = "UPDATE records SET {assignments} WHERE id = ?".format(
    assignments=", ".join(f"{col} = ?" for col in RECORD_COLUMNS if col != "id"),
)


def _row_to_record(row: sqlite3.Row) -> Record:
    try:
        return Record.model_validate(dict(row))
    except ValidationError as exc:
        raise IOFailure(f"Stored record {row['id']!r} is corrupt: {exc}") from exc


def _record_params(record: Record) -> List[Any]:
    wire = record.to_wire()
    return [wire[col] for col in RECORD_COLUMNS]


class RecordStore:
    """Durable record table keyed by ``id``.

    Reads run concurrently; every mutation holds one write lock across its
    read-modify-write and commits before returning, so interleaved requests
    cannot overwrite each other with stale state.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = db_path or settings.db_path
        self._write_lock = threading.Lock()
        self._init_lock = threading.Lock()
        self._initialized = False

    def init(self) -> None:
        with self._init_lock:
            if self._initialized:
                return
            try:
                init_records_db(self.db_path)
            except (sqlite3.Error, OSError) as exc:
                raise IOFailure(f"Failed to open record database: {exc}") from exc
            self._initialized = True

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        self.init()
        try:
            with db_conn(self.db_path) as conn:
                yield conn
        except (sqlite3.Error, OSError) as exc:
            logger.error("record store fault: %s", exc)
            raise IOFailure(str(exc)) from exc

    # ---- reads ----

    def list_records(self) -> List[Record]:
        """All records, newest ``createdAt`` first."""
        with self._conn() as conn:
            rows = conn.execute("SELECT * FROM records ORDER BY createdAt DESC, id DESC").fetchall()
        return [_row_to_record(r) for r in rows]

    def list_by_month(self, year: int, month: int) -> RecordsByDate:
        """Records whose date starts with ``YYYY-MM-``, grouped by date, oldest first."""
        prefix = month_prefix(year, month)
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT * FROM records WHERE date LIKE ? ORDER BY createdAt ASC, id ASC",
                (prefix + "%",),
            ).fetchall()
        return group_by_date(_row_to_record(r) for r in rows)

    def get(self, record_id: str) -> Record:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM records WHERE id = ?", (record_id,)).fetchone()
        if row is None:
            raise NotFound(record_id)
        return _row_to_record(row)

    # ---- writes ----

    def insert(self, record: Record | Mapping[str, Any]) -> str:
        if not isinstance(record, Record):
            record = parse_record(record)
        with self._write_lock, self._conn() as conn:
            exists = conn.execute("SELECT 1 FROM records WHERE id = ?", (record.id,)).fetchone()
            if exists:
                raise ValidationFailure(f"Duplicate record id: {record.id}")
            conn.execute(_INSERT_SQL, _record_params(record))
        return record.id

    def update(self, record_id: str, patch: RecordPatch | Mapping[str, Any]) -> Record:
        patch = parse_patch(patch)
        with self._write_lock, self._conn() as conn:
            row = conn.execute("SELECT * FROM records WHERE id = ?", (record_id,)).fetchone()
            if row is None:
                raise NotFound(record_id)
            merged = apply_patch(_row_to_record(row), patch)
            params = _record_params(merged)
            conn.execute(_UPDATE_SQL, params[1:] + [record_id])
        return merged

    def delete(self, record_id: str) -> None:
        """Idempotent: deleting an unknown id is a no-op."""
        with self._write_lock, self._conn() as conn:
            conn.execute("DELETE FROM records WHERE id = ?", (record_id,))
