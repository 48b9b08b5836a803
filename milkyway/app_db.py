# -*- coding: utf-8 -*-
"""Record database — SQLite helpers."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    # Every commit must be on disk before the request returns.
    conn.execute("PRAGMA synchronous = FULL;")
    return conn


def init_records_db(db_path: Path) -> None:
    existed = db_path.exists()
    conn = connect(db_path)
    try:
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS records (
                id TEXT PRIMARY KEY,
                date TEXT NOT NULL,
                name TEXT NOT NULL,
                imageBase64 TEXT,
                price TEXT,
                sugarIce TEXT,
                rating INTEGER,
                shop TEXT,
                moodNote TEXT,
                iconId TEXT NOT NULL,
                createdAt TEXT NOT NULL,
                brand TEXT,
                ingredients TEXT,
                calories INTEGER
            );
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_records_date ON records(date);")
        conn.commit()
    finally:
        conn.close()
    logger.info("%s record database at %s", "Loaded" if existed else "Created", db_path)


@contextmanager
def db_conn(db_path: Path) -> Iterator[sqlite3.Connection]:
    """Yield a connection; commit on success, roll back on any error."""
    conn = connect(db_path)
    try:
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()
