"""SQLite connection handling for the sync store."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator, Sequence

from knowledge_sync.core.logging import get_logger

logger = get_logger(__name__)

MEMORY = ":memory:"
SCHEMA_VERSION = 1
SCHEMA_PATH = Path(__file__).with_name("schema.sql")

_PRAGMAS = {
    "journal_mode": "WAL",
    "synchronous": "NORMAL",
    "foreign_keys": "ON",
    "busy_timeout": "5000",
}


class SQLiteDatabase:
    """One lazily opened sqlite3 connection.

    ``Path(":memory:")`` gives a private in-memory database, which is what
    tests use. The connection belongs to the thread that opened it; the API
    only touches it from the event loop.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path).expanduser()
        self._connection: sqlite3.Connection | None = None

    @property
    def in_memory(self) -> bool:
        return str(self.db_path) == MEMORY

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def connect(self) -> sqlite3.Connection:
        if self._connection is not None:
            return self._connection
        if self.in_memory:
            conn = sqlite3.connect(MEMORY)
        else:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        for name, value in _PRAGMAS.items():
            if name == "journal_mode" and self.in_memory:
                continue
            conn.execute(f"PRAGMA {name}={value}")
        self._connection = conn
        return conn

    def close(self) -> None:
        if self._connection is None:
            return
        self._connection.close()
        self._connection = None

    def commit(self) -> None:
        if self._connection is not None:
            self._connection.commit()

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        return self.connect().execute(sql, params)

    def executemany(self, sql: str, rows: Iterable[Sequence[Any]]) -> sqlite3.Cursor:
        return self.connect().executemany(sql, rows)

    def query(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()

    def scalar(self, sql: str, params: Sequence[Any] = ()) -> Any:
        """First column of the first row, or None."""
        row = self.execute(sql, params).fetchone()
        return row[0] if row is not None else None

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit on success, roll back and re-raise on any error."""
        conn = self.connect()
        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        conn.commit()

    def schema_version(self) -> int:
        return int(self.scalar("PRAGMA user_version") or 0)

    def ensure_schema(self) -> None:
        """Create tables once; later calls see the stored version and skip."""
        current = self.schema_version()
        if current >= SCHEMA_VERSION:
            return
        conn = self.connect()
        conn.executescript(SCHEMA_PATH.read_text(encoding="utf-8"))
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION}")
        conn.commit()
        logger.info("Initialised schema v%s at %s", SCHEMA_VERSION, self.db_path)


__all__ = ["SQLiteDatabase", "SCHEMA_VERSION"]
