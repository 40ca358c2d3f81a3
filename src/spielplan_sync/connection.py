"""
SQLite handle shared by the repositories.

FixtureDB opens its connection on first use, runs in autocommit mode and
hands rows back as plain dicts. The ``meta`` table doubles as a small
key/value store for the schema version, applied migrations and the time of
the last full sync.
"""

from __future__ import annotations

import sqlite3
import time
from pathlib import Path
from typing import Any, Optional

from .core.types import META_TABLE

DEFAULT_DB_PATH = Path("./data/spielplan.sqlite")
MEMORY_DB = ":memory:"

_FILE_PRAGMAS = ("journal_mode = WAL", "synchronous = NORMAL")

Params = tuple | list


class FixtureDB:
    """
    Lazily connected SQLite database.

    ``":memory:"`` gives a throwaway database, which is what the tests use.
    File databases get their parent directory created and run in WAL mode.
    """

    def __init__(self, db_path: Optional[Path | str] = None):
        if db_path == MEMORY_DB:
            self.db_path: Path | str = MEMORY_DB
        else:
            self.db_path = Path(db_path or DEFAULT_DB_PATH)
        self._conn: Optional[sqlite3.Connection] = None

    def __repr__(self) -> str:
        return f"FixtureDB({str(self.db_path)!r})"

    @property
    def in_memory(self) -> bool:
        """True for a throwaway in-memory database."""
        return self.db_path == MEMORY_DB

    def _open(self) -> sqlite3.Connection:
        """Open a new connection with row factory and pragmas applied."""
        if not self.in_memory:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(str(self.db_path), isolation_level=None, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        if not self.in_memory:
            for pragma in _FILE_PRAGMAS:
                conn.execute(f"PRAGMA {pragma}")
        return conn

    @property
    def connection(self) -> sqlite3.Connection:
        """The open connection, created on first access."""
        if self._conn is None:
            self._conn = self._open()
        return self._conn

    def close(self) -> None:
        """Close the connection; the next query reopens it."""
        conn, self._conn = self._conn, None
        if conn is not None:
            conn.close()

    def __enter__(self) -> "FixtureDB":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # -- Queries -------------------------------------------------------------

    def execute(self, query: str, params: Params = ()) -> sqlite3.Cursor:
        """Run one statement and return its cursor."""
        return self.connection.execute(query, params)

    def fetchone(self, query: str, params: Params = ()) -> Optional[dict[str, Any]]:
        """First row of ``query`` as a dict, or None."""
        row = self.execute(query, params).fetchone()
        return None if row is None else dict(row)

    def fetchall(self, query: str, params: Params = ()) -> list[dict[str, Any]]:
        """Every row of ``query`` as a dict."""
        return [dict(row) for row in self.execute(query, params)]

    # -- State ---------------------------------------------------------------

    def exists(self) -> bool:
        """True for in-memory databases and for files already on disk."""
        return self.in_memory or Path(self.db_path).is_file()

    def is_initialized(self) -> bool:
        """True once the meta table has been created by a migration."""
        if not self.exists():
            return False
        found = self.fetchone(
            "SELECT 1 AS present FROM sqlite_master WHERE type = 'table' AND name = ?",
            (META_TABLE,),
        )
        return found is not None

    def get_meta(self, key: str) -> Optional[str]:
        """Value stored under key in the meta table, or None."""
        row = self.fetchone(f"SELECT value FROM {META_TABLE} WHERE key = ?", (key,))
        return row["value"] if row else None

    def set_meta(self, key: str, value: str) -> None:
        """Store value under key in the meta table, replacing any previous value."""
        self.execute(
            f"INSERT INTO {META_TABLE} (key, value, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
            (key, value, int(time.time())),
        )
