"""
Schema setup for the fixture database.

Migrations are the ``*.sql`` files in ``migrations/``, applied in file-name
order. Each applied file leaves a ``migration_<stem>`` marker in the meta
table, so rerunning init only executes new files.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .connection import FixtureDB

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"
SCHEMA_VERSION = "1"


def _marker(path: Path) -> str:
    return f"migration_{path.stem}"


def pending_migrations(db: "FixtureDB", force: bool = False) -> list[Path]:
    """Migration files not yet recorded in the meta table."""
    files = sorted(MIGRATIONS_DIR.glob("*.sql")) if MIGRATIONS_DIR.is_dir() else []
    if force or not db.is_initialized():
        return files
    return [path for path in files if not db.get_meta(_marker(path))]


def run_migrations(db: "FixtureDB", force: bool = False) -> int:
    """
    Apply pending migrations and return how many ran.

    ``force`` reapplies every file; the migrations only use
    ``IF NOT EXISTS`` statements, so this is harmless.
    """
    todo = pending_migrations(db, force=force)
    if not todo:
        logger.debug("Schema up to date")
        return 0

    for path in todo:
        logger.info("Applying %s", path.name)
        try:
            db.connection.executescript(path.read_text(encoding="utf-8"))
        except sqlite3.Error as e:
            logger.error("Migration %s failed: %s", path.name, e)
            raise
        db.execute(
            "INSERT OR REPLACE INTO meta (key, value, updated_at) VALUES (?, 'applied', ?)",
            (_marker(path), int(time.time())),
        )
    return len(todo)


def init_database(db: "FixtureDB") -> int:
    """Bring the schema up to date. Safe to call on every start."""
    applied = run_migrations(db)
    db.set_meta("schema_version", SCHEMA_VERSION)
    logger.info("Fixture database ready at %s (%d migrations applied)", db.db_path, applied)
    return applied


def get_schema_version(db: "FixtureDB") -> str:
    if not db.is_initialized():
        return "0"
    return db.get_meta("schema_version") or "unknown"


def list_tables(db: "FixtureDB") -> list[str]:
    rows = db.fetchall(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
    )
    return [row["name"] for row in rows]


def get_table_counts(db: "FixtureDB") -> dict[str, int]:
    """Row count per table, for ``spielplan status``."""
    return {
        table: db.fetchone(f"SELECT COUNT(*) AS n FROM {table}")["n"]
        for table in list_tables(db)
    }
