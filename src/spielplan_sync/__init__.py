"""
spielplan-sync

Fixture synchronization and calendar export for a player-representation
agency. Pulls upcoming matches of every represented player from
api-fussball.de, stores them in a local SQLite database, merges matches
reported for several players, and exports a selection as an .ics calendar.

Key Features:
- Rate-limited provider client (direct or through a relay)
- Idempotent upsert keyed by (player, date, home team, away team)
- Deduplicated, editorially sorted fixture view
- iCalendar export with cleaned club names

Usage:
    from spielplan_sync import FixtureDB, init_database, get_repositories

    db = FixtureDB("./data/spielplan.sqlite")
    init_database(db)
    subjects, fixtures, settings = get_repositories(db)
"""

from .connection import FixtureDB
from .schema import init_database, run_migrations
from .repositories import get_repositories
from .fixtures import (
    CalendarExporter,
    FixtureAggregator,
    FixtureFilter,
    NothingSelectedError,
    SyncOrchestrator,
    SyncResult,
)
from .providers import FixtureProvider

__version__ = "0.1.0"

__all__ = [
    # Connection
    "FixtureDB",
    # Schema
    "init_database",
    "run_migrations",
    # Repositories
    "get_repositories",
    # Pipeline
    "FixtureProvider",
    "SyncOrchestrator",
    "SyncResult",
    "FixtureAggregator",
    "FixtureFilter",
    "CalendarExporter",
    "NothingSelectedError",
]
