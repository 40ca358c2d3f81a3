"""
Repository layer for subjects, fixtures and settings.

Usage:
    from spielplan_sync.repositories import get_repositories

    subjects, fixtures, settings = get_repositories(db)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import FixtureRepository, SettingsRepository, SubjectRepository
from .sqlite import SQLiteFixtureRepository, SQLiteSettingsRepository, SQLiteSubjectRepository

if TYPE_CHECKING:
    from ..connection import FixtureDB


def get_repositories(
    db: "FixtureDB",
) -> tuple[SQLiteSubjectRepository, SQLiteFixtureRepository, SQLiteSettingsRepository]:
    """Build the SQLite repositories sharing one connection."""
    return (
        SQLiteSubjectRepository(db),
        SQLiteFixtureRepository(db),
        SQLiteSettingsRepository(db),
    )


__all__ = [
    "FixtureRepository",
    "SettingsRepository",
    "SubjectRepository",
    "SQLiteFixtureRepository",
    "SQLiteSettingsRepository",
    "SQLiteSubjectRepository",
    "get_repositories",
]
