"""
SQLite implementations of the repository protocols.

All three repositories share one FixtureDB connection.
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import date
from typing import TYPE_CHECKING, Any, Iterable, Optional

from ..core.models import Fixture, Subject
from ..core.types import FIXTURES_TABLE, SETTINGS_TABLE, SUBJECTS_TABLE, UpsertOutcome
from .base import FixtureRepository, SettingsRepository, SubjectRepository

if TYPE_CHECKING:
    from ..connection import FixtureDB

logger = logging.getLogger(__name__)

# Columns refreshed when an existing fixture is seen again
_MUTABLE_FIXTURE_COLUMNS = (
    "subject_name",
    "time",
    "home_logo",
    "away_logo",
    "location",
    "competition",
    "matchday",
    "result",
    "source_url",
)


def _row_to_fixture(row: dict[str, Any]) -> Fixture:
    data = {k: v for k, v in row.items() if k not in ("created_at", "updated_at")}
    data["selected"] = bool(data.get("selected"))
    return Fixture(**data)


class SQLiteSubjectRepository(SubjectRepository):
    """Subjects table access."""

    def __init__(self, db: "FixtureDB"):
        self.db = db

    def find_with_profile(self) -> list[Subject]:
        """Subjects with a non-blank profile URL, ordered by name."""
        rows = self.db.fetchall(
            f"""
            SELECT * FROM {SUBJECTS_TABLE}
            WHERE profile_url IS NOT NULL AND TRIM(profile_url) != ''
            ORDER BY name, id
            """
        )
        return [Subject(**row) for row in rows]

    def find_by_id(self, subject_id: str) -> Optional[Subject]:
        """Look up one subject by id."""
        row = self.db.fetchone(f"SELECT * FROM {SUBJECTS_TABLE} WHERE id = ?", (subject_id,))
        return Subject(**row) if row else None

    def find_all(self) -> list[Subject]:
        """Every stored subject, ordered by name."""
        return [Subject(**row) for row in self.db.fetchall(f"SELECT * FROM {SUBJECTS_TABLE} ORDER BY name, id")]

    def upsert(self, subject: Subject) -> None:
        """Insert a subject or overwrite the stored one with the same id."""
        self.db.execute(
            f"""
            INSERT INTO {SUBJECTS_TABLE} (id, name, profile_url, league, club, responsibility)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                profile_url = excluded.profile_url,
                league = excluded.league,
                club = excluded.club,
                responsibility = excluded.responsibility
            """,
            (
                subject.id,
                subject.name,
                subject.profile_url,
                subject.league,
                subject.club,
                subject.responsibility,
            ),
        )


class SQLiteFixtureRepository(FixtureRepository):
    """The fixture store."""

    def __init__(self, db: "FixtureDB"):
        self.db = db

    def find_by_key(
        self,
        subject_id: str,
        match_date: str,
        home_team: str,
        away_team: str,
    ) -> Optional[Fixture]:
        """Fixture stored under the (subject, date, home, away) key, if any."""
        row = self.db.fetchone(
            f"""
            SELECT * FROM {FIXTURES_TABLE}
            WHERE subject_id = ? AND date = ? AND home_team = ? AND away_team = ?
            """,
            (subject_id, match_date, home_team, away_team),
        )
        return _row_to_fixture(row) if row else None

    def upsert(self, fixture: Fixture) -> UpsertOutcome:
        """
        Insert a fixture or refresh the row stored under the same key.

        The stored id and selection flag are never changed by an update.

        Returns:
            UpsertOutcome.added or UpsertOutcome.updated
        """
        now = int(time.time())
        existing = self.find_by_key(*fixture.key)

        if existing:
            assignments = ", ".join(f"{col} = ?" for col in _MUTABLE_FIXTURE_COLUMNS)
            values = [getattr(fixture, col) for col in _MUTABLE_FIXTURE_COLUMNS]
            self.db.execute(
                f"UPDATE {FIXTURES_TABLE} SET {assignments}, updated_at = ? WHERE id = ?",
                (*values, now, existing.id),
            )
            return UpsertOutcome.updated

        self.db.execute(
            f"""
            INSERT INTO {FIXTURES_TABLE} (
                id, subject_id, subject_name, date, time, home_team, away_team,
                home_logo, away_logo, location, competition, matchday, result,
                source_url, selected, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                fixture.id or uuid.uuid4().hex,
                fixture.subject_id,
                fixture.subject_name,
                fixture.date,
                fixture.time,
                fixture.home_team,
                fixture.away_team,
                fixture.home_logo,
                fixture.away_logo,
                fixture.location,
                fixture.competition,
                fixture.matchday,
                fixture.result,
                fixture.source_url,
                int(fixture.selected),
                now,
                now,
            ),
        )
        return UpsertOutcome.added

    def find_in_range(self, start: date, end: date) -> list[Fixture]:
        """Fixtures dated start through end inclusive, in store order."""
        rows = self.db.fetchall(
            f"""
            SELECT * FROM {FIXTURES_TABLE}
            WHERE date >= ? AND date <= ?
            ORDER BY date, time, subject_name
            """,
            (start.isoformat(), end.isoformat()),
        )
        return [_row_to_fixture(row) for row in rows]

    def find_by_ids(self, fixture_ids: Iterable[str]) -> list[Fixture]:
        """Fixtures with the given row ids."""
        ids = list(fixture_ids)
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        rows = self.db.fetchall(
            f"SELECT * FROM {FIXTURES_TABLE} WHERE id IN ({placeholders}) ORDER BY date, time",
            ids,
        )
        return [_row_to_fixture(row) for row in rows]

    def set_selected(self, fixture_ids: Iterable[str], selected: bool = True) -> int:
        """Set the export flag on the given rows; returns the number changed."""
        ids = list(fixture_ids)
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        cur = self.db.execute(
            f"UPDATE {FIXTURES_TABLE} SET selected = ? WHERE id IN ({placeholders})",
            (int(selected), *ids),
        )
        return cur.rowcount

    def clear_selection(self) -> int:
        """Unselect every row; returns the number changed."""
        cur = self.db.execute(f"UPDATE {FIXTURES_TABLE} SET selected = 0 WHERE selected = 1")
        return cur.rowcount

    def delete_before(self, cutoff: date) -> int:
        """Delete fixtures dated before cutoff; returns the number deleted."""
        cur = self.db.execute(
            f"DELETE FROM {FIXTURES_TABLE} WHERE date < ?",
            (cutoff.isoformat(),),
        )
        if cur.rowcount:
            logger.info("Deleted %d fixtures dated before %s", cur.rowcount, cutoff)
        return cur.rowcount

    def count(self) -> int:
        """Number of stored fixture rows."""
        row = self.db.fetchone(f"SELECT COUNT(*) AS count FROM {FIXTURES_TABLE}")
        return row["count"] if row else 0


class SQLiteSettingsRepository(SettingsRepository):
    """Key/value settings table."""

    def __init__(self, db: "FixtureDB"):
        self.db = db

    def get(self, key: str) -> Optional[str]:
        """Stored value for key; blank values read as None."""
        row = self.db.fetchone(f"SELECT value FROM {SETTINGS_TABLE} WHERE key = ?", (key,))
        return row["value"] if row and row["value"] else None

    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        self.db.execute(
            f"""
            INSERT INTO {SETTINGS_TABLE} (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """,
            (key, value, int(time.time())),
        )

    def delete(self, key: str) -> None:
        """Remove key if present."""
        self.db.execute(f"DELETE FROM {SETTINGS_TABLE} WHERE key = ?", (key,))
