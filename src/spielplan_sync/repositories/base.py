"""
Base repository protocols.

Defines abstract interfaces for the record stores the fixture pipeline
talks to, enabling store-agnostic sync, aggregation and export.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Iterable, Optional

from ..core.models import Fixture, Subject
from ..core.types import UpsertOutcome


class SubjectRepository(ABC):
    """
    Read access to represented players.

    Owned by the player-record side of the application; the pipeline only
    reads from it (``upsert`` exists for seeding and the CLI).
    """

    @abstractmethod
    def find_with_profile(self) -> list[Subject]:
        """Subjects with a non-empty external profile reference, in stable order."""
        ...

    @abstractmethod
    def find_by_id(self, subject_id: str) -> Optional[Subject]:
        ...

    @abstractmethod
    def find_all(self) -> list[Subject]:
        ...

    @abstractmethod
    def upsert(self, subject: Subject) -> None:
        ...


class FixtureRepository(ABC):
    """
    Fixture persistence keyed by (subject_id, date, home_team, away_team).

    ``upsert`` must be idempotent: re-applying the same fixture never
    creates a second row and reports UPDATED instead of ADDED.
    """

    @abstractmethod
    def find_by_key(
        self,
        subject_id: str,
        match_date: str,
        home_team: str,
        away_team: str,
    ) -> Optional[Fixture]:
        """Point lookup by the upsert key."""
        ...

    @abstractmethod
    def upsert(self, fixture: Fixture) -> UpsertOutcome:
        """
        Insert or update a fixture by its upsert key.

        Never changes an existing row's ``id`` or ``selected`` flag.
        """
        ...

    @abstractmethod
    def find_in_range(self, start: date, end: date) -> list[Fixture]:
        """Fixtures with start <= date <= end, ordered by date."""
        ...

    @abstractmethod
    def find_by_ids(self, fixture_ids: Iterable[str]) -> list[Fixture]:
        ...

    @abstractmethod
    def set_selected(self, fixture_ids: Iterable[str], selected: bool = True) -> int:
        """Set the export flag; returns number of rows changed."""
        ...

    @abstractmethod
    def clear_selection(self) -> int:
        ...

    @abstractmethod
    def delete_before(self, cutoff: date) -> int:
        """Delete fixtures dated before ``cutoff``; returns rows removed."""
        ...

    @abstractmethod
    def count(self) -> int:
        ...


class SettingsRepository(ABC):
    """Key/value settings (holds the provider access token)."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...
