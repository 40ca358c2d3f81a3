"""
Pydantic models for subjects and fixtures.

These models are used for:
- Validating provider records before they are written to the store
- Type-safe rows returned by the repositories
- The read-time AggregatedFixture view consumed by listing and export
"""

from __future__ import annotations

from datetime import date as Date
from typing import Optional

from pydantic import BaseModel, Field, computed_field


# =============================================================================
# Subjects
# =============================================================================


class Subject(BaseModel):
    """A represented player whose fixtures are tracked (read-only here)."""

    id: str
    name: str
    profile_url: Optional[str] = None
    league: Optional[str] = None  # age category / league label, e.g. "U17 Bundesliga"
    club: Optional[str] = None
    responsibility: Optional[str] = None  # "Matti, Langer" or "Matti & Langer"


class SubjectRef(BaseModel):
    """Subject reference carried by an aggregated fixture."""

    id: str
    name: str
    league: Optional[str] = None
    responsibility: Optional[str] = None


# =============================================================================
# Fixtures
# =============================================================================


class ProviderFixture(BaseModel):
    """
    Fixture as returned by the provider, before subject attribution.

    ``date`` is always a canonical ISO date; records without one never
    make it into this model.
    """

    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    time: Optional[str] = None
    home_team: str
    away_team: str
    home_logo: Optional[str] = None
    away_logo: Optional[str] = None
    location: Optional[str] = None
    competition: Optional[str] = None
    matchday: Optional[str] = None
    result: Optional[str] = None
    source_url: Optional[str] = None

    @property
    def match_date(self) -> Date:
        return Date.fromisoformat(self.date)


class Fixture(ProviderFixture):
    """
    Stored fixture row.

    The tuple (subject_id, date, home_team, away_team) is the upsert key;
    ``id`` is assigned once on insert and never changes afterwards.
    """

    id: Optional[str] = None
    subject_id: str
    subject_name: str
    selected: bool = False

    @property
    def key(self) -> tuple[str, str, str, str]:
        return (self.subject_id, self.date, self.home_team, self.away_team)

    @classmethod
    def for_subject(cls, subject: Subject, record: ProviderFixture) -> "Fixture":
        """Attach subject identity to a provider record."""
        return cls(
            subject_id=subject.id,
            subject_name=subject.name,
            **record.model_dump(),
        )


class AggregatedFixture(BaseModel):
    """
    One real-world match and every subject whose rows describe it.

    Computed at read time by FixtureAggregator, never persisted.
    """

    key: str
    date: str
    time: Optional[str] = None
    home_team: str
    away_team: str
    location: Optional[str] = None
    competition: Optional[str] = None
    matchday: Optional[str] = None
    result: Optional[str] = None
    source_url: Optional[str] = None
    age_category: Optional[str] = None  # None = senior
    subjects: list[SubjectRef] = Field(default_factory=list)
    fixture_ids: list[str] = Field(default_factory=list)
    selected: bool = False

    @computed_field
    @property
    def subject_names(self) -> list[str]:
        """Distinct subject names in first-seen order."""
        return list(dict.fromkeys(s.name for s in self.subjects))

    @property
    def is_senior(self) -> bool:
        """True when no age category applies."""
        return self.age_category is None
