"""
Fixture aggregation for listing and export.

Loads the fixtures of a forward-looking window, merges rows that describe
the same real-world match (reported once per represented player), and
applies the editorial sort order:

1. date ascending
2. kickoff time ascending, fixtures without a time last
3. senior fixtures before age categories, older categories first
   (U19 before U17 before U15)

Usage:
    aggregator = FixtureAggregator(fixture_repo, subject_repo)
    for match in aggregator.load():
        print(match.date, match.home_team, match.subject_names)
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional

from ..core.models import AggregatedFixture, Fixture, Subject, SubjectRef
from ..repositories.base import FixtureRepository, SubjectRepository
from .naming import age_category_rank, first_age_category, normalize_team_name

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 35

_RESPONSIBILITY_SPLIT_RE = re.compile(r"\s*[,&]\s*")


def split_responsibility(value: Optional[str]) -> set[str]:
    """Decompose "Matti, Langer & Weber" into {"Matti", "Langer", "Weber"}."""
    if not value:
        return set()
    return {part.strip() for part in _RESPONSIBILITY_SPLIT_RE.split(value) if part.strip()}


@dataclass
class FixtureFilter:
    """
    Client-side filter over aggregated fixtures.

    Empty criteria match everything. ``search`` is a case-insensitive
    substring match over team names, location and subject names.
    """

    search: Optional[str] = None
    subject_ids: set[str] = field(default_factory=set)
    responsibilities: set[str] = field(default_factory=set)

    def matches(self, fixture: AggregatedFixture) -> bool:
        if self.search:
            needle = self.search.casefold().strip()
            haystack = [fixture.home_team, fixture.away_team, fixture.location or ""]
            haystack.extend(fixture.subject_names)
            if not any(needle in text.casefold() for text in haystack):
                return False

        if self.subject_ids and not any(s.id in self.subject_ids for s in fixture.subjects):
            return False

        if self.responsibilities:
            wanted = {r.casefold() for r in self.responsibilities}
            owners = set()
            for subject in fixture.subjects:
                owners.update(r.casefold() for r in split_responsibility(subject.responsibility))
            if not owners & wanted:
                return False

        return True


def match_key(row: Fixture, strip_age_categories: bool = True) -> tuple[str, str, tuple[str, ...]]:
    """Grouping key: date, time-or-empty, sorted pair of normalised team names."""
    teams = sorted(
        (
            normalize_team_name(row.home_team, strip_age_categories),
            normalize_team_name(row.away_team, strip_age_categories),
        )
    )
    return (row.date, row.time or "", tuple(teams))


def _key_id(key: tuple[str, str, tuple[str, ...]]) -> str:
    raw = "|".join([key[0], key[1], *key[2]])
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()[:12]


def sort_key(fixture: AggregatedFixture) -> tuple:
    """Total order used for display and export."""
    return (
        fixture.date,
        fixture.time is None,
        fixture.time or "",
        age_category_rank(fixture.age_category),
    )


def aggregate_fixtures(
    rows: Iterable[Fixture],
    subjects_by_id: Optional[dict[str, Subject]] = None,
    strip_age_categories: bool = True,
) -> list[AggregatedFixture]:
    """
    Merge fixture rows into one entry per real-world match, sorted.

    The first row of a bucket supplies team names and details; later rows
    only fill fields the first one lacks. Subjects are kept once per id.
    The age category is looked up across the team names of every row, then
    the subjects' leagues, so it does not depend on row order.
    """
    subjects_by_id = subjects_by_id or {}
    buckets: dict[tuple, AggregatedFixture] = {}
    team_names: dict[tuple, list[str]] = {}

    for row in rows:
        key = match_key(row, strip_age_categories)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = AggregatedFixture(
                key=_key_id(key),
                date=row.date,
                time=row.time,
                home_team=row.home_team,
                away_team=row.away_team,
                location=row.location,
                competition=row.competition,
                matchday=row.matchday,
                result=row.result,
                source_url=row.source_url,
            )
            buckets[key] = bucket
            team_names[key] = []
        else:
            for attr in ("location", "competition", "matchday", "result", "source_url"):
                if getattr(bucket, attr) is None and getattr(row, attr) is not None:
                    setattr(bucket, attr, getattr(row, attr))

        team_names[key].extend((row.home_team, row.away_team))
        if row.id:
            bucket.fixture_ids.append(row.id)
        bucket.selected = bucket.selected or row.selected

        if all(s.id != row.subject_id for s in bucket.subjects):
            subject = subjects_by_id.get(row.subject_id)
            bucket.subjects.append(
                SubjectRef(
                    id=row.subject_id,
                    name=row.subject_name,
                    league=subject.league if subject else None,
                    responsibility=subject.responsibility if subject else None,
                )
            )

    for key, bucket in buckets.items():
        bucket.age_category = first_age_category(
            [*team_names[key], *(s.league for s in bucket.subjects)]
        )

    return sorted(buckets.values(), key=sort_key)


class FixtureAggregator:
    """Read model over the fixture store; stateless across calls."""

    def __init__(
        self,
        fixtures: FixtureRepository,
        subjects: Optional[SubjectRepository] = None,
        *,
        window_days: int = DEFAULT_WINDOW_DAYS,
        merge_across_age_categories: bool = True,
    ):
        self.fixtures = fixtures
        self.subjects = subjects
        self.window_days = window_days
        self.merge_across_age_categories = merge_across_age_categories

    @classmethod
    def from_settings(cls, settings, fixtures: FixtureRepository, subjects: Optional[SubjectRepository] = None):
        return cls(
            fixtures,
            subjects,
            window_days=settings.fixture_window_days,
            merge_across_age_categories=settings.merge_across_age_categories,
        )

    def window(self, today: Optional[date] = None) -> tuple[date, date]:
        """Inclusive date window: today through today + window_days."""
        start = today or date.today()
        return start, start + timedelta(days=self.window_days)

    def load(
        self,
        fixture_filter: Optional[FixtureFilter] = None,
        today: Optional[date] = None,
    ) -> list[AggregatedFixture]:
        """Aggregated, sorted fixtures of the window, optionally filtered."""
        start, end = self.window(today)
        rows = self.fixtures.find_in_range(start, end)
        subjects_by_id = {s.id: s for s in self.subjects.find_all()} if self.subjects else {}

        aggregated = aggregate_fixtures(rows, subjects_by_id, self.merge_across_age_categories)
        logger.debug(
            "Aggregated %d fixture rows into %d matches (%s..%s)",
            len(rows), len(aggregated), start, end,
        )

        if fixture_filter:
            aggregated = [f for f in aggregated if fixture_filter.matches(f)]
        return aggregated

    def selected(self, today: Optional[date] = None) -> list[AggregatedFixture]:
        """Aggregated fixtures flagged for export."""
        return [f for f in self.load(today=today) if f.selected]

    def select(
        self,
        keys: Iterable[str],
        selected: bool = True,
        today: Optional[date] = None,
    ) -> int:
        """
        Set the export flag on every row of the given aggregated fixtures.

        Returns the number of fixture rows changed. Unknown keys are ignored.
        """
        wanted = set(keys)
        ids = [
            fixture_id
            for fixture in self.load(today=today)
            if fixture.key in wanted
            for fixture_id in fixture.fixture_ids
        ]
        return self.fixtures.set_selected(ids, selected)
