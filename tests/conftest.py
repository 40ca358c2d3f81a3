"""
Pytest configuration for spielplan-sync tests.

Every test gets a fresh in-memory database; provider traffic goes through
httpx.MockTransport, never the network.
"""

from __future__ import annotations

from typing import Callable, Optional

import httpx
import pytest

from spielplan_sync.connection import MEMORY_DB, FixtureDB
from spielplan_sync.core.models import Fixture, Subject
from spielplan_sync.core.types import API_TOKEN_SETTINGS_KEY
from spielplan_sync.providers import FixtureProvider
from spielplan_sync.repositories import get_repositories
from spielplan_sync.schema import init_database

TEST_TOKEN = "test-token-0123456789"


@pytest.fixture
def db():
    """Initialized in-memory fixture database."""
    database = FixtureDB(MEMORY_DB)
    init_database(database)
    yield database
    database.close()


@pytest.fixture
def subject_repo(db):
    return get_repositories(db)[0]


@pytest.fixture
def fixture_repo(db):
    return get_repositories(db)[1]


@pytest.fixture
def settings_repo(db):
    return get_repositories(db)[2]


@pytest.fixture
def token(settings_repo):
    """Store an access token and return it."""
    settings_repo.set(API_TOKEN_SETTINGS_KEY, TEST_TOKEN)
    return TEST_TOKEN


@pytest.fixture
def make_subject(subject_repo) -> Callable[..., Subject]:
    """Create and persist a subject."""

    def _make(
        subject_id: str,
        name: str,
        team_id: Optional[str] = None,
        profile_url: Optional[str] = None,
        **kwargs,
    ) -> Subject:
        if profile_url is None and team_id is not None:
            profile_url = f"https://www.fussball.de/mannschaft/test/-/saison/2526/team-id/{team_id}"
        subject = Subject(id=subject_id, name=name, profile_url=profile_url, **kwargs)
        subject_repo.upsert(subject)
        return subject

    return _make


@pytest.fixture
def make_fixture() -> Callable[..., Fixture]:
    """Build (not persist) a fixture row."""

    def _make(
        subject_id: str = "s1",
        subject_name: str = "Anna Alpha",
        date: str = "2025-10-25",
        home_team: str = "TSG 1899 Hoffenheim U17",
        away_team: str = "FC Bayern München U17 2",
        **kwargs,
    ) -> Fixture:
        return Fixture(
            subject_id=subject_id,
            subject_name=subject_name,
            date=date,
            home_team=home_team,
            away_team=away_team,
            **kwargs,
        )

    return _make


@pytest.fixture
def provider_factory() -> Callable[..., FixtureProvider]:
    """Build a FixtureProvider backed by a MockTransport handler."""

    def _make(handler, **kwargs) -> FixtureProvider:
        kwargs.setdefault("requests_per_minute", 0)
        kwargs.setdefault("max_retries", 1)
        return FixtureProvider(transport=httpx.MockTransport(handler), **kwargs)

    return _make
