"""
Tests for the sync orchestrator.

Subjects are synced against a MockTransport provider keyed by team id.
"""

import asyncio
import sqlite3
from datetime import date

import httpx
import pytest

from spielplan_sync.core.types import PacingPolicy
from spielplan_sync.fixtures import FixtureAggregator, SyncOrchestrator, format_title
from spielplan_sync.fixtures.naming import clean_club_name
from spielplan_sync.repositories import SQLiteFixtureRepository

TODAY = date(2025, 10, 20)
NO_PACING = PacingPolicy(interval_seconds=0)

pytestmark = pytest.mark.asyncio


def game(date_str: str, home: str, away: str, **extra) -> dict:
    return {"date": date_str, "homeTeam": home, "awayTeam": away, **extra}


def schedule_handler(schedules: dict, requests: list | None = None):
    """Serve next_games per team id; unknown ids get a 500."""

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        team_id = request.url.path.rstrip("/").rsplit("/", 1)[-1]
        if team_id not in schedules:
            return httpx.Response(500, text="upstream error")
        return httpx.Response(200, json={"success": True, "data": schedules[team_id]})

    return handler


@pytest.fixture
def orchestrator_factory(provider_factory, subject_repo, fixture_repo, settings_repo):
    def _make(handler, fixtures=None, **kwargs) -> SyncOrchestrator:
        kwargs.setdefault("pacing", NO_PACING)
        return SyncOrchestrator(
            provider_factory(handler),
            subject_repo,
            fixtures or fixture_repo,
            settings_repo,
            **kwargs,
        )

    return _make


# =========================================================================
# End-to-end
# =========================================================================


async def test_end_to_end_sync_aggregate_and_title(
    token, make_subject, subject_repo, fixture_repo, orchestrator_factory
):
    make_subject("a", "Anna Alpha", profile_url="https://www.fussball.de/mannschaft/x/-/team-id/ABC123")
    handler = schedule_handler(
        {"ABC123": [game("25.10.2025", "TSG 1899 Hoffenheim U17", "FC Bayern München U17 2")]}
    )

    result = await orchestrator_factory(handler).run(today=TODAY)

    assert result.success
    assert result.added == 1
    assert result.warnings == []
    rows = fixture_repo.find_in_range(TODAY, date(2025, 11, 30))
    assert len(rows) == 1
    assert rows[0].date == "2025-10-25"
    assert rows[0].time is None
    assert rows[0].subject_id == "a"
    assert rows[0].subject_name == "Anna Alpha"

    matches = FixtureAggregator(fixture_repo, subject_repo).load(today=TODAY)
    assert len(matches) == 1
    match = matches[0]
    assert match.age_category == "U17"
    assert clean_club_name(match.home_team) == "Hoffenheim"
    assert clean_club_name(match.away_team) == "Bayern München U23"
    assert format_title(match) == "U17 Liga: Hoffenheim - Bayern München U23"


async def test_rerun_is_idempotent(token, make_subject, fixture_repo, orchestrator_factory):
    make_subject("a", "Anna Alpha", team_id="AAA")
    handler = schedule_handler(
        {"AAA": [game("25.10.2025", "A", "B"), game("01.11.2025", "C", "A", time="15:00")]}
    )
    orchestrator = orchestrator_factory(handler)

    first = await orchestrator.run(today=TODAY)
    second = await orchestrator.run(today=TODAY)

    assert (first.added, first.updated) == (2, 0)
    assert (second.added, second.updated) == (0, 2)
    assert fixture_repo.count() == 2


# =========================================================================
# Warnings and failure containment
# =========================================================================


async def test_subject_without_team_id_is_one_warning(token, make_subject, orchestrator_factory):
    make_subject("a", "Anna Alpha", team_id="AAA")
    make_subject("b", "Ben Beta", profile_url="https://www.fussball.de/spielerprofil/-/player-id/short")
    make_subject("c", "Cem Gamma", team_id="CCC")
    handler = schedule_handler(
        {
            "AAA": [game("25.10.2025", "A", "B")],
            "CCC": [game("26.10.2025", "C", "D"), game("02.11.2025", "E", "C")],
        }
    )

    result = await orchestrator_factory(handler).run(today=TODAY)

    assert result.success
    assert result.added + result.updated == 3
    assert len(result.warnings) == 1
    assert "Ben Beta" in result.warnings[0]
    assert result.subjects_skipped == 1
    assert result.subjects_processed == 2


async def test_provider_failure_does_not_abort_batch(token, make_subject, orchestrator_factory):
    make_subject("a", "Anna Alpha", team_id="AAA")
    make_subject("b", "Ben Beta", team_id="BROKEN")
    make_subject("c", "Cem Gamma", team_id="CCC")
    handler = schedule_handler({"AAA": [game("25.10.2025", "A", "B")], "CCC": [game("26.10.2025", "C", "D")]})

    result = await orchestrator_factory(handler).run(today=TODAY)

    assert result.success
    assert result.added == 2
    assert result.subjects_failed == 1
    assert len(result.warnings) == 1
    assert "Ben Beta" in result.warnings[0]


async def test_empty_schedule_is_not_a_warning(token, make_subject, orchestrator_factory):
    make_subject("a", "Anna Alpha", team_id="AAA")

    result = await orchestrator_factory(schedule_handler({"AAA": []})).run(today=TODAY)

    assert result.warnings == []
    assert result.subjects_processed == 1
    assert result.added == 0


async def test_missing_token_makes_no_requests(make_subject, orchestrator_factory):
    make_subject("a", "Anna Alpha", team_id="AAA")
    requests = []

    result = await orchestrator_factory(schedule_handler({"AAA": []}, requests)).run(today=TODAY)

    assert result.configuration_missing
    assert not result.success
    assert requests == []
    assert len(result.warnings) == 1
    assert "token" in result.warnings[0].lower()


async def test_persistence_error_is_counted(token, db, make_subject, orchestrator_factory):
    class FlakyFixtureRepository(SQLiteFixtureRepository):
        def upsert(self, fixture):
            if fixture.home_team == "Broken":
                raise sqlite3.OperationalError("database is locked")
            return super().upsert(fixture)

    flaky = FlakyFixtureRepository(db)
    make_subject("a", "Anna Alpha", team_id="AAA")
    handler = schedule_handler(
        {"AAA": [game("25.10.2025", "Broken", "B"), game("26.10.2025", "C", "D")]}
    )

    result = await orchestrator_factory(handler, fixtures=flaky).run(today=TODAY)

    assert result.failed == 1
    assert result.added == 1
    assert len(result.warnings) == 1
    assert flaky.count() == 1


async def test_only_window_is_persisted(token, make_subject, fixture_repo, orchestrator_factory):
    make_subject("a", "Anna Alpha", team_id="AAA")
    handler = schedule_handler(
        {
            "AAA": [
                game("19.10.2025", "Past", "B"),
                game("20.10.2025", "Today", "B"),
                game("24.11.2025", "LastDay", "B"),
                game("25.11.2025", "TooLate", "B"),
            ]
        }
    )

    result = await orchestrator_factory(handler).run(today=TODAY)

    rows = fixture_repo.find_in_range(date(2025, 1, 1), date(2025, 12, 31))
    assert result.added == 2
    assert [r.home_team for r in rows] == ["Today", "LastDay"]


# =========================================================================
# Progress, concurrency and cancellation
# =========================================================================


async def test_progress_reports_each_subject_in_order(token, make_subject, orchestrator_factory):
    make_subject("a", "Anna Alpha", team_id="AAA")
    make_subject("b", "Ben Beta")
    make_subject("c", "Cem Gamma", profile_url="https://example.org/no-id")
    make_subject("d", "Dana Delta", team_id="DDD")
    progress = []

    await orchestrator_factory(schedule_handler({"AAA": [], "DDD": []})).run(
        on_progress=lambda *args: progress.append(args), today=TODAY
    )

    # Ben Beta has no profile URL and is not part of the pass
    assert progress == [(1, 3, "Anna Alpha"), (2, 3, "Cem Gamma"), (3, 3, "Dana Delta")]


async def test_progress_is_monotonic_with_worker_pool(token, make_subject, orchestrator_factory):
    schedules = {}
    for i in range(6):
        make_subject(f"s{i}", f"Spieler {i}", team_id=f"TEAM{i}")
        schedules[f"TEAM{i}"] = [game("25.10.2025", f"Home {i}", f"Away {i}")]
    progress = []

    result = await orchestrator_factory(
        schedule_handler(schedules),
        pacing=PacingPolicy(interval_seconds=0, max_concurrency=3),
    ).run(on_progress=lambda current, total, name: progress.append(current), today=TODAY)

    assert progress == [1, 2, 3, 4, 5, 6]
    assert result.added == 6


async def test_pacing_spaces_requests(token, make_subject, orchestrator_factory, monkeypatch):
    waits = []
    real_sleep = asyncio.sleep

    async def recording_sleep(seconds):
        waits.append(seconds)
        await real_sleep(0)

    monkeypatch.setattr("spielplan_sync.core.http.asyncio.sleep", recording_sleep)
    for i in range(3):
        make_subject(f"s{i}", f"Spieler {i}", team_id=f"TEAM{i}")

    await orchestrator_factory(
        schedule_handler({f"TEAM{i}": [] for i in range(3)}),
        pacing=PacingPolicy(interval_seconds=0.5),
    ).run(today=TODAY)

    # first request goes out immediately, the next two wait for the interval
    assert len(waits) == 2
    assert all(0 < w <= 0.5 for w in waits)


async def test_cancellation_between_subjects(token, make_subject, orchestrator_factory):
    for i in range(3):
        make_subject(f"s{i}", f"Spieler {i}", team_id=f"TEAM{i}")
    requests = []
    cancel = asyncio.Event()

    def on_progress(current, total, name):
        cancel.set()

    result = await orchestrator_factory(
        schedule_handler({f"TEAM{i}": [] for i in range(3)}, requests)
    ).run(on_progress=on_progress, cancel_event=cancel, today=TODAY)

    assert result.cancelled
    assert len(requests) == 1
    assert result.subjects_processed == 1
    assert result.subjects_skipped == 2


# =========================================================================
# Single subject
# =========================================================================


async def test_sync_subject_only_fetches_that_subject(token, make_subject, orchestrator_factory):
    make_subject("a", "Anna Alpha", team_id="AAA")
    make_subject("b", "Ben Beta", team_id="BBB")
    requests = []
    handler = schedule_handler({"AAA": [game("25.10.2025", "A", "B")], "BBB": []}, requests)

    result = await orchestrator_factory(handler).sync_subject("a", today=TODAY)

    assert result.added == 1
    assert result.subjects_total == 1
    assert [r.url.path for r in requests] == ["/api/team/next_games/AAA"]


async def test_sync_unknown_subject(token, orchestrator_factory):
    result = await orchestrator_factory(schedule_handler({})).sync_subject("missing", today=TODAY)

    assert result.added == 0
    assert "missing" in result.warnings[0]
