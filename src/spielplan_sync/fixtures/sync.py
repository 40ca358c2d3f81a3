"""
Sync orchestrator for pulling fixtures of all represented players.

This module provides the SyncOrchestrator class that:
1. Checks that a provider access token is configured
2. Resolves each subject's team identifier from its profile URL
3. Fetches the team's upcoming fixtures, paced to respect provider limits
4. Upserts the fixtures keyed by (subject, date, home team, away team)
5. Reports progress and returns a summary with per-subject warnings

A single subject's failure never aborts the pass; warnings are collected
and the pass completes with a summary.

Usage:
    from spielplan_sync.fixtures import SyncOrchestrator

    async def nightly_sync():
        orchestrator = SyncOrchestrator(provider, subjects, fixtures, settings)
        result = await orchestrator.run(on_progress=print)
        print(f"{result.added} added, {result.updated} updated")
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional

from ..core.http import RateLimiter
from ..core.models import Fixture, ProviderFixture, Subject
from ..core.types import API_TOKEN_SETTINGS_KEY, PacingPolicy, UpsertOutcome
from ..providers.fussball_de import FetchResult, FixtureProvider
from ..providers.team_id import extract_team_id
from ..repositories.base import FixtureRepository, SettingsRepository, SubjectRepository

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]

MISSING_TOKEN_MESSAGE = (
    "No fussball.de API token configured. "
    "Register one with 'spielplan token register --email ...' or store an existing one "
    "with 'spielplan token set'."
)


@dataclass
class SyncResult:
    """Result of a sync pass."""
    run_started: datetime = field(default_factory=datetime.now)
    run_completed: Optional[datetime] = None
    subjects_total: int = 0
    subjects_processed: int = 0
    subjects_skipped: int = 0
    subjects_failed: int = 0
    added: int = 0
    updated: int = 0
    failed: int = 0
    warnings: list[str] = field(default_factory=list)
    configuration_missing: bool = False
    cancelled: bool = False

    @property
    def success(self) -> bool:
        """A completed pass is successful even when individual subjects failed."""
        return not self.configuration_missing

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_started": self.run_started.isoformat(),
            "run_completed": self.run_completed.isoformat() if self.run_completed else None,
            "subjects_total": self.subjects_total,
            "subjects_processed": self.subjects_processed,
            "subjects_skipped": self.subjects_skipped,
            "subjects_failed": self.subjects_failed,
            "added": self.added,
            "updated": self.updated,
            "failed": self.failed,
            "warnings": self.warnings,
            "configuration_missing": self.configuration_missing,
            "cancelled": self.cancelled,
            "success": self.success,
        }


class SyncOrchestrator:
    """
    Drives a synchronization pass across all subjects with a profile URL.

    Subjects are dispatched in order. With ``pacing.max_concurrency > 1`` a
    bounded pool of workers pulls from the same ordered queue; the shared
    rate limiter still spaces provider requests by
    ``pacing.interval_seconds``.
    """

    def __init__(
        self,
        provider: FixtureProvider,
        subjects: SubjectRepository,
        fixtures: FixtureRepository,
        settings: SettingsRepository,
        *,
        pacing: Optional[PacingPolicy] = None,
        window_days: Optional[int] = 35,
    ):
        """
        Initialize the orchestrator.

        Args:
            provider: Fixture provider client
            subjects: Source of subjects to sync
            fixtures: Fixture store receiving upserts
            settings: Key/value settings holding the access token
            pacing: Request pacing (default: one request per 500 ms, sequential)
            window_days: Only persist fixtures from today through today + N days
                (None keeps everything the provider returns)
        """
        self.provider = provider
        self.subjects = subjects
        self.fixtures = fixtures
        self.settings = settings
        self.pacing = pacing or PacingPolicy()
        self.window_days = window_days

    async def run(
        self,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
        today: Optional[date] = None,
    ) -> SyncResult:
        """
        Sync every subject that has an external profile reference.

        Args:
            on_progress: Called after each subject with (current, total, name)
            cancel_event: When set, no further subjects are dispatched
            today: Reference date for the persistence window

        Returns:
            SyncResult with counts and warnings
        """
        return await self._run(None, on_progress, cancel_event, today)

    async def sync_subject(
        self,
        subject_id: str,
        on_progress: Optional[ProgressCallback] = None,
        today: Optional[date] = None,
    ) -> SyncResult:
        """Sync a single subject (manual refresh from a player's page)."""
        subject = self.subjects.find_by_id(subject_id)
        if subject is None:
            result = SyncResult()
            result.warnings.append(f"Unknown subject {subject_id}")
            result.subjects_skipped = 1
            result.run_completed = datetime.now()
            return result
        return await self._run([subject], on_progress, None, today)

    async def _run(
        self,
        subjects: Optional[list[Subject]],
        on_progress: Optional[ProgressCallback],
        cancel_event: Optional[asyncio.Event],
        today: Optional[date],
    ) -> SyncResult:
        result = SyncResult()

        token = self.settings.get(API_TOKEN_SETTINGS_KEY)
        if not token:
            logger.error("Sync aborted: no API token configured")
            result.configuration_missing = True
            result.warnings.append(MISSING_TOKEN_MESSAGE)
            result.run_completed = datetime.now()
            return result

        if subjects is None:
            subjects = self.subjects.find_with_profile()
        result.subjects_total = len(subjects)

        if not subjects:
            logger.info("No subjects with a profile URL to sync")
            result.run_completed = datetime.now()
            return result

        logger.info("Syncing fixtures for %d subjects", len(subjects))

        queue: asyncio.Queue[Subject] = asyncio.Queue()
        for subject in subjects:
            queue.put_nowait(subject)

        limiter = RateLimiter(self.pacing.requests_per_minute)
        completed = 0

        async def worker() -> None:
            nonlocal completed
            while True:
                try:
                    subject = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return

                if cancel_event is not None and cancel_event.is_set():
                    result.cancelled = True
                    result.subjects_skipped += 1
                    continue

                try:
                    await self._sync_one(subject, token, limiter, result, today)
                except Exception as e:
                    result.subjects_failed += 1
                    result.warnings.append(f"Error syncing {subject.name}: {e}")
                    logger.error("Error syncing %s: %s", subject.name, e)

                # no await between increment and report
                completed += 1
                if on_progress:
                    on_progress(completed, result.subjects_total, subject.name)

        worker_count = max(1, min(self.pacing.max_concurrency, len(subjects)))
        await asyncio.gather(*(worker() for _ in range(worker_count)))

        if result.cancelled:
            logger.warning("Sync cancelled, %d subjects not processed", result.subjects_skipped)

        result.run_completed = datetime.now()
        logger.info(
            "Sync completed: %d added, %d updated, %d failed upserts, "
            "%d/%d subjects processed, %d warnings, took %.1fs",
            result.added,
            result.updated,
            result.failed,
            result.subjects_processed,
            result.subjects_total,
            len(result.warnings),
            (result.run_completed - result.run_started).total_seconds(),
        )
        return result

    async def _sync_one(
        self,
        subject: Subject,
        token: str,
        limiter: RateLimiter,
        result: SyncResult,
        today: Optional[date],
    ) -> None:
        team_id = extract_team_id(subject.profile_url)
        if not team_id:
            result.subjects_skipped += 1
            result.warnings.append(
                f"No team id in profile URL for {subject.name} ({subject.profile_url})"
            )
            logger.warning("Skipping %s: no team id in %s", subject.name, subject.profile_url)
            return

        await limiter.acquire()
        fetched: FetchResult = await self.provider.fetch_team(team_id, token)
        if fetched.failed:
            result.subjects_failed += 1
            result.warnings.append(f"Fixture request failed for {subject.name}: {fetched.error}")
            return

        records = self._within_window(fetched.fixtures, today)
        result.subjects_processed += 1
        if not records:
            logger.info("No upcoming fixtures for %s", subject.name)
            return

        added = updated = 0
        for record in records:
            fixture = Fixture.for_subject(subject, record)
            try:
                outcome = self.fixtures.upsert(fixture)
            except sqlite3.Error as e:
                result.failed += 1
                result.warnings.append(
                    f"Could not store {fixture.home_team} - {fixture.away_team} "
                    f"({fixture.date}) for {subject.name}: {e}"
                )
                logger.error("Upsert failed for %s: %s", subject.name, e)
                continue

            if outcome is UpsertOutcome.added:
                added += 1
            else:
                updated += 1

        result.added += added
        result.updated += updated
        logger.info("%s: %d added, %d updated", subject.name, added, updated)

    def _within_window(
        self,
        records: list[ProviderFixture],
        today: Optional[date],
    ) -> list[ProviderFixture]:
        if self.window_days is None:
            return records
        start = today or date.today()
        end = start + timedelta(days=self.window_days)
        return [r for r in records if start <= r.match_date <= end]
