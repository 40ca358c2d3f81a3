"""
Fixture pipeline: sync, aggregation and calendar export.

Usage:
    from spielplan_sync.fixtures import SyncOrchestrator, FixtureAggregator, CalendarExporter

    result = await SyncOrchestrator(provider, subjects, fixtures, settings).run()
    matches = FixtureAggregator(fixtures, subjects).load()
    ics = CalendarExporter().export(matches)
"""

from .aggregator import FixtureAggregator, FixtureFilter, aggregate_fixtures, split_responsibility
from .calendar import CalendarExporter, ExportError, NothingSelectedError, format_title
from .naming import clean_club_name, extract_age_category, normalize_team_name
from .sync import SyncOrchestrator, SyncResult

__all__ = [
    # Sync
    "SyncOrchestrator",
    "SyncResult",
    # Aggregation
    "FixtureAggregator",
    "FixtureFilter",
    "aggregate_fixtures",
    "split_responsibility",
    # Export
    "CalendarExporter",
    "ExportError",
    "NothingSelectedError",
    "format_title",
    # Naming
    "clean_club_name",
    "extract_age_category",
    "normalize_team_name",
]
