"""
Core types and constants for spielplan-sync.

This module provides:
- Enums for upsert outcomes and match types
- PacingPolicy, the explicit request pacing used by the sync orchestrator
- Settings keys and table names shared by repositories
"""

from dataclasses import dataclass
from enum import Enum


class UpsertOutcome(str, Enum):
    """Result of writing one fixture row."""

    added = "added"
    updated = "updated"


class MatchType(str, Enum):
    """Match type derived from the competition label."""

    league = "league"
    cup = "cup"
    friendly = "friendly"


# Shorthand used in calendar titles
MATCH_TYPE_SHORTHAND: dict[MatchType, str] = {
    MatchType.league: "Liga",
    MatchType.cup: "Pokal",
    MatchType.friendly: "Test",
}


@dataclass(frozen=True)
class PacingPolicy:
    """
    Request pacing for the sync pass.

    ``interval_seconds`` is the minimum spacing between two dispatched
    provider requests, regardless of how many subjects run concurrently.
    """

    interval_seconds: float = 0.5
    max_concurrency: int = 1

    @property
    def requests_per_minute(self) -> float:
        """Aggregate request budget implied by the interval (0 = unlimited)."""
        if self.interval_seconds <= 0:
            return 0.0
        return 60.0 / self.interval_seconds


# =============================================================================
# Storage keys and table names
# =============================================================================

API_TOKEN_SETTINGS_KEY = "fussball_de_api_token"
LAST_SYNC_META_KEY = "last_full_sync"

SUBJECTS_TABLE = "subjects"
FIXTURES_TABLE = "fixtures"
SETTINGS_TABLE = "settings"
META_TABLE = "meta"
