"""
Fixture provider integration (api-fussball.de).

Provides:
- extract_team_id: profile URL -> team identifier
- normalize_date / normalize_time: provider date strings -> ISO values
- FixtureProvider: rate-limited client returning ProviderFixture records
"""

from .dates import normalize_date, normalize_time
from .field_map import FIELD_ALIASES, map_record
from .fussball_de import FetchResult, FixtureProvider, TokenRegistrationError, parse_fixtures
from .team_id import extract_team_id

__all__ = [
    "FIELD_ALIASES",
    "FetchResult",
    "FixtureProvider",
    "TokenRegistrationError",
    "extract_team_id",
    "map_record",
    "normalize_date",
    "normalize_time",
    "parse_fixtures",
]
