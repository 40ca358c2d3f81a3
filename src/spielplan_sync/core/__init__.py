"""
Core building blocks shared by providers, repositories and the fixture pipeline.
"""

from .config import Settings, get_settings
from .http import BaseApiClient, ExternalAPIError, RateLimiter, RateLimitError
from .models import AggregatedFixture, Fixture, ProviderFixture, Subject, SubjectRef
from .types import MatchType, PacingPolicy, UpsertOutcome

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # HTTP
    "BaseApiClient",
    "ExternalAPIError",
    "RateLimiter",
    "RateLimitError",
    # Models
    "AggregatedFixture",
    "Fixture",
    "ProviderFixture",
    "Subject",
    "SubjectRef",
    # Types
    "MatchType",
    "PacingPolicy",
    "UpsertOutcome",
]
