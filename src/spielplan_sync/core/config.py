"""
Configuration management for spielplan-sync.

Uses Pydantic settings for type-safe configuration with environment variable support.
All settings can be overridden via environment variables or a local .env file.

The fussball.de access token is deliberately not part of these settings: it is
stored in the key/value ``settings`` table so it can be registered and rotated
at runtime (see repositories.sqlite.SQLiteSettingsRepository).
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .types import PacingPolicy


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Example:
        DATABASE_PATH=/var/lib/spielplan/fixtures.sqlite
        RELAY_URL=https://example.supabase.co/functions/v1/proxy
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # Application Metadata
    # ==========================================================================
    app_name: str = "spielplan-sync"
    app_version: str = "1.0.0"
    log_level: str = Field(default="INFO", description="Root log level for the CLI")

    # ==========================================================================
    # Database Configuration
    # ==========================================================================
    database_path: Path = Field(
        default=Path("./data/spielplan.sqlite"),
        description="SQLite file holding subjects, fixtures and settings",
    )

    # ==========================================================================
    # Fixture Provider (api-fussball.de)
    # ==========================================================================
    provider_base_url: str = "https://api-fussball.de"
    relay_url: Optional[str] = Field(
        default=None,
        description="Relay endpoint; when set, requests are sent as ?url=<target>&type=fussball",
    )
    relay_type: str = "fussball"
    provider_requests_per_minute: int = Field(default=120, ge=1)
    request_timeout: float = Field(default=10.0, gt=0)
    max_retries: int = Field(default=3, ge=1, le=10)

    # ==========================================================================
    # Sync Pacing
    # ==========================================================================
    pacing_interval_seconds: float = Field(
        default=0.5,
        ge=0,
        description="Minimum spacing between per-subject provider requests",
    )
    sync_concurrency: int = Field(default=1, ge=1, le=8)

    @computed_field
    @property
    def pacing(self) -> PacingPolicy:
        """Pacing policy derived from interval and concurrency."""
        return PacingPolicy(
            interval_seconds=self.pacing_interval_seconds,
            max_concurrency=self.sync_concurrency,
        )

    # ==========================================================================
    # Aggregation & Export
    # ==========================================================================
    fixture_window_days: int = Field(default=35, ge=0)
    merge_across_age_categories: bool = Field(
        default=True,
        description="Strip U-categories from team names before matching duplicates",
    )
    default_kickoff_time: str = Field(default="12:00", pattern=r"^\d{2}:\d{2}$")
    event_duration_hours: int = Field(default=2, ge=1, le=24)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
