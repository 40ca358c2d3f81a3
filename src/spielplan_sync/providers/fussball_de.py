"""
api-fussball.de fixture provider.

Fetches the next games of one team and maps them onto ProviderFixture
records. Requests either go straight to api-fussball.de or through a relay
that attaches credentials and sidesteps browser CORS restrictions:

    GET {relay_url}?url=https://api-fussball.de/api/team/next_games/{team_id}&type=fussball
    x-auth-token: <token>

Responses are a JSON envelope ``{"success": true, "data": [...]}``. Older
response versions return ``{"games": [...]}`` or ``{"next_games": [...]}``;
both are accepted.

Failures never propagate: a single team's outage must not abort a sync
pass, so HTTP errors, transport errors and malformed envelopes all yield an
empty list and a log line.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx
from pydantic import ValidationError

from ..core.http import BaseApiClient, ExternalAPIError
from ..core.models import ProviderFixture
from .dates import normalize_date, normalize_time
from .field_map import map_record

logger = logging.getLogger(__name__)

AUTH_HEADER = "x-auth-token"
NEXT_GAMES_PATH = "/api/team/next_games/{team_id}"
CLUB_NEXT_GAMES_PATH = "/api/club/next_games/{club_id}"
REGISTER_PATH = "/api/auth/register"


@dataclass
class FetchResult:
    """Fixtures of one provider call, plus the error that emptied it, if any."""

    fixtures: list[ProviderFixture] = field(default_factory=list)
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class TokenRegistrationError(ExternalAPIError):
    """Raised when api-fussball.de does not hand out a token."""

    def __init__(self, message: str):
        super().__init__(message, code="TOKEN_REGISTRATION_FAILED", status_code=502)


def _extract_games(payload: Any) -> list[Any] | None:
    """Pull the game list out of any known envelope shape."""
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, Mapping):
        return None
    if payload.get("success") is False:
        logger.warning("Provider reported failure: %s", payload.get("error") or payload.get("message"))
        return []

    data = payload.get("data")
    if isinstance(data, Mapping):
        data = data.get("games") or data.get("next_games")
    if data is None:
        data = payload.get("games") or payload.get("next_games")
    return data if isinstance(data, list) else None


def parse_fixtures(payload: Any) -> list[ProviderFixture]:
    """
    Map a provider envelope onto fixtures, in provider order.

    Records whose date cannot be normalised, or which lack either team, are
    dropped: they could never satisfy the store's upsert key.
    """
    games = _extract_games(payload)
    if games is None:
        logger.warning("Malformed provider envelope (%s), treating as no fixtures", type(payload).__name__)
        return []

    fixtures: list[ProviderFixture] = []
    for index, raw in enumerate(games):
        if not isinstance(raw, Mapping):
            logger.warning("Skipping non-object game entry at index %d", index)
            continue

        fields = map_record(raw)
        iso_date = normalize_date(fields["date"])
        if not iso_date:
            logger.warning(
                "Dropping game %s vs %s: unparseable date %r",
                fields["home_team"], fields["away_team"], fields["date"],
            )
            continue
        if not fields["home_team"] or not fields["away_team"]:
            logger.warning("Dropping game on %s: missing team name", iso_date)
            continue

        try:
            fixtures.append(
                ProviderFixture(
                    date=iso_date,
                    time=normalize_time(fields["time"]),
                    home_team=fields["home_team"],
                    away_team=fields["away_team"],
                    home_logo=fields["home_logo"],
                    away_logo=fields["away_logo"],
                    location=fields["location"],
                    competition=fields["competition"],
                    matchday=fields["matchday"],
                    result=fields["result"],
                    source_url=fields["source_url"],
                )
            )
        except ValidationError as e:
            logger.warning("Dropping invalid game at index %d: %s", index, e)

    return fixtures


class FixtureProvider(BaseApiClient):
    """Rate-limited api-fussball.de client returning normalised fixtures."""

    BASE_URL = "https://api-fussball.de"

    def __init__(
        self,
        *,
        base_url: str | None = None,
        relay_url: str | None = None,
        relay_type: str = "fussball",
        requests_per_minute: float = 120,
        timeout: float = 10.0,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(
            base_url=base_url,
            headers={"Accept": "application/json"},
            requests_per_minute=requests_per_minute,
            timeout=timeout,
            max_retries=max_retries,
            transport=transport,
        )
        self._relay_url = relay_url.rstrip("/") if relay_url else None
        self._relay_type = relay_type

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "FixtureProvider":
        """Build a provider from Settings."""
        return cls(
            base_url=settings.provider_base_url,
            relay_url=settings.relay_url,
            relay_type=settings.relay_type,
            requests_per_minute=settings.provider_requests_per_minute,
            timeout=settings.request_timeout,
            max_retries=settings.max_retries,
            **kwargs,
        )

    @property
    def uses_relay(self) -> bool:
        """True when requests are routed through the relay endpoint."""
        return self._relay_url is not None

    def target_url(self, path: str) -> str:
        """Absolute provider URL for an API path."""
        return f"{self._base_url}{path}"

    async def _get_provider(self, path: str, token: str) -> Any:
        """GET a provider path, via the relay when one is configured."""
        headers = {AUTH_HEADER: token}
        target = self.target_url(path)
        if self.uses_relay:
            return await self._get(
                self._relay_url,
                params={"url": target, "type": self._relay_type},
                headers=headers,
            )
        return await self._get(target, headers=headers)

    # =========================================================================
    # Fixtures
    # =========================================================================

    async def fetch_next_games(self, team_id: str, token: str) -> list[ProviderFixture]:
        """
        Fetch upcoming fixtures for one team.

        Subject attribution is left to the caller. Returns an empty list on
        any provider failure.
        """
        return (await self.fetch_team(team_id, token)).fixtures

    async def fetch_team(self, team_id: str, token: str) -> FetchResult:
        """Like fetch_next_games(), but reports why a result is empty."""
        return await self._fetch(NEXT_GAMES_PATH.format(team_id=team_id), token, f"team {team_id}")

    async def fetch_club_next_games(self, club_id: str, token: str) -> list[ProviderFixture]:
        """Fetch upcoming fixtures for every team of a club."""
        result = await self._fetch(CLUB_NEXT_GAMES_PATH.format(club_id=club_id), token, f"club {club_id}")
        return result.fixtures

    async def _fetch(self, path: str, token: str, label: str) -> FetchResult:
        try:
            payload = await self._get_provider(path, token)
        except ExternalAPIError as e:
            logger.error("Fixture request for %s failed: %s", label, e.message)
            return FetchResult(error=e.message)

        fixtures = parse_fixtures(payload)
        logger.debug("Provider returned %d fixtures for %s", len(fixtures), label)
        return FetchResult(fixtures=fixtures)

    # =========================================================================
    # Token registration
    # =========================================================================

    async def register_token(self, email: str) -> str:
        """
        Register an e-mail address with api-fussball.de and return the token.

        Registration always talks to the provider directly.

        Raises:
            TokenRegistrationError: If the provider rejects the request or
                returns no token
        """
        try:
            payload = await self._post(self.target_url(REGISTER_PATH), json={"email": email})
        except ExternalAPIError as e:
            raise TokenRegistrationError(f"Token registration failed: {e.message}") from e

        token = None
        if isinstance(payload, Mapping):
            token = payload.get("token")
            if token is None and isinstance(payload.get("data"), Mapping):
                token = payload["data"].get("token")
        if not token:
            raise TokenRegistrationError("Token registration returned no token")
        return str(token)
