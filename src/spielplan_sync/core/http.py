"""
HTTP plumbing for provider integrations.

BaseApiClient wraps httpx.AsyncClient with request spacing and a bounded
retry policy; FixtureProvider builds on it for both fixture requests and
token registration.

Usage:
    class ScheduleClient(BaseApiClient):
        BASE_URL = "https://api-fussball.de"

        async def next_games(self, team_id: str, token: str) -> dict:
            return await self._get(f"/api/team/next_games/{team_id}", headers={"x-auth-token": token})
"""

import asyncio
import logging
import time
from typing import Any

import httpx

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ExternalAPIError(Exception):
    """A provider request that could not be completed."""

    def __init__(
        self,
        message: str,
        code: str = "EXTERNAL_API_ERROR",
        status_code: int = 502,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class RateLimitError(ExternalAPIError):
    """The provider kept answering 429 until retries ran out."""

    def __init__(self, message: str, retry_after: int = 60):
        super().__init__(message, code="RATE_LIMITED", status_code=429)
        self.retry_after = retry_after


def _retry_after(response: httpx.Response, default: int = 60) -> int:
    """Seconds from a Retry-After header; HTTP-date values fall back to the default."""
    value = response.headers.get("retry-after", "")
    return int(value) if value.isdigit() else default


def _decode_json(response: httpx.Response, url: str) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise ExternalAPIError(
            f"Invalid JSON from {url}: {e}",
            code="INVALID_RESPONSE",
            status_code=response.status_code,
        ) from e


# ---------------------------------------------------------------------------
# Request spacing
# ---------------------------------------------------------------------------

class RateLimiter:
    """
    Keeps consecutive calls at least ``60 / requests_per_minute`` seconds apart.

    One instance may be shared by several workers; the lock serialises the
    waiting so the aggregate rate holds. The first call never waits, and a
    non-positive rate disables spacing altogether.
    """

    def __init__(self, requests_per_minute: float = 600):
        self.interval = 60.0 / requests_per_minute if requests_per_minute > 0 else 0.0
        self._previous: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait for the next free slot."""
        async with self._lock:
            if self._previous is not None and self.interval:
                remaining = self._previous + self.interval - time.monotonic()
                if remaining > 0:
                    await asyncio.sleep(remaining)
            self._previous = time.monotonic()


# ---------------------------------------------------------------------------
# Base client
# ---------------------------------------------------------------------------

class BaseApiClient:
    """
    Async JSON client with request spacing and bounded retries.

    Retry policy per request (``max_retries`` attempts in total):

    - 429: wait for Retry-After, at most MAX_RETRY_WAIT seconds
    - 5xx and transport errors: exponential backoff (1 s, 2 s, 4 s, ...)
    - any other 4xx: fail at once

    URLs may be relative to ``base_url`` or absolute (relay requests are).
    Use as an async context manager, or let the client open lazily and call
    close() when done. ``transport`` goes straight to httpx, which is how
    tests plug in ``httpx.MockTransport``.
    """

    BASE_URL: str = ""
    MAX_RETRY_WAIT = 30

    def __init__(
        self,
        *,
        base_url: str | None = None,
        headers: dict[str, str] | None = None,
        requests_per_minute: float = 600,
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = (base_url or self.BASE_URL).rstrip("/")
        self._headers = headers or {}
        self._rate_limiter = RateLimiter(requests_per_minute)
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    # -- Lifecycle -----------------------------------------------------------

    def _open(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._headers,
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    @property
    def client(self) -> httpx.AsyncClient:
        return self._open()

    async def __aenter__(self) -> "BaseApiClient":
        self._open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    # -- Requests ------------------------------------------------------------

    async def _get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return await self._request("GET", url, params=params, headers=headers)

    async def _post(
        self,
        url: str,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return await self._request("POST", url, json=json, headers=headers)

    async def _backoff(self, attempt: int, reason: Exception) -> None:
        wait = 2 ** (attempt - 1)
        logger.warning("Retrying in %ds (attempt %d/%d): %s", wait, attempt, self._max_retries, reason)
        await asyncio.sleep(wait)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            RateLimitError: Still rate limited after the last attempt
            ExternalAPIError: Any other failure, including a non-JSON body
        """
        last_error: ExternalAPIError | None = None

        for attempt in range(1, self._max_retries + 1):
            final = attempt == self._max_retries
            await self._rate_limiter.acquire()

            try:
                response = await self.client.request(method, url, params=params, json=json, headers=headers)
            except httpx.RequestError as e:
                last_error = ExternalAPIError(
                    f"{method} {url} failed: {e}", code="TRANSPORT_ERROR", status_code=503
                )
                if not final:
                    await self._backoff(attempt, e)
                continue

            if response.status_code == 429:
                retry_after = _retry_after(response)
                last_error = RateLimitError(
                    f"Rate limited by {response.url.host}; retry in {retry_after}s",
                    retry_after=retry_after,
                )
                if not final:
                    wait = min(retry_after, self.MAX_RETRY_WAIT)
                    logger.warning("Rate limited on %s, waiting %ds", url, wait)
                    await asyncio.sleep(wait)
                continue

            if response.is_server_error:
                last_error = ExternalAPIError(
                    f"HTTP {response.status_code} from {url}: {response.text[:200]}",
                    status_code=response.status_code,
                )
                if not final:
                    await self._backoff(attempt, last_error)
                continue

            if response.is_error:
                raise ExternalAPIError(
                    f"HTTP {response.status_code} from {url}: {response.text[:200]}",
                    code="REQUEST_REJECTED",
                    status_code=response.status_code,
                )

            return _decode_json(response, url)

        raise last_error or ExternalAPIError(f"{method} {url} failed")
