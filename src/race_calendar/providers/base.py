"""Base provider abstractions for historical weather and holiday data.

Providers are the transport layer around the scoring core: they fetch raw
data from third-party services and translate it into the canonical models
in `race_calendar.models`. The scoring core never talks to a provider
directly; the weather aggregator and the CLI do.

## Canonical Data Format

### Weather (`DailySeries`)
- Temperature: Celsius (°C), daily max and min at 2 m
- Wind speed: kilometres per hour (km/h), daily max at 10 m
- Precipitation: millimetres (mm), daily sum
- Humidity: percentage (0-100), daily mean
- Missing values are kept as None; the aggregator decides what to skip.

### Holidays (`Holiday`)
- One entry per calendar day; multi-day ranges are expanded.
- Public holidays are listed before school holidays so that a day which is
  both resolves to the public holiday.

## Supported Providers

### Open-Meteo Archive (archive-api.open-meteo.com)
- Endpoint: https://archive-api.open-meteo.com/v1/archive
- Auth: None
- Rate limit: 10,000 requests/day (non-commercial), bursts return 429
- Key response path: daily.time[], daily.<variable>[]

### OpenHolidays (openholidaysapi.org)
- Endpoints: /PublicHolidays, /SchoolHolidays
- Auth: None
- Key response fields: startDate, endDate, name[].language, name[].text
"""

from __future__ import annotations

import datetime
from abc import ABC, abstractmethod
from typing import Any, Self

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from race_calendar.config import get_settings
from race_calendar.models.calendar import Holiday
from race_calendar.models.location import Coordinates
from race_calendar.models.weather import DailySeries


class ProviderError(Exception):
    """A data source could not deliver usable data.

    Attributes:
        provider: Short name of the failing provider
        status_code: HTTP status, when the service answered at all
        response_body: Raw body of an error answer, for debugging
    """

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.response_body = response_body


class RateLimitError(ProviderError):
    """The service answered 429 Too Many Requests."""

    def __init__(self, provider: str, retry_after: float | None = None):
        super().__init__(
            f"{provider} is throttling requests", provider=provider, status_code=429
        )
        self.retry_after = retry_after


def _parse_retry_after(value: str | None) -> float | None:
    # Only the delta-seconds form; an HTTP date is ignored
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


class HttpProvider:
    """JSON-over-HTTP plumbing shared by all providers.

    Subclasses set `name` (used in errors and logs) and a default
    `base_url`. A client passed in, such as one built on
    `httpx.MockTransport` in tests, stays owned by the caller and is never
    closed here.
    """

    name: str
    base_url: str

    def __init__(
        self,
        base_url: str | None = None,
        user_agent: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        if base_url:
            self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {
            "User-Agent": user_agent or get_settings().http_user_agent,
            "Accept": "application/json",
        }
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> Self:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    @property
    def client(self) -> httpx.AsyncClient:
        """The HTTP client, created on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the client unless it was injected."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _check_status(self, response: httpx.Response) -> None:
        if response.status_code == 429:
            raise RateLimitError(
                self.name,
                retry_after=_parse_retry_after(response.headers.get("Retry-After")),
            )
        if response.is_error:
            raise ProviderError(
                f"{self.name} answered HTTP {response.status_code}",
                provider=self.name,
                status_code=response.status_code,
                response_body=response.text,
            )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
        reraise=True,
    )
    async def _get(self, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        """GET a URL, retrying timeouts and dropped connections.

        Raises:
            RateLimitError: On 429 (never retried here; pacing is the caller's job)
            ProviderError: On any other error status
        """
        response = await self.client.get(url, params=params, headers=self.headers)
        self._check_status(response)
        return response

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET a URL and decode the JSON body.

        Transport failures left after the retries and undecodable bodies
        both surface as ProviderError.
        """
        try:
            response = await self._get(url, params=params)
        except httpx.HTTPError as e:
            raise ProviderError(f"Request to {url} failed: {e}", provider=self.name) from e

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                f"Failed to parse {self.name} response: {e}",
                provider=self.name,
                status_code=response.status_code,
                response_body=response.text,
            ) from e


class HistoryProvider(HttpProvider, ABC):
    """Source of daily historical weather for a point."""

    @abstractmethod
    async def get_daily_history(
        self,
        coordinates: Coordinates,
        start: datetime.date,
        end: datetime.date,
    ) -> DailySeries:
        """Get daily weather history for a location.

        Args:
            coordinates: Location coordinates
            start: First day (inclusive)
            end: Last day (inclusive)

        Returns:
            Daily values in canonical units

        Raises:
            RateLimitError: If the provider throttled the request
            ProviderError: If history cannot be retrieved
        """

    @abstractmethod
    def _translate_response(
        self,
        response_data: dict[str, Any],
        coordinates: Coordinates,
    ) -> DailySeries:
        """Translate provider-specific response to canonical format."""


class HolidayProvider(HttpProvider, ABC):
    """Source of public and school holidays for a region."""

    @abstractmethod
    async def get_holidays(self, year: int, state_code: str) -> list[Holiday]:
        """Get all holiday days of a year for a region, public first."""
