"""Weather history and holiday data providers."""

from race_calendar.providers.base import (
    HistoryProvider,
    HolidayProvider,
    ProviderError,
    RateLimitError,
)
from race_calendar.providers.openholidays import OpenHolidaysProvider
from race_calendar.providers.openmeteo import OpenMeteoArchiveProvider
from race_calendar.providers.ratelimit import RateLimiter

__all__ = [
    "HistoryProvider",
    "HolidayProvider",
    "ProviderError",
    "RateLimitError",
    "OpenHolidaysProvider",
    "OpenMeteoArchiveProvider",
    "RateLimiter",
]
