"""In-memory cache for aggregated weather statistics.

The cache is an explicit object owned by the caller (usually an
`AnalysisSession`) and handed to the aggregator. Nothing here is global.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Sequence

from race_calendar.models.location import Coordinates
from race_calendar.models.weather import WeatherStats

logger = logging.getLogger(__name__)

KEY_VERSION = "v1"

MonthSpan = tuple[int, int]


def weather_cache_key(
    points: Sequence[Coordinates],
    year: int,
    months: MonthSpan = (1, 12),
) -> str:
    """Derive the cache key for a location (or route) and target year.

    Points keep their order: a route sampled in a different order is a
    different route for caching purposes.
    """
    if not points:
        raise ValueError("At least one point is required")
    signature = "|".join(point.signature() for point in points)
    return f"weather_{KEY_VERSION}_{signature}_{year}_{months[0]:02d}-{months[1]:02d}"


class WeatherCache:
    """Maps cache keys to per-day weather statistics."""

    def __init__(self) -> None:
        self._entries: dict[str, dict[datetime.date, WeatherStats]] = {}

    def get(self, key: str) -> dict[datetime.date, WeatherStats] | None:
        stats = self._entries.get(key)
        if stats is not None:
            logger.debug(f"Weather cache hit: {key}")
        return stats

    def put(self, key: str, stats: dict[datetime.date, WeatherStats]) -> None:
        self._entries[key] = stats

    def invalidate(self, key: str) -> bool:
        """Drop one entry. Returns True if it existed."""
        removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug(f"Weather cache invalidated: {key}")
        return removed

    def invalidate_points(self, points: Sequence[Coordinates]) -> int:
        """Drop every entry for a location or route, whatever the year."""
        prefix = weather_cache_key(points, 0).rsplit("_", 2)[0] + "_"
        stale = [key for key in self._entries if key.startswith(prefix)]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
