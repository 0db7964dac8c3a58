"""Historical weather aggregation and caching."""

from race_calendar.weather.aggregator import (
    AggregationResult,
    WeatherHistoryAggregator,
    aggregate_history,
    merge_route_stats,
    request_window,
    sample_years,
)
from race_calendar.weather.cache import WeatherCache, weather_cache_key

__all__ = [
    "AggregationResult",
    "WeatherHistoryAggregator",
    "aggregate_history",
    "merge_route_stats",
    "request_window",
    "sample_years",
    "WeatherCache",
    "weather_cache_key",
]
