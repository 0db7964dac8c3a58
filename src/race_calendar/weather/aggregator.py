"""Multi-year weather history aggregation.

Turns one daily series per sample year into per-calendar-day statistics
for a target year. For each day of the target year, every sample year
contributes the same month/day (Feb 29 only draws on leap sample years).

A sample year is *valid* for a day when both its max temperature and its
precipitation are present. Over the valid years:

- avg_max_temp / avg_min_temp: arithmetic means; a missing min temperature
  falls back, for that year, to max - 10 °C
- avg_humidity / max_wind_speed: means over the years that report them,
  50 % and 0 km/h when none does
- avg_precipitation: mean daily sum
- rain_probability / heavy_rain_probability: share of valid years with
  more than 1 mm / 5 mm, in percent
- mud_index: mean of (precipitation of the 3 preceding days) / 3; a
  missing preceding value counts as 0 mm

Days without a single valid year get no entry at all.

Route mode reduces per-point statistics with a plain arithmetic mean per
field. There is no weighting by track length.
"""

from __future__ import annotations

import calendar
import datetime
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from race_calendar.config import Settings, get_settings
from race_calendar.models.location import Coordinates
from race_calendar.models.weather import DailySeries, WeatherHistory, WeatherStats
from race_calendar.providers.base import HistoryProvider, ProviderError, RateLimitError
from race_calendar.providers.ratelimit import RateLimiter
from race_calendar.weather.cache import MonthSpan, WeatherCache, weather_cache_key

logger = logging.getLogger(__name__)

RAIN_THRESHOLD_MM = 1.0
HEAVY_RAIN_THRESHOLD_MM = 5.0
MIN_TEMP_FALLBACK_DELTA = 10.0
DEFAULT_HUMIDITY = 50.0
DEFAULT_WIND_SPEED = 0.0
MUD_WINDOW_DAYS = 3

FULL_YEAR: MonthSpan = (1, 12)


def _validate_months(months: MonthSpan) -> None:
    first, last = months
    if not (1 <= first <= last <= 12):
        raise ValueError(f"Invalid month span: {months}")


def sample_years(
    target_year: int,
    history_years: int,
    today: datetime.date,
) -> list[int]:
    """Trailing sample years for a target year, oldest first.

    Years after the current year have no archive data and are dropped.
    """
    return [
        year
        for year in range(target_year - history_years, target_year)
        if year <= today.year
    ]


def request_window(
    year: int,
    months: MonthSpan,
    lead_days: int,
    today: datetime.date,
    archive_lag_days: int = 5,
) -> tuple[datetime.date, datetime.date] | None:
    """Date range to request for one sample year, or None if nothing is available.

    The window starts `lead_days` before the first day of the span (the mud
    index needs the preceding days). For the current year the end is capped
    at `today - archive_lag_days`, since the archive lags behind real time.
    """
    _validate_months(months)
    first, last = months
    start = datetime.date(year, first, 1) - datetime.timedelta(days=lead_days)
    end = datetime.date(year, last, calendar.monthrange(year, last)[1])

    if year > today.year:
        return None
    if year == today.year:
        safe_end = today - datetime.timedelta(days=archive_lag_days)
        if start > safe_end:
            return None
        end = min(end, safe_end)
    return start, end


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def _target_days(target_year: int, months: MonthSpan) -> Iterable[datetime.date]:
    first, last = months
    day = datetime.date(target_year, first, 1)
    end = datetime.date(target_year, last, calendar.monthrange(target_year, last)[1])
    while day <= end:
        yield day
        day += datetime.timedelta(days=1)


def _same_day_in(year: int, day: datetime.date) -> datetime.date | None:
    """The calendar day `day` falls on in another year (None for Feb 29 in non-leap years)."""
    if day.month == 2 and day.day == 29 and not calendar.isleap(year):
        return None
    return day.replace(year=year)


@dataclass
class _YearSample:
    year: int
    temp_max: float
    temp_min: float
    precipitation: float
    humidity: float | None
    wind: float | None
    mud: float


def _sample_day(
    series: DailySeries,
    rows: dict[datetime.date, int],
    day: datetime.date,
    year: int,
) -> _YearSample | None:
    row = rows.get(day)
    if row is None:
        return None
    temp_max = series.temperature_max[row]
    precipitation = series.precipitation[row]
    if temp_max is None or precipitation is None:
        return None

    temp_min = series.temperature_min[row]
    if temp_min is None:
        temp_min = temp_max - MIN_TEMP_FALLBACK_DELTA

    trailing = 0.0
    for offset in range(1, MUD_WINDOW_DAYS + 1):
        previous = rows.get(day - datetime.timedelta(days=offset))
        if previous is not None and series.precipitation[previous] is not None:
            trailing += series.precipitation[previous]

    return _YearSample(
        year=year,
        temp_max=temp_max,
        temp_min=temp_min,
        precipitation=precipitation,
        humidity=series.humidity_mean[row],
        wind=series.wind_speed_max[row],
        mud=trailing / MUD_WINDOW_DAYS,
    )


def _summarise(samples: list[_YearSample]) -> WeatherStats:
    count = len(samples)
    humidities = [s.humidity for s in samples if s.humidity is not None]
    winds = [s.wind for s in samples if s.wind is not None]
    avg_humidity = _mean(humidities) if humidities else DEFAULT_HUMIDITY
    avg_wind = _mean(winds) if winds else DEFAULT_WIND_SPEED
    rains = [s.precipitation for s in samples]

    history = WeatherHistory(
        years=[s.year for s in samples],
        temps=[s.temp_max for s in samples],
        temps_min=[s.temp_min for s in samples],
        rain=rains,
        # Years without a reading show the day's mean
        humidities=[s.humidity if s.humidity is not None else avg_humidity for s in samples],
        winds=[s.wind if s.wind is not None else avg_wind for s in samples],
    )

    return WeatherStats(
        avg_max_temp=_mean([s.temp_max for s in samples]),
        avg_min_temp=_mean([s.temp_min for s in samples]),
        avg_humidity=min(100.0, max(0.0, avg_humidity)),
        max_wind_speed=max(0.0, avg_wind),
        avg_precipitation=max(0.0, _mean(rains)),
        rain_probability=sum(1 for r in rains if r > RAIN_THRESHOLD_MM) / count * 100,
        heavy_rain_probability=(
            sum(1 for r in rains if r > HEAVY_RAIN_THRESHOLD_MM) / count * 100
        ),
        mud_index=max(0.0, _mean([s.mud for s in samples])),
        sample_years=count,
        history=history,
    )


def aggregate_history(
    series_by_year: Mapping[int, DailySeries],
    target_year: int,
    months: MonthSpan = FULL_YEAR,
) -> dict[datetime.date, WeatherStats]:
    """Aggregate sample-year series into per-day statistics for the target year.

    Args:
        series_by_year: One daily series per sample year
        target_year: Year whose days are keyed in the result
        months: Inclusive (first, last) month span to cover

    Returns:
        Map of target-year date to WeatherStats; days with no valid
        sample year are absent
    """
    _validate_months(months)
    indexed = [
        (year, series, series.index())
        for year, series in sorted(series_by_year.items())
    ]

    result: dict[datetime.date, WeatherStats] = {}
    for day in _target_days(target_year, months):
        samples: list[_YearSample] = []
        for year, series, rows in indexed:
            sample_day = _same_day_in(year, day)
            if sample_day is None:
                continue
            sample = _sample_day(series, rows, sample_day, year)
            if sample is not None:
                samples.append(sample)
        if samples:
            result[day] = _summarise(samples)
    return result


def _merge_history(histories: list[WeatherHistory]) -> WeatherHistory:
    """Average per-point history series year by year."""
    per_year: dict[int, list[tuple[float, float, float, float, float]]] = {}
    for history in histories:
        for i, year in enumerate(history.years):
            per_year.setdefault(year, []).append(
                (
                    history.temps[i],
                    history.temps_min[i],
                    history.rain[i],
                    history.humidities[i],
                    history.winds[i],
                )
            )

    merged = WeatherHistory()
    for year in sorted(per_year):
        rows = per_year[year]
        merged.years.append(year)
        merged.temps.append(_mean([r[0] for r in rows]))
        merged.temps_min.append(_mean([r[1] for r in rows]))
        merged.rain.append(_mean([r[2] for r in rows]))
        merged.humidities.append(_mean([r[3] for r in rows]))
        merged.winds.append(_mean([r[4] for r in rows]))
    return merged


def merge_route_stats(
    stats_by_point: Sequence[Mapping[datetime.date, WeatherStats]],
) -> dict[datetime.date, WeatherStats]:
    """Reduce per-point statistics to one route aggregate.

    Every statistic is the arithmetic mean over the points that have an
    entry for that day. A day missing at every point stays absent.
    """
    if len(stats_by_point) == 1:
        return dict(stats_by_point[0])

    days = sorted({day for stats in stats_by_point for day in stats})
    merged: dict[datetime.date, WeatherStats] = {}
    for day in days:
        entries = [stats[day] for stats in stats_by_point if day in stats]
        merged[day] = WeatherStats(
            avg_max_temp=_mean([e.avg_max_temp for e in entries]),
            avg_min_temp=_mean([e.avg_min_temp for e in entries]),
            avg_humidity=_mean([e.avg_humidity for e in entries]),
            max_wind_speed=_mean([e.max_wind_speed for e in entries]),
            avg_precipitation=_mean([e.avg_precipitation for e in entries]),
            rain_probability=_mean([e.rain_probability for e in entries]),
            heavy_rain_probability=_mean([e.heavy_rain_probability for e in entries]),
            mud_index=_mean([e.mud_index for e in entries]),
            sample_years=max(e.sample_years for e in entries),
            history=_merge_history([e.history for e in entries]),
        )
    return merged


@dataclass
class AggregationResult:
    """Outcome of one aggregation run."""

    stats: dict[datetime.date, WeatherStats] = field(default_factory=dict)
    rate_limited_years: list[int] = field(default_factory=list)
    failed_years: list[int] = field(default_factory=list)
    from_cache: bool = False
    aborted: bool = False

    @property
    def rate_limited(self) -> bool:
        """Whether any request was throttled; the caller should tell the user."""
        return bool(self.rate_limited_years)

    @property
    def complete(self) -> bool:
        """Whether every requested sample year was retrieved."""
        return not (self.rate_limited_years or self.failed_years or self.aborted)


class WeatherHistoryAggregator:
    """Retrieves sample years and aggregates them, with caching and pacing.

    Requests are issued strictly one after another, each one waiting on the
    rate limiter. A throttled or failed year is skipped rather than failing
    the whole run.

    Example:
        ```python
        async with OpenMeteoArchiveProvider() as provider:
            aggregator = WeatherHistoryAggregator(provider, cache=WeatherCache())
            result = await aggregator.get_year_stats([coords], 2026)
        ```
    """

    def __init__(
        self,
        provider: HistoryProvider,
        cache: WeatherCache | None = None,
        limiter: RateLimiter | None = None,
        settings: Settings | None = None,
        today: Callable[[], datetime.date] = datetime.date.today,
    ):
        self.provider = provider
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else WeatherCache()
        self.limiter = limiter or RateLimiter(
            interval=self.settings.request_interval_seconds
        )
        self._today = today

    async def get_year_stats(
        self,
        points: Sequence[Coordinates],
        year: int,
        months: MonthSpan = FULL_YEAR,
        is_current: Callable[[], bool] | None = None,
    ) -> AggregationResult:
        """Get per-day statistics for a location or route and a target year.

        Args:
            points: One point, or the ordered sample points of a route
            year: Target year
            months: Inclusive (first, last) month span to cover
            is_current: Checked before each request; when it returns False
                retrieval stops and the partial result is returned uncached

        Returns:
            AggregationResult with the statistics and any skipped years
        """
        if not points:
            raise ValueError("At least one point is required")
        _validate_months(months)

        key = weather_cache_key(points, year, months)
        cached = self.cache.get(key)
        if cached is not None:
            return AggregationResult(stats=cached, from_cache=True)

        today = self._today()
        years = sample_years(year, self.settings.history_years, today)
        result = AggregationResult()
        per_point: list[dict[datetime.date, WeatherStats]] = []

        for index, point in enumerate(points, start=1):
            logger.info(
                f"Fetching {len(years)} sample years for point {index}/{len(points)} "
                f"({point}), target {year}"
            )
            series_by_year: dict[int, DailySeries] = {}
            for sample_year in years:
                if is_current is not None and not is_current():
                    logger.info(f"Aggregation for {key} superseded, stopping")
                    result.aborted = True
                    return result

                window = request_window(
                    sample_year,
                    months,
                    self.settings.lead_days,
                    today,
                    self.settings.archive_lag_days,
                )
                if window is None:
                    logger.debug(f"No archive window for {sample_year}, skipping")
                    continue

                series = await self._fetch_year(point, sample_year, window, result)
                if series is not None:
                    series_by_year[sample_year] = series

            per_point.append(aggregate_history(series_by_year, year, months))

        result.stats = merge_route_stats(per_point)
        if result.complete:
            self.cache.put(key, result.stats)
        else:
            logger.info(f"Not caching incomplete aggregation for {key}")
        return result

    async def _fetch_year(
        self,
        point: Coordinates,
        sample_year: int,
        window: tuple[datetime.date, datetime.date],
        result: AggregationResult,
    ) -> DailySeries | None:
        await self.limiter.acquire()
        try:
            return await self.provider.get_daily_history(point, *window)
        except RateLimitError as e:
            logger.warning(f"Rate limited fetching {sample_year} for {point}, skipping")
            if sample_year not in result.rate_limited_years:
                result.rate_limited_years.append(sample_year)
            if e.retry_after:
                self.limiter.penalize(e.retry_after)
        except ProviderError as e:
            logger.warning(f"Failed to fetch {sample_year} for {point}: {e}")
            if sample_year not in result.failed_years:
                result.failed_years.append(sample_year)
        return None
