"""Analysis session: one aggregation + scoring cycle at a time.

Every call to `analyze()` starts a new cycle and makes every earlier cycle
stale. A stale cycle keeps running until its next checkpoint (before each
archive request, after each await, before committing its result) and then
drops its work instead of publishing it. Results are never merged across
cycles.

The session owns the weather cache. When the location (or route) changes
the entries of the previous location are invalidated.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from race_calendar.config import Settings, get_settings
from race_calendar.models.calendar import ConflictingEvent, Holiday, build_holiday_map
from race_calendar.models.constraints import EventConstraints
from race_calendar.models.location import Coordinates
from race_calendar.models.score import DayScore
from race_calendar.providers.base import HistoryProvider, HolidayProvider
from race_calendar.providers.ratelimit import RateLimiter
from race_calendar.scoring.assembler import DayScoreAssembler
from race_calendar.weather.aggregator import (
    FULL_YEAR,
    AggregationResult,
    WeatherHistoryAggregator,
)
from race_calendar.weather.cache import WeatherCache

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Published outcome of one analysis cycle."""

    cycle: int
    constraints: EventConstraints
    scores: list[DayScore]
    weather: AggregationResult
    holidays: dict[datetime.date, Holiday] = field(default_factory=dict)

    @property
    def rate_limited(self) -> bool:
        """Whether weather history is incomplete because the archive throttled us."""
        return self.weather.rate_limited


class AnalysisSession:
    """Runs analyses for one caller, discarding superseded cycles.

    Example:
        ```python
        async with OpenMeteoArchiveProvider() as weather, OpenHolidaysProvider() as holidays:
            session = AnalysisSession(weather, holidays)
            result = await session.analyze(constraints)
            if result is not None:
                show(result.scores)
        ```
    """

    def __init__(
        self,
        weather_provider: HistoryProvider,
        holiday_provider: HolidayProvider | None = None,
        cache: WeatherCache | None = None,
        limiter: RateLimiter | None = None,
        settings: Settings | None = None,
        today: Callable[[], datetime.date] = datetime.date.today,
    ):
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else WeatherCache()
        self.holiday_provider = holiday_provider
        self.aggregator = WeatherHistoryAggregator(
            weather_provider,
            cache=self.cache,
            limiter=limiter,
            settings=self.settings,
            today=today,
        )
        self._today = today
        self._cycle = 0
        self._points: list[Coordinates] | None = None
        self.current: AnalysisResult | None = None

    @property
    def cycle(self) -> int:
        """Number of the most recently started cycle."""
        return self._cycle

    def is_live(self, cycle: int) -> bool:
        """Whether a cycle is still the latest one."""
        return cycle == self._cycle

    def supersede(self) -> None:
        """Make any running cycle stale without starting a new one."""
        self._cycle += 1

    def _switch_points(self, points: list[Coordinates]) -> None:
        if self._points is not None and self._points != points:
            dropped = self.cache.invalidate_points(self._points)
            logger.info(f"Location changed, dropped {dropped} cached weather entries")
        self._points = points

    async def analyze(
        self,
        constraints: EventConstraints,
        route: Sequence[Coordinates] | None = None,
        conflicting_events: Sequence[ConflictingEvent] | None = None,
        full_year: bool = False,
    ) -> AnalysisResult | None:
        """Fetch inputs and score the target month (or year).

        Args:
            constraints: Validated event constraints
            route: Sample points along a route; defaults to the event location
            conflicting_events: Other events to check when enabled
            full_year: Score all twelve months instead of the target month

        Returns:
            The published result, or None if a newer cycle superseded this one
        """
        self._cycle += 1
        cycle = self._cycle
        points = list(route) if route else [constraints.location.coordinates]
        self._switch_points(points)
        year = constraints.year

        holidays: dict[datetime.date, Holiday] = {}
        if self.holiday_provider is not None and constraints.consider_holidays:
            holiday_list = await self.holiday_provider.get_holidays(
                year, constraints.state_code
            )
            if not self.is_live(cycle):
                logger.info(f"Cycle {cycle} superseded after holiday lookup")
                return None
            holidays = build_holiday_map(holiday_list)

        # Weather is aggregated for the whole year and reused for every month
        weather = await self.aggregator.get_year_stats(
            points, year, FULL_YEAR, is_current=lambda: self.is_live(cycle)
        )
        if not self.is_live(cycle) or weather.aborted:
            logger.info(f"Cycle {cycle} superseded after weather retrieval")
            return None
        if weather.rate_limited:
            logger.warning(
                f"Weather archive rate limited for years {weather.rate_limited_years}; "
                "scores use the remaining years"
            )

        assembler = DayScoreAssembler(
            constraints,
            holidays=holidays,
            weather=weather.stats,
            conflicting_events=conflicting_events,
            today=self._today(),
            settings=self.settings,
        )
        scores = assembler.score_year() if full_year else assembler.score_month()

        if not self.is_live(cycle):
            logger.info(f"Cycle {cycle} superseded before commit")
            return None

        self.current = AnalysisResult(
            cycle=cycle,
            constraints=constraints,
            scores=scores,
            weather=weather,
            holidays=holidays,
        )
        return self.current
