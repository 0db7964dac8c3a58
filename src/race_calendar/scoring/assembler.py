"""Day score assembly.

For every day of a month (or all twelve months of a year) the assembler
runs, in this fixed order:

1. Calendar rules (training, block, holiday/weekend/weekday, conflicts)
2. Race daylight (informational "Darkness Hours" entry)
3. Weather penalties (only when the day has aggregated weather)

Each rule contributes one breakdown entry. The score is the base of 100
plus every delta, clamped to [0, 100]:

    score == clamp(100 + sum(entry.value for entry in breakdown), 0, 100)

Scoring performs no I/O: holidays, weather statistics and conflicting
events are supplied by the caller and only read.
"""

from __future__ import annotations

import calendar
import datetime
import logging
from collections.abc import Iterable, Mapping, Sequence

from race_calendar.astronomy.calculator import DaylightCalculator, format_duration
from race_calendar.config import Settings, get_settings
from race_calendar.models.calendar import ConflictingEvent, Holiday
from race_calendar.models.constraints import EventConstraints
from race_calendar.models.score import (
    BASE_SCORE,
    BreakdownEntry,
    DayDetails,
    DayScore,
    DayStatus,
)
from race_calendar.models.weather import WeatherStats
from race_calendar.rules.base import RuleOutcome
from race_calendar.rules.calendar import CalendarEvaluator, is_weekend, weeks_between
from race_calendar.rules.weather import WeatherPenaltyEngine

logger = logging.getLogger(__name__)

RED_BELOW = 40
YELLOW_BELOW = 80
HEADLAMP_THRESHOLD_MINUTES = 30


def clamp_score(value: float) -> int:
    """Clamp a raw score into [0, 100]."""
    return int(max(0, min(100, value)))


def classify_status(score: int) -> DayStatus:
    """Traffic light for a score: red below 40, yellow below 80, else green."""
    if score < RED_BELOW:
        return DayStatus.RED
    if score < YELLOW_BELOW:
        return DayStatus.YELLOW
    return DayStatus.GREEN


def darkness_outcome(darkness_minutes: float) -> RuleOutcome:
    """Darkness is reported, never penalised."""
    reasons: list[str] = []
    if darkness_minutes > HEADLAMP_THRESHOLD_MINUTES:
        reasons.append(
            f"{format_duration(darkness_minutes / 60)} Darkness (Headlamp required)"
        )
    return RuleOutcome(label="Darkness Hours", reasons=reasons)


def month_days(month: datetime.date) -> list[datetime.date]:
    """Every date of the month containing `month`."""
    first = month.replace(day=1)
    count = calendar.monthrange(first.year, first.month)[1]
    return [first + datetime.timedelta(days=i) for i in range(count)]


def rank_days(
    scores: Iterable[DayScore],
    limit: int | None = 10,
    include_red: bool = False,
) -> list[DayScore]:
    """Best days first; equal scores keep calendar order.

    Args:
        scores: Day scores to rank
        limit: Maximum number of days to return (None for all)
        include_red: Whether red days may appear in the ranking

    Returns:
        Day scores sorted by descending score, then ascending date
    """
    candidates = [s for s in scores if include_red or s.status != DayStatus.RED]
    ranked = sorted(candidates, key=lambda s: (-s.score, s.date))
    return ranked if limit is None else ranked[:limit]


class DayScoreAssembler:
    """Scores calendar days for one set of event constraints.

    Example:
        ```python
        assembler = DayScoreAssembler(
            constraints,
            holidays=build_holiday_map(holiday_list),
            weather=aggregation.stats,
        )
        may = assembler.score_month()
        year = assembler.score_year()
        best = rank_days(year, limit=5)
        ```
    """

    def __init__(
        self,
        constraints: EventConstraints,
        holidays: Mapping[datetime.date, Holiday] | None = None,
        weather: Mapping[datetime.date, WeatherStats] | None = None,
        conflicting_events: Sequence[ConflictingEvent] | None = None,
        today: datetime.date | None = None,
        daylight: DaylightCalculator | None = None,
        settings: Settings | None = None,
    ):
        """Initialize the assembler.

        Args:
            constraints: Event constraints (validated, immutable)
            holidays: Holiday per date for the target year and region
            weather: Aggregated weather per date for the target year
            conflicting_events: Other events that may clash
            today: Reference date for training lead time (default: today)
            daylight: Daylight calculator to reuse (default: built from the location)
            settings: Application settings (default timezone)
        """
        self.constraints = constraints
        self.weather = weather or {}
        self.today = today or datetime.date.today()

        if daylight is None:
            settings = settings or get_settings()
            timezone = constraints.location.timezone or settings.default_timezone
            daylight = DaylightCalculator(constraints.location.coordinates, timezone)
        self.daylight = daylight

        self.calendar = CalendarEvaluator(
            constraints,
            holidays=holidays,
            conflicting_events=conflicting_events,
            today=self.today,
        )
        self.weather_engine = WeatherPenaltyEngine(constraints.persona)

    def score_day(self, day: datetime.date) -> DayScore:
        """Score a single day."""
        c = self.constraints
        outcomes = self.calendar.evaluate(day)

        race = self.daylight.race_daylight(day, c.race_start, c.race_duration_hours)
        outcomes.append(darkness_outcome(race.darkness_minutes))

        stats = self.weather.get(day)
        if stats is not None:
            outcomes.extend(self.weather_engine.evaluate(stats, day))

        breakdown = [BreakdownEntry(label=o.label, value=o.delta) for o in outcomes]
        reasons = [reason for o in outcomes for reason in o.reasons]
        score = clamp_score(BASE_SCORE + sum(o.delta for o in outcomes))

        sun = self.daylight.get_sun_times(day)
        holiday = self.calendar.holiday_for(day)
        conflicts = self.calendar.conflicts_for(day)

        return DayScore(
            date=day,
            score=score,
            reasons=reasons,
            breakdown=breakdown,
            status=classify_status(score),
            details=DayDetails(
                daylight_hours=sun.daylight_hours,
                dawn=sun.dawn,
                sunrise=sun.sunrise,
                sunset=sun.sunset,
                dusk=sun.dusk,
                darkness_minutes=race.darkness_minutes,
                training_weeks_available=weeks_between(self.today, day),
                is_weekend=is_weekend(day),
                weather=stats,
                holiday=holiday.name if holiday else None,
                conflicts=[event.name for event, _ in conflicts],
                race_start_time=c.race_start_time,
                race_duration_hours=c.race_duration_hours,
                persona=c.persona,
            ),
        )

    def score_days(self, days: Sequence[datetime.date]) -> list[DayScore]:
        """Score the given days, in the order given."""
        self.daylight.prefetch(days)
        return [self.score_day(day) for day in days]

    def score_month(self, month: datetime.date | None = None) -> list[DayScore]:
        """Score every day of a month (default: the target month), ascending."""
        days = month_days(month or self.constraints.target_month)
        scores = self.score_days(days)
        logger.debug(
            f"Scored {len(scores)} days of {days[0]:%Y-%m}: "
            f"{sum(1 for s in scores if s.status == DayStatus.GREEN)} green"
        )
        return scores

    def score_year(self, year: int | None = None) -> list[DayScore]:
        """Score all twelve months of a year, month by month."""
        year = year or self.constraints.year
        months = [datetime.date(year, month, 1) for month in range(1, 13)]
        self.daylight.prefetch(day for month in months for day in month_days(month))
        scores: list[DayScore] = []
        for month in months:
            scores.extend(self.score_month(month))
        return scores
