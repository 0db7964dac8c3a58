"""Calendar constraint rules.

Evaluated once per day, in a fixed order:

1. Training lead time (only if enabled)
2. Manual block
3. Holiday, else weekend, else weekday (mutually exclusive)
4. Conflicting events (only if enabled)

A hard fail is recorded as a -100 delta; evaluation carries on so the
breakdown and reasons stay complete.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Mapping, Sequence

from race_calendar.models.calendar import ConflictingEvent, Holiday
from race_calendar.models.constraints import EventConstraints
from race_calendar.models.location import Coordinates
from race_calendar.rules.base import HARD_FAIL, RuleOutcome, round_half_up

logger = logging.getLogger(__name__)

HOLIDAY_PENALTY = -30
CONFLICT_PENALTY = HARD_FAIL
SOFT_TRAINING_RATIO = 0.5

WEEKEND_DAYS = (5, 6)  # Saturday, Sunday


def weeks_between(today: datetime.date, day: datetime.date) -> int:
    """Whole weeks from today to day, truncated toward zero (negative in the past)."""
    days = (day - today).days
    weeks = abs(days) // 7
    return weeks if days >= 0 else -weeks


def is_weekend(day: datetime.date) -> bool:
    return day.weekday() in WEEKEND_DAYS


def evaluate_training(weeks_available: int, min_training_weeks: int) -> RuleOutcome:
    """Penalise dates that leave too little preparation time.

    Less than half the required weeks is a hard fail; between half and the
    full requirement the penalty grows linearly with the shortfall.
    """
    if min_training_weeks <= 0 or weeks_available >= min_training_weeks:
        return RuleOutcome(label="Training Time")

    ratio = max(0.0, weeks_available / min_training_weeks)
    if ratio < SOFT_TRAINING_RATIO:
        return RuleOutcome(
            label="Insufficient Training Time (< 50%)",
            delta=HARD_FAIL,
            reasons=[
                f"Not enough training time ({weeks_available} weeks vs "
                f"{min_training_weeks} required)"
            ],
        )

    return RuleOutcome(
        label="Short Training Prep",
        delta=round_half_up(-(1 - ratio) * 100),
        reasons=[f"Short Training Prep ({round_half_up(ratio * 100)}% of recommended)"],
    )


def evaluate_blocked(
    day: datetime.date, blocked_dates: frozenset[datetime.date]
) -> RuleOutcome:
    if day in blocked_dates:
        return RuleOutcome(label="Blocked Date", delta=HARD_FAIL, reasons=["Blocked Date"])
    return RuleOutcome(label="Manual Block")


def evaluate_day_type(
    day: datetime.date,
    holiday: Holiday | None,
    constraints: EventConstraints,
) -> RuleOutcome:
    """Holiday beats weekend beats weekday; exactly one of them applies.

    `holiday` must already be None when holidays are not considered.
    """
    if holiday is not None:
        label = f"Holiday ({holiday.name})"
        if constraints.negative_holiday_impact:
            return RuleOutcome(
                label=label,
                delta=HOLIDAY_PENALTY,
                reasons=[f"Holiday (Negative Impact): {holiday.name}"],
            )
        return RuleOutcome(label=label, reasons=[f"Holiday: {holiday.name}"])

    if is_weekend(day):
        if not constraints.allow_weekends:
            return RuleOutcome(
                label="Weekend Not Allowed",
                delta=HARD_FAIL,
                reasons=["Weekend (Not allowed)"],
            )
        return RuleOutcome(label="Weekend")

    if not constraints.allow_weekdays:
        return RuleOutcome(
            label="Weekday Not Allowed",
            delta=HARD_FAIL,
            reasons=["Weekday (Not allowed)"],
        )
    return RuleOutcome(label="Weekday")


def find_conflicts(
    day: datetime.date,
    point: Coordinates,
    events: Sequence[ConflictingEvent],
    radius_km: float,
) -> list[tuple[ConflictingEvent, float]]:
    """Events on this day within the radius, nearest first.

    Events without coordinates are ignored.
    """
    matches: list[tuple[ConflictingEvent, float]] = []
    for event in events:
        if not event.covers(day):
            continue
        distance = event.distance_km(point)
        if distance is None or distance > radius_km:
            continue
        matches.append((event, distance))
    matches.sort(key=lambda match: (match[1], match[0].name))
    return matches


def evaluate_conflicts(matches: list[tuple[ConflictingEvent, float]]) -> RuleOutcome:
    if not matches:
        return RuleOutcome(label="Event Conflict")
    return RuleOutcome(
        label="Event Conflict",
        delta=CONFLICT_PENALTY,
        reasons=[
            f"Event Conflict: {event.name} ({round_half_up(distance)}km)"
            for event, distance in matches
        ],
    )


class CalendarEvaluator:
    """Applies the calendar rules for one set of constraints.

    Example:
        ```python
        evaluator = CalendarEvaluator(constraints, holiday_map, events, today=date.today())
        outcomes = evaluator.evaluate(date(2026, 5, 16))
        ```
    """

    def __init__(
        self,
        constraints: EventConstraints,
        holidays: Mapping[datetime.date, Holiday] | None = None,
        conflicting_events: Sequence[ConflictingEvent] | None = None,
        today: datetime.date | None = None,
    ):
        self.constraints = constraints
        self.holidays = holidays or {}
        self.conflicting_events = list(conflicting_events or [])
        self.today = today or datetime.date.today()

    def holiday_for(self, day: datetime.date) -> Holiday | None:
        """The holiday that counts for scoring, or None if holidays are ignored."""
        if not self.constraints.consider_holidays:
            return None
        return self.holidays.get(day)

    def conflicts_for(self, day: datetime.date) -> list[tuple[ConflictingEvent, float]]:
        if not self.constraints.check_conflicting_events:
            return []
        return find_conflicts(
            day,
            self.constraints.location.coordinates,
            self.conflicting_events,
            self.constraints.conflict_radius_km,
        )

    def evaluate(self, day: datetime.date) -> list[RuleOutcome]:
        """Run every enabled calendar rule for a day, in precedence order."""
        c = self.constraints
        outcomes: list[RuleOutcome] = []

        if c.incorporate_training_time:
            outcomes.append(
                evaluate_training(weeks_between(self.today, day), c.min_training_weeks)
            )

        outcomes.append(evaluate_blocked(day, c.blocked_dates))
        outcomes.append(evaluate_day_type(day, self.holiday_for(day), c))

        if c.check_conflicting_events:
            outcomes.append(evaluate_conflicts(self.conflicts_for(day)))

        return outcomes
