"""User constraints for a race date search."""

from __future__ import annotations

import datetime
import re
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from race_calendar.models.location import Location


RACE_TIME_PATTERN = re.compile(r"^(?P<hour>[01]?\d|2[0-3]):(?P<minute>[0-5]\d)$")


class Persona(str, Enum):
    """Scoring personality selecting the temperature curve.

    COMPETITION favours cool conditions for fast times; EXPERIENCE favours
    mild, comfortable days.
    """

    COMPETITION = "competition"
    EXPERIENCE = "experience"


class EventConstraints(BaseModel):
    """Everything the scoring engine needs to know about the planned event.

    Immutable for the duration of a scoring run. Malformed values fail here,
    at construction, rather than midway through a run.
    """

    model_config = {"frozen": True}

    target_month: datetime.date = Field(
        ..., description="Any day of the target month (normalised to the 1st)"
    )
    location: Location
    state_code: str = Field(
        default="BY", description="Region/state code for holiday lookup"
    )
    min_training_weeks: int = Field(
        default=12, ge=0, description="Weeks of preparation needed before the race"
    )
    race_start_time: str = Field(default="07:00", description="Start time (HH:MM)")
    race_duration_hours: float = Field(
        default=10.0,
        gt=0,
        allow_inf_nan=False,
        description="Expected race duration in hours",
    )
    distance_km: float = Field(default=70.0, ge=0, description="Nominal distance")
    blocked_dates: frozenset[datetime.date] = Field(
        default_factory=frozenset, description="Days the organiser cannot use"
    )

    negative_holiday_impact: bool = Field(
        default=False, description="Treat holidays as crowded instead of free time"
    )
    incorporate_training_time: bool = True
    allow_weekends: bool = True
    allow_weekdays: bool = False
    consider_holidays: bool = True
    check_conflicting_events: bool = False

    persona: Persona = Persona.COMPETITION
    conflict_radius_km: float = Field(
        default=50.0, ge=0, description="Radius for nearby conflicting events"
    )

    @field_validator("target_month")
    @classmethod
    def normalise_target_month(cls, v: datetime.date) -> datetime.date:
        """Anchor the target month at its first day."""
        return v.replace(day=1)

    @field_validator("race_start_time")
    @classmethod
    def validate_race_start_time(cls, v: str) -> str:
        """Require a 24h HH:MM start time and store it zero-padded."""
        match = RACE_TIME_PATTERN.match(v.strip())
        if not match:
            raise ValueError(
                f"Invalid race start time: '{v}'. Expected HH:MM (e.g., '07:00')"
            )
        return f"{int(match.group('hour')):02d}:{match.group('minute')}"

    @property
    def race_start(self) -> datetime.time:
        """Race start as a time of day."""
        hour, minute = self.race_start_time.split(":")
        return datetime.time(int(hour), int(minute))

    @property
    def race_duration_minutes(self) -> float:
        """Race duration in minutes."""
        return self.race_duration_hours * 60

    @property
    def year(self) -> int:
        """Year the target month falls in."""
        return self.target_month.year
