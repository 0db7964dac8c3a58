"""Scoring output models."""

from __future__ import annotations

import datetime
from enum import Enum

from pydantic import BaseModel, Field

from race_calendar.models.constraints import Persona
from race_calendar.models.weather import WeatherStats


BASE_SCORE = 100


class DayStatus(str, Enum):
    """Traffic-light classification of a day score."""

    GREEN = "green"  # 80-100: excellent
    YELLOW = "yellow"  # 40-79: acceptable but imperfect
    RED = "red"  # 0-39: dealbreaker present


class BreakdownEntry(BaseModel):
    """One rule category's contribution to a day score."""

    label: str
    value: int = Field(..., description="Signed delta applied to the base score")


class DayDetails(BaseModel):
    """Raw values behind a day's score, for display."""

    daylight_hours: float = Field(..., ge=0, le=24)
    dawn: datetime.datetime | None = None
    sunrise: datetime.datetime | None = None
    sunset: datetime.datetime | None = None
    dusk: datetime.datetime | None = None
    darkness_minutes: float = Field(default=0.0, ge=0)
    training_weeks_available: int
    is_weekend: bool
    weather: WeatherStats | None = None
    holiday: str | None = None
    conflicts: list[str] = Field(default_factory=list)
    race_start_time: str
    race_duration_hours: float
    persona: Persona


class DayScore(BaseModel):
    """Suitability of one calendar day for the event."""

    date: datetime.date
    score: int = Field(..., ge=0, le=100)
    reasons: list[str] = Field(default_factory=list)
    breakdown: list[BreakdownEntry] = Field(default_factory=list)
    status: DayStatus
    details: DayDetails

    @property
    def total_delta(self) -> int:
        """Sum of all breakdown values (the unclamped change from the base)."""
        return sum(entry.value for entry in self.breakdown)

    def is_green(self) -> bool:
        """Check if the day is rated green."""
        return self.status == DayStatus.GREEN

    def is_red(self) -> bool:
        """Check if the day is rated red."""
        return self.status == DayStatus.RED
