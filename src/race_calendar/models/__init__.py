"""Domain models for race date recommendations."""

from race_calendar.models.location import Coordinates, Location
from race_calendar.models.weather import DailySeries, WeatherHistory, WeatherStats
from race_calendar.models.calendar import (
    ConflictingEvent,
    Holiday,
    HolidayKind,
    build_holiday_map,
)
from race_calendar.models.constraints import EventConstraints, Persona
from race_calendar.models.score import (
    BASE_SCORE,
    BreakdownEntry,
    DayDetails,
    DayScore,
    DayStatus,
)

__all__ = [
    # Location
    "Coordinates",
    "Location",
    # Weather
    "DailySeries",
    "WeatherHistory",
    "WeatherStats",
    # Calendar
    "ConflictingEvent",
    "Holiday",
    "HolidayKind",
    "build_holiday_map",
    # Constraints
    "EventConstraints",
    "Persona",
    # Score
    "BASE_SCORE",
    "BreakdownEntry",
    "DayDetails",
    "DayScore",
    "DayStatus",
]
