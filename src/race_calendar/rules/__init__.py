"""Scoring rules: calendar constraints and persona weather penalties."""

from race_calendar.rules.base import HARD_FAIL, RuleOutcome, round_half_up
from race_calendar.rules.calendar import (
    CalendarEvaluator,
    evaluate_blocked,
    evaluate_conflicts,
    evaluate_day_type,
    evaluate_training,
    find_conflicts,
    weeks_between,
)
from race_calendar.rules.persona import (
    PERSONA_CURVES,
    TemperatureAssessment,
    competition_temperature,
    experience_temperature,
    temperature_penalty,
)
from race_calendar.rules.weather import WeatherPenaltyEngine, mud_penalty

__all__ = [
    # Base
    "HARD_FAIL",
    "RuleOutcome",
    "round_half_up",
    # Calendar
    "CalendarEvaluator",
    "evaluate_blocked",
    "evaluate_conflicts",
    "evaluate_day_type",
    "evaluate_training",
    "find_conflicts",
    "weeks_between",
    # Persona
    "PERSONA_CURVES",
    "TemperatureAssessment",
    "competition_temperature",
    "experience_temperature",
    "temperature_penalty",
    # Weather
    "WeatherPenaltyEngine",
    "mud_penalty",
]
