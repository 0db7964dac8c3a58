"""Weather penalty rules applied on top of aggregated statistics.

Only run when the day has a WeatherStats entry. Every category produces an
outcome, zero or not, in this order: temperature, stability, rain risk,
heat shock, cold shock, mud.
"""

from __future__ import annotations

import datetime

from race_calendar.models.constraints import Persona
from race_calendar.models.weather import WeatherStats
from race_calendar.rules.base import RuleOutcome, round_half_up
from race_calendar.rules.persona import temperature_penalty

TEMP_SWING_LIMIT = 15.0
TEMP_SWING_PENALTY = -15

RAIN_PROBABILITY_LIMIT = 50.0
RAIN_RISK_PENALTY = -40

HEAT_SHOCK_MONTHS = (4, 5, 6)
HEAT_SHOCK_TEMP = 15.0
COLD_SHOCK_MONTHS = (9, 10, 11)
COLD_SHOCK_TEMP = 5.0
ACCLIMATIZATION_PENALTY = -10

VERY_MUDDY_INDEX = 15.0
VERY_MUDDY_PENALTY = -30
MUDDY_INDEX = 5.0
MUDDY_PENALTY = -10


def evaluate_temperature(stats: WeatherStats, persona: Persona) -> RuleOutcome:
    assessment = temperature_penalty(stats, persona)
    reasons = [assessment.label] if assessment.delta != 0 else []
    return RuleOutcome(label=assessment.label, delta=assessment.delta, reasons=reasons)


def evaluate_stability(stats: WeatherStats) -> RuleOutcome:
    """Penalise a large gap between day and night temperatures."""
    swing = stats.temperature_swing
    if swing > TEMP_SWING_LIMIT:
        return RuleOutcome(
            label="Temp Stability",
            delta=TEMP_SWING_PENALTY,
            reasons=[f"High Temp Swing ({swing:.1f}°C)"],
        )
    return RuleOutcome(label="Temp Stability")


def evaluate_rain_risk(stats: WeatherStats) -> RuleOutcome:
    if stats.rain_probability > RAIN_PROBABILITY_LIMIT:
        return RuleOutcome(
            label="High Rain Risk",
            delta=RAIN_RISK_PENALTY,
            reasons=[f"High Rain Risk ({round_half_up(stats.rain_probability)}%)"],
        )
    return RuleOutcome(label="Rain Risk")


def evaluate_heat_shock(stats: WeatherStats, day: datetime.date) -> RuleOutcome:
    """Spring events after winter training: warm days catch runners unprepared."""
    if day.month in HEAT_SHOCK_MONTHS and stats.avg_max_temp > HEAT_SHOCK_TEMP:
        return RuleOutcome(
            label="Heat Shock Risk",
            delta=ACCLIMATIZATION_PENALTY,
            reasons=["Acclimatization Risk (Sudden Heat)"],
        )
    return RuleOutcome(label="Heat Shock Risk")


def evaluate_cold_shock(stats: WeatherStats, day: datetime.date) -> RuleOutcome:
    """Autumn events after summer training: cold days catch runners unprepared."""
    if day.month in COLD_SHOCK_MONTHS and stats.avg_max_temp < COLD_SHOCK_TEMP:
        return RuleOutcome(
            label="Cold Shock Risk",
            delta=ACCLIMATIZATION_PENALTY,
            reasons=["Acclimatization Risk (Sudden Cold)"],
        )
    return RuleOutcome(label="Cold Shock Risk")


def mud_penalty(mud_index: float) -> int:
    """Penalty for a mud index; never increases as the index grows."""
    if mud_index > VERY_MUDDY_INDEX:
        return VERY_MUDDY_PENALTY
    if mud_index > MUDDY_INDEX:
        return MUDDY_PENALTY
    return 0


def evaluate_mud(stats: WeatherStats) -> RuleOutcome:
    delta = mud_penalty(stats.mud_index)
    if delta == VERY_MUDDY_PENALTY:
        return RuleOutcome(
            label="Very Muddy",
            delta=delta,
            reasons=[f"Very Muddy Trails (Index: {stats.mud_index:.1f})"],
        )
    if delta == MUDDY_PENALTY:
        return RuleOutcome(label="Muddy", delta=delta, reasons=["Muddy Trails"])
    return RuleOutcome(label="Muddy")


class WeatherPenaltyEngine:
    """Maps a day's aggregated weather to score penalties for one persona."""

    def __init__(self, persona: Persona = Persona.COMPETITION):
        self.persona = Persona(persona)

    def evaluate(self, stats: WeatherStats, day: datetime.date) -> list[RuleOutcome]:
        """Evaluate every weather category for a day, in display order."""
        return [
            evaluate_temperature(stats, self.persona),
            evaluate_stability(stats),
            evaluate_rain_risk(stats),
            evaluate_heat_shock(stats, day),
            evaluate_cold_shock(stats, day),
            evaluate_mud(stats),
        ]
