"""Persona temperature curves.

Each persona is a pure function from aggregated weather to a temperature
penalty and label. Wind is folded into the same assessment because it only
matters on the cold side.

Competition (fast times, cool is good):

| Max temp | Delta | Label |
|----------|-------|-------|
| 5-12 °C | 0 | Ideal Temp |
| 12-18 °C (12-15 when humid) | -10 | Warm |
| 18-25 °C (15-22 when humid) | -20 | Hot / Humid & Hot |
| above | -30 | Very Hot |
| 0-5 °C | -10 (-20 windy) | Chilly (+ Windchill) |
| -5-0 °C | -20 (-35 windy) | Freezing (+ Severe Windchill) |
| below -5 °C | -30 | Deep Freeze |

Experience (comfort, mild is good):

| Max temp | Delta | Label |
|----------|-------|-------|
| 15-22 °C | 0 | Ideal Experience Temp |
| 22-26 °C | -10 | Warm |
| above 26 °C | -30 | Very Hot |
| 10-15 °C | -10 | Cool |
| 5-10 °C | -20 | Chilly |
| below 5 °C | -40 | Too Cold |
| below 15 °C and windy | extra -10 | + Wind |

"Humid" is mean humidity above 70 %, "windy" is wind above 20 km/h.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from race_calendar.models.constraints import Persona
from race_calendar.models.weather import WeatherStats

HUMID_THRESHOLD = 70.0
WINDY_THRESHOLD_KMH = 20.0


@dataclass(frozen=True)
class TemperatureAssessment:
    """Temperature penalty (wind included) and its display label."""

    delta: int
    label: str


def _fmt(temp: float) -> str:
    return f"{temp:.1f}°C"


def competition_temperature(stats: WeatherStats) -> TemperatureAssessment:
    """Temperature curve for racing: cool conditions score best."""
    temp = stats.avg_max_temp
    humid = stats.avg_humidity > HUMID_THRESHOLD
    windy = stats.max_wind_speed > WINDY_THRESHOLD_KMH

    if 5 <= temp <= 12:
        return TemperatureAssessment(0, f"Ideal Temp ({_fmt(temp)})")

    if temp > 12:
        limit_warm = 15 if humid else 18
        limit_hot = 22 if humid else 25
        if temp <= limit_warm:
            return TemperatureAssessment(-10, f"Warm ({_fmt(temp)})")
        if temp <= limit_hot:
            name = "Humid & Hot" if humid else "Hot"
            return TemperatureAssessment(-20, f"{name} ({_fmt(temp)})")
        return TemperatureAssessment(-30, f"Very Hot ({_fmt(temp)})")

    if temp >= 0:
        if windy:
            return TemperatureAssessment(-20, f"Chilly ({_fmt(temp)}) + Windchill")
        return TemperatureAssessment(-10, f"Chilly ({_fmt(temp)})")
    if temp >= -5:
        if windy:
            return TemperatureAssessment(
                -35, f"Freezing ({_fmt(temp)}) + Severe Windchill"
            )
        return TemperatureAssessment(-20, f"Freezing ({_fmt(temp)})")
    return TemperatureAssessment(-30, f"Deep Freeze ({_fmt(temp)})")


def experience_temperature(stats: WeatherStats) -> TemperatureAssessment:
    """Temperature curve for enjoyment: mild, warm days score best."""
    temp = stats.avg_max_temp

    if 15 <= temp <= 22:
        delta, label = 0, f"Ideal Experience Temp ({_fmt(temp)})"
    elif temp > 22:
        if temp <= 26:
            delta, label = -10, f"Warm ({_fmt(temp)})"
        else:
            delta, label = -30, f"Very Hot ({_fmt(temp)})"
    elif temp >= 10:
        delta, label = -10, f"Cool ({_fmt(temp)})"
    elif temp >= 5:
        delta, label = -20, f"Chilly ({_fmt(temp)})"
    else:
        delta, label = -40, f"Too Cold ({_fmt(temp)})"

    if temp < 15 and stats.max_wind_speed > WINDY_THRESHOLD_KMH:
        delta -= 10
        label += " + Wind"

    return TemperatureAssessment(delta, label)


PERSONA_CURVES: dict[Persona, Callable[[WeatherStats], TemperatureAssessment]] = {
    Persona.COMPETITION: competition_temperature,
    Persona.EXPERIENCE: experience_temperature,
}


def temperature_penalty(stats: WeatherStats, persona: Persona) -> TemperatureAssessment:
    """Temperature assessment for the given persona."""
    return PERSONA_CURVES[Persona(persona)](stats)
