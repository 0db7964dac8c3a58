"""Astronomical calculations for sun times and race daylight."""

from race_calendar.astronomy.calculator import (
    DaylightCalculator,
    RaceDaylight,
    SunTimes,
    daylight_overlap,
    daylight_window,
    format_duration,
    get_sun_times,
    race_window,
)

__all__ = [
    "DaylightCalculator",
    "RaceDaylight",
    "SunTimes",
    "daylight_overlap",
    "daylight_window",
    "format_duration",
    "get_sun_times",
    "race_window",
]
