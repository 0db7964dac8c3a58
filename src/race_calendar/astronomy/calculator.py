"""Daylight calculations using astropy.

This module provides:
- Sunrise/sunset (sun centre at -0.833°, i.e. refraction plus semi-diameter)
- Civil dawn/dusk (sun at -6°)
- The overlap of a race window with daylight, and the darkness left over

Sun altitudes are computed with astropy for a whole batch of dates at once
(one vectorised transform on a 10-minute grid per local day) and crossings
are linearly interpolated between grid points, which keeps the error well
under a minute.
"""

from __future__ import annotations

import datetime
import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from zoneinfo import ZoneInfo

import numpy as np
from astropy import units as u
from astropy.coordinates import AltAz, EarthLocation, get_sun
from astropy.time import Time
from astropy.utils import iers

from race_calendar.models.location import Coordinates

logger = logging.getLogger(__name__)

SUNRISE_ALTITUDE_DEG = -0.833
CIVIL_TWILIGHT_ALTITUDE_DEG = -6.0

SAMPLE_STEP_MINUTES = 10
# 25 hours covers local days stretched by a DST change
SAMPLES_PER_DAY = 25 * 60 // SAMPLE_STEP_MINUTES + 1


@dataclass
class SunTimes:
    """Sun event times for one local date.

    Times are timezone-aware in the location's timezone. An event is None
    when the sun does not cross that altitude on that day (polar day or
    night); `always_up` / `always_down` tell the two apart.
    """

    date: datetime.date
    dawn: datetime.datetime | None  # Civil twilight start (-6°)
    sunrise: datetime.datetime | None
    sunset: datetime.datetime | None
    dusk: datetime.datetime | None  # Civil twilight end (-6°)
    always_up: bool = False
    always_down: bool = False
    timezone: datetime.tzinfo = datetime.timezone.utc

    @property
    def daylight_hours(self) -> float:
        """Hours between sunrise and sunset."""
        if self.always_up:
            return 24.0
        if self.always_down:
            return 0.0
        start, end = daylight_window(self)
        hours = daylight_overlap(start, end, start, end) / 60
        return max(0.0, min(24.0, hours))


@dataclass
class RaceDaylight:
    """How much of a race happens in daylight."""

    race_start: datetime.datetime
    race_end: datetime.datetime
    daylight_minutes_in_race: float
    darkness_minutes: float

    @property
    def race_minutes(self) -> float:
        utc = datetime.timezone.utc
        elapsed = self.race_end.astimezone(utc) - self.race_start.astimezone(utc)
        return elapsed.total_seconds() / 60


def _coords_to_earth_location(coords: Coordinates) -> EarthLocation:
    """Convert our Coordinates to astropy EarthLocation."""
    return EarthLocation(lat=coords.latitude * u.deg, lon=coords.longitude * u.deg)


def _local_midnight(day: datetime.date, tz: ZoneInfo) -> datetime.datetime:
    return datetime.datetime.combine(day, datetime.time(0), tzinfo=tz)


def _to_naive_utc(dt: datetime.datetime) -> datetime.datetime:
    return dt.astimezone(datetime.timezone.utc).replace(tzinfo=None)


def sun_altitude_grid(
    coords: Coordinates,
    starts_utc: list[datetime.datetime],
    samples: int = SAMPLES_PER_DAY,
    step_minutes: int = SAMPLE_STEP_MINUTES,
) -> np.ndarray:
    """Sun altitude in degrees on a regular grid after each start time.

    Args:
        coords: Observer location
        starts_utc: Naive UTC start instants, one row each
        samples: Grid points per row
        step_minutes: Spacing between grid points

    Returns:
        Array of shape (len(starts_utc), samples)
    """
    location = _coords_to_earth_location(coords)
    starts = Time(starts_utc, scale="utc")
    offsets = np.arange(samples) * step_minutes * u.min
    obs_times = starts.reshape((len(starts_utc), 1)) + offsets

    # UT1 precision is irrelevant at minute resolution; don't fail on dates
    # past the end of the IERS tables.
    with iers.conf.set_temp("iers_degraded_accuracy", "warn"):
        altaz_frame = AltAz(obstime=obs_times, location=location)
        sun_altaz = get_sun(obs_times).transform_to(altaz_frame)
    return np.asarray(sun_altaz.alt.deg)


def _find_crossing(
    altitudes: np.ndarray,
    target: float,
    rising: bool,
) -> float | None:
    """Fractional grid index where altitude crosses target, or None.

    The first rising crossing and the last setting crossing are used.
    """
    before = altitudes[:-1]
    after = altitudes[1:]
    if rising:
        hits = np.nonzero((before < target) & (after >= target))[0]
        if hits.size == 0:
            return None
        k = int(hits[0])
    else:
        hits = np.nonzero((before > target) & (after <= target))[0]
        if hits.size == 0:
            return None
        k = int(hits[-1])
    a0 = float(altitudes[k])
    a1 = float(altitudes[k + 1])
    fraction = (target - a0) / (a1 - a0) if a1 != a0 else 0.0
    return k + fraction


def _sun_times_from_row(
    day: datetime.date,
    midnight: datetime.datetime,
    next_midnight: datetime.datetime,
    altitudes: np.ndarray,
    tz: ZoneInfo,
) -> SunTimes:
    start_utc = midnight.astimezone(datetime.timezone.utc)
    day_minutes = (
        next_midnight.astimezone(datetime.timezone.utc) - start_utc
    ).total_seconds() / 60
    # Only grid points inside this local day
    last_index = int(day_minutes // SAMPLE_STEP_MINUTES) + 1
    row = altitudes[: min(last_index + 1, altitudes.shape[0])]

    def crossing(target: float, rising: bool) -> datetime.datetime | None:
        index = _find_crossing(row, target, rising)
        if index is None:
            return None
        minutes = index * SAMPLE_STEP_MINUTES
        if minutes >= day_minutes:
            return None
        instant = start_utc + datetime.timedelta(minutes=minutes)
        return instant.astimezone(tz).replace(microsecond=0)

    in_day = row[: last_index] if last_index < row.shape[0] else row
    return SunTimes(
        date=day,
        dawn=crossing(CIVIL_TWILIGHT_ALTITUDE_DEG, rising=True),
        sunrise=crossing(SUNRISE_ALTITUDE_DEG, rising=True),
        sunset=crossing(SUNRISE_ALTITUDE_DEG, rising=False),
        dusk=crossing(CIVIL_TWILIGHT_ALTITUDE_DEG, rising=False),
        always_up=bool(np.all(in_day > SUNRISE_ALTITUDE_DEG)),
        always_down=bool(np.all(in_day <= SUNRISE_ALTITUDE_DEG)),
        timezone=tz,
    )


def get_sun_times(
    coords: Coordinates,
    days: Iterable[datetime.date],
    tz: ZoneInfo,
) -> list[SunTimes]:
    """Calculate dawn, sunrise, sunset and dusk for a batch of local dates.

    Args:
        coords: Geographic coordinates
        days: Local calendar dates
        tz: Timezone the dates (and the returned times) are in

    Returns:
        One SunTimes per date, in input order
    """
    days = list(days)
    if not days:
        return []

    midnights = [_local_midnight(day, tz) for day in days]
    next_midnights = [
        _local_midnight(day + datetime.timedelta(days=1), tz) for day in days
    ]
    grid = sun_altitude_grid(coords, [_to_naive_utc(m) for m in midnights])

    return [
        _sun_times_from_row(day, midnight, next_midnight, grid[i], tz)
        for i, (day, midnight, next_midnight) in enumerate(
            zip(days, midnights, next_midnights)
        )
    ]


def daylight_window(sun_times: SunTimes) -> tuple[datetime.datetime, datetime.datetime]:
    """The [sunrise, sunset] interval for a day.

    Polar day extends the window over the following day as well so that a
    race running past midnight stays in daylight; polar night gives an
    empty window at midnight.
    """
    midnight = datetime.datetime.combine(
        sun_times.date, datetime.time(0), tzinfo=sun_times.timezone
    )

    if sun_times.always_up:
        return midnight, midnight + datetime.timedelta(days=2)
    if sun_times.always_down:
        return midnight, midnight

    start = sun_times.sunrise or midnight
    end = sun_times.sunset or midnight + datetime.timedelta(days=1)
    if end < start:
        # Sun sets early and rises again late (near polar transitions)
        return midnight, midnight
    return start, end


def race_window(
    day: datetime.date,
    start_time: datetime.time,
    duration_hours: float,
    tz: ZoneInfo,
) -> tuple[datetime.datetime, datetime.datetime]:
    """Race start and end as timezone-aware datetimes on the scored date.

    The duration is elapsed time, so the end is computed in UTC; a race
    crossing a DST change still lasts exactly `duration_hours`.
    """
    start = datetime.datetime.combine(day, start_time, tzinfo=tz)
    end = start.astimezone(datetime.timezone.utc) + datetime.timedelta(
        hours=duration_hours
    )
    return start, end.astimezone(tz)


def daylight_overlap(
    race_start: datetime.datetime,
    race_end: datetime.datetime,
    daylight_start: datetime.datetime,
    daylight_end: datetime.datetime,
) -> float:
    """Minutes of the race window inside the daylight window (never negative)."""
    utc = datetime.timezone.utc
    overlap_start = max(race_start.astimezone(utc), daylight_start.astimezone(utc))
    overlap_end = min(race_end.astimezone(utc), daylight_end.astimezone(utc))
    return max(0.0, (overlap_end - overlap_start).total_seconds() / 60)


def format_duration(hours: float) -> str:
    """Format hours as 'Xh Ym' (minutes rounded, 60 carried into the hour)."""
    whole_hours = math.floor(hours)
    minutes = math.floor((hours - whole_hours) * 60 + 0.5)
    if minutes == 60:
        whole_hours += 1
        minutes = 0
    return f"{whole_hours}h {minutes}m"


class DaylightCalculator:
    """Daylight calculator for a fixed location.

    Sun times are cached per date, and `prefetch` computes a whole batch in
    one astropy call; the assembler prefetches a month at a time.

    Example:
        ```python
        calc = DaylightCalculator(Coordinates(latitude=49.45, longitude=11.08), "Europe/Berlin")
        calc.prefetch(days_of_may)
        daylight = calc.race_daylight(date(2026, 5, 16), time(7, 0), 10.0)
        ```
    """

    def __init__(self, coordinates: Coordinates, timezone: str | ZoneInfo):
        """Initialize calculator for a specific location.

        Args:
            coordinates: Geographic coordinates for calculations
            timezone: IANA timezone the race start time is given in
        """
        self.coordinates = coordinates
        self.tz = timezone if isinstance(timezone, ZoneInfo) else ZoneInfo(timezone)
        self._cache: dict[datetime.date, SunTimes] = {}

    def prefetch(self, days: Iterable[datetime.date]) -> None:
        """Compute and cache sun times for every date not cached yet."""
        missing = sorted({day for day in days if day not in self._cache})
        if not missing:
            return
        logger.debug(
            f"Computing sun times for {len(missing)} dates at {self.coordinates}"
        )
        for sun_times in get_sun_times(self.coordinates, missing, self.tz):
            self._cache[sun_times.date] = sun_times

    def get_sun_times(self, day: datetime.date) -> SunTimes:
        """Get sun times for a date (cached)."""
        if day not in self._cache:
            self.prefetch([day])
        return self._cache[day]

    def race_daylight(
        self,
        day: datetime.date,
        start_time: datetime.time,
        duration_hours: float,
    ) -> RaceDaylight:
        """Split a race on the given date into daylight and darkness minutes."""
        race_start, race_end = race_window(day, start_time, duration_hours, self.tz)
        light_start, light_end = daylight_window(self.get_sun_times(day))
        daylight = daylight_overlap(race_start, race_end, light_start, light_end)
        return RaceDaylight(
            race_start=race_start,
            race_end=race_end,
            daylight_minutes_in_race=daylight,
            darkness_minutes=max(0.0, duration_hours * 60 - daylight),
        )
