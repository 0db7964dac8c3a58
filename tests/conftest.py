"""Pytest fixtures for race calendar tests.

This module provides test fixtures that ensure:
1. No external API calls are made (weather archive, holiday API, IERS tables)
2. Isolated test environment with controlled configuration
3. A fixed "today" so training lead time is deterministic
"""

import os
from datetime import date, timedelta

import httpx
import pytest

# Set test environment BEFORE importing application modules
os.environ.setdefault("REQUEST_INTERVAL_SECONDS", "0")
os.environ.setdefault("DEFAULT_TIMEZONE", "Europe/Berlin")

from astropy.utils import iers

from race_calendar.models.calendar import Holiday, HolidayKind
from race_calendar.models.constraints import EventConstraints, Persona
from race_calendar.models.location import Coordinates, Location
from race_calendar.models.weather import DailySeries, WeatherStats

# Never download Earth orientation tables during tests
iers.conf.auto_download = False
iers.conf.iers_degraded_accuracy = "warn"


# =============================================================================
# Test Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset settings cache before each test to ensure clean state."""
    from race_calendar.config import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def today() -> date:
    """Fixed reference date for training lead time."""
    return date(2026, 1, 5)


def json_transport(routes: dict[str, object], status_code: int = 200) -> httpx.MockTransport:
    """MockTransport answering each path with a JSON payload.

    A payload that is an httpx.Response is returned as is.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        payload = routes.get(request.url.path)
        if isinstance(payload, httpx.Response):
            return payload
        if payload is None:
            return httpx.Response(404, json={"error": "not found"})
        return httpx.Response(status_code, json=payload)

    return httpx.MockTransport(handler)


# =============================================================================
# Domain Fixtures
# =============================================================================


@pytest.fixture
def sample_coordinates() -> Coordinates:
    """Sample coordinates for Nuremberg."""
    return Coordinates(latitude=49.4521, longitude=11.0767)


@pytest.fixture
def sample_location(sample_coordinates: Coordinates) -> Location:
    """Sample location with coordinates and timezone."""
    return Location(
        coordinates=sample_coordinates,
        timezone="Europe/Berlin",
        name="Nuremberg",
    )


@pytest.fixture
def sample_constraints(sample_location: Location) -> EventConstraints:
    """Constraints for a May race, weekends only, plenty of training time."""
    return EventConstraints(
        target_month=date(2026, 5, 1),
        location=sample_location,
        state_code="BY",
        min_training_weeks=12,
        race_start_time="09:00",
        race_duration_hours=6,
        distance_km=50,
        allow_weekends=True,
        allow_weekdays=False,
        consider_holidays=True,
        persona=Persona.COMPETITION,
    )


@pytest.fixture
def mild_stats() -> WeatherStats:
    """Cool, dry, calm day: ideal for competition, chilly for experience."""
    return WeatherStats(
        avg_max_temp=8.0,
        avg_min_temp=2.0,
        avg_humidity=50.0,
        max_wind_speed=5.0,
        avg_precipitation=0.5,
        rain_probability=10.0,
        heavy_rain_probability=0.0,
        mud_index=1.0,
        sample_years=10,
    )


@pytest.fixture
def sample_holiday() -> Holiday:
    """Ascension Day 2026."""
    return Holiday(date=date(2026, 5, 14), name="Christi Himmelfahrt", kind=HolidayKind.PUBLIC)


def make_series(
    coords: Coordinates,
    start: date,
    days: int,
    temp_max: float | None = 10.0,
    temp_min: float | None = 2.0,
    precipitation: float | None = 0.0,
    humidity: float | None = 60.0,
    wind: float | None = 10.0,
) -> DailySeries:
    """Build a constant-valued daily series."""
    return DailySeries(
        coordinates=coords,
        dates=[start + timedelta(days=i) for i in range(days)],
        temperature_max=[temp_max] * days,
        temperature_min=[temp_min] * days,
        precipitation=[precipitation] * days,
        humidity_mean=[humidity] * days,
        wind_speed_max=[wind] * days,
    )
