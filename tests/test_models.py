"""Tests for constraint, calendar, weather and score models."""

from datetime import date, time

import pytest
from pydantic import ValidationError

from race_calendar.models.calendar import (
    ConflictingEvent,
    Holiday,
    HolidayKind,
    build_holiday_map,
)
from race_calendar.models.constraints import EventConstraints, Persona
from race_calendar.models.location import Coordinates, Location
from race_calendar.models.score import BreakdownEntry, DayDetails, DayScore, DayStatus
from race_calendar.models.weather import DailySeries, WeatherStats


class TestEventConstraints:
    """Tests for EventConstraints validation."""

    def test_defaults(self, sample_location: Location):
        """Test default toggles and values."""
        constraints = EventConstraints(
            target_month=date(2026, 5, 1), location=sample_location
        )
        assert constraints.persona == Persona.COMPETITION
        assert constraints.allow_weekends is True
        assert constraints.allow_weekdays is False
        assert constraints.check_conflicting_events is False
        assert constraints.blocked_dates == frozenset()

    def test_target_month_normalised(self, sample_location: Location):
        """Test that any day of the month is anchored on the 1st."""
        constraints = EventConstraints(
            target_month=date(2026, 5, 17), location=sample_location
        )
        assert constraints.target_month == date(2026, 5, 1)
        assert constraints.year == 2026

    def test_race_start_parsed(self, sample_location: Location):
        """Test that start times are zero-padded and exposed as time."""
        constraints = EventConstraints(
            target_month=date(2026, 5, 1),
            location=sample_location,
            race_start_time="7:05",
            race_duration_hours=1.5,
        )
        assert constraints.race_start_time == "07:05"
        assert constraints.race_start == time(7, 5)
        assert constraints.race_duration_minutes == 90

    @pytest.mark.parametrize("value", ["24:00", "7", "07:60", "seven", ""])
    def test_malformed_race_time_rejected(self, sample_location: Location, value: str):
        """Test that malformed start times fail at construction."""
        with pytest.raises(ValidationError):
            EventConstraints(
                target_month=date(2026, 5, 1),
                location=sample_location,
                race_start_time=value,
            )

    @pytest.mark.parametrize("duration", [0, -2])
    def test_non_positive_duration_rejected(self, sample_location: Location, duration):
        """Test that the race must last some time."""
        with pytest.raises(ValidationError):
            EventConstraints(
                target_month=date(2026, 5, 1),
                location=sample_location,
                race_duration_hours=duration,
            )

    @pytest.mark.parametrize("duration", [float("inf"), float("nan")])
    def test_non_finite_duration_rejected(self, sample_location: Location, duration):
        """Test that an endless race fails before it reaches scoring."""
        with pytest.raises(ValidationError):
            EventConstraints(
                target_month=date(2026, 5, 1),
                location=sample_location,
                race_duration_hours=duration,
            )

    def test_negative_training_weeks_rejected(self, sample_location: Location):
        """Test that training weeks cannot be negative."""
        with pytest.raises(ValidationError):
            EventConstraints(
                target_month=date(2026, 5, 1),
                location=sample_location,
                min_training_weeks=-1,
            )

    def test_blocked_dates_from_iso_strings(self, sample_location: Location):
        """Test that blocked dates accept ISO strings."""
        constraints = EventConstraints(
            target_month=date(2026, 5, 1),
            location=sample_location,
            blocked_dates=["2026-05-16", "2026-05-17"],
        )
        assert date(2026, 5, 16) in constraints.blocked_dates

    def test_persona_from_string(self, sample_location: Location):
        """Test that the persona accepts its string value."""
        constraints = EventConstraints(
            target_month=date(2026, 5, 1),
            location=sample_location,
            persona="experience",
        )
        assert constraints.persona == Persona.EXPERIENCE

    def test_frozen(self, sample_constraints: EventConstraints):
        """Test that constraints are immutable during a run."""
        with pytest.raises(ValidationError):
            sample_constraints.allow_weekdays = True


class TestHolidays:
    """Tests for holiday models and the holiday map."""

    def test_first_holiday_wins(self):
        """Test that duplicates keep the first entry."""
        day = date(2026, 5, 14)
        holidays = [
            Holiday(date=day, name="Christi Himmelfahrt", kind=HolidayKind.PUBLIC),
            Holiday(date=day, name="Pfingstferien", kind=HolidayKind.SCHOOL),
            Holiday(date=date(2026, 5, 26), name="Pfingstferien", kind=HolidayKind.SCHOOL),
        ]
        holiday_map = build_holiday_map(holidays)
        assert len(holiday_map) == 2
        assert holiday_map[day].name == "Christi Himmelfahrt"

    def test_default_kind_is_public(self):
        """Test the default holiday kind."""
        assert Holiday(date=date(2026, 1, 1), name="Neujahr").kind == HolidayKind.PUBLIC


class TestConflictingEvent:
    """Tests for ConflictingEvent date matching and distance."""

    def test_single_day(self):
        """Test that a day-precision event covers only its date."""
        event = ConflictingEvent(name="Trail 50", date=date(2026, 5, 16))
        assert event.covers(date(2026, 5, 16))
        assert not event.covers(date(2026, 5, 17))

    def test_multi_day(self):
        """Test that a range covers every day in it."""
        event = ConflictingEvent(
            name="Stage Race", date=date(2026, 5, 15), end_date=date(2026, 5, 17)
        )
        assert event.covers(date(2026, 5, 16))
        assert not event.covers(date(2026, 5, 18))

    def test_month_precision(self):
        """Test that month-precision events cover the whole month."""
        event = ConflictingEvent(
            name="Some Ultra", date=date(2026, 5, 1), date_precision="month"
        )
        assert event.covers(date(2026, 5, 31))
        assert not event.covers(date(2026, 6, 1))

    def test_end_before_start_rejected(self):
        """Test that a range cannot end before it starts."""
        with pytest.raises(ValidationError):
            ConflictingEvent(
                name="Broken", date=date(2026, 5, 16), end_date=date(2026, 5, 15)
            )

    def test_distance_without_coordinates(self, sample_coordinates: Coordinates):
        """Test that an event without coordinates has no distance."""
        event = ConflictingEvent(name="Somewhere", date=date(2026, 5, 16))
        assert event.distance_km(sample_coordinates) is None


class TestWeatherModels:
    """Tests for the weather models."""

    def test_series_columns_padded(self, sample_coordinates: Coordinates):
        """Test that short columns are padded with None."""
        series = DailySeries(
            coordinates=sample_coordinates,
            dates=[date(2020, 1, 1), date(2020, 1, 2)],
            temperature_max=[5.0],
            precipitation=[0.0, 1.0, 9.0],
        )
        assert series.temperature_max == [5.0, None]
        assert series.precipitation == [0.0, 1.0]
        assert series.humidity_mean == [None, None]
        assert len(series) == 2
        assert series.index()[date(2020, 1, 2)] == 1

    def test_stats_bounds(self):
        """Test that probabilities and mud index are range-checked."""
        with pytest.raises(ValidationError):
            WeatherStats(avg_max_temp=10, avg_min_temp=0, rain_probability=120)
        with pytest.raises(ValidationError):
            WeatherStats(avg_max_temp=10, avg_min_temp=0, mud_index=-1)

    def test_temperature_swing(self, mild_stats: WeatherStats):
        """Test the diurnal range property."""
        assert mild_stats.temperature_swing == pytest.approx(6.0)


class TestDayScore:
    """Tests for the DayScore output model."""

    def test_serialises_to_json(self, mild_stats: WeatherStats):
        """Test that a day score dumps to plain JSON types."""
        score = DayScore(
            date=date(2026, 5, 16),
            score=90,
            reasons=["Warm (14.0°C)"],
            breakdown=[BreakdownEntry(label="Warm (14.0°C)", value=-10)],
            status=DayStatus.GREEN,
            details=DayDetails(
                daylight_hours=15.5,
                training_weeks_available=18,
                is_weekend=True,
                weather=mild_stats,
                race_start_time="09:00",
                race_duration_hours=6,
                persona=Persona.COMPETITION,
            ),
        )
        data = score.model_dump(mode="json")
        assert data["date"] == "2026-05-16"
        assert data["status"] == "green"
        assert data["breakdown"] == [{"label": "Warm (14.0°C)", "value": -10}]
        assert data["details"]["persona"] == "competition"
        assert score.total_delta == -10
        assert score.is_green()
        assert not score.is_red()

    def test_score_range(self):
        """Test that scores outside 0-100 are rejected."""
        with pytest.raises(ValidationError):
            DayScore(
                date=date(2026, 5, 16),
                score=101,
                status=DayStatus.GREEN,
                details=DayDetails(
                    daylight_hours=12,
                    training_weeks_available=0,
                    is_weekend=False,
                    race_start_time="07:00",
                    race_duration_hours=1,
                    persona=Persona.EXPERIENCE,
                ),
            )
