"""Tests for calendar rules and persona weather penalties."""

from datetime import date

import pytest

from race_calendar.models.calendar import ConflictingEvent, Holiday
from race_calendar.models.constraints import EventConstraints, Persona
from race_calendar.models.location import Coordinates
from race_calendar.models.weather import WeatherStats
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
    competition_temperature,
    experience_temperature,
    temperature_penalty,
)
from race_calendar.rules.weather import (
    WeatherPenaltyEngine,
    evaluate_cold_shock,
    evaluate_heat_shock,
    evaluate_mud,
    evaluate_rain_risk,
    evaluate_stability,
    mud_penalty,
)

SATURDAY = date(2026, 5, 16)
WEDNESDAY = date(2026, 5, 13)


def stats(**overrides) -> WeatherStats:
    values = {
        "avg_max_temp": 8.0,
        "avg_min_temp": 2.0,
        "avg_humidity": 50.0,
        "max_wind_speed": 5.0,
        "rain_probability": 10.0,
        "mud_index": 0.0,
        "sample_years": 10,
    }
    values.update(overrides)
    return WeatherStats(**values)


class TestRoundHalfUp:
    """Tests for score rounding."""

    @pytest.mark.parametrize(
        "value,expected",
        [(2.5, 3), (3.5, 4), (-2.5, -2), (-41.67, -42), (0.49, 0)],
    )
    def test_rounding(self, value: float, expected: int):
        """Test that halves always round up."""
        assert round_half_up(value) == expected

    def test_hard_fail_outcome(self):
        """Test outcome flags."""
        assert RuleOutcome(label="x", delta=HARD_FAIL).is_hard_fail
        assert RuleOutcome(label="x", delta=-10).is_penalty
        assert not RuleOutcome(label="x").is_penalty


class TestTraining:
    """Tests for the training lead time rule."""

    def test_weeks_between(self):
        """Test whole weeks, truncated toward zero in both directions."""
        today = date(2026, 1, 5)
        assert weeks_between(today, date(2026, 5, 16)) == 18
        assert weeks_between(today, date(2026, 1, 11)) == 0
        assert weeks_between(today, date(2025, 12, 26)) == -1
        assert weeks_between(today, date(2025, 12, 30)) == 0

    def test_enough_time(self):
        """Test meeting the requirement."""
        outcome = evaluate_training(12, 12)
        assert outcome.label == "Training Time"
        assert outcome.delta == 0
        assert outcome.reasons == []

    def test_zero_requirement_always_satisfied(self):
        """Test that no minimum means no penalty, even in the past."""
        assert evaluate_training(-3, 0).delta == 0

    def test_short_prep(self):
        """Test the linear penalty between 50% and 100%."""
        outcome = evaluate_training(9, 12)
        assert outcome.label == "Short Training Prep"
        assert outcome.delta == -25
        assert outcome.reasons == ["Short Training Prep (75% of recommended)"]

    def test_exactly_half_is_soft(self):
        """Test that 50% is still a soft penalty."""
        assert evaluate_training(6, 12).delta == -50

    def test_below_half_hard_fails(self):
        """Test the hard fail under 50%."""
        outcome = evaluate_training(5, 12)
        assert outcome.label == "Insufficient Training Time (< 50%)"
        assert outcome.delta == HARD_FAIL
        assert "5 weeks vs 12 required" in outcome.reasons[0]

    def test_past_date_hard_fails(self):
        """Test that a negative lead time is a hard fail."""
        assert evaluate_training(-2, 12).is_hard_fail


class TestDayType:
    """Tests for blocked dates, holidays, weekends and weekdays."""

    def test_blocked(self):
        """Test a manually blocked date."""
        outcome = evaluate_blocked(SATURDAY, frozenset({SATURDAY}))
        assert outcome.label == "Blocked Date"
        assert outcome.delta == HARD_FAIL
        assert outcome.reasons == ["Blocked Date"]

    def test_not_blocked(self):
        """Test the neutral block entry."""
        outcome = evaluate_blocked(SATURDAY, frozenset())
        assert outcome.label == "Manual Block"
        assert outcome.delta == 0

    def test_weekend_allowed(self, sample_constraints: EventConstraints):
        """Test an allowed weekend day."""
        outcome = evaluate_day_type(SATURDAY, None, sample_constraints)
        assert outcome.label == "Weekend"
        assert outcome.delta == 0

    def test_weekend_not_allowed(self, sample_constraints: EventConstraints):
        """Test a disallowed weekend day."""
        constraints = sample_constraints.model_copy(update={"allow_weekends": False})
        outcome = evaluate_day_type(SATURDAY, None, constraints)
        assert outcome.label == "Weekend Not Allowed"
        assert outcome.delta == HARD_FAIL

    def test_weekday_not_allowed(self, sample_constraints: EventConstraints):
        """Test a disallowed weekday."""
        outcome = evaluate_day_type(WEDNESDAY, None, sample_constraints)
        assert outcome.label == "Weekday Not Allowed"
        assert outcome.delta == HARD_FAIL
        assert outcome.reasons == ["Weekday (Not allowed)"]

    def test_weekday_allowed(self, sample_constraints: EventConstraints):
        """Test an allowed weekday."""
        constraints = sample_constraints.model_copy(update={"allow_weekdays": True})
        outcome = evaluate_day_type(WEDNESDAY, None, constraints)
        assert outcome.label == "Weekday"
        assert outcome.delta == 0

    def test_holiday_overrides_weekday(
        self, sample_constraints: EventConstraints, sample_holiday: Holiday
    ):
        """Test that a weekday holiday is not treated as a weekday."""
        outcome = evaluate_day_type(sample_holiday.date, sample_holiday, sample_constraints)
        assert outcome.label == "Holiday (Christi Himmelfahrt)"
        assert outcome.delta == 0
        assert outcome.reasons == ["Holiday: Christi Himmelfahrt"]

    def test_holiday_negative_impact(
        self, sample_constraints: EventConstraints, sample_holiday: Holiday
    ):
        """Test holidays treated as crowded."""
        constraints = sample_constraints.model_copy(
            update={"negative_holiday_impact": True}
        )
        outcome = evaluate_day_type(sample_holiday.date, sample_holiday, constraints)
        assert outcome.delta == -30
        assert outcome.reasons == ["Holiday (Negative Impact): Christi Himmelfahrt"]


class TestConflicts:
    """Tests for conflicting events."""

    @pytest.fixture
    def events(self) -> list[ConflictingEvent]:
        return [
            ConflictingEvent(
                name="Frankenweg Trail",
                date=SATURDAY,
                coordinates=Coordinates(latitude=49.60, longitude=11.00),
            ),
            ConflictingEvent(
                name="Alpine Ultra",
                date=SATURDAY,
                coordinates=Coordinates(latitude=47.50, longitude=11.00),
            ),
            ConflictingEvent(name="Unknown Place Run", date=SATURDAY),
            ConflictingEvent(
                name="City Run",
                date=SATURDAY,
                coordinates=Coordinates(latitude=49.45, longitude=11.08),
            ),
        ]

    def test_within_radius_only(
        self, sample_coordinates: Coordinates, events: list[ConflictingEvent]
    ):
        """Test that far and ungeocoded events are ignored, nearest first."""
        matches = find_conflicts(SATURDAY, sample_coordinates, events, 50)

        assert [event.name for event, _ in matches] == ["City Run", "Frankenweg Trail"]

    def test_other_day_ignored(
        self, sample_coordinates: Coordinates, events: list[ConflictingEvent]
    ):
        """Test that events on other days never conflict."""
        assert find_conflicts(date(2026, 5, 17), sample_coordinates, events, 50) == []

    def test_conflict_outcome(
        self, sample_coordinates: Coordinates, events: list[ConflictingEvent]
    ):
        """Test the penalty and one reason per event."""
        outcome = evaluate_conflicts(
            find_conflicts(SATURDAY, sample_coordinates, events, 50)
        )
        assert outcome.delta == HARD_FAIL
        assert outcome.reasons[0] == "Event Conflict: City Run (0km)"
        assert outcome.reasons[1].startswith("Event Conflict: Frankenweg Trail (")

    def test_no_conflict_outcome(self):
        """Test the neutral entry."""
        outcome = evaluate_conflicts([])
        assert outcome.label == "Event Conflict"
        assert outcome.delta == 0


class TestCalendarEvaluator:
    """Tests for the calendar rule sequence."""

    def test_order_and_labels(self, sample_constraints: EventConstraints, today: date):
        """Test that rules are reported in precedence order."""
        evaluator = CalendarEvaluator(sample_constraints, today=today)
        outcomes = evaluator.evaluate(SATURDAY)

        assert [o.label for o in outcomes] == ["Training Time", "Manual Block", "Weekend"]

    def test_all_hard_fails_recorded(self, sample_constraints: EventConstraints):
        """Test that evaluation continues past a hard fail."""
        constraints = sample_constraints.model_copy(
            update={"blocked_dates": frozenset({WEDNESDAY})}
        )
        evaluator = CalendarEvaluator(constraints, today=date(2026, 4, 15))
        outcomes = evaluator.evaluate(WEDNESDAY)

        assert [o.delta for o in outcomes] == [HARD_FAIL, HARD_FAIL, HARD_FAIL]

    def test_training_disabled(self, sample_constraints: EventConstraints):
        """Test that disabled training produces no entry at all."""
        constraints = sample_constraints.model_copy(
            update={"incorporate_training_time": False}
        )
        evaluator = CalendarEvaluator(constraints, today=date(2026, 5, 1))
        labels = [o.label for o in evaluator.evaluate(SATURDAY)]

        assert "Training Time" not in labels
        assert labels[0] == "Manual Block"

    def test_holidays_ignored(
        self, sample_constraints: EventConstraints, sample_holiday: Holiday, today: date
    ):
        """Test that an ignored holiday falls back to the weekday rule."""
        constraints = sample_constraints.model_copy(update={"consider_holidays": False})
        evaluator = CalendarEvaluator(
            constraints, {sample_holiday.date: sample_holiday}, today=today
        )

        assert evaluator.holiday_for(sample_holiday.date) is None
        assert evaluator.evaluate(sample_holiday.date)[-1].label == "Weekday Not Allowed"

    def test_conflicts_only_when_enabled(
        self, sample_constraints: EventConstraints, today: date
    ):
        """Test that conflicts are checked only on request."""
        events = [
            ConflictingEvent(
                name="City Run",
                date=SATURDAY,
                coordinates=sample_constraints.location.coordinates,
            )
        ]
        off = CalendarEvaluator(sample_constraints, conflicting_events=events, today=today)
        assert len(off.evaluate(SATURDAY)) == 3

        constraints = sample_constraints.model_copy(
            update={"check_conflicting_events": True}
        )
        on = CalendarEvaluator(constraints, conflicting_events=events, today=today)
        outcomes = on.evaluate(SATURDAY)
        assert outcomes[-1].label == "Event Conflict"
        assert outcomes[-1].delta == HARD_FAIL


class TestCompetitionTemperature:
    """Tests for the competition persona curve."""

    @pytest.mark.parametrize(
        "temp,expected",
        [
            (5.0, 0),
            (12.0, 0),
            (12.1, -10),
            (18.0, -10),
            (18.1, -20),
            (25.0, -20),
            (25.1, -30),
            (4.9, -10),
            (0.0, -10),
            (-0.1, -20),
            (-5.0, -20),
            (-5.1, -30),
        ],
    )
    def test_bands(self, temp: float, expected: int):
        """Test band boundaries in dry, calm conditions."""
        assert competition_temperature(stats(avg_max_temp=temp)).delta == expected

    def test_humid_lowers_limits(self):
        """Test that humidity tightens the warm and hot limits."""
        humid = {"avg_humidity": 80.0}
        assert competition_temperature(stats(avg_max_temp=16, **humid)).delta == -20
        assessment = competition_temperature(stats(avg_max_temp=23, **humid))
        assert assessment.delta == -30
        assert assessment.label == "Very Hot (23.0°C)"
        assert competition_temperature(stats(avg_max_temp=20, **humid)).label == (
            "Humid & Hot (20.0°C)"
        )

    def test_windchill(self):
        """Test wind on the cold side."""
        windy = {"max_wind_speed": 25.0}
        chilly = competition_temperature(stats(avg_max_temp=3, **windy))
        assert chilly.delta == -20
        assert chilly.label == "Chilly (3.0°C) + Windchill"

        freezing = competition_temperature(stats(avg_max_temp=-2, **windy))
        assert freezing.delta == -35
        assert freezing.label.endswith("+ Severe Windchill")

    def test_wind_ignored_when_ideal(self):
        """Test that wind does not matter in the ideal band."""
        assert competition_temperature(stats(avg_max_temp=8, max_wind_speed=40)).delta == 0


class TestExperienceTemperature:
    """Tests for the experience persona curve."""

    @pytest.mark.parametrize(
        "temp,expected",
        [
            (15.0, 0),
            (22.0, 0),
            (24.0, -10),
            (26.0, -10),
            (26.5, -30),
            (12.0, -10),
            (10.0, -10),
            (7.0, -20),
            (4.0, -40),
        ],
    )
    def test_bands(self, temp: float, expected: int):
        """Test band boundaries in calm conditions."""
        assert experience_temperature(stats(avg_max_temp=temp)).delta == expected

    def test_wind_below_fifteen(self):
        """Test the extra wind penalty on cool days."""
        assessment = experience_temperature(stats(avg_max_temp=8, max_wind_speed=30))
        assert assessment.delta == -30
        assert assessment.label == "Chilly (8.0°C) + Wind"

    def test_wind_ignored_when_mild(self):
        """Test that wind does not matter from 15 °C up."""
        assert experience_temperature(stats(avg_max_temp=18, max_wind_speed=30)).delta == 0

    def test_dispatch(self):
        """Test persona selection."""
        mild = stats(avg_max_temp=8)
        assert temperature_penalty(mild, Persona.COMPETITION).delta == 0
        assert temperature_penalty(mild, Persona.EXPERIENCE).delta == -20


class TestWeatherPenalties:
    """Tests for stability, rain, acclimatization and mud."""

    def test_stability(self):
        """Test the diurnal swing penalty."""
        outcome = evaluate_stability(stats(avg_max_temp=20, avg_min_temp=2))
        assert outcome.delta == -15
        assert outcome.reasons == ["High Temp Swing (18.0°C)"]
        assert evaluate_stability(stats(avg_max_temp=17, avg_min_temp=2)).delta == 0

    def test_rain_risk(self):
        """Test the rain probability threshold."""
        assert evaluate_rain_risk(stats(rain_probability=50)).delta == 0
        outcome = evaluate_rain_risk(stats(rain_probability=60))
        assert outcome.label == "High Rain Risk"
        assert outcome.delta == -40
        assert outcome.reasons == ["High Rain Risk (60%)"]

    def test_heat_shock(self):
        """Test sudden heat in spring only."""
        warm = stats(avg_max_temp=16)
        assert evaluate_heat_shock(warm, date(2026, 5, 16)).delta == -10
        assert evaluate_heat_shock(warm, date(2026, 7, 16)).delta == 0
        assert evaluate_heat_shock(stats(avg_max_temp=15), date(2026, 5, 16)).delta == 0

    def test_cold_shock(self):
        """Test sudden cold in autumn only."""
        cold = stats(avg_max_temp=4)
        assert evaluate_cold_shock(cold, date(2026, 10, 10)).delta == -10
        assert evaluate_cold_shock(cold, date(2026, 2, 10)).delta == 0

    def test_mud_monotonic(self):
        """Test that more mud never means a smaller penalty."""
        indexes = [0, 2, 5, 5.1, 10, 15, 15.1, 40]
        penalties = [mud_penalty(i) for i in indexes]
        assert penalties == sorted(penalties, reverse=True)
        assert penalties[-1] == -30

    def test_mud_labels(self):
        """Test mud labels and reasons."""
        assert evaluate_mud(stats(mud_index=3)).label == "Muddy"
        assert evaluate_mud(stats(mud_index=8)).reasons == ["Muddy Trails"]
        very = evaluate_mud(stats(mud_index=20))
        assert very.label == "Very Muddy"
        assert very.reasons == ["Very Muddy Trails (Index: 20.0)"]

    def test_engine_order(self, mild_stats: WeatherStats):
        """Test that every category is reported, in order."""
        outcomes = WeatherPenaltyEngine(Persona.COMPETITION).evaluate(mild_stats, SATURDAY)

        assert [o.label for o in outcomes] == [
            "Ideal Temp (8.0°C)",
            "Temp Stability",
            "Rain Risk",
            "Heat Shock Risk",
            "Cold Shock Risk",
            "Muddy",
        ]
        assert sum(o.delta for o in outcomes) == 0
