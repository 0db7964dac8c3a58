"""Calendar inputs: holidays and other events that compete for the same date."""

from __future__ import annotations

import calendar
import datetime
from collections.abc import Iterable
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from race_calendar.models.location import Coordinates


class HolidayKind(str, Enum):
    """Legal holidays versus school breaks."""

    PUBLIC = "public"
    SCHOOL = "school"


class Holiday(BaseModel):
    """A single holiday day for a region."""

    model_config = {"frozen": True}

    date: datetime.date
    name: str
    kind: HolidayKind = HolidayKind.PUBLIC


def build_holiday_map(holidays: Iterable[Holiday]) -> dict[datetime.date, Holiday]:
    """Index holidays by day.

    A day maps to at most one holiday; the first one seen wins, so callers
    control priority through ordering.
    """
    holiday_map: dict[datetime.date, Holiday] = {}
    for holiday in holidays:
        holiday_map.setdefault(holiday.date, holiday)
    return holiday_map


class ConflictingEvent(BaseModel):
    """Another race that could draw away participants or volunteers.

    Events scraped from race calendars sometimes only carry a month, and
    sometimes could not be geocoded. Events without coordinates never
    conflict.
    """

    model_config = {"frozen": True}

    name: str
    date: datetime.date
    end_date: datetime.date | None = Field(
        default=None, description="Last day for multi-day events"
    )
    date_precision: Literal["day", "month"] = "day"
    coordinates: Coordinates | None = None
    location_name: str | None = None
    url: str | None = None
    source: str | None = None

    @model_validator(mode="after")
    def validate_range(self) -> ConflictingEvent:
        """Ensure a multi-day event does not end before it starts."""
        if self.end_date is not None and self.end_date < self.date:
            raise ValueError("end_date must not be before date")
        return self

    def covers(self, day: datetime.date) -> bool:
        """Check whether the event takes place on the given day."""
        if self.date_precision == "month":
            last = self.end_date or self.date
            first_day = self.date.replace(day=1)
            last_day = last.replace(day=calendar.monthrange(last.year, last.month)[1])
            return first_day <= day <= last_day
        return self.date <= day <= (self.end_date or self.date)

    def distance_km(self, point: Coordinates) -> float | None:
        """Distance from the event to a point, or None if it is not geocoded."""
        if self.coordinates is None:
            return None
        return self.coordinates.distance_km(point)
