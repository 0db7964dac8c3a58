"""Where an event happens: a point on the globe plus its local timezone."""

from __future__ import annotations

import math
import re
from typing import Self
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator


# "lat,lon" with optional signs, e.g. "49.4521,11.0767" or "-33.87, +151.21"
LAT_LON_PATTERN = re.compile(
    r"^(?P<lat>[-+]?\d*\.?\d+)\s*,\s*(?P<lon>[-+]?\d*\.?\d+)$"
)

EARTH_RADIUS_KM = 6371.0


class Coordinates(BaseModel):
    """A WGS84 point in decimal degrees (north and east positive)."""

    model_config = {"frozen": True}

    latitude: float = Field(..., ge=-90, le=90, description="Degrees north")
    longitude: float = Field(..., ge=-180, le=180, description="Degrees east")

    @classmethod
    def from_string(cls, value: str) -> Self:
        """Build coordinates from a 'lat,lon' string such as '49.4521,11.0767'."""
        parsed = LAT_LON_PATTERN.match(value.strip())
        if parsed is None:
            raise ValueError(
                f"Invalid coordinate format: '{value}'. "
                "Use 'latitude,longitude', e.g. '49.4521,11.0767'"
            )
        return cls(latitude=float(parsed["lat"]), longitude=float(parsed["lon"]))

    def __str__(self) -> str:
        return f"{self.latitude},{self.longitude}"

    def to_tuple(self) -> tuple[float, float]:
        return self.latitude, self.longitude

    def signature(self, precision: int = 4) -> str:
        """Stable key for this point.

        Four decimal places is roughly 11 m, well below the resolution of
        any weather grid.
        """
        return f"{self.latitude:.{precision}f}_{self.longitude:.{precision}f}"

    def distance_km(self, other: Coordinates) -> float:
        """Great-circle (haversine) distance to another point in kilometres."""
        phi1 = math.radians(self.latitude)
        phi2 = math.radians(other.latitude)
        d_phi = math.radians(other.latitude - self.latitude)
        d_lambda = math.radians(other.longitude - self.longitude)

        a = (
            math.sin(d_phi / 2) ** 2
            + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
        )
        return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class Location(BaseModel):
    """The place an event is held.

    The timezone anchors the race start time; when it is missing the
    configured default timezone is used.
    """

    model_config = {"frozen": True}

    coordinates: Coordinates
    name: str | None = Field(default=None, description="Label shown instead of coordinates")
    timezone: str | None = Field(
        default=None, description="IANA zone of the race start, e.g. 'Europe/Berlin'"
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str | None) -> str | None:
        """Reject zones the tz database does not know."""
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: '{v}'") from e
        return v

    @classmethod
    def from_coordinates(
        cls,
        latitude: float,
        longitude: float,
        name: str | None = None,
        timezone: str | None = None,
    ) -> Self:
        point = Coordinates(latitude=latitude, longitude=longitude)
        return cls(coordinates=point, name=name, timezone=timezone)

    @classmethod
    def from_string(cls, value: str, timezone: str | None = None) -> Self:
        """Build a location from a 'lat,lon' string."""
        return cls(coordinates=Coordinates.from_string(value), timezone=timezone)

    def display_name(self) -> str:
        """The name if one was given, otherwise the coordinates."""
        return self.name or str(self.coordinates)
