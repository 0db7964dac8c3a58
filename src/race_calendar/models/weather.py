"""Historical weather models.

Two shapes live here:

- `DailySeries`: one retrieval of daily archive values for one point and one
  sample year, exactly as the provider returned them (values may be missing).
- `WeatherStats`: the per-calendar-day summary across all sample years that
  the scoring engine consumes.

## Canonical Units
- Temperature: Celsius (°C)
- Wind speed: kilometres per hour (km/h), daily maximum at 10 m
- Precipitation: millimetres (mm), daily sum
- Humidity: percentage (0-100), daily mean
- Probabilities: percentage (0-100)
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field, model_validator

from race_calendar.models.location import Coordinates


class DailySeries(BaseModel):
    """Raw daily archive values for one point over one date window."""

    coordinates: Coordinates
    dates: list[date] = Field(default_factory=list)
    temperature_max: list[float | None] = Field(default_factory=list)
    temperature_min: list[float | None] = Field(default_factory=list)
    precipitation: list[float | None] = Field(default_factory=list)
    humidity_mean: list[float | None] = Field(default_factory=list)
    wind_speed_max: list[float | None] = Field(default_factory=list)

    @model_validator(mode="after")
    def pad_columns(self) -> DailySeries:
        """Pad short or absent columns with None so every column aligns with dates."""
        size = len(self.dates)
        for name in (
            "temperature_max",
            "temperature_min",
            "precipitation",
            "humidity_mean",
            "wind_speed_max",
        ):
            column = getattr(self, name)
            if len(column) < size:
                column.extend([None] * (size - len(column)))
            elif len(column) > size:
                del column[size:]
        return self

    def index(self) -> dict[date, int]:
        """Map each date in the window to its row."""
        return {day: i for i, day in enumerate(self.dates)}

    def __len__(self) -> int:
        return len(self.dates)


class WeatherHistory(BaseModel):
    """Per-sample-year values behind one WeatherStats entry.

    Kept for display only; scoring never reads or mutates it.
    """

    years: list[int] = Field(default_factory=list)
    temps: list[float] = Field(default_factory=list)
    temps_min: list[float] = Field(default_factory=list)
    rain: list[float] = Field(default_factory=list)
    humidities: list[float] = Field(default_factory=list)
    winds: list[float] = Field(default_factory=list)


class WeatherStats(BaseModel):
    """Aggregated weather for one calendar day across the sample years."""

    avg_max_temp: float = Field(..., description="Mean daily max temperature (°C)")
    avg_min_temp: float = Field(..., description="Mean daily min temperature (°C)")
    avg_humidity: float = Field(
        default=50.0, ge=0, le=100, description="Mean relative humidity (%)"
    )
    max_wind_speed: float = Field(
        default=0.0, ge=0, description="Mean of the daily maximum wind speed (km/h)"
    )
    avg_precipitation: float = Field(
        default=0.0, ge=0, description="Mean daily precipitation (mm)"
    )
    rain_probability: float = Field(
        default=0.0, ge=0, le=100, description="Share of years with > 1 mm (%)"
    )
    heavy_rain_probability: float = Field(
        default=0.0, ge=0, le=100, description="Share of years with > 5 mm (%)"
    )
    mud_index: float = Field(
        default=0.0,
        ge=0,
        description="Mean trailing 3-day precipitation ending the day before (mm/day)",
    )
    sample_years: int = Field(
        default=0, ge=0, description="Number of sample years behind these values"
    )
    history: WeatherHistory = Field(default_factory=WeatherHistory)

    @property
    def temperature_swing(self) -> float:
        """Diurnal range between the mean max and mean min temperature."""
        return self.avg_max_temp - self.avg_min_temp
