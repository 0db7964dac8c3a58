"""Open-Meteo historical weather provider.

## API Documentation Summary
Source: https://open-meteo.com/en/docs/historical-weather-api

## Endpoint
- Base URL: https://archive-api.open-meteo.com/v1/archive
- Full URL example:
  https://archive-api.open-meteo.com/v1/archive?latitude=49.45&longitude=11.08
  &start_date=2019-04-26&end_date=2019-05-31
  &daily=temperature_2m_max,precipitation_sum&timezone=auto

## Authentication
- No API key required

## Rate Limiting
- 10,000 calls/day, 5,000/hour, 600/minute for non-commercial use
- Exceeding a limit returns 429; callers should space requests

## Response Format
```json
{
  "latitude": 49.44,
  "longitude": 11.08,
  "timezone": "Europe/Berlin",
  "daily_units": {"temperature_2m_max": "°C", "wind_speed_10m_max": "km/h"},
  "daily": {
    "time": ["2019-04-26", "2019-04-27"],
    "temperature_2m_max": [17.3, null],
    "precipitation_sum": [0.0, 2.4]
  }
}
```

## Variable Translation (Open-Meteo -> Canonical)
| Open-Meteo Field | DailySeries Field | Unit |
|------------------|-------------------|------|
| temperature_2m_max | temperature_max | °C |
| temperature_2m_min | temperature_min | °C |
| precipitation_sum | precipitation | mm |
| relative_humidity_2m_mean | humidity_mean | % |
| wind_speed_10m_max | wind_speed_max | km/h |
"""

from __future__ import annotations

import datetime
import logging
from typing import Any

from race_calendar.models.location import Coordinates
from race_calendar.models.weather import DailySeries
from race_calendar.providers.base import HistoryProvider, ProviderError

logger = logging.getLogger(__name__)


# Open-Meteo daily variable -> DailySeries column
DAILY_VARIABLES: dict[str, str] = {
    "temperature_2m_max": "temperature_max",
    "temperature_2m_min": "temperature_min",
    "precipitation_sum": "precipitation",
    "relative_humidity_2m_mean": "humidity_mean",
    "wind_speed_10m_max": "wind_speed_max",
}


class OpenMeteoArchiveProvider(HistoryProvider):
    """Open-Meteo historical weather (ERA5 reanalysis) provider.

    Example:
        ```python
        async with OpenMeteoArchiveProvider() as provider:
            series = await provider.get_daily_history(
                Coordinates(latitude=49.4521, longitude=11.0767),
                date(2019, 4, 26),
                date(2019, 5, 31),
            )
        ```
    """

    name = "open-meteo"
    base_url = "https://archive-api.open-meteo.com/v1/archive"

    async def get_daily_history(
        self,
        coordinates: Coordinates,
        start: datetime.date,
        end: datetime.date,
    ) -> DailySeries:
        """Get daily history from the Open-Meteo archive.

        Args:
            coordinates: Location (lat/lon)
            start: First day (inclusive)
            end: Last day (inclusive)

        Returns:
            DailySeries in canonical format

        Raises:
            ProviderError: If request fails or the payload is malformed
        """
        if end < start:
            raise ValueError(f"end ({end}) is before start ({start})")

        params = {
            "latitude": round(coordinates.latitude, 4),
            "longitude": round(coordinates.longitude, 4),
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "daily": ",".join(DAILY_VARIABLES),
            "timezone": "auto",
        }

        logger.debug(f"Fetching archive {start}..{end} for {coordinates}")
        data = await self._get_json(self.base_url, params=params)
        return self._translate_response(data, coordinates)

    def _translate_response(
        self,
        response_data: dict[str, Any],
        coordinates: Coordinates,
    ) -> DailySeries:
        """Translate an Open-Meteo archive response to canonical format.

        See module docstring for the field mapping.
        """
        daily = response_data.get("daily") if isinstance(response_data, dict) else None
        if not isinstance(daily, dict) or not isinstance(daily.get("time"), list):
            raise ProviderError(
                "Malformed archive response: missing daily.time",
                provider=self.name,
            )

        try:
            dates = [datetime.date.fromisoformat(value) for value in daily["time"]]
        except (TypeError, ValueError) as e:
            raise ProviderError(
                f"Malformed archive response: {e}", provider=self.name
            ) from e

        columns: dict[str, list[float | None]] = {}
        for source_field, column in DAILY_VARIABLES.items():
            values = daily.get(source_field)
            if not isinstance(values, list):
                logger.debug(f"Archive response has no '{source_field}' column")
                values = []
            columns[column] = [
                float(v) if isinstance(v, (int, float)) else None for v in values
            ]

        return DailySeries(coordinates=coordinates, dates=dates, **columns)
