"""OpenHolidays public and school holiday provider.

## API Documentation Summary
Source: https://www.openholidaysapi.org/en/

## Endpoints
- https://openholidaysapi.org/PublicHolidays
- https://openholidaysapi.org/SchoolHolidays

Query parameters: countryIsoCode, languageIsoCode, validFrom, validTo,
subdivisionCode (e.g. "DE-BY").

## Response Format
```json
[
  {
    "startDate": "2025-08-04",
    "endDate": "2025-09-15",
    "type": "School",
    "name": [{"language": "DE", "text": "Sommerferien"}]
  }
]
```
"""

from __future__ import annotations

import datetime
import logging
from typing import Any

from race_calendar.models.calendar import Holiday, HolidayKind
from race_calendar.providers.base import HolidayProvider, ProviderError

logger = logging.getLogger(__name__)


ENDPOINTS: dict[HolidayKind, str] = {
    HolidayKind.PUBLIC: "PublicHolidays",
    HolidayKind.SCHOOL: "SchoolHolidays",
}

FALLBACK_NAMES: dict[HolidayKind, str] = {
    HolidayKind.PUBLIC: "Public Holiday",
    HolidayKind.SCHOOL: "School Holiday",
}


class OpenHolidaysProvider(HolidayProvider):
    """OpenHolidays API provider.

    Results are cached per (year, state) for the lifetime of the instance.
    A failing category is logged and skipped; the other one is still
    returned.
    """

    name = "openholidays"
    base_url = "https://openholidaysapi.org"

    def __init__(
        self,
        country_code: str = "DE",
        language_code: str = "DE",
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.country_code = country_code.upper()
        self.language_code = language_code.upper()
        self._cache: dict[tuple[int, str], list[Holiday]] = {}

    async def get_holidays(self, year: int, state_code: str) -> list[Holiday]:
        """Get public and school holidays for a year and state.

        Args:
            year: Calendar year
            state_code: Subdivision suffix (e.g. "BY" for Bavaria)

        Returns:
            One Holiday per day, public holidays first
        """
        state = state_code.upper()
        cache_key = (year, state)
        if cache_key in self._cache:
            return self._cache[cache_key]

        holidays: list[Holiday] = []
        for kind in (HolidayKind.PUBLIC, HolidayKind.SCHOOL):
            try:
                entries = await self._fetch_category(kind, year, state)
            except ProviderError as e:
                logger.warning(
                    f"Failed to fetch {kind.value} holidays for {year}/{state}: {e}"
                )
                continue
            holidays.extend(self._translate_entries(entries, kind, year))

        logger.info(f"Loaded {len(holidays)} holiday days for {year}/{state}")
        self._cache[cache_key] = holidays
        return holidays

    async def _fetch_category(
        self, kind: HolidayKind, year: int, state: str
    ) -> list[dict[str, Any]]:
        params = {
            "countryIsoCode": self.country_code,
            "languageIsoCode": self.language_code,
            "validFrom": f"{year}-01-01",
            "validTo": f"{year}-12-31",
            "subdivisionCode": f"{self.country_code}-{state}",
        }
        data = await self._get_json(f"{self.base_url}/{ENDPOINTS[kind]}", params)
        if not isinstance(data, list):
            raise ProviderError(
                f"Malformed {ENDPOINTS[kind]} response: expected a list",
                provider=self.name,
            )
        return data

    def _translate_entries(
        self,
        entries: list[dict[str, Any]],
        kind: HolidayKind,
        year: int,
    ) -> list[Holiday]:
        """Expand holiday ranges into one Holiday per day of the year."""
        holidays: list[Holiday] = []
        for entry in entries:
            try:
                start = datetime.date.fromisoformat(entry["startDate"])
                end = datetime.date.fromisoformat(entry.get("endDate") or entry["startDate"])
            except (KeyError, TypeError, ValueError):
                logger.debug(f"Skipping malformed holiday entry: {entry!r}")
                continue

            name = self._pick_name(entry.get("name"), kind)
            day = max(start, datetime.date(year, 1, 1))
            last = min(end, datetime.date(year, 12, 31))
            while day <= last:
                holidays.append(Holiday(date=day, name=name, kind=kind))
                day += datetime.timedelta(days=1)
        return holidays

    def _pick_name(self, names: Any, kind: HolidayKind) -> str:
        """Prefer the configured language, then the first name given."""
        if isinstance(names, list) and names:
            for item in names:
                if isinstance(item, dict) and item.get("language") == self.language_code:
                    if item.get("text"):
                        return item["text"]
            first = names[0]
            if isinstance(first, dict) and first.get("text"):
                return first["text"]
        return FALLBACK_NAMES[kind]
