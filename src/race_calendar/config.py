"""Application configuration.

Configuration is loaded from environment variables using pydantic-settings.
No secrets are needed: both upstream services are free and keyless, but
they ask for an identifying User-Agent.

## Optional Environment Variables

- LOG_LEVEL: Root log level for the CLI (default: INFO)
- USER_AGENT: User-Agent sent to weather and holiday services
  (default: derived from APP_NAME and APP_VERSION)
- HISTORY_YEARS: Number of trailing years sampled for weather statistics
- REQUEST_INTERVAL_SECONDS: Minimum spacing between archive requests
- DEFAULT_TIMEZONE: Timezone used when a location has none

## Example .env file

```
LOG_LEVEL=DEBUG
USER_AGENT=race-calendar/0.1.0 contact@example.com
HISTORY_YEARS=5
```
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Race Calendar"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # HTTP
    user_agent: str | None = Field(
        default=None,
        description="User-Agent for upstream APIs (default: app name and version)",
    )
    request_timeout_seconds: float = Field(default=30.0, gt=0)

    # Weather archive (Open-Meteo)
    weather_archive_url: str = "https://archive-api.open-meteo.com/v1/archive"
    history_years: int = Field(
        default=10, ge=1, le=30, description="Trailing sample years per target year"
    )
    lead_days: int = Field(
        default=5,
        ge=3,
        description="Extra days fetched before the first scored day (mud index)",
    )
    archive_lag_days: int = Field(
        default=5, ge=0, description="Days before today the archive is complete"
    )
    request_interval_seconds: float = Field(
        default=0.4, ge=0, description="Minimum spacing between archive requests"
    )

    # Holidays (OpenHolidays)
    holidays_api_url: str = "https://openholidaysapi.org"
    holiday_country_code: str = Field(default="DE", min_length=2, max_length=2)
    holiday_language_code: str = Field(default="DE", min_length=2, max_length=2)

    # Scoring
    default_timezone: str = "Europe/Berlin"

    @field_validator("log_level", mode="before")
    @classmethod
    def normalise_log_level(cls, v: str) -> str:
        """Accept log levels in any case."""
        return v.upper() if isinstance(v, str) else v

    @field_validator("default_timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Ensure the default timezone is a known IANA zone."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: '{v}'") from e
        return v

    @property
    def http_user_agent(self) -> str:
        """User-Agent header value, e.g. 'race-calendar/0.1.0'."""
        if self.user_agent:
            return self.user_agent
        return f"{self.app_name.lower().replace(' ', '-')}/{self.app_version}"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are loaded once and cached. To reload, clear the cache:
    ```python
    get_settings.cache_clear()
    ```
    """
    return Settings()


def get_settings_uncached() -> Settings:
    """Get fresh settings without caching.

    Useful for testing when environment variables change.
    """
    return Settings()
