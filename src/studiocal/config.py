"""
Configuration

Runtime settings for a schedule run, read from the environment (and a local .env file).
"""

import os
from dataclasses import dataclass, replace
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

FULL_MODE = "full"
INCREMENTAL_MODE = "incremental"
REFRESH_MODES = (FULL_MODE, INCREMENTAL_MODE)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


@dataclass(frozen=True)
class Settings:
    """Settings for one schedule run."""
    location_id: str = "yogasix-edgewater"
    venue_name: str = "YogaSix Edgewater"
    timezone: str = "America/Chicago"
    api_base: str = "https://members.yogasix.com/api/v2"
    booking_url: str = "https://members.yogasix.com/book/yogasix-edgewater"
    days_forward: int = 7
    days_back: int = 0
    mode: str = FULL_MODE
    output_dir: str = "site"
    cache_file: str = "cache/schedule.json"
    cache_retention_days: int = 14
    category_rules_file: Optional[str] = None
    fetch_timeout: float = 30.0
    database_url: Optional[str] = None

    def __post_init__(self):
        if self.mode not in REFRESH_MODES:
            raise ValueError(f"Unknown refresh mode: {self.mode} (expected one of {', '.join(REFRESH_MODES)})")
        if self.days_forward < 0 or self.days_back < 0:
            raise ValueError("Schedule window days must not be negative")
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {self.timezone}")

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.

        Unset variables fall back to the defaults declared on the class.
        """
        defaults = cls()
        return cls(
            location_id=os.getenv("STUDIO_LOCATION") or defaults.location_id,
            venue_name=os.getenv("STUDIO_NAME") or defaults.venue_name,
            timezone=os.getenv("STUDIO_TIMEZONE") or defaults.timezone,
            api_base=os.getenv("SCHEDULE_API_BASE") or defaults.api_base,
            booking_url=os.getenv("BOOKING_URL") or defaults.booking_url,
            days_forward=_env_int("SCHEDULE_DAYS", defaults.days_forward),
            days_back=_env_int("SCHEDULE_DAYS_BACK", defaults.days_back),
            mode=(os.getenv("REFRESH_MODE") or defaults.mode).lower(),
            output_dir=os.getenv("OUTPUT_DIR") or defaults.output_dir,
            cache_file=os.getenv("CACHE_FILE") or defaults.cache_file,
            cache_retention_days=_env_int("CACHE_RETENTION_DAYS", defaults.cache_retention_days),
            category_rules_file=os.getenv("CATEGORY_RULES_FILE") or None,
            fetch_timeout=float(os.getenv("FETCH_TIMEOUT") or defaults.fetch_timeout),
            database_url=os.getenv("DATABASE_URL") or None,
        )

    def with_overrides(self, **overrides) -> "Settings":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)
