"""
Pytest fixtures shared by the studiocal test suite.
"""
from datetime import date, datetime, timezone
from typing import Any, List

import pytest

from studiocal.config import Settings
from studiocal.scrapers.base import BaseScraper

# 06:00 in Chicago on Jan 1st 2024
NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeScraper(BaseScraper):
    """In-memory scraper returning a fixed payload (or raising a fixed error)."""

    def __init__(self, settings: Settings, payload: Any = None, error: Exception = None):
        super().__init__("fake", settings)
        self.payload = payload
        self.error = error
        self.calls: List[tuple] = []
        self.closed = False

    async def fetch(self, location_id: str, start_date: date, end_date: date) -> Any:
        self.calls.append((location_id, start_date, end_date))
        if self.error is not None:
            raise self.error
        return self.payload

    async def close(self) -> None:
        self.closed = True


def api_entry(entry_id, start, end=None, name="Y6 Power", instructor="Jess", **extra):
    """Record in the shape returned by the schedule_entries API."""
    record = {
        "id": entry_id,
        "start_datetime": start,
        "class_type": {"name": name},
        "instructor": {"name": instructor},
    }
    if end is not None:
        record["end_datetime"] = end
    record.update(extra)
    return record


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        location_id="test-studio",
        venue_name="Test Studio",
        timezone="America/Chicago",
        booking_url="https://example.com/book/test-studio",
        output_dir=str(tmp_path / "site"),
        cache_file=str(tmp_path / "cache" / "schedule.json"),
        database_url=None,
    )


@pytest.fixture
def schedule_payload():
    return {
        "schedule_entries": [
            api_entry(1, "2024-01-02T09:00:00-06:00", "2024-01-02T10:00:00-06:00",
                      name="Y6 Sculpt & Flow", free_spots=3, capacity=20),
            api_entry(2, "2024-01-02T12:00:00-06:00", "2024-01-02T13:00:00-06:00",
                      name="Y6 Slow Flow", instructor="Ana", free_spots=0, capacity=12,
                      has_waitlist=True, waitlist_size=4),
            api_entry(3, "2024-01-03T07:00:00-06:00", name="Hot Flow"),
            api_entry(4, "2023-12-30T07:00:00-06:00", name="Y6 Restore"),
            api_entry(5, "not a date", name="Y6 Yin"),
        ]
    }
