"""
Base Scraper Class

Provides common functionality for all studio schedule scrapers.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List

from ..config import Settings
from ..schedule.miner import extract_records


class BaseScraper(ABC):
    """Base class for all studio schedule scrapers."""

    def __init__(self, source_name: str, settings: Settings):
        """
        Initialize the scraper.

        Args:
            source_name: Name of the feed this scraper reads
            settings: Run settings (venue, timeouts, URLs)
        """
        self.source_name = source_name
        self.settings = settings

    @abstractmethod
    async def fetch(self, location_id: str, start_date: date, end_date: date) -> Any:
        """
        Fetch the raw schedule payload for a venue and date window.

        Returns:
            Decoded JSON payload

        Raises:
            FetchFailure: If the feed cannot be reached or answers with an error
        """

    async def fetch_records(self, location_id: str, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        """
        Fetch and return the raw session records.

        Raises:
            FetchFailure: If the fetch fails
            NoScheduleData: If the payload holds no session array
        """
        payload = await self.fetch(location_id, start_date, end_date)
        return extract_records(payload)

    async def close(self) -> None:
        """Release any resources held by the scraper."""
