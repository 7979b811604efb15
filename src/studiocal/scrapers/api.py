"""
Schedule API Scraper

Reads the studio's public schedule entries endpoint.
"""

import json
from datetime import date
from typing import Any, Optional

import httpx

from ..config import Settings
from ..errors import FetchFailure
from .base import BaseScraper


class ScheduleApiScraper(BaseScraper):
    """Scraper for the members schedule JSON API."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        super().__init__("api", settings)
        self._client = client
        self._owns_client = client is None

    def schedule_url(self, location_id: str) -> str:
        return f"{self.settings.api_base.rstrip('/')}/locations/{location_id}/schedule_entries"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.fetch_timeout,
                follow_redirects=True,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def fetch(self, location_id: str, start_date: date, end_date: date) -> Any:
        url = self.schedule_url(location_id)
        params = {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()}
        print(f"Fetching schedule from: {url} ({params['start_date']} → {params['end_date']})")

        try:
            resp = await self._get_client().get(url, params=params)
        except httpx.HTTPError as e:
            raise FetchFailure(f"Schedule API request failed: {e}")

        if not resp.is_success:
            raise FetchFailure(f"Schedule API failed: {resp.status_code}", status_code=resp.status_code)

        try:
            return resp.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise FetchFailure(f"Schedule API returned invalid JSON: {e}", status_code=resp.status_code)

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
