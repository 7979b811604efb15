"""
Browser Scraper

Loads the public booking page in headless Chrome and collects every JSON
response the page fetches. The schedule's transport shape is not stable, so
the session list is found by mining those responses rather than by path.
"""

import asyncio
import base64
import json
import time
from datetime import date
from typing import Any, Dict, List

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.support.ui import WebDriverWait
from webdriver_manager.chrome import ChromeDriverManager

from ..config import Settings
from ..errors import FetchFailure, NoScheduleData
from ..schedule.miner import mine_session_array
from .base import BaseScraper


def collect_json_payloads(driver) -> List[Any]:
    """
    Read Chrome's performance log and decode every JSON response body.

    Args:
        driver: Chrome WebDriver started with performance logging enabled

    Returns:
        Decoded payloads in the order the responses arrived
    """
    payloads = []

    for entry in driver.get_log("performance"):
        try:
            message = json.loads(entry["message"])["message"]
        except (KeyError, TypeError, json.JSONDecodeError):
            continue

        if message.get("method") != "Network.responseReceived":
            continue

        params = message.get("params", {})
        response = params.get("response", {})
        headers = {k.lower(): v for k, v in (response.get("headers") or {}).items()}
        content_type = response.get("mimeType") or headers.get("content-type", "")
        if "json" not in content_type:
            continue

        try:
            body = driver.execute_cdp_cmd("Network.getResponseBody", {"requestId": params["requestId"]})
            text = body.get("body", "")
            if body.get("base64Encoded"):
                text = base64.b64decode(text).decode("utf-8")
            payloads.append(json.loads(text))
        except (WebDriverException, KeyError, ValueError):
            # Bodies of redirects and evicted responses are not retrievable
            continue

    return payloads


class BrowserScraper(BaseScraper):
    """Scraper that sniffs the booking page's own API traffic."""

    def __init__(self, settings: Settings, headless: bool = True, settle_seconds: float = 5.0):
        super().__init__("browser", settings)
        self.headless = headless
        self.settle_seconds = settle_seconds
        self.page_timeout = 120

    def setup_driver(self) -> webdriver.Chrome:
        """Set up Chrome WebDriver with network logging enabled."""
        chrome_options = Options()

        if self.headless:
            chrome_options.add_argument("--headless=new")

        chrome_options.add_argument("--window-size=1920,1080")
        chrome_options.add_argument("--no-sandbox")
        chrome_options.add_argument("--disable-dev-shm-usage")
        chrome_options.add_argument(
            "user-agent=Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/136.0.7103.92 Safari/537.36"
        )
        chrome_options.add_argument('--disable-blink-features=AutomationControlled')
        chrome_options.add_experimental_option("excludeSwitches", ["enable-automation"])
        chrome_options.add_experimental_option('useAutomationExtension', False)
        chrome_options.set_capability("goog:loggingPrefs", {"performance": "ALL"})

        service = Service(ChromeDriverManager().install())
        driver = webdriver.Chrome(service=service, options=chrome_options)
        driver.set_page_load_timeout(self.page_timeout)
        driver.execute_cdp_cmd("Network.enable", {})

        return driver

    def _scrape_payloads(self) -> List[Any]:
        driver = None
        try:
            driver = self.setup_driver()
            driver.get(self.settings.booking_url)
            WebDriverWait(driver, self.page_timeout).until(
                lambda d: d.execute_script("return document.readyState") == "complete"
            )
            # Schedule widgets keep loading after the document is ready
            time.sleep(self.settle_seconds)
            return collect_json_payloads(driver)
        except (TimeoutException, WebDriverException) as e:
            raise FetchFailure(f"Booking page could not be loaded: {e}")
        finally:
            if driver:
                driver.quit()

    async def fetch(self, location_id: str, start_date: date, end_date: date) -> Any:
        # The booking page decides its own window; location and dates are informational
        print(f"Loading booking page: {self.settings.booking_url}")
        payloads = await asyncio.to_thread(self._scrape_payloads)
        print(f"Captured {len(payloads)} JSON responses")
        return payloads

    async def fetch_records(self, location_id: str, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        payloads = await self.fetch(location_id, start_date, end_date)
        records = mine_session_array(payloads)
        if not records:
            raise NoScheduleData("No session-like array found in the booking page's JSON responses")
        return records
