import base64
import json
from datetime import date

import pytest
from selenium.common.exceptions import WebDriverException

from studiocal.errors import NoScheduleData
from studiocal.scrapers.browser import BrowserScraper, collect_json_payloads


def log_entry(request_id, mime_type="application/json", method="Network.responseReceived"):
    message = {
        "message": {
            "method": method,
            "params": {"requestId": request_id, "response": {"mimeType": mime_type, "headers": {}}},
        }
    }
    return {"message": json.dumps(message)}


class FakeDriver:
    def __init__(self, entries, bodies):
        self.entries = entries
        self.bodies = bodies

    def get_log(self, log_type):
        assert log_type == "performance"
        return self.entries

    def execute_cdp_cmd(self, cmd, params):
        assert cmd == "Network.getResponseBody"
        body = self.bodies[params["requestId"]]
        if isinstance(body, Exception):
            raise body
        return body


def test_collects_only_json_bodies():
    sessions = [{"startDateTime": "2024-01-02T09:00:00Z", "className": "Flow"}]
    encoded = base64.b64encode(json.dumps({"data": sessions}).encode()).decode()
    driver = FakeDriver(
        [
            log_entry("1"),
            log_entry("2", mime_type="text/html"),
            log_entry("3", method="Network.requestWillBeSent"),
            log_entry("4"),
            log_entry("5"),
            {"message": "not json"},
            log_entry("6"),
        ],
        {
            "1": {"body": json.dumps({"nav": [{"label": "Home"}]})},
            "4": {"body": encoded, "base64Encoded": True},
            "5": WebDriverException("No resource with given identifier"),
            "6": {"body": "{broken"},
        },
    )

    assert collect_json_payloads(driver) == [{"nav": [{"label": "Home"}]}, {"data": sessions}]


@pytest.mark.asyncio
async def test_fetch_records_mines_captured_payloads(settings, monkeypatch):
    sessions = [{"startDateTime": "2024-01-02T09:00:00Z", "className": "Flow", "instructorName": "Ana"}]
    scraper = BrowserScraper(settings)
    monkeypatch.setattr(scraper, "_scrape_payloads", lambda: [{"nav": [{"label": "Home"}]}, {"data": sessions}])

    records = await scraper.fetch_records("test-studio", date(2024, 1, 1), date(2024, 1, 8))

    assert records == sessions


@pytest.mark.asyncio
async def test_fetch_records_without_session_array(settings, monkeypatch):
    scraper = BrowserScraper(settings)
    monkeypatch.setattr(scraper, "_scrape_payloads", lambda: [{"nav": [{"label": "Home"}]}])

    with pytest.raises(NoScheduleData):
        await scraper.fetch_records("test-studio", date(2024, 1, 1), date(2024, 1, 8))
