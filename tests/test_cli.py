import os

import pytest

from studiocal.errors import FetchFailure
from studiocal.scrapers import cli

from conftest import FakeScraper, api_entry


@pytest.fixture
def env(tmp_path, monkeypatch):
    monkeypatch.setenv("STUDIO_LOCATION", "test-studio")
    monkeypatch.setenv("STUDIO_NAME", "Test Studio")
    monkeypatch.setenv("STUDIO_TIMEZONE", "America/Chicago")
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "site"))
    monkeypatch.setenv("CACHE_FILE", str(tmp_path / "cache" / "schedule.json"))
    monkeypatch.delenv("REFRESH_MODE", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("CATEGORY_RULES_FILE", raising=False)
    return tmp_path


def use_fake_scraper(monkeypatch, **kwargs):
    scrapers = []

    def factory(settings, headless):
        scraper = FakeScraper(settings, **kwargs)
        scrapers.append(scraper)
        return scraper

    monkeypatch.setitem(cli.SCRAPERS, "api", factory)
    return scrapers


def test_list_scrapers(capsys):
    cli.main(["--list"])
    out = capsys.readouterr().out
    assert "api" in out
    assert "browser" in out


def test_unknown_scraper_is_reported(settings, capsys):
    assert cli.run_scraper("nope", settings) is False
    assert "Unknown scraper" in capsys.readouterr().out


def test_invalid_mode_is_rejected_by_parser():
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--mode", "sometimes"])
    assert exc_info.value.code == 2


def test_successful_run_exits_zero(env, monkeypatch, capsys):
    payload = {"schedule_entries": [api_entry(1, "2099-01-02T09:00:00-06:00", name="Y6 Sculpt")]}
    scrapers = use_fake_scraper(monkeypatch, payload=payload)

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--days", "3"])

    assert exc_info.value.code == 0
    assert scrapers[0].closed
    assert os.path.exists(env / "site" / "test-studio.ics")
    assert os.path.exists(env / "cache" / "schedule.json")
    out = capsys.readouterr().out
    assert "Classes found: 1" in out
    assert "sculpt: 1" in out


def test_fetch_failure_exits_non_zero(env, monkeypatch, capsys):
    scrapers = use_fake_scraper(monkeypatch, error=FetchFailure("Schedule API failed: 503", status_code=503))

    with pytest.raises(SystemExit) as exc_info:
        cli.main([])

    assert exc_info.value.code == 1
    assert scrapers[0].closed
    assert "Schedule API failed: 503" in capsys.readouterr().err
    assert not os.path.exists(env / "site")


def test_invalid_configuration_exits_non_zero(env, monkeypatch, capsys):
    monkeypatch.setenv("STUDIO_TIMEZONE", "Mars/Olympus_Mons")

    with pytest.raises(SystemExit) as exc_info:
        cli.main([])

    assert exc_info.value.code == 1
    assert "Invalid configuration" in capsys.readouterr().err


def test_invalid_rules_file_exits_non_zero(env, monkeypatch, capsys):
    rules = env / "rules.json"
    rules.write_text('[{"category": "../escape", "patterns": ["flow"]}]')
    monkeypatch.setenv("CATEGORY_RULES_FILE", str(rules))
    scrapers = use_fake_scraper(monkeypatch, payload={"schedule_entries": []})

    with pytest.raises(SystemExit) as exc_info:
        cli.main([])

    assert exc_info.value.code == 1
    assert "must use only" in capsys.readouterr().err
    assert scrapers[0].closed
    assert not os.path.exists(env / "site")
