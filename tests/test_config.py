import pytest

from studiocal.config import FULL_MODE, INCREMENTAL_MODE, Settings

ENV_NAMES = [
    "STUDIO_LOCATION", "STUDIO_NAME", "STUDIO_TIMEZONE", "SCHEDULE_API_BASE", "BOOKING_URL",
    "SCHEDULE_DAYS", "SCHEDULE_DAYS_BACK", "REFRESH_MODE", "OUTPUT_DIR", "CACHE_FILE",
    "CACHE_RETENTION_DAYS", "CATEGORY_RULES_FILE", "FETCH_TIMEOUT", "DATABASE_URL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_environment():
    settings = Settings.from_env()

    assert settings == Settings()
    assert settings.mode == FULL_MODE
    assert settings.days_forward == 7
    assert settings.database_url is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("STUDIO_LOCATION", "y6-denver")
    monkeypatch.setenv("STUDIO_TIMEZONE", "America/Denver")
    monkeypatch.setenv("SCHEDULE_DAYS", "14")
    monkeypatch.setenv("REFRESH_MODE", "Incremental")
    monkeypatch.setenv("CACHE_RETENTION_DAYS", "0")
    monkeypatch.setenv("FETCH_TIMEOUT", "5")

    settings = Settings.from_env()

    assert settings.location_id == "y6-denver"
    assert settings.timezone == "America/Denver"
    assert settings.days_forward == 14
    assert settings.mode == INCREMENTAL_MODE
    assert settings.cache_retention_days == 0
    assert settings.fetch_timeout == 5.0


@pytest.mark.parametrize("name,value", [
    ("REFRESH_MODE", "sometimes"),
    ("STUDIO_TIMEZONE", "Nowhere/City"),
    ("SCHEDULE_DAYS", "a week"),
    ("SCHEDULE_DAYS", "-1"),
])
def test_invalid_environment(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        Settings.from_env()


def test_overrides_skip_none():
    settings = Settings().with_overrides(mode=INCREMENTAL_MODE, days_forward=None, output_dir="public")

    assert settings.mode == INCREMENTAL_MODE
    assert settings.days_forward == 7
    assert settings.output_dir == "public"
