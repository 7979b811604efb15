"""
Time Utilities

Parses the date encodings found in schedule feeds and computes venue-local
day boundaries. Every instant returned here is timezone-aware.
"""

import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional, Tuple, Union
from zoneinfo import ZoneInfo

TzLike = Union[str, ZoneInfo, timezone, None]

# Epoch values above this are taken to be milliseconds
_EPOCH_MS_THRESHOLD = 1e11

# Keys used by feeds that wrap a date-time in an object
_DATETIME_KEYS = ("dateTime", "date_time", "datetime", "iso", "value")


def get_zone(tz: TzLike):
    """Resolve a timezone name (or tzinfo) to a tzinfo; None means UTC."""
    if tz is None:
        return timezone.utc
    if isinstance(tz, str):
        return ZoneInfo(tz)
    return tz


def _localize(value: datetime, zone) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=zone)
    return value


def _parse_text(text: str, zone) -> Optional[datetime]:
    text = text.strip()
    if not text:
        return None
    # fromisoformat on older interpreters does not accept a trailing Z
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return _localize(datetime.fromisoformat(text), zone)
    except ValueError:
        pass
    try:
        day = date.fromisoformat(text)
    except ValueError:
        return None
    return datetime.combine(day, time.min, tzinfo=zone)


def _parse_epoch(number: float) -> Optional[datetime]:
    if not math.isfinite(number):
        return None
    seconds = number / 1000 if abs(number) > _EPOCH_MS_THRESHOLD else number
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _parse_mapping(value: dict, zone) -> Optional[datetime]:
    tz_name = value.get("timeZone") or value.get("timezone")
    if isinstance(tz_name, str):
        try:
            zone = ZoneInfo(tz_name)
        except (KeyError, ValueError):
            return None

    for key in _DATETIME_KEYS:
        if key in value:
            return parse_instant(value[key], zone)

    if "date" in value:
        day_value = value["date"]
        time_value = value.get("time") or value.get("start_time")
        if isinstance(day_value, str) and isinstance(time_value, str):
            return parse_instant(f"{day_value.strip()}T{time_value.strip()}", zone)
        return parse_instant(day_value, zone)
    return None


def parse_instant(value: Any, tz: TzLike = None) -> Optional[datetime]:
    """
    Convert a date-ish feed value into an aware datetime.

    Args:
        value: ISO string, date-only string, epoch number, date/datetime, or a
            mapping such as {"dateTime": ...} or {"date": ..., "time": ...}
        tz: Timezone used for values that carry no offset of their own

    Returns:
        The parsed instant, or None when the value is not a valid calendar instant
    """
    zone = get_zone(tz)

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _localize(value, zone)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=zone)
    if isinstance(value, (int, float)):
        try:
            seconds = float(value)
        except OverflowError:
            return None
        return _parse_epoch(seconds)
    if isinstance(value, str):
        return _parse_text(value, zone)
    if isinstance(value, dict):
        return _parse_mapping(value, zone)
    return None


def local_today(tz: TzLike, now: Optional[datetime] = None) -> date:
    """Calendar date of "today" in the given timezone."""
    zone = get_zone(tz)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(zone).date()


def query_window(days_forward: int, tz: TzLike, now: Optional[datetime] = None,
                 days_back: int = 0) -> Tuple[date, date]:
    """
    Compute the (start_date, end_date) pair used to query the feed.

    Both dates are venue-local calendar dates: the feed's day boundaries
    follow the venue, not the machine running the scraper.
    """
    today = local_today(tz, now)
    return today - timedelta(days=days_back), today + timedelta(days=days_forward)


def start_of_today_local(tz: TzLike, now: Optional[datetime] = None) -> datetime:
    """Instant of 00:00 local time today in the given timezone."""
    zone = get_zone(tz)
    return datetime.combine(local_today(zone, now), time.min, tzinfo=zone)


def is_upcoming(session, threshold: datetime) -> bool:
    """A session is still upcoming when it starts at or after the threshold."""
    return session.start >= threshold
