"""
Session Normalizer

Maps raw feed records onto the canonical Session model.

Each canonical field is resolved through an ordered list of key paths taken
from the different API versions the feed has shipped. Supporting a new
field name means adding it to FIELD_SYNONYMS, nothing else.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..database.models import Session
from ..errors import RecordNormalizationFailure
from .timeutils import TzLike, parse_instant

DEFAULT_TITLE = "Yoga Class"

# Feeds that omit an explicit end time get a one hour class
DEFAULT_SESSION_LENGTH = timedelta(hours=1)

# Canonical field -> key paths in priority order. Dotted paths reach into nested objects.
FIELD_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "uid": ("id", "schedule_entry_id", "scheduleEntryId", "classId", "class_id", "uuid", "uid"),
    "title": ("class_type.name", "classType.name", "className", "class_name", "title", "name", "type"),
    "subtitle": ("subtitle", "class_type.subtitle", "classType.subtitle", "subTitle"),
    "instructor": (
        "instructor.name", "instructor.full_name", "instructorName", "instructor_name",
        "instructor", "staff.name", "staffName", "teacher",
    ),
    "start": ("start_datetime", "startDateTime", "start_time", "startTime", "start", "starts_at"),
    "end": ("end_datetime", "endDateTime", "end_time", "endTime", "end", "ends_at"),
    "capacity": ("capacity", "max_capacity", "maxCapacity", "total_spots", "totalSpots"),
    "free_spots": ("free_spots", "freeSpots", "available_spots", "availableSpots", "spots_available", "open_spots"),
    "has_waitlist": ("has_waitlist", "hasWaitlist", "waitlist_enabled", "waitlistAvailable", "is_waitlist"),
    "waitlist_size": ("waitlist_size", "waitlistSize", "waitlist_count", "waitlistCount"),
    "waitlist_open_until": ("waitlist_open_until", "waitlistOpenUntil", "waitlist_closes_at", "waitlistCloseDateTime"),
    "booking_url": ("booking_url", "bookingUrl", "book_url", "url", "link"),
    "notes": ("description", "class_type.description", "classType.description", "notes"),
}

# Fields that change between fetches without the session itself changing
VOLATILE_FIELDS = ("free_spots", "capacity", "has_waitlist", "waitlist_size", "waitlist_open_until")

_MISSING = object()


def get_path(record: Any, path: str) -> Any:
    """Follow a dotted key path through nested mappings; missing keys give _MISSING."""
    value = record
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def set_path(record: dict, path: str, value: Any) -> None:
    """Set a dotted key path, creating intermediate mappings as needed."""
    parts = path.split(".")
    target = record
    for part in parts[:-1]:
        child = target.get(part)
        if not isinstance(child, dict):
            child = {}
            target[part] = child
        target = child
    target[parts[-1]] = value


def del_path(record: dict, path: str) -> None:
    """Remove a dotted key path if present."""
    parts = path.split(".")
    parent = get_path(record, ".".join(parts[:-1])) if len(parts) > 1 else record
    if isinstance(parent, dict):
        parent.pop(parts[-1], None)


def has_path(record: Any, path: str) -> bool:
    return get_path(record, path) is not _MISSING


def coalesce(record: Dict[str, Any], *paths: str, default=None):
    """Return the first non-None, non-empty value found under the given key paths."""
    for path in paths:
        value = get_path(record, path)
        if value is _MISSING or value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        # An instructor object without a usable name is not a name
        if isinstance(value, (dict, list)):
            continue
        return value
    return default


def first_instant(record: Dict[str, Any], paths: Iterable[str], tz: TzLike) -> Optional[datetime]:
    """Return the first value under the given paths that parses as an instant."""
    for path in paths:
        value = get_path(record, path)
        if value is _MISSING:
            continue
        parsed = parse_instant(value, tz)
        if parsed is not None:
            return parsed
    return None


def first_int(record: Dict[str, Any], paths: Iterable[str]) -> Optional[int]:
    """Return the first numeric value under the given paths; strings are never coerced."""
    for path in paths:
        value = get_path(record, path)
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
    return None


def first_bool(record: Dict[str, Any], paths: Iterable[str]) -> Optional[bool]:
    for path in paths:
        value = get_path(record, path)
        if isinstance(value, bool):
            return value
    return None


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def identity_key(record: Dict[str, Any], tz: TzLike = None) -> Optional[str]:
    """
    Stable identity of a raw record.

    Records without an id fall back to "<start>|<title>"; records without a
    parseable start have no identity at all.
    """
    uid = coalesce(record, *FIELD_SYNONYMS["uid"])
    if uid is not None:
        return str(uid)
    start = first_instant(record, FIELD_SYNONYMS["start"], tz)
    if start is None:
        return None
    title = coalesce(record, *FIELD_SYNONYMS["title"], default=DEFAULT_TITLE)
    return f"{start.isoformat()}|{title}"


def normalize_record(record: Dict[str, Any], tz: TzLike = None) -> Session:
    """
    Convert one raw feed record into a Session.

    Args:
        record: Raw record as returned by the feed (or stored in the cache)
        tz: Venue timezone, applied to date-times that carry no offset

    Returns:
        The normalized Session

    Raises:
        RecordNormalizationFailure: If the record has no parseable start time
    """
    if not isinstance(record, dict):
        raise RecordNormalizationFailure(f"Expected a record object, got {type(record).__name__}")

    start = first_instant(record, FIELD_SYNONYMS["start"], tz)
    if start is None:
        raise RecordNormalizationFailure("Record has no parseable start time", record)

    end = first_instant(record, FIELD_SYNONYMS["end"], tz)
    if end is None or end <= start:
        try:
            end = start + DEFAULT_SESSION_LENGTH
        except OverflowError:
            raise RecordNormalizationFailure("Record starts too late for a default end time", record)

    waitlist_size = first_int(record, FIELD_SYNONYMS["waitlist_size"])
    has_waitlist = first_bool(record, FIELD_SYNONYMS["has_waitlist"])
    if has_waitlist is None:
        has_waitlist = bool(waitlist_size)

    return Session(
        uid=identity_key(record, tz),
        title=str(coalesce(record, *FIELD_SYNONYMS["title"], default=DEFAULT_TITLE)),
        subtitle=_as_text(coalesce(record, *FIELD_SYNONYMS["subtitle"])),
        instructor=_as_text(coalesce(record, *FIELD_SYNONYMS["instructor"])),
        start=start,
        end=end,
        capacity=first_int(record, FIELD_SYNONYMS["capacity"]),
        free_spots=first_int(record, FIELD_SYNONYMS["free_spots"]),
        has_waitlist=has_waitlist,
        waitlist_size=waitlist_size if has_waitlist else None,
        waitlist_open_until=first_instant(record, FIELD_SYNONYMS["waitlist_open_until"], tz),
        booking_url=_as_text(coalesce(record, *FIELD_SYNONYMS["booking_url"])),
        notes=_as_text(coalesce(record, *FIELD_SYNONYMS["notes"])),
        raw=record,
    )


def normalize_records(records: Iterable[Dict[str, Any]], tz: TzLike = None) -> Tuple[List[Session], int]:
    """
    Normalize a batch of raw records, dropping the ones that fail.

    Returns:
        (sessions in input order, number of records skipped for bad dates)
    """
    sessions: List[Session] = []
    skipped = 0

    for record in records:
        try:
            sessions.append(normalize_record(record, tz))
        except RecordNormalizationFailure:
            skipped += 1

    return sessions, skipped
