"""
Payload Miner

Finds the list of class sessions inside feed payloads.

`extract_records` handles the shapes the schedule API is known to return.
`mine_session_array` is for payloads of unknown shape (JSON responses
sniffed from the booking page): it scores every array of objects by how
session-like its keys look and keeps the best one.
"""

import re
from typing import Any, Iterable, Iterator, List

from ..errors import NoScheduleData

# Keys the feed has used to wrap the session array
WRAPPER_KEYS = ("schedule_entries", "data", "classes", "results", "items", "sessions")

# (pattern, points) per key of each array element
KEY_SCORES = (
    (re.compile(r"start", re.IGNORECASE), 2),
    (re.compile(r"end", re.IGNORECASE), 1),
    (re.compile(r"class|name|title", re.IGNORECASE), 2),
    (re.compile(r"instructor|teacher|staff", re.IGNORECASE), 1),
)


def extract_records(payload: Any) -> List[dict]:
    """
    Pull the session array out of a payload of known shape.

    Args:
        payload: Decoded JSON from the schedule API

    Returns:
        The raw session records

    Raises:
        NoScheduleData: If the payload holds no session array
    """
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]

    if isinstance(payload, dict):
        for key in WRAPPER_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                return [item for item in value if isinstance(item, dict)]
            # Some API versions nest one level deeper, e.g. {"data": {"classes": [...]}}
            if isinstance(value, dict):
                for inner_key in WRAPPER_KEYS:
                    if isinstance(value.get(inner_key), list):
                        return [item for item in value[inner_key] if isinstance(item, dict)]

    raise NoScheduleData(f"No session array found in API response (expected one of: {', '.join(WRAPPER_KEYS)})")


def _iter_record_arrays(value: Any) -> Iterator[list]:
    """Depth-first walk yielding every non-empty array made only of objects."""
    if isinstance(value, list):
        if value and all(isinstance(item, dict) for item in value):
            yield value
        for item in value:
            yield from _iter_record_arrays(item)
    elif isinstance(value, dict):
        for item in value.values():
            yield from _iter_record_arrays(item)


def score_record(record: dict) -> int:
    """Points earned by one record's key names."""
    score = 0
    for key in record:
        for pattern, points in KEY_SCORES:
            if pattern.search(str(key)):
                score += points
    return score


def score_array(records: list) -> int:
    return sum(score_record(record) for record in records)


def mine_session_array(payloads: Iterable[Any]) -> List[dict]:
    """
    Pick the array most likely to be the session list.

    Args:
        payloads: Every JSON value observed (e.g. all JSON responses of a page load)

    Returns:
        The highest scoring array, or an empty list if no array scores at all.
        Ties keep the array found first.
    """
    best: List[dict] = []
    best_score = 0

    for payload in payloads:
        for candidate in _iter_record_arrays(payload):
            score = score_array(candidate)
            if score > best_score:
                best, best_score = candidate, score

    return best
