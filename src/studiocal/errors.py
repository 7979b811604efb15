"""
Schedule Errors

Exception types raised while fetching, normalizing and persisting a studio schedule.
"""

from typing import Optional


class ScheduleError(Exception):
    """Base class for all schedule pipeline errors."""


class FetchFailure(ScheduleError):
    """The feed answered with a non-success status or unreadable JSON."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NoScheduleData(ScheduleError):
    """The feed answered, but no session array could be found in the payload."""


class RecordNormalizationFailure(ScheduleError):
    """A single raw record could not be turned into a Session."""

    def __init__(self, message: str, record: Optional[dict] = None):
        super().__init__(message)
        self.record = record


class CacheReadFailure(ScheduleError):
    """The schedule snapshot is missing or could not be decoded."""


class CacheWriteFailure(ScheduleError):
    """The schedule snapshot could not be written."""
