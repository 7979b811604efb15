"""
Database Models

Dataclasses representing schedule entities.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Optional

DEFAULT_INSTRUCTOR = "TBA"


@dataclass(frozen=True)
class Session:
    """One scheduled class occurrence, normalized from a raw feed record."""
    uid: str
    title: str
    start: datetime
    end: datetime
    subtitle: Optional[str] = None
    instructor: Optional[str] = None
    capacity: Optional[int] = None
    free_spots: Optional[int] = None
    has_waitlist: bool = False
    waitlist_size: Optional[int] = None
    waitlist_open_until: Optional[datetime] = None
    booking_url: Optional[str] = None
    notes: Optional[str] = None
    category: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self):
        if not self.start < self.end:
            raise ValueError(f"Session {self.uid} ends before it starts ({self.start} >= {self.end})")

    @property
    def instructor_label(self) -> str:
        return self.instructor or DEFAULT_INSTRUCTOR

    def with_category(self, category: str) -> "Session":
        return replace(self, category=category)


@dataclass
class ScrapeRun:
    """Represents a scraping run."""
    run_id: str
    source: str
    started_at: datetime
    git_sha: Optional[str] = None
