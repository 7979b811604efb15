"""
ICS Calendar Writer

Serializes sessions to iCalendar text with the `ics` library and writes the
calendar files under the output directory.
"""

import os
import tempfile
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from ics import Calendar, Event

from ..database.models import Session

SUMMARY_SEPARATOR = " — "


def spots_label(session: Session) -> Optional[str]:
    """Short availability text for the event summary, or None when unknown."""
    if session.free_spots is None:
        return None
    if session.free_spots <= 0:
        if session.has_waitlist and session.waitlist_size:
            return f"Full (waitlist {session.waitlist_size})"
        if session.has_waitlist:
            return "Full (waitlist open)"
        return "Full"
    if session.free_spots == 1:
        return "1 spot left"
    return f"{session.free_spots} spots left"


def event_summary(session: Session) -> str:
    parts = [session.title, session.instructor_label]
    spots = spots_label(session)
    if spots:
        parts.append(spots)
    return SUMMARY_SEPARATOR.join(parts)


def _format_local(value: datetime, tz: Optional[str]) -> str:
    if tz:
        value = value.astimezone(ZoneInfo(tz))
    return value.strftime("%a %b %d %I:%M %p").replace(" 0", " ")


def event_description(session: Session, tz: Optional[str] = None) -> str:
    """Newline-joined notes, capacity, waitlist and booking lines."""
    lines: List[str] = []
    if session.subtitle:
        lines.append(session.subtitle)
    if session.notes:
        lines.append(session.notes)
    if session.capacity is not None and session.free_spots is not None:
        lines.append(f"Open spots: {session.free_spots} of {session.capacity}")
    elif session.capacity is not None:
        lines.append(f"Capacity: {session.capacity}")
    elif session.free_spots is not None:
        lines.append(f"Open spots: {session.free_spots}")
    if session.has_waitlist:
        waitlist = "Waitlist: open"
        if session.waitlist_size is not None:
            waitlist = f"Waitlist: {session.waitlist_size} waiting"
        if session.waitlist_open_until is not None:
            waitlist += f" (until {_format_local(session.waitlist_open_until, tz)})"
        lines.append(waitlist)
    if session.booking_url:
        lines.append(f"Book: {session.booking_url}")
    return "\n".join(lines)


def _add_calendar_headers(text: str, name: str, tz: Optional[str]) -> str:
    """Insert calendar-level name/timezone headers after the VERSION line."""
    lines = text.replace("\r\n", "\n").split("\n")
    headers = ["CALSCALE:GREGORIAN", "METHOD:PUBLISH", f"X-WR-CALNAME:{name}"]
    if tz:
        headers.append(f"X-WR-TIMEZONE:{tz}")

    out: List[str] = []
    inserted = False
    for line in lines:
        out.append(line)
        if not inserted and line.startswith("VERSION:"):
            out.extend(h for h in headers if not any(l.startswith(h.split(":", 1)[0] + ":") for l in lines))
            inserted = True
    return "\r\n".join(l for l in out if l) + "\r\n"


def build_calendar(name: str, sessions: Sequence[Session], venue_label: str,
                   uid_domain: str, default_url: Optional[str] = None,
                   tz: Optional[str] = None) -> str:
    """
    Build calendar text with one VEVENT per session.

    Args:
        name: Calendar name shown by subscribing clients
        sessions: Sessions in display order
        venue_label: Location text of every event
        uid_domain: Domain part of the event UIDs (stable across runs)
        default_url: Event URL for sessions without their own booking link
        tz: Venue timezone, advertised in the calendar header

    Returns:
        iCalendar text with CRLF line endings
    """
    cal = Calendar()
    for session in sessions:
        event = Event()
        event.name = event_summary(session)
        event.begin = session.start
        event.end = session.end
        event.location = venue_label
        event.description = event_description(session, tz)
        event.uid = f"{session.uid}@{uid_domain}"
        url = session.booking_url or default_url
        if url:
            event.url = url
        cal.events.add(event)

    return _add_calendar_headers("".join(cal.serialize_iter()), name, tz)


class CalendarWriter:
    """
    Writes calendar files in two steps.

    `stage` writes every calendar to a temporary file; `commit` moves them
    all into place. A failed run calls `discard` and leaves the previous
    calendars untouched.
    """

    def __init__(self, output_dir: str):
        self.output_dir = output_dir
        self._staged: List[Tuple[str, str]] = []

    def path_for(self, slug: str) -> str:
        return os.path.join(self.output_dir, f"{slug}.ics")

    def stage(self, slug: str, text: str) -> str:
        os.makedirs(self.output_dir, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{slug}-", suffix=".ics.tmp", dir=self.output_dir)
        with os.fdopen(fd, "wb") as f:
            f.write(text.encode("utf-8"))
        self._staged.append((tmp_path, self.path_for(slug)))
        return tmp_path

    def verify(self) -> None:
        """Fail before anything is moved if a staged file cannot replace its destination."""
        for _, final_path in self._staged:
            if os.path.isdir(final_path):
                raise IsADirectoryError(f"Calendar destination is a directory: {final_path}")
        if self._staged and not os.access(self.output_dir, os.W_OK):
            raise PermissionError(f"Calendar output directory is not writable: {self.output_dir}")

    def commit(self) -> Dict[str, str]:
        """Move every staged file into place; returns final path per temp path."""
        written = {}
        for tmp_path, final_path in self._staged:
            os.replace(tmp_path, final_path)
            written[tmp_path] = final_path
        self._staged = []
        return written

    def discard(self) -> None:
        for tmp_path, _ in self._staged:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        self._staged = []
