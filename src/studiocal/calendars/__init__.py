"""
Calendars Package

iCalendar serialization and calendar file output.
"""

from .ics_writer import CalendarWriter, build_calendar

__all__ = ["CalendarWriter", "build_calendar"]
