"""
Database Package

Session models, the schedule snapshot store and the PostgreSQL run archive.
"""

from .models import ScrapeRun, Session
from .snapshot import SnapshotStore

__all__ = ["ScrapeRun", "Session", "SnapshotStore"]
