"""
Scrapers Package

Fetch collaborators for the studio schedule feed.
"""

from .api import ScheduleApiScraper
from .base import BaseScraper
from .browser import BrowserScraper

__all__ = ["BaseScraper", "ScheduleApiScraper", "BrowserScraper"]
