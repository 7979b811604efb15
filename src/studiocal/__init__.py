"""
Studio Calendars

Turns a studio's class schedule feed into subscribable calendar files.
"""

__version__ = "0.1.0"
