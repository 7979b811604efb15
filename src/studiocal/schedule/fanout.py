"""
Calendar Fan-out

Splits classified sessions into the aggregate calendar and one calendar per category.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from ..database.models import Session
from .classifier import Classifier


@dataclass
class CalendarGroup:
    """An ordered group of sessions that becomes one calendar file."""
    name: str
    slug: str
    category: str = ""
    sessions: List[Session] = field(default_factory=list)

    @property
    def is_aggregate(self) -> bool:
        return not self.category


def fan_out(sessions: Sequence[Session], classifier: Classifier,
            venue_name: str, venue_slug: str) -> List[CalendarGroup]:
    """
    Build the aggregate group followed by one group per configured category.

    Every category gets a group, even an empty one, so calendar file names
    stay stable for subscribers. Sessions keep their input order everywhere.

    Args:
        sessions: Classified sessions in feed order
        classifier: Classifier whose categories define the per-category groups
        venue_name: Human-readable venue name used in calendar names
        venue_slug: File-name prefix for every calendar

    Returns:
        Aggregate group first, then category groups in rule order
    """
    aggregate = CalendarGroup(name=f"{venue_name} — Public Schedule", slug=venue_slug)
    by_category: Dict[str, CalendarGroup] = {
        category: CalendarGroup(
            name=f"{venue_name} — {classifier.display_name(category)}",
            slug=f"{venue_slug}-{category}",
            category=category,
        )
        for category in classifier.categories
    }

    for session in sessions:
        aggregate.sessions.append(session)
        category = session.category or classifier.classify(session.title)
        # Categories outside the configured set still land in the fallback group
        group = by_category.get(category) or by_category[classifier.fallback]
        group.sessions.append(session)

    return [aggregate] + list(by_category.values())


def group_counts(groups: Sequence[CalendarGroup]) -> Dict[str, int]:
    """Session count per category group (aggregate excluded)."""
    return {group.category: len(group.sessions) for group in groups if not group.is_aggregate}
