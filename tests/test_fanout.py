from datetime import datetime, timedelta, timezone

import pytest

from studiocal.database.models import Session
from studiocal.schedule.classifier import FALLBACK_CATEGORY, Classifier
from studiocal.schedule.fanout import fan_out, group_counts


def make_session(uid, title, hour=9, category=None):
    start = datetime(2024, 1, 2, hour, tzinfo=timezone.utc)
    return Session(uid=uid, title=title, start=start, end=start + timedelta(hours=1), category=category)


@pytest.fixture
def classifier():
    return Classifier()


def test_aggregate_first_then_every_category(classifier):
    groups = fan_out([], classifier, "Test Studio", "test-studio")

    assert groups[0].is_aggregate
    assert groups[0].slug == "test-studio"
    assert groups[0].name == "Test Studio — Public Schedule"
    assert [g.category for g in groups[1:]] == classifier.categories
    assert all(not g.sessions for g in groups)
    assert groups[-1].slug == f"test-studio-{FALLBACK_CATEGORY}"


def test_each_session_lands_in_exactly_one_category(classifier):
    sessions = [
        make_session("1", "Y6 Sculpt & Flow", 7),
        make_session("2", "Slow Flow", 8),
        make_session("3", "Y6 101", 9),
        make_session("4", "Y6 Sculpt", 10),
    ]
    sessions = [s.with_category(classifier.classify(s.title)) for s in sessions]

    groups = fan_out(sessions, classifier, "Test Studio", "test-studio")
    counts = group_counts(groups)

    assert [s.uid for s in groups[0].sessions] == ["1", "2", "3", "4"]
    assert sum(counts.values()) == len(sessions)
    assert counts["sculpt"] == 2
    assert counts["slow-flow"] == 1
    assert counts[FALLBACK_CATEGORY] == 1
    sculpt = next(g for g in groups if g.category == "sculpt")
    assert [s.uid for s in sculpt.sessions] == ["1", "4"]
    assert sculpt.name == "Test Studio — Sculpt"


def test_unknown_category_goes_to_fallback(classifier):
    groups = fan_out([make_session("1", "Flow", category="retired")], classifier, "Studio", "studio")

    assert group_counts(groups)[FALLBACK_CATEGORY] == 1


def test_unclassified_sessions_are_classified_on_the_fly(classifier):
    groups = fan_out([make_session("1", "Y6 Power")], classifier, "Studio", "studio")

    assert group_counts(groups)["power"] == 1
