import pytest

from studiocal.errors import NoScheduleData
from studiocal.schedule.miner import extract_records, mine_session_array, score_record


def test_picks_session_array_over_unrelated_values():
    sessions = [
        {"startDateTime": "2024-01-02T09:00:00Z", "className": "Flow"},
        {"startDateTime": "2024-01-02T10:00:00Z", "className": "Power"},
    ]
    payloads = [{"unrelated": [1, 2, 3]}, {"data": sessions}]

    assert mine_session_array(payloads) is sessions


def test_highest_score_wins_across_nesting():
    menu = [{"label": "Home"}, {"label": "Book"}]
    studios = [{"name": "Edgewater"}]
    classes = [{"start": "x", "end": "y", "title": "Sculpt", "instructor": "Jess"}]
    payloads = [{"nav": menu, "studios": studios}, {"page": {"schedule": {"items": classes}}}]

    assert mine_session_array(payloads) is classes


def test_ties_keep_first_array():
    first = [{"title": "A"}]
    second = [{"name": "B"}]

    assert mine_session_array([{"a": first}, {"b": second}]) is first


def test_no_candidates_returns_empty():
    assert mine_session_array([{"a": [1, 2]}, "text", None, [None, {"start": 1}]]) == []
    assert mine_session_array([{"a": [{"foo": 1}]}]) == []


def test_score_record_counts_each_key():
    # start (+2), end (+1), className (+2), instructorName (+1 instructor, +2 name)
    record = {"startTime": 1, "endTime": 2, "className": "x", "instructorName": "y", "other": 0}
    assert score_record(record) == 8


def test_extract_records_known_shapes():
    entries = [{"id": 1}]
    assert extract_records(entries) == entries
    assert extract_records({"schedule_entries": entries}) == entries
    assert extract_records({"data": entries}) == entries
    assert extract_records({"data": {"classes": entries}}) == entries
    assert extract_records({"schedule_entries": []}) == []


@pytest.mark.parametrize("payload", [None, {}, {"schedule_entries": None}, {"message": "ok"}, "oops"])
def test_extract_records_without_array(payload):
    with pytest.raises(NoScheduleData):
        extract_records(payload)
