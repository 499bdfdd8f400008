from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from examplanner.engine.calendar import ChunkCalendar
from examplanner.engine.merger import merge_placements
from examplanner.engine.scoring import merge_priority_key
from examplanner.reporting.decision_trace import DecisionTraceCollector


def _day(offset: int) -> date:
    return date(2026, 1, 1) + timedelta(days=offset)


def test_merge_priority_prefers_sooner_exam_then_heavier_subject() -> None:
    keys = [
        merge_priority_key(day=_day(1), exam_date=_day(9), required_chunks=4, insertion_index=0),
        merge_priority_key(day=_day(1), exam_date=_day(5), required_chunks=2, insertion_index=1),
        merge_priority_key(day=_day(1), exam_date=_day(5), required_chunks=6, insertion_index=2),
        merge_priority_key(day=_day(0), exam_date=_day(9), required_chunks=1, insertion_index=3),
    ]

    ordered = sorted(keys)

    assert [key[3] for key in ordered] == [3, 2, 1, 0]


def test_merge_pushes_overflow_to_nearest_earlier_day() -> None:
    trace = DecisionTraceCollector(start_timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc))

    result = merge_placements(
        placements={
            "physics": {_day(3): 1, _day(4): 1},
            "math": {_day(2): 1, _day(3): 1},
        },
        exam_dates={"math": _day(4), "physics": _day(5)},
        required_chunks={"math": 2, "physics": 2},
        study_days={
            "math": [_day(n) for n in range(0, 4)],
            "physics": [_day(n) for n in range(0, 5)],
        },
        day_capacity=1,
        decision_trace=trace,
    )

    calendar = result.calendar
    assert calendar.subject_days("math") == [_day(2), _day(3)]
    assert calendar.subject_days("physics") == [_day(1), _day(4)]
    assert result.pushed_chunks == 1
    assert result.overloaded_days == set()
    assert trace.rules() == ["RULE_PUSH_EARLIER"]


def test_merge_keeps_chunk_and_flags_day_when_nothing_earlier_has_room() -> None:
    result = merge_placements(
        placements={"math": {_day(0): 1}, "physics": {_day(0): 1}},
        exam_dates={"math": _day(1), "physics": _day(1)},
        required_chunks={"math": 1, "physics": 1},
        study_days={"math": [_day(0)], "physics": [_day(0)]},
        day_capacity=1,
    )

    assert result.overloaded_days == {_day(0)}
    assert result.calendar.load(_day(0)) == 2


def test_calendar_move_and_remove_keep_only_positive_counts() -> None:
    calendar = ChunkCalendar({_day(0): {"math": 2}})

    calendar.move("math", _day(0), _day(1))
    calendar.move("math", _day(0), _day(2))

    assert calendar.days() == [_day(1), _day(2)]
    assert calendar.subject_total("math") == 2
    assert calendar.subjects_on(_day(0)) == {}

    with pytest.raises(ValueError):
        calendar.remove(_day(1), "math", 2)


def test_calendar_exports_hours_and_flags_overloaded_days() -> None:
    calendar = ChunkCalendar.from_placements({"math": {_day(0): 3}, "physics": {_day(0): 1, _day(1): 1}})

    allocations = calendar.to_day_allocations(chunk_hours=0.5, day_capacity=3)

    assert [allocation.day for allocation in allocations] == [_day(0), _day(1)]
    assert allocations[0].subjects == {"math": 1.5, "physics": 0.5}
    assert allocations[0].total_hours == 2.0
    assert allocations[0].overloaded is True
    assert allocations[1].overloaded is False
    assert allocations[0].as_dict()["date"] == "2026-01-01"


def test_calendar_copy_is_independent() -> None:
    calendar = ChunkCalendar({_day(0): {"math": 1}})
    clone = calendar.copy()

    clone.add(_day(1), "math")

    assert clone != calendar
    assert calendar.total_chunks() == 1
