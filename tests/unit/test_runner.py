from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from examplanner.engine.runner import plan
from examplanner.models import (
    EngineConfig,
    ExistingSessionRecord,
    PlanMode,
    PlanOutcome,
    SubjectSpec,
    SubjectState,
    SubjectStatus,
)
from examplanner.reporting.decision_trace import DecisionTraceCollector

TODAY = date(2026, 5, 4)


def _day(offset: int) -> date:
    return TODAY + timedelta(days=offset)


def _config() -> EngineConfig:
    return EngineConfig(daily_max_hours=4, preferred_daily_hours=2, session_minutes=60)


def _subjects() -> list[SubjectSpec]:
    return [
        SubjectSpec(subject_id="a", name="A", exam_date=_day(9), estimated_hours=3),
        SubjectSpec(subject_id="b", name="B", exam_date=_day(16), estimated_hours=3),
    ]


def _history(a_days: list[int]) -> list[ExistingSessionRecord]:
    records = [ExistingSessionRecord(day=_day(n), subject_id="a", duration_hours=1.0) for n in a_days]
    records += [ExistingSessionRecord(day=_day(n), subject_id="b", duration_hours=1.0) for n in (13, 14, 15)]
    return records


def _records(outcome: PlanOutcome) -> list[ExistingSessionRecord]:
    return [
        ExistingSessionRecord(day=allocation.day, subject_id=sid, duration_hours=hours)
        for allocation in outcome.calendar
        for sid, hours in sorted(allocation.subjects.items())
    ]


def _trace() -> DecisionTraceCollector:
    return DecisionTraceCollector(start_timestamp=datetime(2026, 5, 4, tzinfo=timezone.utc))


def _decisions(trace: DecisionTraceCollector, rule: str) -> list[tuple[str, str | None, str | None, int]]:
    return [
        (item["subject_id"], item["from_day"], item["day"], item["chunks"])
        for item in trace.as_list()
        if item["rule"] == rule
    ]


def test_rebalance_trims_earliest_surplus_and_restores_final_review() -> None:
    trace = _trace()

    outcome = plan(_config(), _subjects(), _history([4, 4, 5, 6]), today=TODAY, trace=trace)

    assert outcome.mode is PlanMode.REBALANCE_ONLY
    assert _decisions(trace, "RULE_TRIM_SURPLUS") == [("a", None, _day(4).isoformat(), 1)]
    assert _decisions(trace, "RULE_FINAL_REVIEW_GUARANTEED") == [("a", _day(4).isoformat(), _day(8).isoformat(), 1)]
    a_days = [allocation.day for allocation in outcome.calendar if "a" in allocation.subjects]
    assert a_days == [_day(5), _day(6), _day(8)]
    assert outcome.result.hours_by_subject() == {"a": 3.0, "b": 3.0}
    assert outcome.states["a"].scheduled_chunks == outcome.states["a"].required_chunks == 3
    assert outcome.audit.is_clean


def test_rebalance_trims_final_review_day_last() -> None:
    trace = _trace()

    outcome = plan(_config(), _subjects(), _history([7, 8, 8, 8]), today=TODAY, trace=trace)

    assert outcome.mode is PlanMode.REBALANCE_ONLY
    assert _decisions(trace, "RULE_TRIM_SURPLUS") == [("a", None, _day(7).isoformat(), 1)]
    assert "a" in next(allocation.subjects for allocation in outcome.calendar if allocation.day == _day(8))
    assert outcome.result.hours_by_subject()["a"] == 3.0


def test_rebalancing_repaired_history_again_changes_nothing() -> None:
    first = plan(_config(), _subjects(), _history([4, 4, 5, 6]), today=TODAY)

    second = plan(_config(), _subjects(), _records(first), today=TODAY)

    assert second.mode is PlanMode.REBALANCE_ONLY
    assert [allocation.as_dict() for allocation in second.calendar] == [
        allocation.as_dict() for allocation in first.calendar
    ]
    assert second.reallocation["stability_score"] == 1.0


def test_history_short_of_requirement_triggers_fresh_plan() -> None:
    outcome = plan(_config(), _subjects(), _history([5]), today=TODAY)

    assert outcome.mode is PlanMode.MULTI_SUBJECT_FRESH
    assert outcome.result.hours_by_subject() == {"a": 3.0, "b": 3.0}


def test_subjects_turn_done_once_calendar_covers_them() -> None:
    subjects = [
        SubjectSpec(subject_id="late", name="Late", exam_date=TODAY, estimated_hours=2),
        SubjectSpec(subject_id="bio", name="Bio", exam_date=_day(6), estimated_hours=2),
    ]

    outcome = plan(_config(), subjects, today=TODAY)

    assert outcome.states["bio"].status is SubjectStatus.DONE
    assert outcome.states["bio"].unscheduled_chunks == 0
    assert outcome.states["late"].status is SubjectStatus.ACTIVE
    assert outcome.states["late"].unscheduled_chunks == outcome.states["late"].required_chunks == 2
    assert outcome.as_dict()["subjects"]["bio"]["scheduled_chunks"] == 2


def test_partial_coverage_keeps_subject_active() -> None:
    state = SubjectState(subject_id="math", exam_date=_day(5), adjusted_hours=3.0, completed_hours=0.0, required_chunks=3)

    state.record_scheduled(2)
    assert state.status is SubjectStatus.ACTIVE
    assert state.unscheduled_chunks == 1

    state.record_scheduled(3)
    assert state.status is SubjectStatus.DONE


def test_engine_config_is_hashable_and_freezes_completed_hours() -> None:
    source = {"math": 2.0}
    config = EngineConfig(completed_hours=source)
    source["math"] = 9.0

    assert hash(config) == hash(EngineConfig(completed_hours={"math": 5.0}))
    assert config.completed_hours["math"] == 2.0
    assert config == EngineConfig(completed_hours={"math": 2.0})
    with pytest.raises(TypeError):
        config.completed_hours["math"] = 1.0  # type: ignore[index]
