from __future__ import annotations

from datetime import date, timedelta

import pytest

from examplanner.engine.slot_builder import build_horizon, build_study_days, final_review_day, study_window
from examplanner.engine.workload import compute_subject_workload, estimate_required_hours
from examplanner.exceptions import InvalidSubjectError
from examplanner.models import SubjectSpec

TODAY = date(2026, 1, 1)


def _subject(**overrides) -> SubjectSpec:
    values = {
        "subject_id": "math",
        "name": "Math",
        "exam_date": date(2026, 1, 11),
        "difficulty": 3,
        "confidence": 3,
        "estimated_hours": 10.0,
    }
    values.update(overrides)
    return SubjectSpec(**values)


@pytest.mark.parametrize(
    ("difficulty", "confidence", "expected"),
    [
        (3, 3, 10.0),
        (5, 1, 11.0),
        (1, 5, 9.0),
        (5, 5, 10.0),
        (4, 3, 10.5),
        (5, 3, 11.0),
        (4, 2, 11.0),
    ],
)
def test_estimate_required_hours_stays_within_adjustment_band(difficulty: int, confidence: int, expected: float) -> None:
    subject = _subject(difficulty=difficulty, confidence=confidence)

    assert estimate_required_hours(subject, 0.10) == pytest.approx(expected)


def test_estimate_required_hours_never_below_one_hour() -> None:
    assert estimate_required_hours(_subject(estimated_hours=0.5, difficulty=1, confidence=5)) == 1.0


def test_compute_subject_workload_subtracts_completed_hours_and_rounds_up_chunks() -> None:
    workload = compute_subject_workload(_subject(), chunk_hours=0.5, completed_hours=4.0)

    assert workload["hours_adjusted"] == pytest.approx(10.0)
    assert workload["hours_remaining"] == pytest.approx(6.0)
    assert workload["required_chunks"] == 12

    partial = compute_subject_workload(_subject(), chunk_hours=1.0, completed_hours=8.5)
    assert partial["required_chunks"] == 2


def test_compute_subject_workload_is_zero_once_completed_exceeds_adjusted() -> None:
    workload = compute_subject_workload(_subject(), chunk_hours=0.5, completed_hours=12.0)

    assert workload["hours_remaining"] == 0.0
    assert workload["required_chunks"] == 0


@pytest.mark.parametrize(
    "overrides",
    [
        {"estimated_hours": 0.0},
        {"estimated_hours": -2.0},
        {"difficulty": 0},
        {"confidence": 6},
        {"subject_id": ""},
    ],
)
def test_subject_spec_rejects_malformed_inputs(overrides: dict) -> None:
    with pytest.raises(InvalidSubjectError):
        _subject(**overrides)


def test_study_days_end_the_day_before_the_exam() -> None:
    days = build_study_days(_subject(), start_date=None, today=TODAY)

    assert days[0] == TODAY
    assert days[-1] == date(2026, 1, 10)
    assert len(days) == 10
    assert final_review_day(_subject(), days) == date(2026, 1, 10)


def test_study_days_include_exam_day_when_allowed() -> None:
    days = build_study_days(_subject(allow_after_exam=True), start_date=None, today=TODAY)

    assert days[-1] == date(2026, 1, 11)


def test_study_days_respect_start_date_and_blocked_days() -> None:
    blocked = {date(2026, 1, 5), date(2026, 1, 10)}
    subject = _subject()

    days = build_study_days(subject, start_date="2026-01-03", today=TODAY, blocked_days=blocked)

    assert days[0] == date(2026, 1, 3)
    assert not blocked & set(days)
    assert final_review_day(subject, days) is None
    assert study_window(subject, start_date="2026-01-03", today=TODAY) == (date(2026, 1, 3), date(2026, 1, 10))


def test_study_days_empty_when_exam_already_passed() -> None:
    subject = _subject(exam_date=TODAY)

    assert build_study_days(subject, start_date=None, today=TODAY) == []
    assert final_review_day(subject, []) is None


def test_build_horizon_is_sorted_union() -> None:
    first = [TODAY + timedelta(days=offset) for offset in (0, 2)]
    second = [TODAY + timedelta(days=offset) for offset in (1, 2, 5)]

    assert build_horizon({"a": first, "b": second}) == [TODAY + timedelta(days=n) for n in (0, 1, 2, 5)]
