from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from examplanner.engine.placer import place_subject
from examplanner.engine.scoring import MAX_GAP_DAYS, gap_violations
from examplanner.reporting.decision_trace import DecisionTraceCollector


def _day(offset: int) -> date:
    return date(2026, 1, 1) + timedelta(days=offset)


def _days(first: int, last: int) -> list[date]:
    return [_day(offset) for offset in range(first, last + 1)]


def test_one_chunk_per_day_when_chunks_match_days() -> None:
    placement = place_subject(
        subject_id="math",
        study_days=_days(0, 9),
        required_chunks=10,
        final_review_day=_day(9),
        day_capacity=4,
        preferred_capacity=2,
    )

    assert placement == {day: 1 for day in _days(0, 9)}


def test_backward_pass_skips_a_third_consecutive_day_while_keeping_gaps_short() -> None:
    trace = DecisionTraceCollector(start_timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc))

    placement = place_subject(
        subject_id="math",
        study_days=_days(0, 9),
        required_chunks=4,
        final_review_day=_day(9),
        day_capacity=4,
        preferred_capacity=2,
        decision_trace=trace,
    )

    assert sorted(placement) == [_day(5), _day(6), _day(8), _day(9)]
    assert sum(placement.values()) == 4
    assert gap_violations(placement, MAX_GAP_DAYS) == []
    assert "RULE_FINAL_REVIEW_RESERVED" in trace.rules()
    assert "RULE_SKIP_STREAK" in trace.rules()


def test_days_claimed_by_other_subjects_are_skipped_when_possible() -> None:
    placement = place_subject(
        subject_id="physics",
        study_days=_days(0, 9),
        required_chunks=3,
        final_review_day=_day(9),
        day_capacity=4,
        preferred_capacity=2,
        other_placements={_day(8): {"math": 1}},
    )

    assert sorted(placement) == [_day(6), _day(7), _day(9)]


def test_chunks_beyond_capacity_are_stacked_not_dropped() -> None:
    placement = place_subject(
        subject_id="math",
        study_days=_days(0, 1),
        required_chunks=6,
        final_review_day=_day(1),
        day_capacity=2,
        preferred_capacity=1,
    )

    assert sum(placement.values()) == 6
    assert placement[_day(1)] == 1
    assert placement[_day(0)] == 5


def test_prior_days_are_reused_first() -> None:
    trace = DecisionTraceCollector(start_timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc))

    placement = place_subject(
        subject_id="math",
        study_days=_days(0, 9),
        required_chunks=4,
        final_review_day=_day(9),
        day_capacity=4,
        preferred_capacity=2,
        prior_chunks={_day(2): 2, _day(4): 1},
        decision_trace=trace,
    )

    assert placement == {_day(2): 2, _day(4): 1, _day(9): 1}
    assert trace.rules().count("RULE_REUSE_PRIOR_DAY") == 2


def test_earliest_chunk_moves_into_a_long_gap() -> None:
    placement = place_subject(
        subject_id="math",
        study_days=_days(0, 9),
        required_chunks=2,
        final_review_day=_day(9),
        day_capacity=4,
        preferred_capacity=2,
        prior_chunks={_day(0): 1},
    )

    assert placement == {_day(6): 1, _day(9): 1}


def test_degenerate_inputs_yield_empty_placement() -> None:
    common = {"subject_id": "math", "final_review_day": None, "preferred_capacity": 1}

    assert place_subject(study_days=_days(0, 3), required_chunks=0, day_capacity=2, **common) == {}
    assert place_subject(study_days=[], required_chunks=3, day_capacity=2, **common) == {}
    assert place_subject(study_days=_days(0, 3), required_chunks=3, day_capacity=0, **common) == {}
