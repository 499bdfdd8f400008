"""Planning engine runner."""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Mapping

from examplanner.exceptions import InvalidSubjectError, OverloadRejectedError
from examplanner.models import (
    EngineConfig,
    ExistingSessionRecord,
    OverloadInfo,
    PlanMode,
    PlanOutcome,
    ScheduleResult,
    SubjectSpec,
    SubjectState,
)
from examplanner.reporting.decision_trace import DecisionTraceCollector
from examplanner.validation.schedule_validator import audit_schedule

from .calendar import ChunkCalendar
from .intervals import guarantee_final_reviews, repair_intervals
from .merger import merge_placements
from .placer import place_subject
from .rebalance import MoveRules, balance_workload
from .replan import compute_reallocation_metrics, existing_chunks_by_subject
from .slot_builder import build_study_days, final_review_day
from .workload import compute_subject_workload

logger = logging.getLogger(__name__)

MAX_CONVERGENCE_ROUNDS = 10

OVERLOAD_CHOICES = (
    "increase_daily_limit",
    "allow_overload",
    "extend_exam_dates",
    "reduce_hours",
)


def _build_states(
    config: EngineConfig,
    subjects: list[SubjectSpec],
    today: date,
) -> dict[str, SubjectState]:
    """Derive per-run state, ordered by exam date then input order."""
    seen: set[str] = set()
    for subject in subjects:
        if subject.subject_id in seen:
            raise InvalidSubjectError(f"Duplicate subject_id: {subject.subject_id}")
        seen.add(subject.subject_id)

    ordered = sorted(enumerate(subjects), key=lambda item: (item[1].exam_date, item[0]))
    states: dict[str, SubjectState] = {}
    for _, subject in ordered:
        workload = compute_subject_workload(
            subject,
            chunk_hours=config.chunk_hours,
            completed_hours=float(config.completed_hours.get(subject.subject_id, 0.0)),
            adjustment_percent=config.adjustment_percent,
        )
        days = build_study_days(
            subject,
            start_date=config.start_date,
            today=today,
            blocked_days=config.blocked_days,
        )
        state = SubjectState(
            subject_id=subject.subject_id,
            exam_date=subject.exam_date,
            adjusted_hours=workload["hours_adjusted"],
            completed_hours=workload["hours_completed"],
            required_chunks=int(workload["required_chunks"]),
            study_days=days,
            final_review_day=final_review_day(subject, days),
        )
        if state.required_chunks == 0:
            state.mark_done()
        states[subject.subject_id] = state
    return states


def _valid_prior_chunks(
    prior: Mapping[str, Mapping[date, int]],
    rules: MoveRules,
) -> dict[str, dict[date, int]]:
    return {
        sid: {day: count for day, count in sorted(by_day.items()) if rules.is_valid_day(sid, day)}
        for sid, by_day in prior.items()
    }


def needs_fresh_plan(
    states: Mapping[str, SubjectState],
    valid_prior: Mapping[str, Mapping[date, int]],
) -> bool:
    """True when any subject needs more chunks than its existing sessions cover on valid days."""
    for sid, state in states.items():
        covered = sum(valid_prior.get(sid, {}).values())
        if state.required_chunks > covered:
            return True
    return False


def _place_single(
    config: EngineConfig,
    state: SubjectState,
    prior: Mapping[date, int],
    decision_trace: DecisionTraceCollector | None,
) -> ChunkCalendar:
    placement = place_subject(
        subject_id=state.subject_id,
        study_days=state.study_days,
        required_chunks=state.required_chunks,
        final_review_day=state.final_review_day,
        day_capacity=config.day_capacity_chunks,
        preferred_capacity=config.preferred_capacity_chunks,
        prior_chunks=prior,
        decision_trace=decision_trace,
    )
    return ChunkCalendar.from_placements({state.subject_id: placement})


def _place_fresh(
    config: EngineConfig,
    states: Mapping[str, SubjectState],
    rules: MoveRules,
    decision_trace: DecisionTraceCollector | None,
) -> ChunkCalendar:
    placements: dict[str, dict[date, int]] = {}
    claimed: dict[date, dict[str, int]] = {}
    for sid, state in states.items():
        if state.required_chunks <= 0:
            continue
        placement = place_subject(
            subject_id=sid,
            study_days=state.study_days,
            required_chunks=state.required_chunks,
            final_review_day=state.final_review_day,
            day_capacity=config.day_capacity_chunks,
            preferred_capacity=config.preferred_capacity_chunks,
            other_placements=claimed,
            decision_trace=decision_trace,
        )
        placements[sid] = placement
        for day, count in placement.items():
            claimed.setdefault(day, {})[sid] = count

    merged = merge_placements(
        placements=placements,
        exam_dates={sid: state.exam_date for sid, state in states.items()},
        required_chunks={sid: state.required_chunks for sid, state in states.items()},
        study_days={sid: state.study_days for sid, state in states.items()},
        day_capacity=config.day_capacity_chunks,
        decision_trace=decision_trace,
    )
    calendar = merged.calendar
    balance_workload(calendar, rules, decision_trace=decision_trace)
    repair_intervals(calendar, rules, decision_trace=decision_trace)
    guarantee_final_reviews(
        calendar,
        rules,
        required_chunks={sid: state.required_chunks for sid, state in states.items()},
        decision_trace=decision_trace,
    )
    return calendar


def _trim_surplus(
    calendar: ChunkCalendar,
    states: Mapping[str, SubjectState],
    decision_trace: DecisionTraceCollector | None,
) -> None:
    """Drop chunks beyond each subject's requirement, earliest days first."""
    for sid in calendar.subject_ids():
        state = states[sid]
        excess = calendar.subject_total(sid) - state.required_chunks
        if excess <= 0:
            continue
        days = [day for day in calendar.subject_days(sid) if day != state.final_review_day]
        if state.final_review_day in calendar.subject_days(sid):
            days.append(state.final_review_day)
        for day in days:
            if excess <= 0:
                break
            take = min(calendar.count(day, sid), excess)
            calendar.remove(day, sid, take)
            excess -= take
            if decision_trace is not None:
                decision_trace.record(phase="rebalance", rule="RULE_TRIM_SURPLUS", subject_id=sid, day=day, chunks=take)


def _rebalance_existing(
    states: Mapping[str, SubjectState],
    valid_prior: Mapping[str, Mapping[date, int]],
    rules: MoveRules,
    decision_trace: DecisionTraceCollector | None,
) -> ChunkCalendar:
    calendar = ChunkCalendar.from_placements(valid_prior)
    _trim_surplus(calendar, states, decision_trace)
    required = {sid: state.required_chunks for sid, state in states.items()}
    for _ in range(MAX_CONVERGENCE_ROUNDS):
        before = calendar.snapshot()
        balance_workload(calendar, rules, decision_trace=decision_trace)
        repair_intervals(calendar, rules, decision_trace=decision_trace)
        guarantee_final_reviews(calendar, rules, required_chunks=required, decision_trace=decision_trace)
        if calendar.snapshot() == before:
            break
    return calendar


def build_overload_info(calendar: ChunkCalendar, *, day_capacity: int, chunk_hours: float) -> OverloadInfo | None:
    """Summarize the chunks that sit above the daily cap, or None when there are none."""
    excess = [calendar.load(day) - day_capacity for day in calendar.days() if calendar.load(day) > day_capacity]
    if not excess:
        return None
    total_hours = round(sum(excess) * chunk_hours, 6)
    return OverloadInfo(
        overloaded_days=len(excess),
        total_overload_hours=total_hours,
        message=f"Schedule exceeds daily limits by {total_hours:.1f}h total across {len(excess)} day(s).",
    )


def plan(
    config: EngineConfig,
    subjects: Iterable[SubjectSpec],
    existing_sessions: Iterable[ExistingSessionRecord] = (),
    *,
    today: date | None = None,
    trace: DecisionTraceCollector | None = None,
) -> PlanOutcome:
    """Build a study calendar for ``subjects``.

    ``existing_sessions`` are reschedulable placements from a previous run.
    When they already cover every subject's requirement on valid days they
    are only rebalanced; otherwise the calendar is planned from scratch.
    ``today`` defaults to the current date.
    """

    run_day = today or date.today()
    subject_list = list(subjects)
    records = list(existing_sessions)
    states = _build_states(config, subject_list, run_day)
    subjects_by_id = {subject.subject_id: subject for subject in subject_list}
    day_capacity = config.day_capacity_chunks

    rules = MoveRules.build(
        study_days={sid: state.study_days for sid, state in states.items()},
        final_review_days={sid: state.final_review_day for sid, state in states.items()},
        day_capacity=day_capacity,
        blocked_days=config.blocked_days,
    )
    prior = existing_chunks_by_subject(
        (record for record in records if record.subject_id in states),
        config.chunk_hours,
    )
    valid_prior = _valid_prior_chunks(prior, rules)

    if not states:
        mode = PlanMode.NO_SUBJECTS
        calendar = ChunkCalendar()
    elif len(states) == 1:
        mode = PlanMode.SINGLE_SUBJECT
        state = next(iter(states.values()))
        calendar = _place_single(config, state, valid_prior.get(state.subject_id, {}), trace)
    elif day_capacity <= 0 or needs_fresh_plan(states, valid_prior):
        mode = PlanMode.MULTI_SUBJECT_FRESH
        calendar = _place_fresh(config, states, rules, trace)
    else:
        mode = PlanMode.REBALANCE_ONLY
        calendar = _rebalance_existing(states, valid_prior, rules, trace)

    for sid, state in states.items():
        state.record_scheduled(calendar.subject_total(sid))

    logger.info(
        "Planned %d subject(s) in mode %s: %d chunk(s) over %d day(s)",
        len(states),
        mode.value,
        calendar.total_chunks(),
        len(calendar.days()),
    )

    result = ScheduleResult(
        calendar=calendar.to_day_allocations(chunk_hours=config.chunk_hours, day_capacity=day_capacity),
        overload=build_overload_info(calendar, day_capacity=day_capacity, chunk_hours=config.chunk_hours),
    )
    audit = audit_schedule(
        calendar,
        states=states,
        subjects=subjects_by_id,
        day_capacity=day_capacity,
        blocked_days=config.blocked_days,
    )
    outcome = PlanOutcome(
        mode=mode,
        result=result,
        audit=audit,
        states=states,
        reallocation=compute_reallocation_metrics(
            prior,
            {sid: calendar.subject_chunks(sid) for sid in calendar.subject_ids()},
        ),
    )

    if result.overload is not None:
        logger.warning(result.overload.message)
        if config.overload_policy == "reject":
            raise OverloadRejectedError(result, list(OVERLOAD_CHOICES))
    return outcome
