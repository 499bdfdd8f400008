"""Read-only audit of a finished schedule."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping

from examplanner.engine.calendar import ChunkCalendar
from examplanner.engine.scoring import MAX_GAP_DAYS, gap_violations
from examplanner.models import SubjectSpec, SubjectState

REASON_NO_VALID_DAYS = "no_valid_days"
REASON_CAP_BELOW_CHUNK = "daily_cap_below_chunk"
REASON_INSUFFICIENT_CAPACITY = "insufficient_capacity"


@dataclass(slots=True)
class ScheduleAudit:
    """Constraint violations found in a calendar; an empty audit is a clean schedule."""

    overloaded_days: list[dict[str, Any]] = field(default_factory=list)
    missing_final_reviews: list[dict[str, Any]] = field(default_factory=list)
    gap_violations: list[dict[str, Any]] = field(default_factory=list)
    post_exam_sessions: list[dict[str, Any]] = field(default_factory=list)
    blocked_day_sessions: list[dict[str, Any]] = field(default_factory=list)
    incomplete_subjects: list[dict[str, Any]] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not any(
            (
                self.overloaded_days,
                self.missing_final_reviews,
                self.gap_violations,
                self.post_exam_sessions,
                self.blocked_day_sessions,
                self.incomplete_subjects,
            )
        )

    def incomplete_subject_ids(self) -> set[str]:
        return {str(item["subject_id"]) for item in self.incomplete_subjects}

    def as_dict(self) -> dict[str, Any]:
        return {
            "is_clean": self.is_clean,
            "overloaded_days": list(self.overloaded_days),
            "missing_final_reviews": list(self.missing_final_reviews),
            "gap_violations": list(self.gap_violations),
            "post_exam_sessions": list(self.post_exam_sessions),
            "blocked_day_sessions": list(self.blocked_day_sessions),
            "incomplete_subjects": list(self.incomplete_subjects),
        }


def _incomplete_reason(state: SubjectState, day_capacity: int) -> str:
    if not state.study_days:
        return REASON_NO_VALID_DAYS
    if day_capacity <= 0:
        return REASON_CAP_BELOW_CHUNK
    return REASON_INSUFFICIENT_CAPACITY


def audit_schedule(
    calendar: ChunkCalendar,
    *,
    states: Mapping[str, SubjectState],
    subjects: Mapping[str, SubjectSpec],
    day_capacity: int,
    blocked_days: Iterable[date] = (),
    max_gap_days: int = MAX_GAP_DAYS,
) -> ScheduleAudit:
    """Check a calendar against every scheduling constraint without touching it."""
    audit = ScheduleAudit()
    blocked = set(blocked_days)

    for day in calendar.days():
        load = calendar.load(day)
        if load > day_capacity:
            audit.overloaded_days.append({"date": day.isoformat(), "chunks": load, "capacity": day_capacity})
        if day in blocked:
            for sid, count in sorted(calendar.subjects_on(day).items()):
                audit.blocked_day_sessions.append({"subject_id": sid, "date": day.isoformat(), "chunks": count})

    for sid in calendar.subject_ids():
        subject = subjects.get(sid)
        if subject is not None:
            for day in calendar.subject_days(sid):
                if day > subject.exam_date or (day == subject.exam_date and not subject.allow_after_exam):
                    audit.post_exam_sessions.append(
                        {"subject_id": sid, "date": day.isoformat(), "exam_date": subject.exam_date.isoformat()}
                    )
        for earlier, later, gap in gap_violations(calendar.subject_days(sid), max_gap_days):
            audit.gap_violations.append(
                {"subject_id": sid, "from": earlier.isoformat(), "to": later.isoformat(), "gap_days": gap}
            )

    for sid in sorted(states):
        state = states[sid]
        if state.required_chunks <= 0:
            continue
        if state.final_review_day is not None and calendar.count(state.final_review_day, sid) == 0:
            audit.missing_final_reviews.append({"subject_id": sid, "date": state.final_review_day.isoformat()})
        scheduled = calendar.subject_total(sid)
        if scheduled < state.required_chunks:
            audit.incomplete_subjects.append(
                {
                    "subject_id": sid,
                    "required_chunks": state.required_chunks,
                    "scheduled_chunks": scheduled,
                    "reason": _incomplete_reason(state, day_capacity),
                }
            )

    return audit
