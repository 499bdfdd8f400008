"""Engine input/output types."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

from examplanner.exceptions import InvalidConfigError, InvalidSubjectError

if TYPE_CHECKING:
    from examplanner.validation.schedule_validator import ScheduleAudit

OVERLOAD_POLICIES = ("flag", "reject")

# Tolerance used when converting hours to whole chunks.
_EPSILON = 1e-9


def hours_to_chunks(hours: float, chunk_hours: float) -> int:
    """Return the number of whole chunks needed to cover ``hours``."""
    if hours <= 0 or chunk_hours <= 0:
        return 0
    return max(0, math.ceil(hours / chunk_hours - _EPSILON))


@dataclass(frozen=True)
class SubjectSpec:
    """One exam to prepare for."""

    subject_id: str
    name: str
    exam_date: date
    difficulty: int = 3
    confidence: int = 3
    estimated_hours: float = 1.0
    allow_after_exam: bool = False

    def __post_init__(self) -> None:
        if not self.subject_id:
            raise InvalidSubjectError("subject_id must be a non-empty string")
        if not 1 <= self.difficulty <= 5:
            raise InvalidSubjectError(f"{self.subject_id}: difficulty must be within [1, 5]")
        if not 1 <= self.confidence <= 5:
            raise InvalidSubjectError(f"{self.subject_id}: confidence must be within [1, 5]")
        if not math.isfinite(self.estimated_hours) or self.estimated_hours <= 0:
            raise InvalidSubjectError(f"{self.subject_id}: estimated_hours must be > 0")


@dataclass(frozen=True)
class ExistingSessionRecord:
    """A reschedulable session placed by a previous run."""

    day: date
    subject_id: str
    duration_hours: float


@dataclass(frozen=True)
class EngineConfig:
    """Planning limits shared by every subject of one run.

    ``completed_hours`` is stored as a read-only mapping and left out of the
    hash, so configs stay usable as dict keys.
    """

    daily_max_hours: float = 4.0
    preferred_daily_hours: float = 2.0
    session_minutes: int = 30
    start_date: date | None = None
    blocked_days: frozenset[date] = field(default_factory=frozenset)
    completed_hours: Mapping[str, float] = field(default_factory=dict, hash=False)
    overload_policy: str = "flag"
    adjustment_percent: float = 0.10

    def __post_init__(self) -> None:
        if self.session_minutes <= 0:
            raise InvalidConfigError("session_minutes must be > 0")
        if self.daily_max_hours < 0 or self.preferred_daily_hours < 0:
            raise InvalidConfigError("daily hours must be >= 0")
        if self.overload_policy not in OVERLOAD_POLICIES:
            raise InvalidConfigError(
                f"overload_policy must be one of {', '.join(OVERLOAD_POLICIES)}"
            )
        if not 0 <= self.adjustment_percent < 1:
            raise InvalidConfigError("adjustment_percent must be within [0, 1)")
        if not isinstance(self.blocked_days, frozenset):
            object.__setattr__(self, "blocked_days", frozenset(self.blocked_days))
        object.__setattr__(self, "completed_hours", MappingProxyType(dict(self.completed_hours)))

    @property
    def chunk_hours(self) -> float:
        return self.session_minutes / 60.0

    @property
    def day_capacity_chunks(self) -> int:
        """Whole chunks that fit into ``daily_max_hours`` (0 when the cap is below one chunk)."""
        return max(0, math.floor(self.daily_max_hours / self.chunk_hours + _EPSILON))

    @property
    def preferred_capacity_chunks(self) -> int:
        soft = min(self.preferred_daily_hours, self.daily_max_hours)
        return max(0, math.floor(soft / self.chunk_hours + _EPSILON))


class SubjectStatus(str, Enum):
    ACTIVE = "ACTIVE"
    DONE = "DONE"


@dataclass(slots=True)
class SubjectState:
    """Per-run derived state of one subject; discarded after the run.

    ``scheduled_chunks`` is filled once the calendar is final. A subject turns
    DONE when nothing is left to study or the calendar covers every required
    chunk; it never goes back to ACTIVE.
    """

    subject_id: str
    exam_date: date
    adjusted_hours: float
    completed_hours: float
    required_chunks: int
    study_days: list[date] = field(default_factory=list)
    final_review_day: date | None = None
    status: SubjectStatus = SubjectStatus.ACTIVE
    scheduled_chunks: int = 0

    @property
    def remaining_hours(self) -> float:
        return max(0.0, self.adjusted_hours - self.completed_hours)

    @property
    def unscheduled_chunks(self) -> int:
        return max(0, self.required_chunks - self.scheduled_chunks)

    def mark_done(self) -> None:
        self.status = SubjectStatus.DONE

    def record_scheduled(self, chunks: int) -> None:
        self.scheduled_chunks = int(chunks)
        if self.unscheduled_chunks == 0:
            self.mark_done()


@dataclass(slots=True)
class DayAllocation:
    day: date
    subjects: dict[str, float] = field(default_factory=dict)
    overloaded: bool = False

    @property
    def total_hours(self) -> float:
        return round(sum(self.subjects.values()), 6)

    def as_dict(self) -> dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "subjects": {sid: self.subjects[sid] for sid in sorted(self.subjects)},
            "total_hours": self.total_hours,
            "overloaded": self.overloaded,
        }


@dataclass(slots=True)
class OverloadInfo:
    overloaded_days: int
    total_overload_hours: float
    message: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "overloaded_days": self.overloaded_days,
            "total_overload_hours": self.total_overload_hours,
            "message": self.message,
        }


@dataclass(slots=True)
class ScheduleResult:
    calendar: list[DayAllocation] = field(default_factory=list)
    overload: OverloadInfo | None = None

    def hours_by_subject(self) -> dict[str, float]:
        totals: dict[str, float] = {}
        for allocation in self.calendar:
            for sid, hours in allocation.subjects.items():
                totals[sid] = round(totals.get(sid, 0.0) + hours, 6)
        return totals

    def as_dict(self) -> dict[str, Any]:
        return {
            "calendar": [allocation.as_dict() for allocation in self.calendar],
            "overload": self.overload.as_dict() if self.overload is not None else None,
        }


class PlanMode(str, Enum):
    NO_SUBJECTS = "NO_SUBJECTS"
    SINGLE_SUBJECT = "SINGLE_SUBJECT"
    MULTI_SUBJECT_FRESH = "MULTI_SUBJECT_FRESH"
    REBALANCE_ONLY = "REBALANCE_ONLY"


@dataclass(slots=True)
class PlanOutcome:
    mode: PlanMode
    result: ScheduleResult
    audit: ScheduleAudit
    states: dict[str, SubjectState] = field(default_factory=dict)
    reallocation: dict[str, float] = field(default_factory=dict)

    @property
    def calendar(self) -> list[DayAllocation]:
        return self.result.calendar

    def as_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            **self.result.as_dict(),
            "audit": self.audit.as_dict(),
            "reallocation": dict(self.reallocation),
            "subjects": {
                sid: {
                    "adjusted_hours": state.adjusted_hours,
                    "completed_hours": state.completed_hours,
                    "remaining_hours": state.remaining_hours,
                    "required_chunks": state.required_chunks,
                    "scheduled_chunks": state.scheduled_chunks,
                    "final_review_day": state.final_review_day.isoformat() if state.final_review_day else None,
                    "status": state.status.value,
                }
                for sid, state in sorted(self.states.items())
            },
        }
