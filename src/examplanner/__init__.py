"""Exam study-session scheduling engine."""

from .engine.runner import plan
from .exceptions import InvalidConfigError, InvalidSubjectError, OverloadRejectedError, PlannerError
from .models import EngineConfig, ExistingSessionRecord, PlanMode, PlanOutcome, SubjectSpec

__all__ = [
    "EngineConfig",
    "ExistingSessionRecord",
    "InvalidConfigError",
    "InvalidSubjectError",
    "OverloadRejectedError",
    "PlanMode",
    "PlanOutcome",
    "PlannerError",
    "SubjectSpec",
    "plan",
]
