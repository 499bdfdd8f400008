"""Planning engine."""

from .calendar import ChunkCalendar
from .intervals import guarantee_final_reviews, repair_intervals
from .merger import merge_placements
from .placer import place_subject
from .rebalance import MoveRules, balance_workload
from .replan import classify_history, compute_reallocation_metrics
from .runner import plan
from .slot_builder import build_study_days, final_review_day
from .workload import compute_subject_workload, estimate_required_hours

__all__ = [
    "ChunkCalendar",
    "MoveRules",
    "balance_workload",
    "build_study_days",
    "classify_history",
    "compute_reallocation_metrics",
    "compute_subject_workload",
    "estimate_required_hours",
    "final_review_day",
    "guarantee_final_reviews",
    "merge_placements",
    "place_subject",
    "plan",
    "repair_intervals",
]
