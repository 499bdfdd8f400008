"""Workload formulas for adjusted/remaining study hours."""

from __future__ import annotations

from typing import Any

from examplanner.models import SubjectSpec, hours_to_chunks

DEFAULT_ADJUSTMENT_PERCENT = 0.10
NEUTRAL_RATING = 3
MIN_REQUIRED_HOURS = 1.0


def _rating_offset(value: int) -> float:
    # Points away from the neutral rating; each point moves the estimate by one adjustment step.
    return float(value) - NEUTRAL_RATING


def estimate_required_hours(subject: SubjectSpec, adjustment_percent: float = DEFAULT_ADJUSTMENT_PERCENT) -> float:
    """Adjust the user estimate by difficulty/confidence, capped at +-``adjustment_percent``."""

    pct = max(0.0, float(adjustment_percent))
    estimate = float(subject.estimated_hours)
    difficulty_multiplier = 1.0 + _rating_offset(subject.difficulty) * pct
    confidence_multiplier = 1.0 - _rating_offset(subject.confidence) * pct
    factor = (difficulty_multiplier + confidence_multiplier) / 2.0

    adjusted = estimate * factor
    adjusted = min(estimate * (1.0 + pct), max(estimate * (1.0 - pct), adjusted))
    return round(max(MIN_REQUIRED_HOURS, adjusted), 6)


def compute_subject_workload(
    subject: SubjectSpec,
    *,
    chunk_hours: float,
    completed_hours: float = 0.0,
    adjustment_percent: float = DEFAULT_ADJUSTMENT_PERCENT,
) -> dict[str, Any]:
    """Compute the workload breakdown for one subject.

    Formulas:
    - hours_adjusted = clamp(estimate * mean(difficulty_mult, confidence_mult))
    - hours_remaining = max(0, hours_adjusted - hours_completed)
    - required_chunks = ceil(hours_remaining / chunk_hours)
    """

    pct = max(0.0, float(adjustment_percent))
    hours_adjusted = estimate_required_hours(subject, pct)
    hours_completed = max(0.0, float(completed_hours))
    hours_remaining = max(0.0, hours_adjusted - hours_completed)

    return {
        "hours_estimated": float(subject.estimated_hours),
        "difficulty_multiplier": 1.0 + _rating_offset(subject.difficulty) * pct,
        "confidence_multiplier": 1.0 - _rating_offset(subject.confidence) * pct,
        "hours_adjusted": hours_adjusted,
        "hours_completed": hours_completed,
        "hours_remaining": round(hours_remaining, 6),
        "required_chunks": hours_to_chunks(hours_remaining, chunk_hours),
    }
