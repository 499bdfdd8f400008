"""Plan quality metrics collector."""

from __future__ import annotations

from statistics import mean, pstdev
from typing import Any

from examplanner.engine.scoring import gap_pairs
from examplanner.models import EngineConfig, PlanOutcome


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def _confidence_level(score: float) -> str:
    if score >= 0.75:
        return "high"
    if score >= 0.55:
        return "medium"
    return "low"


def collect_metrics(outcome: PlanOutcome, config: EngineConfig) -> dict[str, Any]:
    """Compute normalized metrics with clamp in [0,1]."""
    calendar = outcome.calendar
    chunk_hours = config.chunk_hours
    cap_hours = config.day_capacity_chunks * chunk_hours
    scheduled_hours = outcome.result.hours_by_subject()

    active = {sid: state for sid, state in outcome.states.items() if state.required_chunks > 0}

    coverage_values: list[float] = []
    for sid, state in active.items():
        scheduled_chunks = scheduled_hours.get(sid, 0.0) / chunk_hours
        coverage_values.append(_clamp01(scheduled_chunks / max(1, state.required_chunks)))
    coverage_subject = _clamp01(mean(coverage_values) if coverage_values else 1.0)

    daily_hours = [allocation.total_hours for allocation in calendar]
    total_hours = sum(daily_hours)
    over_hours = sum(max(0.0, hours - cap_hours) for hours in daily_hours)
    feasibility = _clamp01(1.0 - (over_hours / total_hours)) if total_hours > 0 else 1.0

    sat_day = _clamp01(mean(hours / cap_hours for hours in daily_hours)) if daily_hours and cap_hours > 0 else 0.0

    avg_daily = mean(daily_hours) if daily_hours else 0.0
    cv = (pstdev(daily_hours) / avg_daily) if daily_hours and avg_daily > 0 else 0.0
    balance_score = _clamp01(1.0 - min(1.0, cv))

    with_review = [
        sid
        for sid, state in active.items()
        if state.final_review_day is not None
        and any(a.day == state.final_review_day and sid in a.subjects for a in calendar)
    ]
    expecting_review = [sid for sid, state in active.items() if state.final_review_day is not None]
    final_review_coverage = _clamp01(len(with_review) / len(expecting_review)) if expecting_review else 1.0

    pair_count = 0
    for sid in active:
        pair_count += len(gap_pairs(a.day for a in calendar if sid in a.subjects))
    gap_compliance = _clamp01(1.0 - len(outcome.audit.gap_violations) / pair_count) if pair_count else 1.0

    concentration_values = [
        max(a.subjects.values()) / a.total_hours for a in calendar if a.subjects and a.total_hours > 0
    ]
    subject_concentration = mean(concentration_values) if concentration_values else 0.0
    concentration_score = _clamp01(1.0 - min(1.0, subject_concentration))

    reallocated_ratio = _clamp01(float(outcome.reallocation.get("reallocated_ratio", 0.0)))
    stability_score = _clamp01(float(outcome.reallocation.get("stability_score", 1.0)))

    confidence_score = _clamp01(
        (0.30 * coverage_subject)
        + (0.20 * feasibility)
        + (0.15 * final_review_coverage)
        + (0.15 * gap_compliance)
        + (0.10 * balance_score)
        + (0.05 * stability_score)
        + (0.05 * concentration_score)
    )

    return {
        "coverage_subject": coverage_subject,
        "feasibility": feasibility,
        "sat_day": sat_day,
        "cv": _clamp01(cv),
        "balance_score": balance_score,
        "final_review_coverage": final_review_coverage,
        "gap_compliance": gap_compliance,
        "subject_concentration": _clamp01(subject_concentration),
        "concentration_score": concentration_score,
        "reallocated_ratio": reallocated_ratio,
        "stability_score": stability_score,
        "confidence_score": confidence_score,
        "confidence_level": _confidence_level(confidence_score),
        "total_hours": round(total_hours, 6),
        "plan_size": len(calendar),
    }
