"""Warning and suggestion generation for planning output."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from examplanner.models import OverloadInfo

if TYPE_CHECKING:
    from examplanner.validation.schedule_validator import ScheduleAudit


def build_warnings_and_suggestions(
    audit: ScheduleAudit,
    overload: OverloadInfo | None = None,
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Translate audit findings into user-facing warnings and matching suggestions."""
    warnings: list[dict[str, Any]] = []
    suggestions: list[dict[str, Any]] = []

    # (1) Days above the hard cap.
    if overload is not None:
        warnings.append(
            {
                "code": "WARN_SCHEDULE_OVERLOADED",
                "severity": "warning",
                "overloaded_days": overload.overloaded_days,
                "total_overload_hours": overload.total_overload_hours,
                "message": overload.message,
            }
        )
        suggestions.append(
            {
                "code": "SUGGEST_INCREASE_DAILY_LIMIT",
                "message": "Raise daily_max_hours or move an exam date later to absorb the extra sessions.",
            }
        )

    # (2) Subjects that could not be fully scheduled.
    for item in audit.incomplete_subjects:
        sid = str(item["subject_id"])
        warnings.append(
            {
                "code": "WARN_SUBJECT_INCOMPLETE",
                "severity": "warning",
                "subject_id": sid,
                "required_chunks": item["required_chunks"],
                "scheduled_chunks": item["scheduled_chunks"],
                "reason": item["reason"],
                "message": "Not every required session of this subject fits before its exam.",
            }
        )
        if item["reason"] == "no_valid_days":
            suggestions.append(
                {
                    "code": "SUGGEST_EXTEND_DATES",
                    "subject_id": sid,
                    "message": "Unblock days or move the exam date so at least one study day remains.",
                }
            )
        else:
            suggestions.append(
                {
                    "code": "SUGGEST_REDUCE_HOURS",
                    "subject_id": sid,
                    "message": "Lower the hour estimate or raise the daily limit for this subject.",
                }
            )

    # (3) Missing day-before-exam review.
    for item in audit.missing_final_reviews:
        warnings.append(
            {
                "code": "WARN_FINAL_REVIEW_MISSING",
                "severity": "warning",
                "subject_id": item["subject_id"],
                "date": item["date"],
                "message": "No review session on the day before the exam.",
            }
        )
        suggestions.append(
            {
                "code": "SUGGEST_INCREASE_DAILY_LIMIT",
                "message": "Raise daily_max_hours or move an exam date later to absorb the extra sessions.",
            }
        )

    # (4) Spacing between sessions.
    for item in audit.gap_violations:
        warnings.append(
            {
                "code": "WARN_LONG_GAP",
                "severity": "info",
                "subject_id": item["subject_id"],
                "from": item["from"],
                "to": item["to"],
                "gap_days": item["gap_days"],
                "message": "Long break between two sessions of the same subject.",
            }
        )

    # (5) Hard constraint breaches; never expected from the engine itself.
    for item in [*audit.post_exam_sessions, *audit.blocked_day_sessions]:
        warnings.append(
            {
                "code": "WARN_INVALID_DAY",
                "severity": "critical",
                "subject_id": item["subject_id"],
                "date": item["date"],
                "message": "Session placed on a blocked day or after the exam.",
            }
        )

    unique_suggestions: list[dict[str, Any]] = []
    seen: set[tuple[str, str]] = set()
    for item in suggestions:
        key = (str(item.get("code", "")), str(item.get("subject_id", "*")))
        if key in seen:
            continue
        seen.add(key)
        unique_suggestions.append(item)

    return warnings, unique_suggestions
