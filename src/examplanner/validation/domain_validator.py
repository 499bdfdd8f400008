"""Domain-level cross-file validation rules."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

from .errors import ValidationReport

_RATING_FIELDS = ("difficulty", "confidence")


def validate_domain_inputs(loaded_payload: dict[str, Any], *, today: date | None = None) -> ValidationReport:
    """Validate config values, subjects and session history together."""
    report = ValidationReport()

    config = loaded_payload.get("config", {})
    subjects_payload = loaded_payload.get("subjects", {})
    sessions_payload = loaded_payload.get("sessions", {})

    start_date = _validate_config_values(config if isinstance(config, dict) else {}, report)

    subjects = subjects_payload.get("subjects", []) if isinstance(subjects_payload, dict) else []
    if not isinstance(subjects, list):
        report.add_error(
            code="INVALID_SUBJECTS",
            message="subjects must be a list",
            field_path="$.subjects.subjects",
        )
        subjects = []

    subject_ids: set[str] = set()
    for idx, subject in enumerate(subjects):
        path = f"$.subjects.subjects[{idx}]"
        if not isinstance(subject, dict):
            report.add_error(code="INVALID_SUBJECT", message="Subject entries must be objects", field_path=path)
            continue

        subject_id = subject.get("subject_id")
        if not isinstance(subject_id, str) or not subject_id:
            report.add_error(
                code="MISSING_SUBJECT_ID",
                message="subject_id must be a non-empty string",
                field_path=f"{path}.subject_id",
            )
        elif subject_id in subject_ids:
            report.add_error(
                code="DUPLICATE_SUBJECT_ID",
                message=f"Duplicate subject_id: {subject_id}",
                field_path=f"{path}.subject_id",
            )
        else:
            subject_ids.add(subject_id)

        exam_date = _parse_date(subject.get("exam_date"))
        if exam_date is None:
            report.add_error(
                code="INVALID_DATE",
                message="exam_date must be an ISO date (YYYY-MM-DD)",
                field_path=f"{path}.exam_date",
            )

        for rating in _RATING_FIELDS:
            value = subject.get(rating, 3)
            if not _is_int(value) or not 1 <= value <= 5:
                report.add_error(
                    code="INVALID_RATING",
                    message=f"{rating} must be an integer within [1, 5]",
                    field_path=f"{path}.{rating}",
                )

        hours = subject.get("estimated_hours")
        if not _is_number(hours) or hours <= 0:
            report.add_error(
                code="INVALID_ESTIMATED_HOURS",
                message="estimated_hours must be a number > 0",
                field_path=f"{path}.estimated_hours",
                suggested_fix="Give every subject a positive hour estimate.",
            )

        if exam_date is not None and today is not None:
            lower = max(today, start_date) if start_date is not None else today
            last_day = exam_date if subject.get("allow_after_exam") is True else exam_date - timedelta(days=1)
            if last_day < lower:
                report.add_info(
                    code="INFO_EXAM_WITHOUT_STUDY_WINDOW",
                    message="No study day remains before this exam; the subject will be reported incomplete",
                    field_path=f"{path}.exam_date",
                )

    sessions = sessions_payload.get("sessions", []) if isinstance(sessions_payload, dict) else []
    if not isinstance(sessions, list):
        report.add_error(
            code="INVALID_SESSIONS",
            message="sessions must be a list",
            field_path="$.sessions.sessions",
        )
        sessions = []

    for idx, session in enumerate(sessions):
        path = f"$.sessions.sessions[{idx}]"
        if not isinstance(session, dict):
            report.add_error(code="INVALID_SESSION", message="Session entries must be objects", field_path=path)
            continue

        session_subject = session.get("subject_id")
        if not isinstance(session_subject, str) or session_subject not in subject_ids:
            report.add_error(
                code="UNKNOWN_SUBJECT_REFERENCE",
                message=f"Unknown subject_id reference: {session_subject}",
                field_path=f"{path}.subject_id",
            )

        if _parse_date(session.get("date")) is None:
            report.add_error(
                code="INVALID_DATE",
                message="date must be an ISO date (YYYY-MM-DD)",
                field_path=f"{path}.date",
            )

        duration = session.get("duration_minutes")
        if not _is_number(duration) or duration < 0:
            report.add_error(
                code="INVALID_SESSION_DURATION",
                message="duration_minutes must be a number >= 0",
                field_path=f"{path}.duration_minutes",
            )

    return report


def _validate_config_values(config: dict[str, Any], report: ValidationReport) -> date | None:
    session_minutes = config.get("session_minutes")
    if session_minutes is not None and (not _is_int(session_minutes) or session_minutes <= 0):
        report.add_error(
            code="INVALID_SESSION_MINUTES",
            message="session_minutes must be an integer > 0",
            field_path="$.config.session_minutes",
        )
        session_minutes = None

    for key in ("daily_max_hours", "preferred_daily_hours"):
        value = config.get(key)
        if value is not None and (not _is_number(value) or value < 0):
            report.add_error(
                code="INVALID_DAILY_HOURS",
                message=f"{key} must be a number >= 0",
                field_path=f"$.config.{key}",
            )

    policy = config.get("overload_policy")
    if policy is not None and policy not in ("flag", "reject"):
        report.add_error(
            code="INVALID_OVERLOAD_POLICY",
            message="overload_policy must be 'flag' or 'reject'",
            field_path="$.config.overload_policy",
        )

    pct = config.get("adjustment_percent")
    if pct is not None and (not _is_number(pct) or not 0 <= pct < 1):
        report.add_error(
            code="INVALID_ADJUSTMENT_PERCENT",
            message="adjustment_percent must be within [0, 1)",
            field_path="$.config.adjustment_percent",
        )

    start_date = None
    raw_start = config.get("start_date")
    if raw_start is not None:
        start_date = _parse_date(raw_start)
        if start_date is None:
            report.add_error(
                code="INVALID_DATE",
                message="start_date must be an ISO date (YYYY-MM-DD)",
                field_path="$.config.start_date",
            )

    blocked = config.get("blocked_days", [])
    if not isinstance(blocked, list):
        report.add_error(
            code="INVALID_BLOCKED_DAYS",
            message="blocked_days must be a list of ISO dates",
            field_path="$.config.blocked_days",
        )
    else:
        for idx, raw in enumerate(blocked):
            if _parse_date(raw) is None:
                report.add_error(
                    code="INVALID_DATE",
                    message="blocked_days entries must be ISO dates (YYYY-MM-DD)",
                    field_path=f"$.config.blocked_days[{idx}]",
                )

    daily_max = config.get("daily_max_hours")
    if _is_number(daily_max) and daily_max >= 0 and _is_int(session_minutes) and session_minutes > 0:
        if daily_max * 60 < session_minutes:
            report.add_info(
                code="INFO_DAILY_CAP_BELOW_CHUNK",
                message="daily_max_hours is shorter than one session; nothing can be scheduled",
                field_path="$.config.daily_max_hours",
                extra={"session_minutes": session_minutes},
            )

    return start_date


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_date(raw: Any) -> date | None:
    if not isinstance(raw, str):
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None
