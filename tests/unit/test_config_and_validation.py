from __future__ import annotations

from datetime import date

import pytest

from examplanner.exceptions import InvalidConfigError
from examplanner.models import EngineConfig
from examplanner.normalization import DEFAULT_ENGINE_CONFIG, build_engine_config, parse_subjects, resolve_engine_config
from examplanner.validation import ValidationReport, validate_domain_inputs, validate_plan_request


def test_resolve_engine_config_applies_defaults_and_reports_unknown_keys() -> None:
    report = ValidationReport()

    resolved = resolve_engine_config({"schema_version": "1.0", "daily_max_hours": 3, "colour": "blue"}, report)

    assert resolved["daily_max_hours"] == 3
    assert resolved["session_minutes"] == DEFAULT_ENGINE_CONFIG["session_minutes"]
    assert "colour" not in resolved
    assert report.error_codes() == ["INVALID_CONFIG_KEY"]


def test_resolve_engine_config_clamps_preferred_hours() -> None:
    report = ValidationReport()

    resolved = resolve_engine_config({"daily_max_hours": 2, "preferred_daily_hours": 5}, report)

    assert resolved["preferred_daily_hours"] == 2
    assert [info.code for info in report.infos] == ["INFO_CLAMP_PREFERRED_HOURS"]
    assert report.errors == []


def test_build_engine_config_parses_dates() -> None:
    resolved = resolve_engine_config(
        {"start_date": "2026-01-03", "blocked_days": ["2026-01-05"], "session_minutes": 60},
        ValidationReport(),
    )

    config = build_engine_config(resolved, completed_hours={"math": 2.0})

    assert config.start_date == date(2026, 1, 3)
    assert config.blocked_days == frozenset({date(2026, 1, 5)})
    assert config.chunk_hours == 1.0
    assert config.day_capacity_chunks == 4
    assert config.preferred_capacity_chunks == 2
    assert config.completed_hours == {"math": 2.0}


def test_engine_config_capacity_below_one_chunk_is_zero() -> None:
    assert EngineConfig(daily_max_hours=0.25, session_minutes=30).day_capacity_chunks == 0


@pytest.mark.parametrize(
    "overrides",
    [
        {"session_minutes": 0},
        {"daily_max_hours": -1},
        {"overload_policy": "ignore"},
        {"adjustment_percent": 1.5},
    ],
)
def test_engine_config_rejects_malformed_values(overrides: dict) -> None:
    with pytest.raises(InvalidConfigError):
        EngineConfig(**overrides)


def test_domain_validation_reports_multiple_errors() -> None:
    payload = {
        "config": {"session_minutes": 0, "blocked_days": ["2026-13-01"]},
        "subjects": {
            "subjects": [
                {"subject_id": "math", "exam_date": "2026-01-10", "estimated_hours": 10},
                {"subject_id": "math", "exam_date": "2026-01-12", "estimated_hours": 0},
                {"subject_id": "bio", "exam_date": "soon", "estimated_hours": 4, "difficulty": 7},
            ]
        },
        "sessions": {
            "sessions": [
                {"subject_id": "chem", "date": "2026-01-02", "duration_minutes": 30},
                {"subject_id": "math", "date": "2026-01-02", "duration_minutes": -5},
            ]
        },
    }

    report = validate_domain_inputs(payload)
    codes = set(report.error_codes())

    assert {
        "INVALID_SESSION_MINUTES",
        "INVALID_DATE",
        "DUPLICATE_SUBJECT_ID",
        "INVALID_ESTIMATED_HOURS",
        "INVALID_RATING",
        "UNKNOWN_SUBJECT_REFERENCE",
        "INVALID_SESSION_DURATION",
    } <= codes


def test_domain_validation_infos_for_unplannable_inputs() -> None:
    payload = {
        "config": {"daily_max_hours": 0.25, "session_minutes": 30},
        "subjects": {"subjects": [{"subject_id": "math", "exam_date": "2026-01-01", "estimated_hours": 3}]},
        "sessions": {"sessions": []},
    }

    report = validate_domain_inputs(payload, today=date(2026, 1, 1))

    assert report.errors == []
    assert {info.code for info in report.infos} == {"INFO_EXAM_WITHOUT_STUDY_WINDOW", "INFO_DAILY_CAP_BELOW_CHUNK"}


def test_plan_request_requires_every_path() -> None:
    errors = validate_plan_request({"config_path": "config.json", "subjects_path": ""})

    assert [(err.code, err.path) for err in errors] == [
        ("invalid_type", "$.subjects_path"),
        ("missing_field", "$.sessions_path"),
    ]


def test_parse_subjects_defaults_name_and_ratings() -> None:
    subjects = parse_subjects({"subjects": [{"subject_id": "math", "exam_date": "2026-02-01", "estimated_hours": 6}]})

    assert subjects[0].name == "math"
    assert subjects[0].difficulty == 3
    assert subjects[0].exam_date == date(2026, 2, 1)
