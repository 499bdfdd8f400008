"""CLI entrypoint for examplanner."""

from __future__ import annotations

import argparse
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from examplanner.engine import classify_history, plan
from examplanner.exceptions import OverloadRejectedError, PlannerError
from examplanner.io import read_json, write_json
from examplanner.metrics import collect_metrics
from examplanner.normalization import (
    build_engine_config,
    normalize_request,
    parse_sessions,
    parse_subjects,
    resolve_engine_config,
)
from examplanner.reporting import (
    build_error_report,
    build_error_report_with_validation,
    build_success_report,
    build_warnings_and_suggestions,
    materialize_sessions,
)
from examplanner.reporting.decision_trace import DecisionTraceCollector
from examplanner.validation import (
    ValidationError,
    ValidationReport,
    validate_domain_inputs,
    validate_plan_request,
)

logger = logging.getLogger(__name__)

_INPUT_FILES = {
    "config_path": "config",
    "subjects_path": "subjects",
    "sessions_path": "sessions",
}


def _resolve_input_path(request_file: Path, value: str) -> Path:
    path = Path(value)
    if path.is_absolute():
        return path
    return (request_file.parent / path).resolve()


def _load_referenced_inputs(request_file: Path, request: dict[str, Any]) -> tuple[dict[str, Any], list[ValidationError]]:
    loaded = dict(request)
    errors: list[ValidationError] = []

    for path_field, target_field in _INPUT_FILES.items():
        resolved = _resolve_input_path(request_file, request[path_field])
        try:
            loaded[target_field] = read_json(resolved)
        except FileNotFoundError:
            errors.append(
                ValidationError(
                    code="file_not_found",
                    message=f"Referenced file not found: {resolved}",
                    path=f"$.{path_field}",
                )
            )
        except ValueError as exc:
            errors.append(
                ValidationError(
                    code="invalid_json",
                    message=str(exc),
                    path=f"$.{path_field}",
                )
            )

    return loaded, errors


def _resolve_today(cli_value: str | None, request: dict[str, Any]) -> date:
    raw = cli_value if cli_value is not None else request.get("today")
    if raw is None:
        return date.today()
    return date.fromisoformat(str(raw))


def run_plan_command(request_path: str, output_path: str, today: str | None = None) -> int:
    validation_report = ValidationReport()

    try:
        request_payload = read_json(request_path)
    except (OSError, ValueError) as exc:
        error = build_error_report(
            [ValidationError(code="invalid_request", message=str(exc), path="$.request")],
            code="request_read_error",
        )
        write_json(output_path, error)
        return 2

    request_payload = normalize_request(request_payload)
    errors = validate_plan_request(request_payload)
    if errors:
        write_json(output_path, build_error_report(errors))
        return 2

    try:
        run_day = _resolve_today(today, request_payload)
    except ValueError:
        write_json(
            output_path,
            build_error_report(
                [ValidationError(code="invalid_date", message="today must be an ISO date (YYYY-MM-DD)", path="$.today")]
            ),
        )
        return 2

    loaded_request, load_errors = _load_referenced_inputs(Path(request_path), request_payload)
    if load_errors:
        write_json(
            output_path,
            build_error_report_with_validation(
                load_errors,
                validation_report=validation_report,
                code="input_load_error",
            ),
        )
        return 2

    effective_config = resolve_engine_config(loaded_request.get("config"), validation_report)
    loaded_request["config"] = effective_config
    validation_report.extend(validate_domain_inputs(loaded_request, today=run_day))

    if validation_report.errors:
        write_json(
            output_path,
            build_error_report_with_validation(
                validation_report.as_errors(),
                validation_report=validation_report,
                code="validation_error",
            ),
        )
        return 2

    subjects = parse_subjects(loaded_request["subjects"])
    history = classify_history(parse_sessions(loaded_request["sessions"]), run_day)
    trace = DecisionTraceCollector(start_timestamp=datetime.now(timezone.utc))

    try:
        config = build_engine_config(effective_config, completed_hours=history.completed_hours)
        outcome = plan(config, subjects, history.reschedulable, today=run_day, trace=trace)
    except OverloadRejectedError as exc:
        write_json(
            output_path,
            build_error_report_with_validation(
                [ValidationError(code="overload_rejected", message=str(exc), path="$.config.overload_policy")],
                validation_report=validation_report,
                code="overload_rejected",
                extra={"overload": exc.overload.as_dict() if exc.overload else None, "choices": exc.choices},
            ),
        )
        return 2
    except PlannerError as exc:
        write_json(
            output_path,
            build_error_report_with_validation(
                [ValidationError(code="planner_error", message=str(exc), path="$")],
                validation_report=validation_report,
                code="planner_error",
            ),
        )
        return 2

    warnings, suggestions = build_warnings_and_suggestions(outcome.audit, outcome.result.overload)
    result = outcome.as_dict()
    result["history"] = {
        "completed_sessions": len(history.completed),
        "missed_sessions": len(history.missed),
        "reschedulable_sessions": len(history.reschedulable),
        "completed_hours": history.completed_hours,
    }
    report = build_success_report(
        result,
        collect_metrics(outcome, config),
        validation_report,
        warnings=warnings,
        suggestions=suggestions,
        sessions=materialize_sessions(outcome.result, subjects, config.session_minutes),
        decision_trace=trace.as_list(),
        effective_config={
            **effective_config,
            "today": run_day.isoformat(),
        },
    )
    write_json(output_path, report)
    logger.info("Plan written to %s (%s)", output_path, outcome.mode.value)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="examplanner", description="Exam study session planner CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    plan_parser = subparsers.add_parser("plan", help="Generate a study calendar from plan_request JSON")
    plan_parser.add_argument("--request", required=True, help="Path to plan_request.json")
    plan_parser.add_argument("--output", required=True, help="Path to plan_output.json")
    plan_parser.add_argument("--today", default=None, help="Override the current date (YYYY-MM-DD)")
    plan_parser.add_argument("--verbose", action="store_true", help="Log engine decisions to stderr")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "plan":
        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.WARNING,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        return run_plan_command(args.request, args.output, today=args.today)

    parser.error("Unknown command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
