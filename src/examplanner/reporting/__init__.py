"""Reporting utilities."""

from .reports import build_error_report, build_error_report_with_validation, build_success_report
from .sessions import materialize_sessions
from .warnings import build_warnings_and_suggestions

__all__ = [
    "build_error_report",
    "build_error_report_with_validation",
    "build_success_report",
    "build_warnings_and_suggestions",
    "materialize_sessions",
]
