"""Validation helpers."""

from .errors import ValidationError
from .errors import ValidationReport
from .domain_validator import validate_domain_inputs
from .request import validate_plan_request

__all__ = [
    "ValidationError",
    "ValidationReport",
    "validate_domain_inputs",
    "validate_plan_request",
]
