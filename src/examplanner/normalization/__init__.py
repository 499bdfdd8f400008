"""Input normalization."""

from .config_resolver import DEFAULT_ENGINE_CONFIG, build_engine_config, resolve_engine_config
from .request import normalize_request, parse_sessions, parse_subjects

__all__ = [
    "DEFAULT_ENGINE_CONFIG",
    "build_engine_config",
    "normalize_request",
    "parse_sessions",
    "parse_subjects",
    "resolve_engine_config",
]
