"""JSON logging for the bridge.

Each line is one JSON object. The request's ``trace_id`` is merged in from
contextvars, and non-ASCII values (company names, Japanese filenames) are
written as-is instead of ``\\u`` escapes.
"""

from __future__ import annotations

import logging

import structlog

DEFAULT_LEVEL = "INFO"


def resolve_level(level: str | int) -> int:
    """Map a level name such as ``"debug"`` to its number; unknown names mean INFO."""

    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def bridge_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(ensure_ascii=False),
    ]


def configure_logging(level: str | int = DEFAULT_LEVEL) -> None:
    numeric_level = resolve_level(level)
    structlog.configure(
        processors=bridge_processors(),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(level=numeric_level)
