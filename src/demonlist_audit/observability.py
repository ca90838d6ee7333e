"""Structured logging setup.

Loggers are structlog bound loggers; event context is passed as keyword
arguments (``logger.info("Entity updated", kind="demon", entity_id=3)``).
Attribute values are never logged by this package, only attribute names.
"""

from __future__ import annotations

import logging
from typing import Any

import structlog

from demonlist_audit.settings import Settings


def configure_logging(settings: Settings) -> None:
    """Configure structlog rendering and the minimum log level.

    Args:
        settings: Application settings. ``log_json`` selects JSON output,
            otherwise a human-readable console renderer is used.
    """
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if settings.log_json
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> Any:
    """Return a structlog logger bound to the given module name."""
    return structlog.get_logger(name)
