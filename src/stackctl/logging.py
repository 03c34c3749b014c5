"""Diagnostic logging for stackctl.

Progress lines and diffs go to stdout through the ``output`` callable the
flows carry. Everything here is diagnostics: structured events such as
``switch.planned`` or ``backup.restored`` written to stderr, silent unless
``--log-level`` (or ``STACKCTL_LOG_LEVEL``) lowers the threshold.
"""

import logging
import sys
from typing import Any

import structlog

LOG_FORMATS = ("console", "json")


def _renderer(log_format: str) -> list[Any]:
    if log_format == "json":
        # One object per line; tracebacks become structured data
        return [
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    # Time of day only
    return [
        structlog.processors.TimeStamper(fmt="%H:%M:%S", utc=False),
        structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
    ]


def configure_logging(log_level: str = "WARNING", log_format: str = "console") -> None:
    """Route structlog events to stderr at the given level.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL, in any case.
            Anything else means WARNING.
        log_format: "console" or "json"; anything else means console
    """
    numeric_level = logging.getLevelName(log_level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.WARNING

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=numeric_level,
        force=True,
    )
    structlog.contextvars.clear_contextvars()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            *_renderer(log_format if log_format in LOG_FORMATS else "console"),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
