"""Structured logging configuration with structlog.

LOG_FORMAT: "json" for log aggregation, "console" (default) for readable output.
LOG_LEVEL: "DEBUG", "INFO" (default), "WARNING", "ERROR" or "CRITICAL".
"""

import logging
import sys
from typing import Optional

import structlog

from .config import settings

_VALID_LOG_FORMATS = {"json", "console"}
_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _resolve_log_level(value: str) -> int:
    if value not in _VALID_LOG_LEVELS:
        raise ValueError(f"Invalid LOG_LEVEL={value!r}. Must be one of {', '.join(sorted(_VALID_LOG_LEVELS))}.")
    return getattr(logging, value)


def _build_formatter(json_mode: bool) -> logging.Formatter:
    renderer = structlog.processors.JSONRenderer() if json_mode else structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty()
    )
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Route structlog through the stdlib root logger with one stdout handler."""
    log_format = (log_format or settings.LOG_FORMAT).lower()
    if log_format not in _VALID_LOG_FORMATS:
        raise ValueError(f"Invalid LOG_FORMAT={log_format!r}. Must be 'json' or 'console'.")
    resolved_level = _resolve_log_level((level or settings.LOG_LEVEL).upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved_level)
    root_logger.handlers.clear()

    # urllib3 logs every random.org connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_build_formatter(json_mode=(log_format == "json")))
    root_logger.addHandler(handler)
