"""Structured logging for the posting engine.

Log events go to stderr; stdout is reserved for command output (the CLI
prints one JSON document per command).
"""

import logging
import sys
from typing import TextIO

import structlog

from ledger_posting.config.settings import FlatSettings, get_settings


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=False,
        exception_formatter=structlog.dev.plain_traceback,
    )


def configure_logging(
    settings: FlatSettings | None = None,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog and the standard library loggers.

    Args:
        settings: Source of LOG_LEVEL, LOG_FORMAT and DATABASE_ECHO.
        stream: Destination of log lines, stderr by default.
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level)

    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stderr,
        level=level,
        force=True,
    )
    # Statement logging only when DATABASE_ECHO asks for it
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database_echo else logging.WARNING
    )
    for name in ("httpx", "anthropic", "openai", "google_genai"):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(settings.log_format),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
