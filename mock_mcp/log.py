"""Structured logging setup for the mock MCP server.

Call ``configure_logging`` once at startup (the app lifespan does this) and
use ``get_logger`` for per-module loggers.
"""

import logging
import os
import sys

import structlog


def configure_logging(
    *,
    json_logs: bool | None = None,
    log_level: str = "INFO",
) -> None:
    """Configure structlog for the server.

    Args:
        json_logs: Force JSON output. Defaults to ``True`` when
            ``ENVIRONMENT`` is ``"production"``.
        log_level: Root log level (DEBUG, INFO, WARNING, ERROR).
    """
    if json_logs is None:
        json_logs = os.getenv("ENVIRONMENT", "development") == "production"

    log_level_value = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_logs:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # structlog's filter_by_level consults the stdlib root level
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level_value,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound logger for *name*."""
    return structlog.get_logger(name)
