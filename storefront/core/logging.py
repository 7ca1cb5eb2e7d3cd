"""
Structured logging setup.

Configures structlog on top of the standard library logging module so
that every module can use ``structlog.get_logger(__name__)`` and emit
key/value events.
"""

import logging
import sys
from typing import Optional

import structlog

from .config import get_settings


def configure_logging(
    level: Optional[str] = None, json_logs: Optional[bool] = None
) -> None:
    """
    Configure structlog and the root stdlib logger.

    Args:
        level: Log level name, defaults to LOG_LEVEL from settings
        json_logs: Render JSON lines, defaults to LOG_JSON from settings
    """
    settings = get_settings()
    level = (level or settings.LOG_LEVEL).upper()
    if json_logs is None:
        json_logs = settings.LOG_JSON

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
