"""structlog setup.

Modules log through ``structlog.get_logger()`` with dotted event names and
key/value context. This wires the processor chain once at startup.
"""

from __future__ import annotations

import logging
import sys

import structlog

from beacon.config import LoggingConfig


def configure_logging(config: LoggingConfig) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        config: Logging section of the settings
    """
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    # SQL statements only at WARNING and above
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    renderer: structlog.types.Processor
    if config.json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

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
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
