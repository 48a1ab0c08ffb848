"""Structured logging setup."""
import logging
import sys

import structlog

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(level: str = "info", json: bool = True) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        level: One of debug, info, warn, error
        json: Render JSON lines (True) or human-readable console output
    """
    log_level = _LEVELS.get(level, logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)
    # basicConfig does nothing once the root logger has handlers
    logging.getLogger().setLevel(log_level)

    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
