"""Logging configuration for settle."""

from __future__ import annotations

import logging
import sys

import structlog

# Transport chatter drowns out saga transitions
_NOISY = ("httpx", "httpcore")


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """Route stdlib logging and structlog through one renderer."""
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _NOISY:
        logging.getLogger(name).setLevel(logging.WARNING)

    renderer: structlog.typing.Processor = (
        structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


__all__ = ("configure_logging",)
