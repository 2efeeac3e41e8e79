"""structlog setup for the API process."""

from __future__ import annotations

import logging
import sys
from typing import Iterable

import structlog

# SDK loggers that log every HTTP round trip at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore", "azure", "openai", "pymongo")


def configure_logging(level: str, fmt: str, quiet: Iterable[str] = _CHATTY_LOGGERS) -> None:
    """Route stdlib and structlog output to stderr as console or JSON lines.

    Loggers named in *quiet* are raised to WARNING unless *level* is DEBUG.
    """
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", level=numeric, stream=sys.stderr)
    if numeric > logging.DEBUG:
        for name in quiet:
            logging.getLogger(name).setLevel(logging.WARNING)

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
