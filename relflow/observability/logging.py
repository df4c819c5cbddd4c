"""
Structured logging for relflow.

Core modules log keyword events (table, hops, operation, changed tables)
through ``get_logger``. Batched row operations bind their operation and
persistence mode with ``log_context`` so every event of one run carries
them.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import Processor

from relflow.config.settings import Settings, get_settings

QUIET_LOGGERS = ("prometheus_client",)


def _processors(settings: Settings) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if settings.is_production:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    return processors


def setup_logging(level: str | None = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    JSON lines in production, colored console output otherwise. Logs go to
    stderr so command output on stdout stays parseable.

    Args:
        level: Log level overriding ``settings.log_level`` (e.g. "DEBUG")
    """
    settings = get_settings()
    level = level or settings.log_level

    structlog.configure(
        processors=_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stderr)
    logging.getLogger().setLevel(getattr(logging, level))
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Structured logger for a relflow module."""
    return structlog.get_logger(name)


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """
    Bind ``fields`` to every event logged inside the block.

    Only the given keys are removed on exit; context bound by the caller
    survives.

    Usage:
        with log_context(operation="insert", in_place=False):
            logger.debug("Row operation finished", changed=["airlines"])
    """
    with structlog.contextvars.bound_contextvars(**fields):
        yield
