"""Unique names for temporary tables.

Names have the form ``{prefix}{table}_{timestamp}_{n}`` where ``n`` comes
from a process-wide monotonic counter. The timestamp can be frozen via
settings so generated names are reproducible.
"""

import itertools
import threading
from collections.abc import Callable
from datetime import datetime

from relflow.config.settings import Settings, get_settings

_counter = itertools.count(1)
_counter_lock = threading.Lock()


def _next_sequence() -> int:
    with _counter_lock:
        return next(_counter)


def convenient_timestamp(now: datetime | None = None) -> str:
    """Format a timestamp as ``YYYY_MM_DD_HH_MM_SS``."""
    now = now or datetime.now()
    return now.strftime("%Y_%m_%d_%H_%M_%S")


class TableNamer:
    """Callable that produces unique temporary table names.

    Usage:
        namer = TableNamer(prefix="#")
        namer("flights")  # '#flights_2024_05_01_10_00_00_1'
    """

    def __init__(
        self,
        prefix: str | None = None,
        clock: Callable[[], datetime] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._prefix = self._settings.temp_table_prefix if prefix is None else prefix
        self._clock = clock or datetime.now

    def timestamp(self) -> str:
        if self._settings.freeze_timestamp:
            return self._settings.freeze_timestamp
        return convenient_timestamp(self._clock())

    def __call__(self, table_name: str) -> str:
        return f"{self._prefix}{table_name}_{self.timestamp()}_{_next_sequence()}"
