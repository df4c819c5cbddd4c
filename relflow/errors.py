"""Exception taxonomy for key-graph propagation and batched row operations.

All errors are raised synchronously and never retried. Backend failures
(e.g. a uniqueness violation on insert) are not translated and propagate
as whatever the backend raises.
"""

from collections.abc import Iterable


class RelflowError(Exception):
    """Base class for all relflow errors."""


class SchemaError(RelflowError):
    """Raised when a key declaration is malformed."""


class CyclicGraphError(RelflowError):
    """Raised when a cycle is found where an acyclic key graph is required."""

    def __init__(self, cycle: Iterable[str]):
        self.cycle = tuple(cycle)
        path = " -> ".join(self.cycle)
        super().__init__(f"Key graph contains a cycle: {path}")


class PendingFiltersError(RelflowError):
    """Raised when a key/metadata operation runs while filters are unapplied."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"`{operation}()` can't be called while filters are pending. "
            "Call `apply_filters()` first."
        )


class SourceMismatchError(RelflowError):
    """Raised when two data models don't share the same backend."""

    def __init__(self) -> None:
        super().__init__("All tables must be on the same backend.")


class MissingTableError(RelflowError):
    """Raised when tables referenced by the caller don't exist."""

    def __init__(self, tables: Iterable[str]):
        self.tables = tuple(tables)
        super().__init__(f"Table(s) not found: {', '.join(self.tables)}")


class MissingColumnError(RelflowError):
    """Raised when a source table has columns the target table lacks."""

    def __init__(self, table: str, columns: Iterable[str]):
        self.table = table
        self.columns = tuple(columns)
        super().__init__(
            f"Table `{table}` is missing column(s): {', '.join(self.columns)}"
        )


class ZoomedStateError(RelflowError):
    """Raised when an operation requires a data model that isn't zoomed."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(
            f"Data model is zoomed to `{table}`. Call `unzoom()` first."
        )


class IncompatibleKeysError(RelflowError):
    """Raised when two data models declare different keys for the same table."""

    def __init__(self, table: str, reason: str):
        self.table = table
        self.reason = reason
        super().__init__(f"Incompatible keys for table `{table}`: {reason}")
