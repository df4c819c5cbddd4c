"""
Abstract base class and handle type for tabular backends.

Defines the interface that all storage engines must implement. The core
never evaluates predicates or touches rows itself; it only composes calls
to these operations. Whether a handle is an eager in-memory frame or a lazy
query is the backend's business.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any


class BackendError(Exception):
    """Base exception for errors raised by a backend."""


@dataclass(frozen=True, eq=False)
class TableHandle:
    """
    Reference to a (possibly filtered or staged) table on a backend.

    Handles compare by identity: a row operation that leaves a table
    untouched returns the very same handle object.

    Attributes:
        backend: Backend that owns the underlying data
        name: Name of the stored table the handle derives from
        payload: Backend-specific representation (rows, query, ...); backends
            may use None for a live reference to the stored table
    """

    backend: "TabularBackend"
    name: str
    payload: Any

    def __repr__(self) -> str:
        return f"TableHandle(name={self.name!r}, backend={type(self.backend).__name__})"


class TabularBackend(ABC):
    """
    Abstract base class for tabular storage engines.

    Read operations return new handles and never modify stored data. Row
    operations return a staged handle when ``in_place`` is False and write
    to storage when it is True.
    """

    # Tables

    @abstractmethod
    def table(self, name: str) -> TableHandle:
        """Return a handle to the current contents of a stored table."""
        ...

    @abstractmethod
    def copy_table(self, handle: TableHandle, name: str) -> TableHandle:
        """
        Store the rows behind a handle (possibly from another backend).

        Args:
            handle: Source handle
            name: Name for the new stored table

        Returns:
            Handle to the newly stored table
        """
        ...

    @abstractmethod
    def columns(self, handle: TableHandle) -> tuple[str, ...]:
        """Ordered column names of a handle."""
        ...

    @abstractmethod
    def column_types(self, handle: TableHandle) -> dict[str, str | None]:
        """Column name to type name, None where the type is unknown."""
        ...

    @abstractmethod
    def rows(self, handle: TableHandle) -> list[dict[str, Any]]:
        """Collect all rows of a handle."""
        ...

    # Queries

    @abstractmethod
    def project(self, handle: TableHandle, columns: Sequence[str]) -> TableHandle:
        """Keep only the given columns."""
        ...

    @abstractmethod
    def semi_join_filter(
        self,
        left: TableHandle,
        left_keys: Sequence[str],
        right: TableHandle,
        right_keys: Sequence[str],
    ) -> TableHandle:
        """Rows of ``left`` whose ``left_keys`` values occur in ``right``'s ``right_keys``."""
        ...

    @abstractmethod
    def anti_join_filter(
        self,
        left: TableHandle,
        left_keys: Sequence[str],
        right: TableHandle,
        right_keys: Sequence[str],
    ) -> TableHandle:
        """Rows of ``left`` with non-missing keys that don't occur in ``right``."""
        ...

    @abstractmethod
    def apply_predicate(self, handle: TableHandle, predicate: Any) -> TableHandle:
        """Keep only rows for which ``predicate`` holds."""
        ...

    @abstractmethod
    def row_count(self, handle: TableHandle) -> int:
        ...

    @abstractmethod
    def distinct_count(self, handle: TableHandle, columns: Sequence[str]) -> int:
        """Number of distinct value combinations without missing values."""
        ...

    # Row operations

    @abstractmethod
    def insert(
        self,
        target: TableHandle,
        source: TableHandle,
        keys: Sequence[str],
        in_place: bool,
    ) -> TableHandle:
        """Add rows of ``source``; keys must not exist in ``target``."""
        ...

    @abstractmethod
    def update(
        self,
        target: TableHandle,
        source: TableHandle,
        keys: Sequence[str],
        in_place: bool,
    ) -> TableHandle:
        """Overwrite matching rows; every key of ``source`` must exist."""
        ...

    @abstractmethod
    def patch(
        self,
        target: TableHandle,
        source: TableHandle,
        keys: Sequence[str],
        in_place: bool,
    ) -> TableHandle:
        """Fill missing values of matching rows."""
        ...

    @abstractmethod
    def upsert(
        self,
        target: TableHandle,
        source: TableHandle,
        keys: Sequence[str],
        in_place: bool,
    ) -> TableHandle:
        """Update matching rows and insert the others."""
        ...

    @abstractmethod
    def delete(
        self,
        target: TableHandle,
        source: TableHandle,
        keys: Sequence[str],
        in_place: bool,
    ) -> TableHandle:
        """Remove matching rows; every key of ``source`` must exist."""
        ...

    @abstractmethod
    def truncate(
        self,
        target: TableHandle,
        source: TableHandle,
        keys: Sequence[str],
        in_place: bool,
    ) -> TableHandle:
        """Remove all rows of ``target``."""
        ...
