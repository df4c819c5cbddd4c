"""
In-memory tabular backend.

Stores each table as an immutable frame (column names plus a tuple of row
dicts). Predicates are plain callables receiving a read-only row mapping:

    backend = InMemoryBackend()
    airports = backend.create_table("airports", [{"faa": "JFK", "name": "JFK"}])
    jfk = backend.apply_predicate(airports, lambda row: row["faa"] == "JFK")

Handles returned by `table` and `create_table` track the stored table, so
they see later in-place writes. Handles derived by queries or staged row
operations hold a fixed frame.

Rows whose key columns contain None never match in semi-joins, following
SQL NULL semantics.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from .base import BackendError, TableHandle, TabularBackend

logger = logging.getLogger(__name__)


class UnknownTableError(BackendError, KeyError):
    """Raised when a stored table doesn't exist."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class UnknownColumnError(BackendError):
    """Raised when an operation references columns the table lacks."""


class DuplicateKeyError(BackendError):
    """Raised when an insert would duplicate an existing key."""

    def __init__(self, table: str, key: tuple):
        self.table = table
        self.key = key
        super().__init__(f"Duplicate key {key!r} in table `{table}`")


class RowNotFoundError(BackendError):
    """Raised when an update/patch/delete references a key that doesn't exist."""

    def __init__(self, table: str, key: tuple):
        self.table = table
        self.key = key
        super().__init__(f"Key {key!r} not found in table `{table}`")


@dataclass(frozen=True)
class Frame:
    """Immutable table contents."""

    columns: tuple[str, ...]
    rows: tuple[dict[str, Any], ...]


def _key(row: Mapping[str, Any], columns: Sequence[str]) -> tuple:
    return tuple(row.get(column) for column in columns)


def _complete(key: tuple) -> bool:
    return all(value is not None for value in key)


class InMemoryBackend(TabularBackend):
    """
    Backend holding all tables in process memory.

    Read operations build new frames and leave stored tables untouched. Row
    operations with ``in_place=True`` replace the stored frame.
    """

    def __init__(self, name: str = "memory") -> None:
        self.name = name
        self._tables: dict[str, Frame] = {}

    def __repr__(self) -> str:
        return f"InMemoryBackend(name={self.name!r}, tables={list(self._tables)})"

    @property
    def table_names(self) -> tuple[str, ...]:
        return tuple(self._tables)

    def create_table(
        self,
        name: str,
        rows: Iterable[Mapping[str, Any]] = (),
        columns: Sequence[str] | None = None,
    ) -> TableHandle:
        """
        Store a new table, replacing any existing table of the same name.

        Args:
            name: Table name
            rows: Row mappings; missing columns are filled with None
            columns: Column order (defaults to the keys of the first row)

        Returns:
            Handle tracking the stored table
        """
        rows = [dict(row) for row in rows]
        if columns is None:
            columns = tuple(rows[0]) if rows else ()
        columns = tuple(columns)

        for row in rows:
            unknown = set(row) - set(columns)
            if unknown:
                raise UnknownColumnError(
                    f"Row for `{name}` has unknown column(s): {sorted(unknown)}"
                )

        frame = Frame(columns, tuple({c: row.get(c) for c in columns} for row in rows))
        self._tables[name] = frame
        return self.table(name)

    def drop_table(self, name: str) -> None:
        self._tables.pop(name, None)

    # Tables

    def table(self, name: str) -> TableHandle:
        self._stored(name)
        return TableHandle(self, name, None)

    def copy_table(self, handle: TableHandle, name: str) -> TableHandle:
        source = handle.backend
        return self.create_table(name, source.rows(handle), source.columns(handle))

    def columns(self, handle: TableHandle) -> tuple[str, ...]:
        return self._frame(handle).columns

    def column_types(self, handle: TableHandle) -> dict[str, str | None]:
        frame = self._frame(handle)
        types: dict[str, str | None] = {}
        for column in frame.columns:
            types[column] = next(
                (type(row[column]).__name__ for row in frame.rows if row[column] is not None),
                None,
            )
        return types

    def rows(self, handle: TableHandle) -> list[dict[str, Any]]:
        return [dict(row) for row in self._frame(handle).rows]

    # Queries

    def project(self, handle: TableHandle, columns: Sequence[str]) -> TableHandle:
        frame = self._frame(handle)
        self._check_columns(handle.name, frame, columns)
        columns = tuple(columns)
        rows = tuple({c: row[c] for c in columns} for row in frame.rows)
        return self._derive(handle, Frame(columns, rows))

    def semi_join_filter(
        self,
        left: TableHandle,
        left_keys: Sequence[str],
        right: TableHandle,
        right_keys: Sequence[str],
    ) -> TableHandle:
        frame, keys = self._join_keys(left, left_keys, right, right_keys)
        rows = tuple(
            row for row in frame.rows
            if _complete(_key(row, left_keys)) and _key(row, left_keys) in keys
        )
        return self._derive(left, Frame(frame.columns, rows))

    def anti_join_filter(
        self,
        left: TableHandle,
        left_keys: Sequence[str],
        right: TableHandle,
        right_keys: Sequence[str],
    ) -> TableHandle:
        frame, keys = self._join_keys(left, left_keys, right, right_keys)
        rows = tuple(
            row for row in frame.rows
            if _complete(_key(row, left_keys)) and _key(row, left_keys) not in keys
        )
        return self._derive(left, Frame(frame.columns, rows))

    def apply_predicate(self, handle: TableHandle, predicate: Any) -> TableHandle:
        if not callable(predicate):
            raise TypeError(
                f"InMemoryBackend predicates must be callable, got {type(predicate).__name__}"
            )
        frame = self._frame(handle)
        rows = tuple(row for row in frame.rows if predicate(MappingProxyType(row)))
        return self._derive(handle, Frame(frame.columns, rows))

    def row_count(self, handle: TableHandle) -> int:
        return len(self._frame(handle).rows)

    def distinct_count(self, handle: TableHandle, columns: Sequence[str]) -> int:
        frame = self._frame(handle)
        self._check_columns(handle.name, frame, columns)
        return len({
            _key(row, columns) for row in frame.rows if _complete(_key(row, columns))
        })

    # Row operations

    def insert(self, target, source, keys, in_place):
        return self._write("insert", target, source, keys, in_place)

    def update(self, target, source, keys, in_place):
        return self._write("update", target, source, keys, in_place)

    def patch(self, target, source, keys, in_place):
        return self._write("patch", target, source, keys, in_place)

    def upsert(self, target, source, keys, in_place):
        return self._write("upsert", target, source, keys, in_place)

    def delete(self, target, source, keys, in_place):
        return self._write("delete", target, source, keys, in_place)

    def truncate(self, target, source, keys, in_place):
        return self._write("truncate", target, source, keys, in_place)

    # Internals

    def _stored(self, name: str) -> Frame:
        try:
            return self._tables[name]
        except KeyError:
            raise UnknownTableError(f"Table `{name}` not found on backend {self.name!r}") from None

    def _frame(self, handle: TableHandle) -> Frame:
        if handle.backend is not self:
            raise BackendError(f"Handle for `{handle.name}` belongs to another backend")
        if handle.payload is None:
            return self._stored(handle.name)
        return handle.payload

    def _derive(self, handle: TableHandle, frame: Frame) -> TableHandle:
        return TableHandle(self, handle.name, frame)

    @staticmethod
    def _check_columns(table: str, frame: Frame, columns: Iterable[str]) -> None:
        missing = [c for c in columns if c not in frame.columns]
        if missing:
            raise UnknownColumnError(f"Table `{table}` has no column(s): {missing}")

    def _join_keys(self, left, left_keys, right, right_keys) -> tuple[Frame, set[tuple]]:
        if len(left_keys) != len(right_keys):
            raise BackendError("Join key arity mismatch")
        frame = self._frame(left)
        right_frame = self._frame(right)
        self._check_columns(left.name, frame, left_keys)
        self._check_columns(right.name, right_frame, right_keys)
        keys = {_key(row, right_keys) for row in right_frame.rows}
        return frame, keys

    def _write(
        self,
        operation: str,
        target: TableHandle,
        source: TableHandle,
        keys: Sequence[str],
        in_place: bool,
    ) -> TableHandle:
        staged = self._frame(target)
        base = self._stored(target.name) if in_place else staged
        source_rows = source.backend.rows(source)
        source_columns = source.backend.columns(source)
        self._check_columns(target.name, base, source_columns)
        if not keys and source_columns:
            # Same default as dplyr's rows_*(): match on the first column
            keys = source_columns[:1]

        rows = [dict(row) for row in base.rows]
        if operation == "truncate":
            rows = []
        elif operation == "delete":
            doomed = set()
            present = {_key(row, keys) for row in rows}
            for row in source_rows:
                key = _key(row, keys)
                if key not in present:
                    raise RowNotFoundError(target.name, key)
                doomed.add(key)
            rows = [row for row in rows if _key(row, keys) not in doomed]
        else:
            index = {_key(row, keys): i for i, row in enumerate(rows)} if keys else {}
            for row in source_rows:
                key = _key(row, keys)
                position = index.get(key) if keys else None
                if position is None:
                    if operation in ("update", "patch"):
                        raise RowNotFoundError(target.name, key)
                    new_row = {c: row.get(c) for c in base.columns}
                    if keys:
                        index[key] = len(rows)
                    rows.append(new_row)
                elif operation == "insert":
                    raise DuplicateKeyError(target.name, key)
                elif operation == "patch":
                    current = rows[position]
                    for column, value in row.items():
                        if current[column] is None:
                            current[column] = value
                else:
                    rows[position].update(row)

        if tuple(rows) == base.rows:
            return target

        frame = Frame(base.columns, tuple(rows))
        if in_place:
            self._tables[target.name] = frame
            logger.debug("Wrote %d row(s) to %s via %s", len(source_rows), target.name, operation)
        return self._derive(target, frame)
