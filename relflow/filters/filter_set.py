"""Stored filter predicates per table.

Predicates are opaque to relflow: they are only forwarded to the backend's
``apply_predicate``. Multiple predicates on one table combine with AND, so
their order only matters for display.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from relflow.errors import MissingTableError


@dataclass(frozen=True)
class Predicate:
    """A boolean expression bound to one table.

    Attributes:
        table: Table the predicate filters.
        expression: Backend-specific predicate (a callable for InMemoryBackend).
        label: Human-readable description for display.
        applied: True once the predicate is reflected in the table's handle.
    """

    table: str
    expression: Any
    label: str | None = None
    applied: bool = False

    def describe(self) -> str:
        if self.label:
            return self.label
        return getattr(self.expression, "__name__", None) or repr(self.expression)

    def mark_applied(self) -> "Predicate":
        return replace(self, applied=True)


class FilterSet:
    """Insertion-ordered mapping of table name to predicates.

    Immutable: ``attach``, ``clear`` and ``mark_applied`` return new sets.
    """

    def __init__(
        self,
        tables: Iterable[str],
        entries: Mapping[str, Iterable[Predicate]] | None = None,
    ) -> None:
        self._known = tuple(tables)
        self._entries: dict[str, tuple[Predicate, ...]] = {}
        for table, predicates in (entries or {}).items():
            predicates = tuple(predicates)
            if predicates:
                self._check_table(table)
                self._entries[table] = predicates

    def __repr__(self) -> str:
        counts = {table: len(preds) for table, preds in self._entries.items()}
        return f"FilterSet({counts})"

    def __len__(self) -> int:
        return sum(len(preds) for preds in self._entries.values())

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __iter__(self):
        for predicates in self._entries.values():
            yield from predicates

    @property
    def known_tables(self) -> tuple[str, ...]:
        return self._known

    def tables(self) -> tuple[str, ...]:
        """Tables with at least one stored predicate, in attachment order."""
        return tuple(self._entries)

    def attach(self, table: str, predicate: Predicate | Any, label: str | None = None) -> "FilterSet":
        """Append an unapplied predicate to ``table``.

        Args:
            table: Table to filter.
            predicate: A Predicate or a raw backend expression.
            label: Display label when ``predicate`` is a raw expression.

        Raises:
            MissingTableError: If ``table`` is unknown.
        """
        self._check_table(table)
        if isinstance(predicate, Predicate):
            predicate = replace(predicate, table=table, applied=False)
        else:
            predicate = Predicate(table=table, expression=predicate, label=label)
        entries = dict(self._entries)
        entries[table] = (*entries.get(table, ()), predicate)
        return FilterSet(self._known, entries)

    def predicates_for(self, table: str) -> tuple[Predicate, ...]:
        return self._entries.get(table, ())

    def unapplied_for(self, table: str) -> tuple[Predicate, ...]:
        return tuple(p for p in self.predicates_for(table) if not p.applied)

    def has_unapplied(self) -> bool:
        return any(not p.applied for p in self)

    def clear(self, table: str | None = None) -> "FilterSet":
        """Drop the predicates of ``table``, or of all tables."""
        if table is None:
            return FilterSet(self._known)
        entries = {t: preds for t, preds in self._entries.items() if t != table}
        return FilterSet(self._known, entries)

    def mark_applied(self, table: str) -> "FilterSet":
        entries = dict(self._entries)
        if table in entries:
            entries[table] = tuple(p.mark_applied() for p in entries[table])
        return FilterSet(self._known, entries)

    def restrict(self, tables: Iterable[str]) -> "FilterSet":
        """Filter set over a subset of tables."""
        tables = tuple(tables)
        keep = set(tables)
        return FilterSet(tables, {t: p for t, p in self._entries.items() if t in keep})

    def rename(self, old: str, new: str) -> "FilterSet":
        known = tuple(new if t == old else t for t in self._known)
        entries = {
            (new if t == old else t): tuple(replace(p, table=new if t == old else t) for p in preds)
            for t, preds in self._entries.items()
        }
        return FilterSet(known, entries)

    def _check_table(self, table: str) -> None:
        if table not in self._known:
            raise MissingTableError([table])
