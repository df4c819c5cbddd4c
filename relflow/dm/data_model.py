"""Data model: related tables, their key graph and deferred filters.

A DataModel is an immutable value. Every operation that "changes" it
(adding keys, attaching filters, applying them, staging row operations)
returns a new DataModel. The only side-effecting path is a row operation
run with ``in_place=True``.

Example:
    dm = DataModel.from_tables(
        {"airports": airports, "flights": flights},
        primary_keys={"airports": ["faa"]},
        foreign_keys=[("flights", ["origin"], "airports", ["faa"])],
    )
    dm = dm.filter("airports", lambda row: row["name"] == "JFK")
    flights = dm.tbl("flights")        # restricted to JFK departures
    dm = dm.apply_filters()            # materialize every table
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from relflow.backend.base import TableHandle, TabularBackend
from relflow.errors import MissingTableError, PendingFiltersError, SchemaError, ZoomedStateError
from relflow.filters.filter_set import FilterSet, Predicate
from relflow.filters.propagation import FilterPropagator, PropagationPlan
from relflow.graph.key_graph import KeyGraph
from relflow.graph.schemas import KeyEdge, TableKeys
from relflow.naming import TableNamer
from relflow.observability.logging import get_logger
from relflow.rows.operations import RowOperation, RowsResult
from relflow.rows.scheduler import MutationScheduler

from .constraints import ConstraintCheck, examine_constraints

logger = get_logger(__name__)

ForeignKeySpec = KeyEdge | tuple


@dataclass(frozen=True)
class ZoomState:
    """Zoom state of a data model: normal, or zoomed on one table."""

    table: str | None = None

    @property
    def is_zoomed(self) -> bool:
        return self.table is not None


NORMAL = ZoomState()


@dataclass(frozen=True)
class KeyCandidate:
    """Whether a column could serve as primary key.

    Attributes:
        columns: Candidate columns.
        candidate: True if values are complete and unique.
        why: Reason the columns don't qualify (empty for candidates).
    """

    columns: tuple[str, ...]
    candidate: bool
    why: str = ""


class DataModel:
    """Tables on a backend plus their key graph, filters and zoom state."""

    def __init__(
        self,
        handles: Mapping[str, TableHandle],
        graph: KeyGraph | None = None,
        filters: FilterSet | None = None,
        zoom: ZoomState = NORMAL,
        scheduler: MutationScheduler | None = None,
    ) -> None:
        graph = graph if graph is not None else KeyGraph(handles)
        if set(graph.tables) != set(handles):
            unmatched = sorted(set(graph.tables) ^ set(handles))
            raise SchemaError(f"Tables and key graph don't match: {unmatched}")

        self._graph = graph
        self._handles = {table: handles[table] for table in graph.tables}
        self._filters = filters if filters is not None else FilterSet(graph.tables)
        self._zoom = zoom
        self._scheduler = scheduler
        self._propagator: FilterPropagator | None = None

    @classmethod
    def from_tables(
        cls,
        tables: Mapping[str, TableHandle],
        primary_keys: Mapping[str, Sequence[str]] | None = None,
        foreign_keys: Iterable[ForeignKeySpec] = (),
        unique_keys: Mapping[str, Sequence[Sequence[str]]] | None = None,
    ) -> "DataModel":
        """Build a data model from table handles and key declarations.

        Args:
            tables: Table name to handle.
            primary_keys: Table name to primary key columns.
            foreign_keys: KeyEdge objects or tuples of
                (child, child_cols, parent[, parent_cols]).
            unique_keys: Table name to additional unique keys.

        Raises:
            SchemaError: On malformed key declarations.
        """
        primary_keys = primary_keys or {}
        unique_keys = unique_keys or {}
        unknown = sorted((set(primary_keys) | set(unique_keys)) - set(tables))
        if unknown:
            raise SchemaError(f"Keys declared for unknown table(s): {unknown}")

        graph = KeyGraph([
            TableKeys(
                name,
                tuple(primary_keys.get(name, ())),
                tuple(tuple(k) for k in unique_keys.get(name, ())),
            )
            for name in tables
        ])
        for fk in foreign_keys:
            if isinstance(fk, KeyEdge):
                fk = (fk.child_table, fk.child_columns, fk.parent_table, fk.parent_columns)
            graph = graph.add_edge(*fk)
        return cls(tables, graph)

    @classmethod
    def from_backend(
        cls,
        backend: TabularBackend,
        tables: Sequence[str],
        primary_keys: Mapping[str, Sequence[str]] | None = None,
        foreign_keys: Iterable[ForeignKeySpec] = (),
        unique_keys: Mapping[str, Sequence[Sequence[str]]] | None = None,
    ) -> "DataModel":
        """Build a data model over stored tables of ``backend``."""
        handles = {name: backend.table(name) for name in tables}
        return cls.from_tables(handles, primary_keys, foreign_keys, unique_keys)

    def __repr__(self) -> str:
        parts = [f"tables={list(self.tables)}", f"foreign_keys={len(self._graph.edges)}"]
        if self._filters:
            parts.append(f"filters={len(self._filters)}")
        if self._zoom.is_zoomed:
            parts.append(f"zoomed={self._zoom.table!r}")
        return f"DataModel({', '.join(parts)})"

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, table: object) -> bool:
        return table in self._handles

    def __getitem__(self, table: str) -> TableHandle:
        return self.tbl(table)

    # Accessors

    @property
    def tables(self) -> tuple[str, ...]:
        return self._graph.tables

    @property
    def graph(self) -> KeyGraph:
        return self._graph

    @property
    def filters(self) -> FilterSet:
        return self._filters

    @property
    def zoom(self) -> ZoomState:
        return self._zoom

    @property
    def handles(self) -> Mapping[str, TableHandle]:
        """Table handles as stored, without pending filters applied."""
        return MappingProxyType(self._handles)

    @property
    def backends(self) -> tuple[TabularBackend, ...]:
        seen: dict[int, TabularBackend] = {}
        for handle in self._handles.values():
            seen.setdefault(id(handle.backend), handle.backend)
        return tuple(seen.values())

    def primary_keys(self) -> dict[str, tuple[str, ...]]:
        """Declared primary keys of tables that have one."""
        return {
            table: self._graph.primary_key(table)
            for table in self.tables
            if self._graph.primary_key(table)
        }

    def foreign_keys(self) -> tuple[KeyEdge, ...]:
        return self._graph.edges

    # Keys

    def add_pk(self, table: str, columns: Sequence[str]) -> "DataModel":
        self._check_not_zoomed()
        return self._replace(graph=self._graph.set_primary_key(table, columns))

    def add_fk(
        self,
        child: str,
        child_cols: Sequence[str],
        parent: str,
        parent_cols: Sequence[str] | None = None,
    ) -> "DataModel":
        self._check_not_zoomed()
        return self._replace(graph=self._graph.add_edge(child, child_cols, parent, parent_cols))

    def key_candidates(self, table: str) -> list[KeyCandidate]:
        """Check each column of ``table`` for use as a primary key.

        Raises:
            PendingFiltersError: If filters haven't been applied.
        """
        self._check_no_pending("key_candidates")
        self._require(table)
        handle = self._handles[table]
        backend = handle.backend
        total = backend.row_count(handle)

        candidates = []
        for column in backend.columns(handle):
            columns = (column,)
            complete = backend.row_count(
                backend.semi_join_filter(handle, columns, handle, columns)
            )
            distinct = backend.distinct_count(handle, columns)
            if complete < total:
                why = f"has {total - complete} missing value(s)"
            elif distinct < complete:
                why = f"has {complete - distinct} duplicate value(s)"
            else:
                why = ""
            candidates.append(KeyCandidate(columns, candidate=not why, why=why))
        return candidates

    # Table selection

    def select_tables(self, *tables: str) -> "DataModel":
        """Keep only ``tables`` (in the given order) and the keys between them.

        Raises:
            PendingFiltersError: If filters haven't been applied.
        """
        self._check_no_pending("select_tables")
        self._check_not_zoomed()
        self._require(*tables)
        graph = self._graph.select(tables)
        return DataModel(
            {t: self._handles[t] for t in graph.tables},
            graph,
            self._filters.restrict(graph.tables),
            scheduler=self._scheduler,
        )

    def rename_table(self, old: str, new: str) -> "DataModel":
        """Rename a table, keeping its keys and foreign keys.

        Raises:
            PendingFiltersError: If filters haven't been applied.
        """
        self._check_no_pending("rename_table")
        self._check_not_zoomed()
        graph = self._graph.rename(old, new)
        handles = {(new if t == old else t): h for t, h in self._handles.items()}
        return DataModel(handles, graph, self._filters.rename(old, new), scheduler=self._scheduler)

    def patch_tables(self, tables: Mapping[str, TableHandle]) -> "DataModel":
        """Replace the handles of some tables, keeping keys and filters."""
        self._check_not_zoomed()
        self._require(*tables)
        handles = dict(self._handles)
        handles.update(tables)
        return self._replace(handles=handles)

    # Zoom

    def zoom_to(self, table: str) -> "DataModel":
        self._check_not_zoomed()
        self._require(table)
        return self._replace(zoom=ZoomState(table))

    def unzoom(self) -> "DataModel":
        if not self._zoom.is_zoomed:
            return self
        return self._replace(zoom=NORMAL)

    def zoomed_predicates(self) -> tuple[Predicate, ...]:
        """Predicates stored on the zoomed table."""
        if not self._zoom.is_zoomed:
            return ()
        return self._filters.predicates_for(self._zoom.table)

    # Filters

    @property
    def has_pending_filters(self) -> bool:
        return self._filters.has_unapplied()

    def filter(
        self,
        table: str,
        predicate: Any,
        label: str | None = None,
        apply_now: bool = False,
    ) -> "DataModel":
        """Attach a predicate to ``table``.

        By default nothing is evaluated. With ``apply_now`` the table's own
        unapplied predicates are evaluated immediately; propagation to other
        tables still waits until they are materialized.

        Args:
            table: Table to filter.
            predicate: Backend predicate (a callable for InMemoryBackend) or Predicate.
            label: Optional display label.
            apply_now: Evaluate against ``table`` right away.

        Raises:
            MissingTableError: If ``table`` is unknown.
        """
        filters = self._filters.attach(table, predicate, label=label)
        logger.debug("Attached filter", table=table, apply_now=apply_now)
        if not apply_now:
            return self._replace(filters=filters)

        handle = self._handles[table]
        for pending in filters.unapplied_for(table):
            handle = handle.backend.apply_predicate(handle, pending.expression)
        handles = {**self._handles, table: handle}
        return self._replace(handles=handles, filters=filters.mark_applied(table))

    def propagation_plan(self, table: str) -> PropagationPlan:
        return self._get_propagator().plan(table)

    def tbl(self, table: str) -> TableHandle:
        """Handle of ``table`` with every reaching filter applied."""
        return self._get_propagator().materialize(table)

    materialize = tbl

    def materialize_all(self) -> dict[str, TableHandle]:
        return self._get_propagator().materialize_all()

    def apply_filters(self) -> "DataModel":
        """Materialize all tables and return a model without stored filters."""
        if not self._filters:
            return self
        handles = self.materialize_all()
        logger.info(
            "Applied filters",
            tables=list(self._filters.tables()),
            predicates=len(self._filters),
        )
        return self._replace(handles=handles, filters=FilterSet(self.tables))

    def row_counts(self) -> dict[str, int]:
        """Row count of every table after filtering."""
        return {
            table: handle.backend.row_count(handle)
            for table, handle in self.materialize_all().items()
        }

    def examine_constraints(self) -> list[ConstraintCheck]:
        return examine_constraints(self)

    # Copying

    def copy_to(
        self,
        dest: TabularBackend,
        temporary: bool = True,
        namer: TableNamer | None = None,
    ) -> "DataModel":
        """Copy the filtered tables to ``dest`` and return a model over the copies.

        Args:
            dest: Destination backend.
            temporary: Store copies under unique generated names.
            namer: Name generator for temporary tables.
        """
        self._check_not_zoomed()
        namer = namer or TableNamer()
        copies = {}
        for table, handle in self.materialize_all().items():
            name = namer(table) if temporary else table
            copies[table] = dest.copy_table(handle, name)
        logger.info("Copied data model", tables=len(copies), temporary=temporary)
        return DataModel(copies, self._graph, scheduler=self._scheduler)

    # Row operations

    def rows(
        self,
        source: "DataModel",
        operation: RowOperation,
        in_place: bool | None = None,
    ) -> RowsResult:
        """Apply ``operation`` with the rows of ``source`` to every shared table.

        A committed run returns this model; filtered tables materialized
        before the write are recomputed on next access.
        """
        scheduler = self._scheduler or MutationScheduler()
        result = scheduler.run(self, source, operation, in_place=in_place)
        if result.committed:
            self._propagator = None
        return result

    def rows_insert(self, source: "DataModel", in_place: bool | None = None) -> RowsResult:
        """Add new rows; keys must not exist yet. Parents are processed first."""
        return self.rows(source, RowOperation.INSERT, in_place)

    def rows_update(self, source: "DataModel", in_place: bool | None = None) -> RowsResult:
        """Overwrite existing rows matched by primary key."""
        return self.rows(source, RowOperation.UPDATE, in_place)

    def rows_patch(self, source: "DataModel", in_place: bool | None = None) -> RowsResult:
        """Fill missing values of existing rows matched by primary key."""
        return self.rows(source, RowOperation.PATCH, in_place)

    def rows_upsert(self, source: "DataModel", in_place: bool | None = None) -> RowsResult:
        """Update matching rows and insert the rest."""
        return self.rows(source, RowOperation.UPSERT, in_place)

    def rows_delete(self, source: "DataModel", in_place: bool | None = None) -> RowsResult:
        """Remove rows matched by primary key. Children are processed first."""
        return self.rows(source, RowOperation.DELETE, in_place)

    def rows_truncate(self, source: "DataModel", in_place: bool | None = None) -> RowsResult:
        """Remove all rows of the tables in ``source``. Children are processed first."""
        return self.rows(source, RowOperation.TRUNCATE, in_place)

    # Internals

    def _get_propagator(self) -> FilterPropagator:
        if self._propagator is None:
            self._propagator = FilterPropagator(self._graph, self._filters, self._handles)
        return self._propagator

    def _replace(self, **changes: Any) -> "DataModel":
        return DataModel(
            changes.get("handles", self._handles),
            changes.get("graph", self._graph),
            changes.get("filters", self._filters),
            changes.get("zoom", self._zoom),
            self._scheduler,
        )

    def _require(self, *tables: str) -> None:
        missing = [t for t in tables if t not in self._handles]
        if missing:
            raise MissingTableError(missing)

    def _check_not_zoomed(self) -> None:
        if self._zoom.is_zoomed:
            raise ZoomedStateError(self._zoom.table)

    def _check_no_pending(self, operation: str) -> None:
        if self.has_pending_filters:
            raise PendingFiltersError(operation)
