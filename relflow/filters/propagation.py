"""Filter propagation through the key graph.

Implements transitive semi-join reduction: the predicates stored on any
table restrict every table reachable from it, before any table is
materialized. Propagation runs from a parent table to the children that
reference it. For a target table:

1. Collect every table with stored predicates (the sources).
2. Union the edges on all propagation paths from each source to the target.
3. Visit the tables of that subgraph parent-first. Each table starts from
   its own handle with its own unapplied predicates evaluated, then is
   semi-joined against every already-reduced parent on the subgraph.
4. The target's reduced handle is the result.

Because each hop uses the previous hop's reduced rows, effects compose
across multi-hop paths, and a table reached by two sources satisfies both.

Example:
    propagator = FilterPropagator(graph, filters, handles)
    flights = propagator.materialize("flights")
"""

import time
from collections.abc import Mapping
from dataclasses import dataclass

from relflow.backend.base import TableHandle
from relflow.errors import MissingTableError
from relflow.graph.key_graph import KeyGraph
from relflow.graph.schemas import Direction, KeyEdge
from relflow.observability.logging import get_logger
from relflow.observability.metrics import get_metrics

from .filter_set import FilterSet

logger = get_logger(__name__)


@dataclass(frozen=True)
class SemiJoinStep:
    """One hop: keep rows of ``table`` whose ``columns`` occur in ``by_table``.

    Attributes:
        table: Table being reduced.
        columns: Key columns on ``table``.
        by_table: Already reduced neighbour supplying the allowed keys.
        by_columns: Key columns on ``by_table``.
        edge: Foreign key the hop follows.
    """

    table: str
    columns: tuple[str, ...]
    by_table: str
    by_columns: tuple[str, ...]
    edge: KeyEdge


@dataclass(frozen=True)
class PropagationPlan:
    """Ordered reductions needed to materialize one table.

    Attributes:
        target: Table being materialized.
        sources: Filtered tables whose predicates reach ``target``.
        order: Tables visited, parents before children, ending at ``target``.
        steps: Semi-join hops in execution order.
    """

    target: str
    sources: tuple[str, ...]
    order: tuple[str, ...]
    steps: tuple[SemiJoinStep, ...]

    def steps_for(self, table: str) -> tuple[SemiJoinStep, ...]:
        return tuple(step for step in self.steps if step.table == table)


class FilterPropagator:
    """Materialize filtered tables by propagating stored predicates.

    Results are memoized per propagator: the graph, filters and handles it
    was built from are immutable, so a table's reduced handle never changes.
    """

    def __init__(
        self,
        graph: KeyGraph,
        filters: FilterSet,
        handles: Mapping[str, TableHandle],
    ) -> None:
        self._graph = graph
        self._filters = filters
        self._handles = dict(handles)
        self._materialized: dict[str, TableHandle] = {}

    def plan(self, target: str) -> PropagationPlan:
        """Compute the semi-join steps for ``target`` without running them.

        Raises:
            MissingTableError: If ``target`` is unknown.
            CyclicGraphError: If the affected subgraph contains a cycle.
        """
        if target not in self._graph:
            raise MissingTableError([target])

        sources = self._filters.tables()
        path_edges: set[KeyEdge] = set()
        for source in sources:
            if source != target:
                path_edges |= self._graph.reachable_paths(source, target)

        affected = {target}
        for edge in path_edges:
            affected.update((edge.child_table, edge.parent_table))

        order = self._graph.topo_order(affected, Direction.PARENT_FIRST)
        steps = tuple(
            SemiJoinStep(
                table=edge.child_table,
                columns=edge.child_columns,
                by_table=edge.parent_table,
                by_columns=edge.parent_columns,
                edge=edge,
            )
            for table in order
            for edge in self._graph.parent_edges(table)
            if edge in path_edges
        )
        return PropagationPlan(
            target=target,
            sources=tuple(s for s in sources if s in affected),
            order=order,
            steps=steps,
        )

    def materialize(self, target: str) -> TableHandle:
        """Return the handle of ``target`` with all reaching filters applied."""
        if target in self._materialized:
            return self._materialized[target]

        start = time.perf_counter()
        plan = self.plan(target)
        metrics = get_metrics()

        for table in plan.order:
            if table in self._materialized:
                continue
            handle = self._own_handle(table)
            for step in plan.steps_for(table):
                handle = handle.backend.semi_join_filter(
                    handle,
                    step.columns,
                    self._materialized[step.by_table],
                    step.by_columns,
                )
                metrics.record_semi_join(table)
            self._materialized[table] = handle

        metrics.record_materialize_latency(time.perf_counter() - start)
        logger.debug(
            "Materialized table",
            table=target,
            sources=list(plan.sources),
            hops=len(plan.steps),
        )
        return self._materialized[target]

    def materialize_all(self) -> dict[str, TableHandle]:
        """Materialize every table of the graph, in graph order.

        Tables no filter reaches are returned unfiltered. A cycle that no
        filter passes through doesn't prevent materialization.
        """
        return {table: self.materialize(table) for table in self._graph.tables}

    def _own_handle(self, table: str) -> TableHandle:
        handle = self._handles[table]
        predicates = self._filters.unapplied_for(table)
        for predicate in predicates:
            handle = handle.backend.apply_predicate(handle, predicate.expression)
        if predicates:
            get_metrics().record_predicate(table, len(predicates))
        return handle
