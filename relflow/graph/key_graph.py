"""Directed graph of primary/foreign-key relationships.

Nodes are table names, edges are foreign keys pointing from the child
(referencing) table to the parent (referenced) table. The graph is an
immutable value: every modifier returns a new KeyGraph.

Declaring the same foreign key twice keeps one edge; distinct foreign keys
between the same two tables stay separate edges.

Acyclicity is not enforced at construction. A schema with a cycle is a
valid KeyGraph; only topological ordering and propagation over a scope
that contains the cycle fail, with CyclicGraphError.

Filters propagate against the edge direction: from a parent table to the
children that reference it, transitively.
"""

import heapq
from collections import deque
from collections.abc import Iterable, Sequence

from relflow.errors import CyclicGraphError, MissingTableError, SchemaError

from .schemas import Direction, KeyEdge, TableKeys


class KeyGraph:
    """Schema-level graph of tables and their foreign keys.

    Usage:
        graph = (
            KeyGraph()
            .add_table("airports", primary_key=["faa"])
            .add_table("flights")
            .add_edge("flights", ["origin"], "airports", ["faa"])
        )
        graph.topo_order(direction=Direction.PARENT_FIRST)
        # -> ("airports", "flights")
    """

    def __init__(
        self,
        tables: Iterable[TableKeys | str] = (),
        edges: Iterable[KeyEdge] = (),
    ) -> None:
        self._tables: dict[str, TableKeys] = {}
        for table in tables:
            keys = table if isinstance(table, TableKeys) else TableKeys(table)
            if keys.name in self._tables:
                raise SchemaError(f"Duplicate table `{keys.name}`")
            self._tables[keys.name] = keys

        self._edges: tuple[KeyEdge, ...] = tuple(dict.fromkeys(edges))
        for edge in self._edges:
            self._check_edge(edge)

    def __repr__(self) -> str:
        return f"KeyGraph(tables={list(self._tables)}, edges={len(self._edges)})"

    def __contains__(self, table: object) -> bool:
        return table in self._tables

    def __len__(self) -> int:
        return len(self._tables)

    @property
    def tables(self) -> tuple[str, ...]:
        """Table names in insertion order."""
        return tuple(self._tables)

    @property
    def edges(self) -> tuple[KeyEdge, ...]:
        return self._edges

    def table_keys(self, table: str) -> TableKeys:
        self._require(table)
        return self._tables[table]

    def primary_key(self, table: str) -> tuple[str, ...]:
        return self.table_keys(table).primary_key

    def parent_edges(self, table: str) -> tuple[KeyEdge, ...]:
        """Foreign keys declared on ``table``."""
        return tuple(e for e in self._edges if e.child_table == table)

    def child_edges(self, table: str) -> tuple[KeyEdge, ...]:
        """Foreign keys referencing ``table``."""
        return tuple(e for e in self._edges if e.parent_table == table)

    # Modifiers

    def add_table(
        self,
        name: str,
        primary_key: Sequence[str] = (),
        unique_keys: Sequence[Sequence[str]] = (),
    ) -> "KeyGraph":
        keys = TableKeys(name, tuple(primary_key), tuple(tuple(k) for k in unique_keys))
        return KeyGraph([*self._tables.values(), keys], self._edges)

    def set_primary_key(self, table: str, columns: Sequence[str]) -> "KeyGraph":
        """Replace the primary key of ``table``.

        Raises:
            SchemaError: If existing foreign keys relied on the old key.
        """
        current = self.table_keys(table)
        keys = TableKeys(table, tuple(columns), current.unique_keys)
        tables = [keys if t.name == table else t for t in self._tables.values()]
        return KeyGraph(tables, self._edges)

    def add_edge(
        self,
        child: str,
        child_cols: Sequence[str],
        parent: str,
        parent_cols: Sequence[str] | None = None,
    ) -> "KeyGraph":
        """Declare a foreign key from ``child`` to ``parent``.

        Args:
            child: Referencing table.
            child_cols: Foreign key columns on ``child``.
            parent: Referenced table.
            parent_cols: Key columns on ``parent``; defaults to its primary key.

        Raises:
            SchemaError: On unknown tables, arity mismatch, or if ``parent_cols``
                isn't a declared key of ``parent``.
        """
        if parent_cols is None:
            if parent not in self._tables:
                raise SchemaError(f"Unknown parent table `{parent}`")
            parent_cols = self._tables[parent].primary_key
        edge = KeyEdge(child, tuple(child_cols), parent, tuple(parent_cols))
        return KeyGraph(self._tables.values(), (*self._edges, edge))

    def select(self, tables: Iterable[str]) -> "KeyGraph":
        """Subgraph over ``tables`` (in the given order) and the edges between them."""
        names = list(dict.fromkeys(tables))
        self._require(*names)
        keep = set(names)
        return KeyGraph(
            [self._tables[name] for name in names],
            [e for e in self._edges if e.child_table in keep and e.parent_table in keep],
        )

    def rename(self, old: str, new: str) -> "KeyGraph":
        self._require(old)
        if new != old and new in self._tables:
            raise SchemaError(f"Table `{new}` already exists")
        tables = [
            TableKeys(new, keys.primary_key, keys.unique_keys) if name == old else keys
            for name, keys in self._tables.items()
        ]
        return KeyGraph(tables, [e.renamed(old, new) for e in self._edges])

    # Ordering

    def topo_order(
        self,
        scope: Iterable[str] | None = None,
        direction: Direction = Direction.PARENT_FIRST,
    ) -> tuple[str, ...]:
        """Order ``scope`` so that every edge inside it is respected.

        With PARENT_FIRST, parents precede their children; CHILD_FIRST is
        the exact reverse. Ties are broken by table insertion order.

        Args:
            scope: Tables to order (defaults to all tables). Edges with an
                endpoint outside ``scope`` are ignored.
            direction: Parent-first or child-first.

        Raises:
            CyclicGraphError: If the subgraph induced by ``scope`` has a cycle.
        """
        order, remaining = self._kahn(scope)
        if remaining:
            raise CyclicGraphError(self._trace_cycle(remaining))
        if Direction(direction) is Direction.CHILD_FIRST:
            return tuple(reversed(order))
        return tuple(order)

    def find_cycle(self, scope: Iterable[str] | None = None) -> tuple[str, ...] | None:
        """Return one cycle (child -> parent -> ... -> child) or None."""
        _, remaining = self._kahn(scope)
        if not remaining:
            return None
        return self._trace_cycle(remaining)

    # Reachability

    def reachable_paths(self, from_table: str, to_table: str) -> frozenset[KeyEdge]:
        """Edges on some propagation path from ``from_table`` to ``to_table``.

        A propagation path runs from a parent to the children referencing it.
        A filter on a child never restricts its parents.
        Returns an empty set if ``to_table`` isn't reachable or both are the
        same table.
        """
        self._require(from_table, to_table)
        if from_table == to_table:
            return frozenset()

        forward = self._reach(from_table, downstream=True)
        if to_table not in forward:
            return frozenset()
        backward = self._reach(to_table, downstream=False)

        return frozenset(
            e for e in self._edges
            if e.parent_table in forward and e.child_table in backward
        )

    ancestors_between = reachable_paths

    def downstream(self, table: str) -> tuple[str, ...]:
        """Tables reachable from ``table`` by propagation, in insertion order."""
        self._require(table)
        reached = self._reach(table, downstream=True) - {table}
        return tuple(name for name in self._tables if name in reached)

    # Internals

    def _require(self, *tables: str) -> None:
        missing = [t for t in tables if t not in self._tables]
        if missing:
            raise MissingTableError(missing)

    def _check_edge(self, edge: KeyEdge) -> None:
        for table in (edge.child_table, edge.parent_table):
            if table not in self._tables:
                raise SchemaError(f"Foreign key {edge} references unknown table `{table}`")
        if not edge.child_columns:
            raise SchemaError(f"Foreign key {edge} has no columns")
        if len(edge.child_columns) != len(edge.parent_columns):
            raise SchemaError(
                f"Foreign key {edge} maps {len(edge.child_columns)} column(s) "
                f"onto {len(edge.parent_columns)}"
            )
        if not self._tables[edge.parent_table].has_key(edge.parent_columns):
            raise SchemaError(
                f"Foreign key {edge}: ({', '.join(edge.parent_columns)}) is not a "
                f"primary or unique key of `{edge.parent_table}`"
            )

    def _scope(self, scope: Iterable[str] | None) -> list[str]:
        if scope is None:
            return list(self._tables)
        wanted = set(scope)
        self._require(*sorted(wanted))
        return [name for name in self._tables if name in wanted]

    def _kahn(self, scope: Iterable[str] | None) -> tuple[list[str], list[str]]:
        nodes = self._scope(scope)
        position = {name: i for i, name in enumerate(self._tables)}
        in_scope = set(nodes)

        waiting_on: dict[str, set[str]] = {name: set() for name in nodes}
        dependents: dict[str, set[str]] = {name: set() for name in nodes}
        for edge in self._edges:
            if edge.child_table in in_scope and edge.parent_table in in_scope:
                waiting_on[edge.child_table].add(edge.parent_table)
                dependents[edge.parent_table].add(edge.child_table)

        ready = [(position[name], name) for name in nodes if not waiting_on[name]]
        heapq.heapify(ready)
        order: list[str] = []
        while ready:
            _, name = heapq.heappop(ready)
            order.append(name)
            for child in dependents[name]:
                waiting_on[child].discard(name)
                if not waiting_on[child]:
                    heapq.heappush(ready, (position[child], child))

        emitted = set(order)
        return order, [name for name in nodes if name not in emitted]

    def _trace_cycle(self, remaining: list[str]) -> tuple[str, ...]:
        # Every leftover table still waits on a leftover parent, so walking
        # parents from any of them must revisit a table.
        left = set(remaining)
        position = {name: i for i, name in enumerate(self._tables)}
        path: list[str] = []
        seen: dict[str, int] = {}
        current = remaining[0]
        while current not in seen:
            seen[current] = len(path)
            path.append(current)
            parents = {
                e.parent_table for e in self._edges
                if e.child_table == current and e.parent_table in left
            }
            current = min(parents, key=position.__getitem__)
        return (*path[seen[current]:], current)

    def _reach(self, start: str, downstream: bool) -> set[str]:
        reached = {start}
        queue = deque([start])
        while queue:
            table = queue.popleft()
            for edge in self._edges:
                if downstream and edge.parent_table == table:
                    nxt = edge.child_table
                elif not downstream and edge.child_table == table:
                    nxt = edge.parent_table
                else:
                    continue
                if nxt not in reached:
                    reached.add(nxt)
                    queue.append(nxt)
        return reached
