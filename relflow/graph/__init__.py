"""Key graph for relational schemas.

Components:
- KeyGraph: Immutable directed graph of tables and foreign keys with
  topological ordering, cycle detection and propagation reachability
- KeyEdge: Foreign key from child columns to parent key columns
- TableKeys: Primary and unique key declarations of one table
- Direction: Parent-first or child-first visiting order
"""

from relflow.graph.key_graph import KeyGraph
from relflow.graph.schemas import Direction, KeyEdge, TableKeys

__all__ = [
    "Direction",
    "KeyEdge",
    "KeyGraph",
    "TableKeys",
]
