"""relflow - filter propagation and batched row operations over key graphs.

Models related tables as a directed graph of primary/foreign keys. Filters
attached to any table propagate to every table referencing it before
anything is materialized, and row operations run across tables in
foreign-key order.
"""

from relflow.backend import InMemoryBackend, TableHandle, TabularBackend
from relflow.dm import DataModel, ZoomState
from relflow.errors import (
    CyclicGraphError,
    IncompatibleKeysError,
    MissingColumnError,
    MissingTableError,
    PendingFiltersError,
    RelflowError,
    SchemaError,
    SourceMismatchError,
    ZoomedStateError,
)
from relflow.filters import FilterPropagator, FilterSet, Predicate
from relflow.graph import Direction, KeyEdge, KeyGraph, TableKeys
from relflow.rows import MutationScheduler, RowOperation, RowsOutcome, RowsResult

__version__ = "0.1.0"

__all__ = [
    "CyclicGraphError",
    "DataModel",
    "Direction",
    "FilterPropagator",
    "FilterSet",
    "InMemoryBackend",
    "IncompatibleKeysError",
    "KeyEdge",
    "KeyGraph",
    "MissingColumnError",
    "MissingTableError",
    "MutationScheduler",
    "PendingFiltersError",
    "Predicate",
    "RelflowError",
    "RowOperation",
    "RowsOutcome",
    "RowsResult",
    "SchemaError",
    "SourceMismatchError",
    "TableHandle",
    "TableKeys",
    "TabularBackend",
    "ZoomState",
    "ZoomedStateError",
]
