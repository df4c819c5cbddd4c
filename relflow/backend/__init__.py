"""Tabular backends.

Components:
- TabularBackend: Abstract storage/query engine interface
- TableHandle: Identity-compared reference to backend table data
- InMemoryBackend: Reference backend keeping frames in process memory
"""

from relflow.backend.base import BackendError, TableHandle, TabularBackend
from relflow.backend.memory import (
    DuplicateKeyError,
    InMemoryBackend,
    RowNotFoundError,
    UnknownColumnError,
    UnknownTableError,
)

__all__ = [
    "BackendError",
    "DuplicateKeyError",
    "InMemoryBackend",
    "RowNotFoundError",
    "TableHandle",
    "TabularBackend",
    "UnknownColumnError",
    "UnknownTableError",
]
