"""Batched row operations across related tables.

Components:
- MutationScheduler: Precondition checks, topological scheduling and
  reconciliation of changed tables
- RowOperation: insert/update/patch/upsert/delete/truncate with direction
- RowsResult / RowsOutcome: Staged or committed result
"""

from relflow.rows.operations import RowOperation, RowsOutcome, RowsResult
from relflow.rows.scheduler import NOT_PERSISTING_NOTICE, MutationScheduler

__all__ = [
    "MutationScheduler",
    "NOT_PERSISTING_NOTICE",
    "RowOperation",
    "RowsOutcome",
    "RowsResult",
]
