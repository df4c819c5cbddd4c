"""Data model orchestration.

Components:
- DataModel: Tables, key graph, deferred filters and zoom state with
  materialization and batched row operations
- ZoomState: Normal or zoomed on a single table
- KeyCandidate: Primary key suitability of a column
- ConstraintCheck / examine_constraints: Key constraint report
"""

from relflow.dm.constraints import ConstraintCheck, examine_constraints
from relflow.dm.data_model import NORMAL, DataModel, KeyCandidate, ZoomState

__all__ = [
    "ConstraintCheck",
    "DataModel",
    "KeyCandidate",
    "NORMAL",
    "ZoomState",
    "examine_constraints",
]
