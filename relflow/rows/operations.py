"""Row operations applied across the tables of a data model.

Each operation maps to the backend method of the same name and to the
direction in which related tables must be processed: writes that add or
change rows go parent-first, removals go child-first.
"""

import enum
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from relflow.backend.base import TableHandle
from relflow.graph.schemas import Direction

if TYPE_CHECKING:
    from relflow.dm.data_model import DataModel


class RowOperation(str, enum.Enum):
    """Batched row operations."""

    INSERT = "insert"
    UPDATE = "update"
    PATCH = "patch"
    UPSERT = "upsert"
    DELETE = "delete"
    TRUNCATE = "truncate"

    @property
    def direction(self) -> Direction:
        if self in (RowOperation.DELETE, RowOperation.TRUNCATE):
            return Direction.CHILD_FIRST
        return Direction.PARENT_FIRST

    def __call__(
        self,
        target: TableHandle,
        source: TableHandle,
        keys: Sequence[str],
        in_place: bool,
    ) -> TableHandle:
        """Run the operation for one table on the target's backend."""
        method = getattr(target.backend, self.value)
        return method(target, source, keys=tuple(keys), in_place=in_place)


class RowsOutcome(str, enum.Enum):
    """Whether a batched row operation was persisted."""

    STAGED = "staged"
    COMMITTED = "committed"


@dataclass(frozen=True)
class RowsResult:
    """Result of a batched row operation.

    Attributes:
        outcome: STAGED (nothing persisted, ``model`` holds the new data) or
            COMMITTED (backend written, ``model`` is the original target).
        model: Resulting data model.
        order: Tables in the order they were processed.
        changed_tables: Tables whose data changed, in processing order.
    """

    outcome: RowsOutcome
    model: "DataModel"
    order: tuple[str, ...]
    changed_tables: tuple[str, ...]

    @property
    def committed(self) -> bool:
        return self.outcome is RowsOutcome.COMMITTED
