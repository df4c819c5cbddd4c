"""Schema definitions for the key graph.

Defines the value objects for table key declarations and the directed
foreign-key edges between tables.
"""

import enum
from collections.abc import Sequence
from dataclasses import dataclass, field


class Direction(str, enum.Enum):
    """Order in which related tables are visited."""

    PARENT_FIRST = "parent_first"
    CHILD_FIRST = "child_first"


def _columns(value: str | Sequence[str]) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    return tuple(value)


@dataclass(frozen=True)
class TableKeys:
    """Key declarations of a single table.

    Attributes:
        name: Unique table name.
        primary_key: Ordered primary key columns (empty if none declared).
        unique_keys: Additional unique candidate keys.
    """

    name: str
    primary_key: tuple[str, ...] = ()
    unique_keys: tuple[tuple[str, ...], ...] = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "primary_key", _columns(self.primary_key))
        object.__setattr__(
            self, "unique_keys", tuple(_columns(key) for key in self.unique_keys)
        )

    def has_key(self, columns: Sequence[str]) -> bool:
        """Whether ``columns`` is the primary key or a declared unique key."""
        columns = tuple(columns)
        if not columns:
            return False
        return columns == self.primary_key or columns in self.unique_keys


@dataclass(frozen=True)
class KeyEdge:
    """A foreign key: child columns referencing parent key columns.

    Attributes:
        child_table: Referencing table.
        child_columns: Foreign key columns on the child.
        parent_table: Referenced table.
        parent_columns: Primary or unique key columns on the parent.
    """

    child_table: str
    child_columns: tuple[str, ...]
    parent_table: str
    parent_columns: tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "child_columns", _columns(self.child_columns))
        object.__setattr__(self, "parent_columns", _columns(self.parent_columns))

    def __str__(self) -> str:
        return (
            f"{self.child_table}({', '.join(self.child_columns)}) -> "
            f"{self.parent_table}({', '.join(self.parent_columns)})"
        )

    def renamed(self, old: str, new: str) -> "KeyEdge":
        return KeyEdge(
            child_table=new if self.child_table == old else self.child_table,
            child_columns=self.child_columns,
            parent_table=new if self.parent_table == old else self.parent_table,
            parent_columns=self.parent_columns,
        )
