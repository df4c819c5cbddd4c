"""Key constraint checks on the current data of a data model.

Checks that every declared primary key is unique and complete, and that
every foreign key value exists in the referenced table. Useful before an
in-place row operation: a staged run followed by ``examine_constraints``
shows whether the backend would reject the write.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from relflow.backend.base import TableHandle

if TYPE_CHECKING:
    from relflow.dm.data_model import DataModel

MAX_REPORTED_VALUES = 3


@dataclass(frozen=True)
class ConstraintCheck:
    """Outcome of checking one key constraint.

    Attributes:
        table: Table the constraint is declared on.
        kind: "pk" for primary keys, "fk" for foreign keys.
        columns: Constrained columns of ``table``.
        ref_table: Referenced table for foreign keys.
        is_valid: Whether the data satisfies the constraint.
        problem: Description of the violation (empty when valid).
    """

    table: str
    kind: Literal["pk", "fk"]
    columns: tuple[str, ...]
    ref_table: str | None = None
    is_valid: bool = True
    problem: str = ""


def _complete_count(handle: TableHandle, columns: tuple[str, ...]) -> int:
    backend = handle.backend
    return backend.row_count(backend.semi_join_filter(handle, columns, handle, columns))


def check_primary_key(table: str, handle: TableHandle, columns: tuple[str, ...]) -> ConstraintCheck:
    backend = handle.backend
    total = backend.row_count(handle)
    complete = _complete_count(handle, columns)
    distinct = backend.distinct_count(handle, columns)

    problems = []
    if complete < total:
        problems.append(f"{total - complete} missing value(s)")
    if distinct < complete:
        problems.append(f"{complete - distinct} duplicate value(s)")
    return ConstraintCheck(
        table=table,
        kind="pk",
        columns=columns,
        is_valid=not problems,
        problem=", ".join(problems),
    )


def check_foreign_key(
    table: str,
    handle: TableHandle,
    columns: tuple[str, ...],
    ref_table: str,
    ref_handle: TableHandle,
    ref_columns: tuple[str, ...],
) -> ConstraintCheck:
    backend = handle.backend
    orphans = backend.anti_join_filter(handle, columns, ref_handle, ref_columns)
    count = backend.row_count(orphans)
    problem = ""
    if count:
        values = []
        for row in backend.rows(orphans):
            value = ", ".join(str(row[c]) for c in columns)
            if value not in values:
                values.append(value)
        shown = values[:MAX_REPORTED_VALUES]
        more = " ..." if len(values) > MAX_REPORTED_VALUES else ""
        problem = (
            f"{count} row(s) with values not in {ref_table}"
            f"({', '.join(ref_columns)}): {'; '.join(shown)}{more}"
        )
    return ConstraintCheck(
        table=table,
        kind="fk",
        columns=columns,
        ref_table=ref_table,
        is_valid=count == 0,
        problem=problem,
    )


def examine_constraints(model: "DataModel") -> list[ConstraintCheck]:
    """Check all primary and foreign keys against filtered table data.

    Returns:
        One ConstraintCheck per declared key, primary keys first.
    """
    handles = model.materialize_all()
    checks = [
        check_primary_key(table, handles[table], key)
        for table, key in model.primary_keys().items()
    ]
    checks.extend(
        check_foreign_key(
            edge.child_table,
            handles[edge.child_table],
            edge.child_columns,
            edge.parent_table,
            handles[edge.parent_table],
            edge.parent_columns,
        )
        for edge in model.foreign_keys()
    )
    return checks
