"""Topological scheduling of batched row operations.

Runs one row operation over all tables two data models have in common, in
an order consistent with the target's foreign keys: parents receive new
rows before the children that reference them, and children lose rows
before their parents do.

All preconditions are checked before the first backend call, so a failed
check never leaves a partially applied operation behind. Backend errors
raised mid-way propagate unchanged.

Persistence is opt-in:
- in_place=None: log a notice, then behave like False
- in_place=False: stage the result in a new data model, storage untouched
- in_place=True: write to storage and return the original target model
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING

from relflow.backend.base import TableHandle
from relflow.config.settings import Settings, get_settings
from relflow.errors import (
    IncompatibleKeysError,
    MissingColumnError,
    MissingTableError,
    SourceMismatchError,
    ZoomedStateError,
)
from relflow.observability.logging import get_logger, log_context
from relflow.observability.metrics import get_metrics

from .operations import RowOperation, RowsOutcome, RowsResult

if TYPE_CHECKING:
    from relflow.dm.data_model import DataModel

logger = get_logger(__name__)

NOT_PERSISTING_NOTICE = "Not persisting, use `in_place=False` to turn off this message."


class MutationScheduler:
    """Apply a row operation across related tables in dependency order.

    Usage:
        scheduler = MutationScheduler()
        result = scheduler.run(target_dm, new_rows_dm, RowOperation.INSERT, in_place=False)
        result.model       # staged data model
        result.changed_tables
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    def check(self, target: "DataModel", source: "DataModel") -> None:
        """Validate that ``source`` rows can be written into ``target``.

        Raises:
            ZoomedStateError: If either model is zoomed.
            SourceMismatchError: If the models live on different backends.
            MissingTableError: If ``source`` has tables ``target`` lacks.
            MissingColumnError: If a source table has extra columns.
            IncompatibleKeysError: If both models declare different keys.
        """
        for model in (target, source):
            if model.zoom.is_zoomed:
                raise ZoomedStateError(model.zoom.table)

        backends = {id(h.backend) for h in (*target.handles.values(), *source.handles.values())}
        if len(backends) > 1:
            raise SourceMismatchError()

        missing = [t for t in source.tables if t not in target.graph]
        if missing:
            raise MissingTableError(missing)

        for table in source.tables:
            target_handle = target.handles[table]
            source_handle = source.handles[table]
            target_columns = set(target_handle.backend.columns(target_handle))
            extra = [
                c for c in source_handle.backend.columns(source_handle)
                if c not in target_columns
            ]
            if extra:
                raise MissingColumnError(table, extra)

        for table in source.tables:
            self._check_keys_compatible(target, source, table)

    def schedule(
        self,
        target: "DataModel",
        source: "DataModel",
        operation: RowOperation,
    ) -> tuple[str, ...]:
        """Processing order of the tables both models share.

        Raises:
            CyclicGraphError: If the shared tables contain a foreign key cycle.
        """
        scope = [t for t in target.tables if t in set(source.tables)]
        return target.graph.topo_order(scope, RowOperation(operation).direction)

    def run(
        self,
        target: "DataModel",
        source: "DataModel",
        operation: RowOperation,
        in_place: bool | None = None,
    ) -> RowsResult:
        """Run ``operation`` for every shared table in dependency order.

        Args:
            target: Data model receiving the changes.
            source: Data model holding the new rows.
            operation: Row operation to apply.
            in_place: Tri-state persistence flag (see module docstring).

        Returns:
            RowsResult with the resulting model, processing order and the
            tables whose data changed.
        """
        operation = RowOperation(operation)
        self.check(target, source)
        order = self.schedule(target, source, operation)

        if in_place is None:
            if self._settings.warn_not_persisting:
                logger.info(NOT_PERSISTING_NOTICE, operation=operation.value)
            in_place = False

        with log_context(operation=operation.value, in_place=in_place):
            results = self._execute(target, source, operation, order, in_place)
            changed = tuple(t for t in order if results[t] is not target.handles[t])
            logger.debug("Row operation finished", order=list(order), changed=list(changed))

        if in_place:
            return RowsResult(RowsOutcome.COMMITTED, target, order, changed)

        model = target.patch_tables({t: results[t] for t in changed}) if changed else target
        return RowsResult(RowsOutcome.STAGED, model, order, changed)

    def _execute(
        self,
        target: "DataModel",
        source: "DataModel",
        operation: RowOperation,
        order: tuple[str, ...],
        in_place: bool,
    ) -> dict[str, TableHandle]:
        metrics = get_metrics()
        results = {}
        for table in order:
            target_handle = target.handles[table]
            results[table] = operation(
                target_handle,
                source.handles[table],
                keys=self._keys_for(target, source, table),
                in_place=in_place,
            )
            changed = results[table] is not target_handle
            metrics.record_row_operation(operation.value, changed=changed)
            logger.debug("Processed table", table=table, changed=changed)
        return results

    @staticmethod
    def _keys_for(target: "DataModel", source: "DataModel", table: str) -> Sequence[str]:
        return target.graph.primary_key(table) or source.graph.primary_key(table)

    @staticmethod
    def _check_keys_compatible(target: "DataModel", source: "DataModel", table: str) -> None:
        # An undeclared source key inherits the target's.
        target_key = target.graph.primary_key(table)
        source_key = source.graph.primary_key(table)
        if source_key and target_key and source_key != target_key:
            raise IncompatibleKeysError(
                table, f"primary key ({', '.join(target_key)}) != ({', '.join(source_key)})"
            )

        key = target_key or source_key
        if not key:
            return
        target_handle = target.handles[table]
        source_handle = source.handles[table]
        target_types = target_handle.backend.column_types(target_handle)
        source_types = source_handle.backend.column_types(source_handle)
        for column in key:
            left, right = target_types.get(column), source_types.get(column)
            if left is not None and right is not None and left != right:
                raise IncompatibleKeysError(
                    table, f"column `{column}` is {left} in target but {right} in source"
                )
