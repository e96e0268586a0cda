"""Snapshot importer.

Replays artifact tables into a target database.  For each table the target
schema is introspected, the artifact's columns are adapted to it (generated
columns excluded, columns missing from the target dropped with a warning),
values are denormalized, all rows are written with one multi-row INSERT,
and the table's sequences are resynced.

The importer performs individual steps; ``LoadOrchestrator`` sequences
them and guarantees that foreign-key enforcement is restored.

Usage:
    from db_snapshot.snapshot.importer import SnapshotImporter

    importer = SnapshotImporter(adapter)
    await importer.suspend_integrity()
    try:
        await importer.clear_tables(artifact.table_names)
        for snapshot in artifact.tables:
            await importer.import_table(snapshot)
    finally:
        await importer.restore_integrity()
"""

import logging
from dataclasses import dataclass, field

from db_snapshot.adapters.base import DatabaseClient
from db_snapshot.artifact.models import TableSnapshot
from db_snapshot.errors import SequenceResyncError, TableLoadError
from db_snapshot.schema.models import ColumnSchema
from db_snapshot.snapshot.models import TableOutcome
from db_snapshot.snapshot.values import denormalize_value

logger = logging.getLogger(__name__)

PRIMARY_SEQUENCE_COLUMN = "id"

# Tables keyed by something other than ``id`` that still own a sequence
DEFAULT_SEQUENCE_COLUMNS: dict[str, list[str]] = {"employees": ["employee_id"]}


@dataclass
class ColumnMetadata:
    """Target-table column facts used to build an insert.

    Recomputed for every table on every run; never persisted.
    """

    table: str
    columns: dict[str, ColumnSchema] = field(default_factory=dict)

    @property
    def existing(self) -> set[str]:
        return set(self.columns)

    @property
    def generated(self) -> set[str]:
        return {name for name, c in self.columns.items() if c.is_generated}

    @property
    def json_columns(self) -> set[str]:
        return {name for name, c in self.columns.items() if c.is_json}

    @property
    def binary_columns(self) -> set[str]:
        return {name for name, c in self.columns.items() if c.is_binary}


class SnapshotImporter:
    """Loads ``TableSnapshot``s into a target database.

    Args:
        adapter: Target database handle.  Must keep one session for the run.
        sequence_columns: Extra sequence-owning columns per table, in
            addition to ``id``.  Defaults to ``employees.employee_id``.
        schema_name: PostgreSQL schema of the target tables.
    """

    def __init__(
        self,
        adapter: DatabaseClient,
        sequence_columns: dict[str, list[str]] | None = None,
        schema_name: str = "public",
    ) -> None:
        self._adapter = adapter
        self._sequence_columns = (
            DEFAULT_SEQUENCE_COLUMNS if sequence_columns is None else sequence_columns
        )
        self._schema_name = schema_name

    # ------------------------------------------------------------------
    # Referential integrity
    # ------------------------------------------------------------------

    async def suspend_integrity(self) -> None:
        """Disable trigger-based foreign-key checks for the session."""
        logger.info("Disabling foreign key checks")
        await self._adapter.set_foreign_key_checks(False)

    async def restore_integrity(self) -> None:
        """Re-enable foreign-key checks for the session."""
        logger.info("Re-enabling foreign key checks")
        await self._adapter.set_foreign_key_checks(True)

    # ------------------------------------------------------------------
    # Clearing
    # ------------------------------------------------------------------

    async def clear_tables(self, tables: list[str]) -> None:
        """Cascade-truncate ``tables`` in reverse order (children first).

        Raises:
            TableLoadError: On the first table that cannot be cleared.
        """
        for table in reversed(tables):
            logger.info("Clearing %s...", table)
            try:
                await self._adapter.truncate(table, cascade=True)
            except Exception as e:
                logger.error("Error clearing %s: %s", table, e)
                raise TableLoadError(
                    table, "clear", f"Error clearing {table}: {e}"
                ) from e

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def describe_target(self, table: str) -> ColumnMetadata:
        """Introspect the target table's columns."""
        columns = await self._adapter.describe_columns(table, self._schema_name)
        return ColumnMetadata(table=table, columns={c.name: c for c in columns})

    async def import_table(self, snapshot: TableSnapshot) -> TableOutcome:
        """Insert every row of ``snapshot`` and resync its sequences.

        Raises:
            TableLoadError: When the target table is missing, none of the
                artifact columns exist in it, or the insert fails.  A single
                bad row fails the whole table.
        """
        table = snapshot.table

        if not snapshot.rows:
            logger.info("No data to import for %s", table)
            return TableOutcome(table=table, status="skipped", reason="no rows")

        logger.info("Importing %d rows into %s...", snapshot.row_count, table)

        try:
            metadata = await self.describe_target(table)
        except Exception as e:
            raise TableLoadError(
                table, "load", f"Error describing {table}: {e}"
            ) from e

        if not metadata.columns:
            raise TableLoadError(
                table, "load", f"Table {table} does not exist in the target database"
            )

        outcome = TableOutcome(table=table, status="imported")

        artifact_columns = snapshot.columns
        outcome.dropped_columns = [
            c for c in artifact_columns if c not in metadata.existing
        ]
        for col in outcome.dropped_columns:
            message = f"{table}.{col} does not exist in target; column dropped"
            logger.warning(message)
            outcome.warnings.append(message)

        generated = metadata.generated
        effective = [
            c for c in artifact_columns
            if c in metadata.existing and c not in generated
        ]
        if not effective:
            raise TableLoadError(
                table, "load", f"No artifact columns of {table} exist in the target"
            )

        typed = bool(snapshot.column_types)
        try:
            rows = [
                {
                    col: denormalize_value(
                        row.get(col),
                        metadata.columns[col],
                        snapshot.column_types.get(col),
                        typed,
                    )
                    for col in effective
                }
                for row in snapshot.rows
            ]
            outcome.rows = await self._adapter.insert_many(
                table, rows, jsonb_columns=metadata.json_columns & set(effective)
            )
        except Exception as e:
            logger.error("Error importing %s: %s", table, e)
            raise TableLoadError(table, "load", f"Error importing {table}: {e}") from e

        logger.info("Imported %d rows into %s", outcome.rows, table)

        await self._resync_sequences(metadata, outcome)
        return outcome

    # ------------------------------------------------------------------
    # Sequences
    # ------------------------------------------------------------------

    def sequence_candidates(self, table: str) -> list[str]:
        """Columns whose sequences are resynced after loading ``table``."""
        candidates = [PRIMARY_SEQUENCE_COLUMN]
        for col in self._sequence_columns.get(table, []):
            if col not in candidates:
                candidates.append(col)
        return candidates

    async def _reset_sequence(self, table: str, column: str) -> int | None:
        try:
            return await self._adapter.reset_sequence(table, column)
        except Exception as e:
            raise SequenceResyncError(
                table, column, f"Could not reset sequence for {table}.{column}: {e}"
            ) from e

    async def _resync_sequences(
        self, metadata: ColumnMetadata, outcome: TableOutcome
    ) -> None:
        """Resync sequences; failures are logged and recorded, never raised."""
        for column in self.sequence_candidates(metadata.table):
            if column not in metadata.existing:
                continue
            try:
                next_value = await self._reset_sequence(metadata.table, column)
            except SequenceResyncError as e:
                logger.warning("%s", e)
                outcome.warnings.append(str(e))
                continue
            if next_value is not None:
                outcome.sequences[column] = next_value
                logger.info(
                    "Reset sequence for %s.%s (next value %d)",
                    metadata.table,
                    column,
                    next_value,
                )
