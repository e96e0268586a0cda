"""Snapshot exporter.

Reads an ordered list of tables from a source database and streams them
into a JSON artifact.  The table list is the dependency order (parents
before children) and is written to the artifact unchanged.

Export is best-effort: a table whose query fails is logged, recorded as a
``failed`` outcome and left out of the artifact; the run still succeeds.
Tables without rows are skipped and omitted.

Usage:
    from db_snapshot.snapshot.exporter import SnapshotExporter

    exporter = SnapshotExporter(adapter, ["parents", "children"])
    summary = await exporter.export()
    print(summary.artifact_path, summary.total_rows)
"""

import logging
import shutil
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path

from db_snapshot.adapters.base import DatabaseClient
from db_snapshot.artifact.models import ColumnKind
from db_snapshot.artifact.writer import ArtifactWriter
from db_snapshot.snapshot.models import ExportSummary, TableOutcome
from db_snapshot.snapshot.values import (
    MAX_TEXT_LENGTH,
    column_kind,
    infer_kind,
    normalize_row,
)

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_DIR = "data-exports"
DEFAULT_LATEST_NAME = "latest.json"


def export_filename(export_timestamp: str) -> str:
    """Build the timestamped artifact file name.

    Example:
        >>> export_filename("2026-01-15T10:30:00.123456+00:00")
        'database-export-2026-01-15T10-30-00-123456-00-00.json'
    """
    safe = export_timestamp.replace(":", "-").replace(".", "-").replace("+", "-")
    return f"database-export-{safe}.json"


class SnapshotExporter:
    """Streams an ordered set of tables from a source database into an artifact.

    Args:
        adapter: Source database handle.
        tables: Table names in dependency order (parents first).
        export_dir: Directory for timestamped artifacts and the latest copy.
        latest_name: File name of the canonical "latest" copy.
        max_text_length: Strings longer than this are truncated.
        schema_name: PostgreSQL schema used to describe source columns.
    """

    def __init__(
        self,
        adapter: DatabaseClient,
        tables: list[str],
        export_dir: str | Path = DEFAULT_EXPORT_DIR,
        latest_name: str = DEFAULT_LATEST_NAME,
        max_text_length: int = MAX_TEXT_LENGTH,
        schema_name: str = "public",
    ) -> None:
        self._adapter = adapter
        self._tables = list(tables)
        self._export_dir = Path(export_dir)
        self._latest_name = latest_name
        self._max_text_length = max_text_length
        self._schema_name = schema_name

    async def export(self, output_path: str | Path | None = None) -> ExportSummary:
        """Export all configured tables.

        Writes ``<export_dir>/database-export-<timestamp>.json`` (or
        ``output_path``) and copies it over ``<export_dir>/<latest_name>``.

        Args:
            output_path: Explicit artifact path.  When ``None``, a
                timestamped path under ``export_dir`` is generated.

        Returns:
            ``ExportSummary`` with one outcome per configured table.
        """
        export_timestamp = datetime.now(timezone.utc).isoformat()
        path = (
            Path(output_path)
            if output_path is not None
            else self._export_dir / export_filename(export_timestamp)
        )
        summary = ExportSummary(export_timestamp=export_timestamp)

        logger.info("Starting export of %d tables to %s", len(self._tables), path)

        with ArtifactWriter(path, export_timestamp) as writer:
            for table in self._tables:
                summary.tables.append(await self._export_table(writer, table))

        summary.artifact_path = str(path)

        latest_path = self._export_dir / self._latest_name
        if latest_path.resolve() != path.resolve():
            latest_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(path, latest_path)
        summary.latest_path = str(latest_path)

        logger.info(
            "Export complete: %d tables, %d rows (%d skipped, %d failed)",
            len(summary.exported_tables),
            summary.total_rows,
            len(summary.skipped_tables),
            len(summary.failed_tables),
        )
        if summary.degraded:
            logger.warning(
                "Tables missing from artifact: %s", ", ".join(summary.failed_tables)
            )
        return summary

    async def _column_types(self, table: str) -> dict[str, ColumnKind]:
        columns = await self._adapter.describe_columns(table, self._schema_name)
        return {c.name: column_kind(c) for c in columns}

    async def _export_table(self, writer: ArtifactWriter, table: str) -> TableOutcome:
        """Export one table; query failures become a ``failed`` outcome."""
        logger.info("Exporting %s...", table)
        try:
            column_types = await self._column_types(table)
            rows = await self._adapter.select_all(table)
        except Exception as e:
            logger.error("Error exporting %s: %s", table, e)
            return TableOutcome(table=table, status="failed", error=str(e))

        if not rows:
            logger.info("%s has no data, skipping", table)
            return TableOutcome(table=table, status="skipped", reason="no rows")

        # Columns the source could not describe are classified by value
        for col in rows[0]:
            if col not in column_types:
                kind = next(
                    (infer_kind(r[col]) for r in rows if r.get(col) is not None),
                    None,
                )
                column_types[col] = kind or "scalar"

        truncations: Counter[str] = Counter()
        writer.begin_table(table)
        for row in rows:
            normalized, truncated = normalize_row(row, self._max_text_length)
            for col in truncated:
                logger.warning("Truncating large field %s in %s", col, table)
                truncations[col] += 1
            writer.write_row(normalized)
        row_count = writer.end_table(
            {col: column_types[col] for col in rows[0] if col in column_types}
        )

        outcome = TableOutcome(table=table, status="exported", rows=row_count)
        outcome.truncated_columns = sorted(truncations)
        outcome.warnings = [
            f"{table}.{col}: {count} value(s) truncated to "
            f"{self._max_text_length} characters"
            for col, count in sorted(truncations.items())
        ]

        logger.info("Exported %d rows from %s", row_count, table)
        return outcome
