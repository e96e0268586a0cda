"""Load orchestrator.

Drives one import run through its states::

    INIT -> SUSPENDED -> CLEARING -> LOADING(t1) .. LOADING(tn) -> RESTORED -> DONE

Any error while clearing or loading goes ``RESTORED -> ABORTED`` and is
re-raised.  Foreign-key enforcement is restored before the run ends on
every path.  Tables loaded before a failure stay loaded; there is no
cross-table rollback.

Usage:
    from db_snapshot.snapshot.orchestrator import LoadOrchestrator

    orchestrator = LoadOrchestrator(adapter)
    summary = await orchestrator.run("data-exports/latest.json")
    print(summary.imported_tables, summary.total_rows)
"""

import logging
from pathlib import Path

from db_snapshot.adapters.base import DatabaseClient
from db_snapshot.artifact.models import SnapshotArtifact
from db_snapshot.artifact.reader import read_artifact
from db_snapshot.errors import TableLoadError
from db_snapshot.snapshot.importer import SnapshotImporter
from db_snapshot.snapshot.models import ImportSummary, LoadState, TableOutcome

logger = logging.getLogger(__name__)


class LoadOrchestrator:
    """Sequences clearing, loading and integrity restoration for an import.

    Args:
        adapter: Target database handle.
        importer: Optional pre-configured ``SnapshotImporter``.  When
            ``None``, one is built from ``adapter``.
    """

    def __init__(
        self,
        adapter: DatabaseClient,
        importer: SnapshotImporter | None = None,
    ) -> None:
        self._adapter = adapter
        self._importer = importer or SnapshotImporter(adapter)

    async def run(self, artifact_path: str | Path) -> ImportSummary:
        """Parse the artifact at ``artifact_path`` and load it.

        Artifact problems are raised before any database call.

        Raises:
            ArtifactNotFoundError: If the file does not exist.
            ArtifactFormatError: If the file is not a valid artifact.
            TableLoadError: If clearing or loading a table fails.
        """
        artifact = read_artifact(artifact_path)
        logger.info(
            "Import file: %s (exported %s, %d tables)",
            artifact_path,
            artifact.export_timestamp,
            len(artifact.tables),
        )
        summary = ImportSummary(
            artifact_path=str(artifact_path),
            export_timestamp=artifact.export_timestamp,
        )
        return await self.load(artifact, summary)

    async def load(
        self, artifact: SnapshotArtifact, summary: ImportSummary | None = None
    ) -> ImportSummary:
        """Load an already-parsed artifact."""
        if summary is None:
            summary = ImportSummary(
                artifact_path="<memory>",
                export_timestamp=artifact.export_timestamp,
            )
        summary.transition(LoadState.INIT)

        await self._importer.suspend_integrity()
        summary.transition(LoadState.SUSPENDED)

        try:
            summary.transition(LoadState.CLEARING)
            await self._importer.clear_tables(artifact.table_names)

            for snapshot in artifact.tables:
                summary.transition(LoadState.LOADING, snapshot.table)
                try:
                    outcome = await self._importer.import_table(snapshot)
                except TableLoadError as e:
                    summary.tables.append(
                        TableOutcome(table=snapshot.table, status="failed", error=str(e))
                    )
                    raise
                summary.tables.append(outcome)
        except BaseException as e:
            summary.error = str(e) or type(e).__name__
            logger.error("Import aborted: %s", summary.error)
            await self._restore(summary, best_effort=True)
            summary.transition(LoadState.ABORTED)
            raise

        await self._restore(summary, best_effort=False)
        summary.transition(LoadState.DONE)

        logger.info(
            "Successfully imported %d/%d tables, %d rows",
            len(summary.imported_tables),
            len(artifact.tables),
            summary.total_rows,
        )
        return summary

    async def _restore(self, summary: ImportSummary, best_effort: bool) -> None:
        """Re-enable foreign-key checks.

        With ``best_effort`` a failure is logged instead of raised so the
        error that aborted the run is the one that propagates.
        """
        try:
            await self._importer.restore_integrity()
        except Exception as e:
            if not best_effort:
                raise
            logger.error(
                "Could not re-enable foreign key checks: %s. "
                "Run 'SET session_replication_role = DEFAULT' manually.",
                e,
            )
            return
        summary.transition(LoadState.RESTORED)
