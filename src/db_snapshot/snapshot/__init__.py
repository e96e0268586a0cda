"""Snapshot export, import and load orchestration.

Usage:
    from db_snapshot.snapshot import SnapshotExporter, LoadOrchestrator

    summary = await SnapshotExporter(source, ["parents", "children"]).export()
    result = await LoadOrchestrator(target).run(summary.latest_path)
"""

from db_snapshot.snapshot.exporter import SnapshotExporter
from db_snapshot.snapshot.importer import SnapshotImporter
from db_snapshot.snapshot.models import (
    ExportSummary,
    ImportSummary,
    LoadState,
    TableOutcome,
)
from db_snapshot.snapshot.orchestrator import LoadOrchestrator

__all__ = [
    "SnapshotExporter",
    "SnapshotImporter",
    "LoadOrchestrator",
    "ExportSummary",
    "ImportSummary",
    "LoadState",
    "TableOutcome",
]
