"""db-snapshot: PostgreSQL snapshot export and import.

Exports an ordered set of tables into a self-contained JSON artifact and
replays it into another database with foreign-key checks suspended,
binary and JSON values preserved, and sequences resynced.

Usage:
    from db_snapshot import get_adapter, SnapshotExporter, LoadOrchestrator

    source = await get_adapter(profile_name="local")
    summary = await SnapshotExporter(source, ["parents", "children"]).export()

    target = await get_adapter(profile_name="aws")
    result = await LoadOrchestrator(target).run(summary.latest_path)
"""

__version__ = "0.1.0"

# Adapters
from db_snapshot.adapters.base import DatabaseClient
from db_snapshot.adapters.postgres import AsyncPostgresAdapter

# Artifact
from db_snapshot.artifact import (
    ArtifactWriter,
    SnapshotArtifact,
    TableSnapshot,
    read_artifact,
    validate_artifact,
)

# Config
from db_snapshot.config.loader import load_db_config
from db_snapshot.config.models import DatabaseConfig, DatabaseProfile, SnapshotSettings

# Errors
from db_snapshot.errors import (
    ArtifactFormatError,
    ArtifactNotFoundError,
    ConnectivityError,
    SequenceResyncError,
    SnapshotError,
    TableLoadError,
)

# Factory
from db_snapshot.factory import (
    ProfileNotFoundError,
    connect_and_validate,
    get_adapter,
    resolve_url,
)

# Schema
from db_snapshot.schema.comparator import validate_schema

# Snapshot
from db_snapshot.snapshot import (
    ExportSummary,
    ImportSummary,
    LoadOrchestrator,
    LoadState,
    SnapshotExporter,
    SnapshotImporter,
    TableOutcome,
)

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncPostgresAdapter",
    # Artifact
    "ArtifactWriter",
    "SnapshotArtifact",
    "TableSnapshot",
    "read_artifact",
    "validate_artifact",
    # Config
    "load_db_config",
    "DatabaseProfile",
    "DatabaseConfig",
    "SnapshotSettings",
    # Errors
    "SnapshotError",
    "ConnectivityError",
    "ArtifactNotFoundError",
    "ArtifactFormatError",
    "TableLoadError",
    "SequenceResyncError",
    # Factory
    "get_adapter",
    "connect_and_validate",
    "ProfileNotFoundError",
    "resolve_url",
    # Schema
    "validate_schema",
    # Snapshot
    "SnapshotExporter",
    "SnapshotImporter",
    "LoadOrchestrator",
    "ExportSummary",
    "ImportSummary",
    "LoadState",
    "TableOutcome",
]
