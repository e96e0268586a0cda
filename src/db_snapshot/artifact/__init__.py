"""Snapshot artifact: data model, streaming writer, reader and validation.

Usage:
    from db_snapshot.artifact import ArtifactWriter, read_artifact, validate_artifact
    from db_snapshot.artifact import SnapshotArtifact, TableSnapshot
"""

from db_snapshot.artifact.models import ColumnKind, SnapshotArtifact, TableSnapshot
from db_snapshot.artifact.reader import read_artifact, validate_artifact
from db_snapshot.artifact.writer import ArtifactWriter

__all__ = [
    "ColumnKind",
    "SnapshotArtifact",
    "TableSnapshot",
    "ArtifactWriter",
    "read_artifact",
    "validate_artifact",
]
