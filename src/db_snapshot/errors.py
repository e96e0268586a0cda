"""Error taxonomy for snapshot export and import runs.

Fatal errors (connectivity, missing or malformed artifacts, table load
failures on the import path) are raised and bubble up to the CLI, which
exits with status 1.  Non-fatal conditions (export-side query failures,
schema drift, sequence resync failures) are recorded on ``TableOutcome``
values instead of being raised.

Usage:
    from db_snapshot.errors import ArtifactNotFoundError, TableLoadError

    try:
        summary = await orchestrator.run("data-exports/latest.json")
    except TableLoadError as e:
        print(f"{e.table} failed during {e.phase}: {e}")
"""


class SnapshotError(Exception):
    """Base class for all snapshot errors."""

    pass


class ConnectivityError(SnapshotError):
    """Raised when the source or target database cannot be reached."""

    pass


class ArtifactNotFoundError(SnapshotError):
    """Raised when the artifact path does not exist."""

    pass


class ArtifactFormatError(SnapshotError):
    """Raised when the artifact is not valid JSON or is missing required keys."""

    pass


class TableLoadError(SnapshotError):
    """Raised when clearing or loading a table fails on the import path.

    Attributes:
        table: Name of the table being processed.
        phase: ``"clear"`` or ``"load"``.
    """

    def __init__(self, table: str, phase: str, message: str) -> None:
        super().__init__(message)
        self.table = table
        self.phase = phase


class SequenceResyncError(SnapshotError):
    """Raised by the importer when a sequence cannot be reset.

    Never escapes the importer -- it is caught, logged and recorded on the
    table outcome.
    """

    def __init__(self, table: str, column: str, message: str) -> None:
        super().__init__(message)
        self.table = table
        self.column = column
