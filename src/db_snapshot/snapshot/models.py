"""Run outcome models for export and import.

Every table processed by a run gets a ``TableOutcome`` so callers can
detect a degraded run programmatically instead of scraping logs.

Usage:
    from db_snapshot.snapshot.models import ExportSummary, ImportSummary

    summary = await exporter.export()
    if summary.degraded:
        print("Missing tables:", summary.failed_tables)
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class TableOutcome(BaseModel):
    """Result of exporting or importing one table.

    Attributes:
        table: Table name.
        status: ``exported`` / ``imported`` on success, ``skipped`` when the
            table had no rows, ``failed`` when a query or insert raised.
        rows: Rows written to the artifact or inserted into the target.
        reason: Why the table was skipped.
        error: Error message when the table failed.
        warnings: Non-fatal problems (truncation, drift, resync failures).
        dropped_columns: Artifact columns missing from the target table.
        truncated_columns: Columns with at least one truncated value.
        sequences: Next sequence value per resynced column.
    """

    table: str
    status: Literal["exported", "imported", "skipped", "failed"]
    rows: int = 0
    reason: str | None = None
    error: str | None = None
    warnings: list[str] = Field(default_factory=list)
    dropped_columns: list[str] = Field(default_factory=list)
    truncated_columns: list[str] = Field(default_factory=list)
    sequences: dict[str, int] = Field(default_factory=dict)


class ExportSummary(BaseModel):
    """Result of one export run."""

    export_timestamp: str
    artifact_path: str | None = None
    latest_path: str | None = None
    tables: list[TableOutcome] = Field(default_factory=list)

    @property
    def exported_tables(self) -> list[str]:
        return [t.table for t in self.tables if t.status == "exported"]

    @property
    def skipped_tables(self) -> list[str]:
        return [t.table for t in self.tables if t.status == "skipped"]

    @property
    def failed_tables(self) -> list[str]:
        return [t.table for t in self.tables if t.status == "failed"]

    @property
    def total_rows(self) -> int:
        return sum(t.rows for t in self.tables if t.status == "exported")

    @property
    def degraded(self) -> bool:
        """``True`` when at least one table is missing because its query failed."""
        return bool(self.failed_tables)

    @property
    def warnings(self) -> list[str]:
        return [w for t in self.tables for w in t.warnings]


class LoadState(str, Enum):
    """States of an import run.

    ``INIT -> SUSPENDED -> CLEARING -> LOADING(t1..tn) -> RESTORED -> DONE``;
    an error while clearing or loading goes ``RESTORED -> ABORTED``.
    """

    INIT = "INIT"
    SUSPENDED = "SUSPENDED"
    CLEARING = "CLEARING"
    LOADING = "LOADING"
    RESTORED = "RESTORED"
    DONE = "DONE"
    ABORTED = "ABORTED"


class ImportSummary(BaseModel):
    """Result of one import run."""

    artifact_path: str
    export_timestamp: str | None = None
    state: LoadState = LoadState.INIT
    history: list[str] = Field(default_factory=list)
    tables: list[TableOutcome] = Field(default_factory=list)
    error: str | None = None

    def transition(self, state: LoadState, table: str | None = None) -> None:
        """Move to ``state`` and record it (``LOADING(table)`` for loads)."""
        self.state = state
        self.history.append(f"{state.value}({table})" if table else state.value)

    @property
    def success(self) -> bool:
        return self.state == LoadState.DONE

    @property
    def imported_tables(self) -> list[str]:
        return [t.table for t in self.tables if t.status == "imported"]

    @property
    def total_rows(self) -> int:
        return sum(t.rows for t in self.tables if t.status == "imported")

    @property
    def warnings(self) -> list[str]:
        return [w for t in self.tables for w in t.warnings]
