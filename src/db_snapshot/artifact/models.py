"""Snapshot artifact models.

An artifact is the self-describing JSON form of one point-in-time snapshot
of the configured tables.  Tables appear in dependency order (parents
first) and tables without rows are omitted entirely.

Usage:
    from db_snapshot.artifact.models import SnapshotArtifact, TableSnapshot

    snapshot = TableSnapshot(
        table="parents",
        rows=[{"id": 1, "name": "a"}],
        rowCount=1,
        columnTypes={"id": "scalar", "name": "text"},
    )
"""

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

# How a column's values are carried in the artifact:
#   binary -- base64 text of the original bytes
#   json   -- structured JSON value (object, array, scalar)
#   text   -- plain string (may carry the truncation sentinel)
#   scalar -- number, boolean, or a temporal/decimal value rendered as text
ColumnKind = Literal["binary", "json", "text", "scalar"]


class TableSnapshot(BaseModel):
    """All rows of one table, in source order."""

    model_config = ConfigDict(populate_by_name=True)

    table: str
    rows: list[dict[str, Any]]
    row_count: int = Field(alias="rowCount")
    column_types: dict[str, ColumnKind] = Field(
        default_factory=dict, alias="columnTypes"
    )

    @model_validator(mode="after")
    def _check_row_count(self) -> "TableSnapshot":
        if self.row_count != len(self.rows):
            raise ValueError(
                f"{self.table}: rowCount {self.row_count} does not match "
                f"{len(self.rows)} rows"
            )
        return self

    @property
    def columns(self) -> list[str]:
        """Column names taken from the first row."""
        return list(self.rows[0].keys()) if self.rows else []


class SnapshotArtifact(BaseModel):
    """A complete export: timestamp plus ordered table snapshots."""

    model_config = ConfigDict(populate_by_name=True)

    export_timestamp: str = Field(
        validation_alias=AliasChoices("export_timestamp", "exportDate")
    )
    tables: list[TableSnapshot] = Field(default_factory=list)

    @property
    def table_names(self) -> list[str]:
        return [t.table for t in self.tables]

    @property
    def total_rows(self) -> int:
        return sum(t.row_count for t in self.tables)
