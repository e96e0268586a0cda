"""Pydantic models for schema introspection and drift reporting."""

from pydantic import BaseModel, Field


# ============================================================================
# Drift Report Models
# ============================================================================


class ColumnDiff(BaseModel):
    """An artifact column that does not exist in the target table."""

    table: str
    column: str
    message: str = ""


class SchemaValidationResult(BaseModel):
    """Result of comparing an artifact's tables/columns to a target schema.

    Missing columns are a warning on import (they are dropped from the
    insert), but missing tables make the load fail, so only missing tables
    affect ``valid``.
    """

    valid: bool
    missing_tables: list[str] = Field(default_factory=list)
    missing_columns: list[ColumnDiff] = Field(default_factory=list)
    extra_tables: list[str] = Field(default_factory=list)  # Warning only

    @property
    def error_count(self) -> int:
        """Count of critical errors (missing tables)."""
        return len(self.missing_tables)

    def format_report(self) -> str:
        """Format validation result as human-readable report."""
        if self.valid and not self.missing_columns:
            return "Schema compatible"

        lines = [
            "Schema compatible (with drift):" if self.valid else "Schema incompatible:"
        ]

        if self.missing_tables:
            lines.append(f"\n  Missing tables ({len(self.missing_tables)}):")
            for table in self.missing_tables:
                lines.append(f"    - {table}")

        if self.missing_columns:
            lines.append(
                f"\n  Columns dropped on import ({len(self.missing_columns)}):"
            )
            for diff in self.missing_columns:
                lines.append(f"    - {diff.table}.{diff.column}")

        if self.extra_tables:
            lines.append(f"\n  Tables not in artifact: {', '.join(self.extra_tables)}")

        return "\n".join(lines)


# ============================================================================
# Connection Result
# ============================================================================


class ConnectionResult(BaseModel):
    """Result of connect_and_validate()."""

    success: bool
    profile_name: str | None = None
    schema_valid: bool | None = None
    schema_report: SchemaValidationResult | None = None
    error: str | None = None


# ============================================================================
# Schema Introspection Models
# ============================================================================


JSON_TYPES = frozenset({"json", "jsonb"})
BINARY_TYPES = frozenset({"bytea"})


def normalize_data_type(data_type: str) -> str:
    """Normalize PostgreSQL data type names.

    Maps verbose information_schema types to standard names.
    """
    type_map = {
        "character varying": "varchar",
        "character": "char",
        "timestamp with time zone": "timestamptz",
        "timestamp without time zone": "timestamp",
        "integer": "int",
        "boolean": "bool",
    }
    return type_map.get(data_type.lower(), data_type.lower())


class ColumnSchema(BaseModel):
    """Schema for a database column."""

    name: str
    data_type: str
    is_nullable: bool = True
    default: str | None = None
    is_generated: bool = False

    @property
    def is_json(self) -> bool:
        return self.data_type in JSON_TYPES

    @property
    def is_binary(self) -> bool:
        return self.data_type in BINARY_TYPES


class TableSchema(BaseModel):
    """Schema for a database table."""

    name: str
    columns: dict[str, ColumnSchema] = Field(default_factory=dict)


class DatabaseSchema(BaseModel):
    """Tables of one PostgreSQL schema."""

    tables: dict[str, TableSchema] = Field(default_factory=dict)
