"""Target schema introspection and drift reporting.

Usage:
    from db_snapshot.schema import SchemaIntrospector, validate_schema
"""

from db_snapshot.schema.comparator import artifact_columns, validate_schema
from db_snapshot.schema.introspector import SchemaIntrospector
from db_snapshot.schema.models import (
    ColumnDiff,
    ColumnSchema,
    ConnectionResult,
    DatabaseSchema,
    SchemaValidationResult,
    TableSchema,
)

__all__ = [
    "artifact_columns",
    "validate_schema",
    "SchemaIntrospector",
    "SchemaValidationResult",
    "ColumnDiff",
    "ConnectionResult",
    "ColumnSchema",
    "TableSchema",
    "DatabaseSchema",
]
