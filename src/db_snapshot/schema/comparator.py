"""Schema drift detection using set operations.

Compares the tables and columns an artifact carries against the columns
that exist in a target database.  Pure logic -- no I/O, no database
connections.

Usage:
    from db_snapshot.artifact import read_artifact
    from db_snapshot.schema.comparator import artifact_columns, validate_schema
    from db_snapshot.schema.introspector import SchemaIntrospector

    artifact = read_artifact("data-exports/latest.json")
    async with SchemaIntrospector(database_url) as introspector:
        actual_columns = await introspector.get_column_names()

    result = validate_schema(actual_columns, artifact_columns(artifact))
    print(result.format_report())
"""

from db_snapshot.artifact.models import SnapshotArtifact
from db_snapshot.schema.models import ColumnDiff, SchemaValidationResult


def artifact_columns(artifact: SnapshotArtifact) -> dict[str, set[str]]:
    """Map each artifact table to the column set of its first row."""
    return {t.table: set(t.columns) for t in artifact.tables}


def validate_schema(
    actual_columns: dict[str, set[str]],
    expected_columns: dict[str, set[str]],
) -> SchemaValidationResult:
    """Compare the columns an import needs against the target's columns.

    - Missing tables: in *expected_columns* but not in *actual_columns*.
      The import fails on these, so they make the result invalid.
    - Missing columns: in an expected table but not in the target table.
      The importer drops them with a warning; reported, still valid.
    - Extra tables: in the target but not expected (informational).

    Examples:
        >>> result = validate_schema(
        ...     {"parents": {"id"}},
        ...     {"parents": {"id", "nickname"}},
        ... )
        >>> result.valid
        True
        >>> result.missing_columns[0].column
        'nickname'

        >>> validate_schema({}, {"parents": {"id"}}).valid
        False
    """
    actual_tables = set(actual_columns)
    expected_tables = set(expected_columns)

    missing_tables = sorted(expected_tables - actual_tables)
    extra_tables = sorted(actual_tables - expected_tables)

    missing_columns: list[ColumnDiff] = []
    for table_name in sorted(expected_tables & actual_tables):
        for col_name in sorted(expected_columns[table_name] - actual_columns[table_name]):
            missing_columns.append(
                ColumnDiff(
                    table=table_name,
                    column=col_name,
                    message=f"Column '{col_name}' missing from table '{table_name}'",
                )
            )

    return SchemaValidationResult(
        valid=not missing_tables,
        missing_tables=missing_tables,
        missing_columns=missing_columns,
        extra_tables=extra_tables,
    )
