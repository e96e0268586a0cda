"""PostgreSQL schema introspection via information_schema.

Queries the live target database for its tables and columns (name, data
type, nullability, default, generated flag).  Used by the ``check``
preflight to report schema drift before an import.

Uses psycopg (v3) async connections, independent of the snapshot adapter's
pinned session.
"""

from typing import Any

import psycopg
from psycopg import AsyncConnection

from db_snapshot.schema.models import (
    ColumnSchema,
    DatabaseSchema,
    TableSchema,
    normalize_data_type,
)


class SchemaIntrospector:
    """Introspects PostgreSQL database schema.

    Usage:
        async with SchemaIntrospector(database_url) as introspector:
            schema = await introspector.introspect()

            # Or just column names for drift checks
            columns = await introspector.get_column_names()
    """

    # Tables to exclude from introspection (system tables)
    EXCLUDED_TABLES = {
        "schema_migrations",
        "pg_stat_statements",
        "spatial_ref_sys",
    }

    def __init__(
        self,
        database_url: str,
        connect_timeout: int = 10,
        sslmode: str | None = None,
    ):
        """Initialize with database connection URL.

        Args:
            database_url: PostgreSQL connection URL (``postgresql://`` or
                ``postgresql+asyncpg://``).
            connect_timeout: Seconds to wait for the connection.
            sslmode: libpq ``sslmode`` (e.g. ``"require"``); libpq's
                default applies when ``None``.
        """
        self._database_url = database_url.replace("postgresql+asyncpg://", "postgresql://")
        self._connect_timeout = connect_timeout
        self._sslmode = sslmode
        self._conn: AsyncConnection | None = None

    async def __aenter__(self) -> "SchemaIntrospector":
        """Open the connection."""
        connect_kwargs: dict[str, Any] = {"connect_timeout": self._connect_timeout}
        if self._sslmode:
            connect_kwargs["sslmode"] = self._sslmode
        self._conn = await psycopg.AsyncConnection.connect(
            self._database_url, **connect_kwargs
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close the connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_connection(self) -> AsyncConnection:
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use 'async with'.")
        return self._conn

    async def introspect(self, schema_name: str = "public") -> DatabaseSchema:
        """Introspect every table and its columns.

        Args:
            schema_name: PostgreSQL schema to introspect (default: public)

        Returns:
            DatabaseSchema keyed by table name.
        """
        conn = self._require_connection()
        db_schema = DatabaseSchema()

        query = """
            SELECT table_name, column_name, data_type, is_nullable,
                   column_default, is_generated
            FROM information_schema.columns
            WHERE table_schema = %s
            ORDER BY table_name, ordinal_position
        """
        async with conn.cursor() as cur:
            await cur.execute(query, (schema_name,))
            rows = await cur.fetchall()

        for table_name, col_name, data_type, is_nullable, default, is_generated in rows:
            if table_name in self.EXCLUDED_TABLES:
                continue
            table = db_schema.tables.setdefault(
                table_name, TableSchema(name=table_name)
            )
            table.columns[col_name] = ColumnSchema(
                name=col_name,
                data_type=normalize_data_type(data_type),
                is_nullable=(is_nullable == "YES"),
                default=default,
                is_generated=(is_generated == "ALWAYS"),
            )

        # Tables without columns still count as existing
        for table_name in await self._get_tables(schema_name):
            if table_name not in self.EXCLUDED_TABLES:
                db_schema.tables.setdefault(table_name, TableSchema(name=table_name))

        return db_schema

    async def get_column_names(self, schema_name: str = "public") -> dict[str, set[str]]:
        """Get column names for all tables.

        Returns:
            Dict mapping table name to set of column names.
        """
        schema = await self.introspect(schema_name)
        return {
            name: set(table.columns) for name, table in schema.tables.items()
        }

    async def _get_tables(self, schema_name: str) -> list[str]:
        """Get base table names in schema."""
        conn = self._require_connection()
        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = %s
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """
        async with conn.cursor() as cur:
            await cur.execute(query, (schema_name,))
            return [row[0] for row in await cur.fetchall()]
