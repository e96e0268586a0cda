"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol that the exporter, importer and
orchestrator depend on.  All methods are ``async def``.  Handles are always
injected by the caller; the core never opens connections itself, so tests
can substitute an in-memory fake.

Usage:
    from db_snapshot.adapters.base import DatabaseClient

    async def do_work(client: DatabaseClient) -> None:
        rows = await client.select_all("parents")
        await client.insert_many("parents", rows)
        await client.close()
"""

from typing import Protocol

from db_snapshot.schema.models import ColumnSchema


class DatabaseClient(Protocol):
    """Database handle interface for snapshot export and import.

    Implementations must run every call on the same database session for
    the lifetime of the handle: ``set_foreign_key_checks`` is session
    scoped and has to stay in effect for the clears and inserts that follow.
    """

    async def select_all(self, table: str) -> list[dict]:
        """Return every row of a table.

        Returns:
            List of dicts, one per row, with values as the driver decodes
            them: ``bytes`` for bytea, already-decoded Python values
            (dict, list, str, number, bool) for json/jsonb.  Empty list if
            the table has no rows.
        """
        ...

    async def describe_columns(
        self, table: str, schema_name: str = "public"
    ) -> list[ColumnSchema]:
        """Describe the columns of a table in ordinal order.

        Returns:
            List of ``ColumnSchema``; empty if the table does not exist.
        """
        ...

    async def insert_many(
        self,
        table: str,
        rows: list[dict],
        jsonb_columns: frozenset[str] | set[str] = frozenset(),
    ) -> int:
        """Insert all rows in one multi-row INSERT statement.

        Every row must have the same keys as the first row.  Values for
        ``jsonb_columns`` are JSON text and are cast to jsonb.

        Returns:
            Number of rows inserted.

        Raises:
            Exception: On any constraint or type error; no row is inserted.
        """
        ...

    async def truncate(self, table: str, cascade: bool = True) -> None:
        """Remove all rows of a table (and dependents when ``cascade``)."""
        ...

    async def set_foreign_key_checks(self, enabled: bool) -> None:
        """Enable or suspend trigger-based foreign-key enforcement for the session."""
        ...

    async def reset_sequence(self, table: str, column: str) -> int | None:
        """Resync the sequence owned by ``table.column`` to MAX(column).

        Returns:
            The next value the sequence will hand out, or ``None`` when the
            column does not own a sequence.
        """
        ...

    async def close(self) -> None:
        """Close the database session and release resources."""
        ...
