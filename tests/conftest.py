"""Shared fixtures: an in-memory ``DatabaseClient`` and sample schemas."""

import json
from decimal import Decimal
from typing import Any

import pytest

from db_snapshot.schema.models import ColumnSchema


def col(name: str, data_type: str, generated: bool = False) -> ColumnSchema:
    return ColumnSchema(name=name, data_type=data_type, is_generated=generated)


class FakeDatabase:
    """In-memory stand-in for a PostgreSQL session.

    Stores rows as the asyncpg dialect returns them: ``bytes`` for bytea and
    decoded Python values for json/jsonb (inserts bind jsonb as JSON text,
    which is decoded on the way in).  Enforces declared foreign keys unless
    ``set_foreign_key_checks(False)`` was called, rejects unknown and
    generated columns, and records every call in ``calls``.
    """

    def __init__(
        self,
        columns: dict[str, list[ColumnSchema]],
        rows: dict[str, list[dict]] | None = None,
        sequences: set[tuple[str, str]] | None = None,
        foreign_keys: dict[str, tuple[str, str]] | None = None,
    ) -> None:
        self.columns = columns
        self.rows: dict[str, list[dict]] = {t: [] for t in columns}
        for table, table_rows in (rows or {}).items():
            self.rows[table] = [dict(r) for r in table_rows]
        self.sequences = sequences or set()
        # child table -> (fk column, parent table)
        self.foreign_keys = foreign_keys or {}
        self.next_values: dict[tuple[str, str], int] = {}
        self.fk_checks_enabled = True
        self.closed = False
        self.calls: list[tuple[Any, ...]] = []
        self.fail: dict[str, set[str]] = {}

    def fail_on(self, method: str, table: str) -> None:
        self.fail.setdefault(method, set()).add(table)

    def _maybe_fail(self, method: str, table: str) -> None:
        if table in self.fail.get(method, set()):
            raise RuntimeError(f"simulated {method} failure on {table}")

    def _require_table(self, table: str) -> list[ColumnSchema]:
        if table not in self.columns:
            raise RuntimeError(f'relation "{table}" does not exist')
        return self.columns[table]

    async def select_all(self, table):
        self.calls.append(("select_all", table))
        self._maybe_fail("select_all", table)
        self._require_table(table)
        return [dict(r) for r in self.rows[table]]

    async def describe_columns(self, table, schema_name="public"):
        self.calls.append(("describe_columns", table))
        self._maybe_fail("describe_columns", table)
        return list(self.columns.get(table, []))

    async def insert_many(self, table, rows, jsonb_columns=frozenset()):
        self.calls.append(("insert_many", table, len(rows)))
        self._maybe_fail("insert_many", table)
        schema = {c.name: c for c in self._require_table(table)}

        stored = []
        for row in rows:
            record = dict(row)
            for name, value in row.items():
                if name not in schema:
                    raise RuntimeError(f'column "{name}" does not exist')
                if schema[name].is_generated:
                    raise RuntimeError(f'cannot insert into column "{name}"')
                if name in jsonb_columns and value is not None:
                    if not isinstance(value, str):
                        raise TypeError(f"{name}: jsonb value must be JSON text")
                    record[name] = json.loads(value)
            if table in self.foreign_keys and self.fk_checks_enabled:
                fk_col, parent = self.foreign_keys[table]
                parent_ids = {r.get("id") for r in self.rows[parent]}
                if row.get(fk_col) is not None and row[fk_col] not in parent_ids:
                    raise RuntimeError(f"foreign key violation on {table}.{fk_col}")
            stored.append(record)

        self.rows[table].extend(stored)
        return len(rows)

    async def truncate(self, table, cascade=True):
        self.calls.append(("truncate", table))
        self._maybe_fail("truncate", table)
        self._require_table(table)
        self.rows[table] = []
        if cascade:
            for child, (_, parent) in self.foreign_keys.items():
                if parent == table:
                    self.rows[child] = []

    async def set_foreign_key_checks(self, enabled):
        self.calls.append(("set_foreign_key_checks", enabled))
        self.fk_checks_enabled = enabled

    async def reset_sequence(self, table, column):
        self.calls.append(("reset_sequence", table, column))
        self._maybe_fail("reset_sequence", table)
        if (table, column) not in self.sequences:
            return None
        values = [r[column] for r in self.rows[table] if r.get(column) is not None]
        next_value = max(values) + 1 if values else 1
        self.next_values[(table, column)] = next_value
        return next_value

    async def close(self):
        self.calls.append(("close",))
        self.closed = True

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]


PARENT_COLUMNS = [
    col("id", "int"),
    col("name", "varchar"),
    col("logo", "bytea"),
    col("settings", "jsonb"),
    col("display_name", "text", generated=True),
]

CHILD_COLUMNS = [
    col("id", "int"),
    col("parent_id", "int"),
    col("label", "text"),
    col("amount", "numeric"),
]


def parent_rows() -> list[dict]:
    return [
        {
            "id": i,
            "name": f"parent-{i}",
            "logo": bytes([i, 0, 255, 128]),
            "settings": {"theme": "dark", "rank": i},
            "display_name": f"PARENT-{i}",
        }
        for i in (1, 2, 3)
    ]


def child_rows() -> list[dict]:
    return [
        {"id": i, "parent_id": (i % 3) + 1, "label": f"child-{i}", "amount": Decimal(f"{i}.50")}
        for i in range(1, 6)
    ]


def make_database(with_rows: bool = True) -> FakeDatabase:
    return FakeDatabase(
        columns={
            "parents": list(PARENT_COLUMNS),
            "children": list(CHILD_COLUMNS),
        },
        rows={"parents": parent_rows(), "children": child_rows()} if with_rows else None,
        sequences={("parents", "id"), ("children", "id")},
        foreign_keys={"children": ("parent_id", "parents")},
    )


@pytest.fixture
def source_db() -> FakeDatabase:
    """Source with 3 parents and 5 children."""
    return make_database(with_rows=True)


@pytest.fixture
def target_db() -> FakeDatabase:
    """Empty target with the same schema as ``source_db``."""
    return make_database(with_rows=False)
