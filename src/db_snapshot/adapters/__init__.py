"""Database adapters package.

Provides the ``DatabaseClient`` Protocol and the async PostgreSQL adapter
used by snapshot export and import runs.

Usage:
    from db_snapshot.adapters import DatabaseClient, AsyncPostgresAdapter
"""

from db_snapshot.adapters.base import DatabaseClient
from db_snapshot.adapters.postgres import AsyncPostgresAdapter

__all__ = [
    "DatabaseClient",
    "AsyncPostgresAdapter",
]
