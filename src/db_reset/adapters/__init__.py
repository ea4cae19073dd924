"""Database adapters package.

Provides the ``DatabaseClient`` Protocol and the psycopg-based
``AsyncPostgresAdapter``.

Usage:
    from db_reset.adapters import DatabaseClient, AsyncPostgresAdapter
"""

from db_reset.adapters.base import DatabaseClient
from db_reset.adapters.postgres import AsyncPostgresAdapter

__all__ = [
    "DatabaseClient",
    "AsyncPostgresAdapter",
]
