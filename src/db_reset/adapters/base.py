"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol the introspector and the generator
depend on.  All I/O methods are ``async def``.

Usage:
    from db_reset.adapters.base import DatabaseClient

    async def do_work(client: DatabaseClient) -> None:
        rows = await client.fetch_all("SELECT table_name FROM information_schema.tables")
        await client.execute_script("BEGIN; DELETE FROM orders; COMMIT;", timeout=60)
        await client.close()
"""

from typing import Any, Protocol


class DatabaseClient(Protocol):
    """Database client interface that all adapters must implement.

    The generator only needs two things from a database: read-only catalog
    queries and execution of a complete multi-statement script.
    """

    @property
    def database_name(self) -> str:
        """Name of the connected database (for script headers)."""
        ...

    @property
    def server_name(self) -> str:
        """Host (and port) of the connected server (for script headers)."""
        ...

    async def fetch_all(
        self, sql: str, params: tuple[Any, ...] | None = None
    ) -> list[tuple]:
        """Run a read-only query and return all rows as tuples.

        Args:
            sql: Query text with ``%s`` placeholders.
            params: Optional positional parameters.

        Returns:
            List of row tuples.  Empty list if no rows.

        Raises:
            ConnectivityError: If the query cannot be executed.
        """
        ...

    async def execute_script(self, script: str, timeout: float | None = None) -> None:
        """Execute a complete multi-statement SQL script.

        The script manages its own transaction (``BEGIN``/``COMMIT``).

        Args:
            script: SQL script text.
            timeout: Seconds before the execution is cancelled.  ``None``
                waits indefinitely.

        Raises:
            ScriptExecutionError: If the script fails or times out.
        """
        ...

    async def close(self) -> None:
        """Close the connection and clean up resources."""
        ...
