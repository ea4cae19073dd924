"""Shared fixtures: an in-memory ``DatabaseClient`` and table helpers."""

from collections.abc import Callable

import pytest

from db_reset.schema.models import ForeignKeyEdge, TableRef


class FakeClient:
    """In-memory ``DatabaseClient`` returning canned catalog rows.

    ``script_errors`` is consumed one entry per ``execute_script`` call;
    ``None`` entries (or an exhausted list) mean success.
    """

    def __init__(
        self,
        tables: list[tuple[str, str]] | None = None,
        foreign_keys: list[tuple] | None = None,
        sequences: list[tuple[str, str, str, str]] | None = None,
        script_errors: list[Exception | None] | None = None,
        database: str = "app_test",
        server: str = "localhost:5432",
    ) -> None:
        self.tables = tables or []
        self.foreign_keys = foreign_keys or []
        self.sequences = sequences or []
        self.script_errors = list(script_errors or [])
        self._database = database
        self._server = server
        self.queries: list[str] = []
        self.executed: list[tuple[str, float | None]] = []
        self.closed = False

    @property
    def database_name(self) -> str:
        return self._database

    @property
    def server_name(self) -> str:
        return self._server

    async def fetch_all(self, sql: str, params=None) -> list[tuple]:
        self.queries.append(sql)
        if "pg_constraint" in sql:
            return list(self.foreign_keys)
        if "pg_depend" in sql:
            return list(self.sequences)
        if "information_schema.tables" in sql:
            return list(self.tables)
        return []

    async def execute_script(self, script: str, timeout: float | None = None) -> None:
        self.executed.append((script, timeout))
        if self.script_errors:
            error = self.script_errors.pop(0)
            if error is not None:
                raise error

    async def close(self) -> None:
        self.closed = True


def fk_row(
    name: str,
    parent: str,
    child: str,
    parent_columns: list[str] | None = None,
    child_columns: list[str] | None = None,
    schema: str = "public",
) -> tuple:
    """Build a row shaped like the foreign key catalog query."""
    return (
        name,
        schema,
        parent,
        schema,
        child,
        parent_columns or ["Id"],
        child_columns or [f"{parent}Id"],
    )


@pytest.fixture
def ref() -> Callable[[str], TableRef]:
    """``ref("Orders")`` -> ``TableRef(schema_name="public", name="Orders")``."""

    def _ref(name: str, schema_name: str = "public") -> TableRef:
        return TableRef(schema_name=schema_name, name=name)

    return _ref


@pytest.fixture
def edge() -> Callable[..., ForeignKeyEdge]:
    """``edge(child, parent)``: child table references parent table."""

    def _edge(child: TableRef, parent: TableRef, name: str | None = None) -> ForeignKeyEdge:
        return ForeignKeyEdge(
            name=name or f"FK_{child.name}_{parent.name}",
            parent=parent,
            child=child,
            parent_columns=["Id"],
            child_columns=[f"{parent.name}Id"],
        )

    return _edge
