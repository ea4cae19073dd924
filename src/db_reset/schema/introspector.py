"""PostgreSQL schema introspection via information_schema and pg_catalog.

This module queries the live database for the three facts a reset needs:
- User base tables (schema-qualified)
- Foreign keys referencing user tables, with ordered column lists
- Sequences owned by identity or serial columns

All queries are read-only.  An empty database yields an empty snapshot.
"""

import logging

from db_reset.adapters.base import DatabaseClient
from db_reset.schema.models import (
    ForeignKeyEdge,
    SchemaSnapshot,
    TableInfo,
    TableRef,
    quote_ident,
)

logger = logging.getLogger(__name__)


_TABLES_QUERY = """
    SELECT table_schema::text, table_name::text
    FROM information_schema.tables
    WHERE table_type = 'BASE TABLE'
      AND table_schema !~ '^pg_'
      AND table_schema <> 'information_schema'
    ORDER BY table_schema, table_name
"""

_FOREIGN_KEYS_QUERY = """
    SELECT
        con.conname::text,
        pn.nspname::text AS parent_schema,
        pc.relname::text AS parent_table,
        cn.nspname::text AS child_schema,
        cc.relname::text AS child_table,
        ARRAY(
            SELECT a.attname::text
            FROM unnest(con.confkey) WITH ORDINALITY AS k(attnum, ord)
            JOIN pg_attribute a ON a.attrelid = con.confrelid AND a.attnum = k.attnum
            ORDER BY k.ord
        ) AS parent_columns,
        ARRAY(
            SELECT a.attname::text
            FROM unnest(con.conkey) WITH ORDINALITY AS k(attnum, ord)
            JOIN pg_attribute a ON a.attrelid = con.conrelid AND a.attnum = k.attnum
            ORDER BY k.ord
        ) AS child_columns
    FROM pg_constraint con
    JOIN pg_class cc ON cc.oid = con.conrelid
    JOIN pg_namespace cn ON cn.oid = cc.relnamespace
    JOIN pg_class pc ON pc.oid = con.confrelid
    JOIN pg_namespace pn ON pn.oid = pc.relnamespace
    WHERE con.contype = 'f'
      AND cn.nspname !~ '^pg_'
      AND cn.nspname <> 'information_schema'
    ORDER BY cn.nspname, cc.relname, con.conname
"""

# deptype 'a' = serial (auto), 'i' = GENERATED ... AS IDENTITY (internal)
_IDENTITY_QUERY = """
    SELECT
        tn.nspname::text AS table_schema,
        t.relname::text AS table_name,
        sn.nspname::text AS sequence_schema,
        s.relname::text AS sequence_name
    FROM pg_depend d
    JOIN pg_class s ON s.oid = d.objid AND s.relkind = 'S'
    JOIN pg_namespace sn ON sn.oid = s.relnamespace
    JOIN pg_class t ON t.oid = d.refobjid
    JOIN pg_namespace tn ON tn.oid = t.relnamespace
    WHERE d.classid = 'pg_class'::regclass
      AND d.refclassid = 'pg_class'::regclass
      AND d.deptype IN ('a', 'i')
      AND tn.nspname !~ '^pg_'
    ORDER BY tn.nspname, t.relname, s.relname
"""


class SchemaIntrospector:
    """Introspects tables, foreign keys and identity sequences.

    Usage:
        async with AsyncPostgresAdapter(url) as client:
            snapshot = await SchemaIntrospector(client).introspect()

    Args:
        client: Connected ``DatabaseClient``.
        schemas: Only report tables in these schemas.  ``None`` means every
            non-system schema.
    """

    def __init__(self, client: DatabaseClient, schemas: list[str] | None = None):
        self._client = client
        self._schemas: set[str] | None = set(schemas) if schemas else None

    async def introspect(self) -> SchemaSnapshot:
        """Read the full snapshot.

        Returns:
            SchemaSnapshot with tables, identity sequences attached to their
            tables, and every foreign key referencing a reported table.
            Keys whose child lies outside ``schemas`` are included.

        Raises:
            ConnectivityError: If any catalog query fails.
        """
        refs = await self._get_tables()
        sequences = await self._get_identity_sequences()
        known = set(refs)

        tables = [
            TableInfo(ref=ref, identity_sequences=sequences.get(ref, []))
            for ref in refs
        ]
        foreign_keys = [
            fk
            for fk in await self._get_foreign_keys()
            if fk.parent in known
        ]

        logger.debug(
            "Introspected %d tables, %d foreign keys, %d identity tables",
            len(tables),
            len(foreign_keys),
            sum(1 for t in tables if t.has_identity),
        )

        return SchemaSnapshot(
            database=self._client.database_name,
            server=self._client.server_name,
            tables=tables,
            foreign_keys=foreign_keys,
        )

    def _in_scope(self, schema_name: str) -> bool:
        return self._schemas is None or schema_name in self._schemas

    async def _get_tables(self) -> list[TableRef]:
        """Get all user base tables."""
        rows = await self._client.fetch_all(_TABLES_QUERY)
        return [
            TableRef(schema_name=schema_name, name=name)
            for schema_name, name in rows
            if self._in_scope(schema_name)
        ]

    async def _get_foreign_keys(self) -> list[ForeignKeyEdge]:
        """Get foreign keys between user tables."""
        rows = await self._client.fetch_all(_FOREIGN_KEYS_QUERY)
        edges = []
        for row in rows:
            (
                name,
                parent_schema,
                parent_table,
                child_schema,
                child_table,
                parent_columns,
                child_columns,
            ) = row
            edges.append(
                ForeignKeyEdge(
                    name=name,
                    parent=TableRef(schema_name=parent_schema, name=parent_table),
                    child=TableRef(schema_name=child_schema, name=child_table),
                    parent_columns=list(parent_columns or []),
                    child_columns=list(child_columns or []),
                )
            )
        return edges

    async def _get_identity_sequences(self) -> dict[TableRef, list[str]]:
        """Map each table to the quoted names of its owned sequences."""
        rows = await self._client.fetch_all(_IDENTITY_QUERY)
        sequences: dict[TableRef, list[str]] = {}
        for table_schema, table_name, seq_schema, seq_name in rows:
            ref = TableRef(schema_name=table_schema, name=table_name)
            qualified = f"{quote_ident(seq_schema)}.{quote_ident(seq_name)}"
            sequences.setdefault(ref, []).append(qualified)
        return sequences
