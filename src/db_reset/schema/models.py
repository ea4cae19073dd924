"""Pydantic models for schema introspection and reset planning.

This module contains schema-domain models:
- Introspection models: TableRef, TableInfo, ForeignKeyEdge, SchemaSnapshot
- Planning models: TableClassification, DeletionPlan
"""

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field


def quote_ident(identifier: str) -> str:
    """Quote a PostgreSQL identifier, doubling embedded quotes.

    Example:
        >>> quote_ident('Order"Lines')
        '"Order""Lines"'
    """
    return '"' + identifier.replace('"', '""') + '"'


# ============================================================================
# Schema Introspection Models
# ============================================================================


class TableRef(BaseModel):
    """Schema-qualified table identity.

    Example:
        >>> ref = TableRef(schema_name="public", name="Orders")
        >>> ref.qualified_name
        '"public"."Orders"'
    """

    model_config = ConfigDict(frozen=True)

    schema_name: str = "public"
    name: str

    @property
    def qualified_name(self) -> str:
        """Quoted ``"schema"."table"`` identifier for SQL."""
        return f"{quote_ident(self.schema_name)}.{quote_ident(self.name)}"

    @property
    def display_name(self) -> str:
        """Unquoted ``schema.table`` for reports."""
        return f"{self.schema_name}.{self.name}"

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.schema_name, self.name)

    def __str__(self) -> str:
        return self.display_name


class TableInfo(BaseModel):
    """A user table and the sequences behind its identity/serial columns."""

    ref: TableRef
    identity_sequences: list[str] = Field(default_factory=list)  # quoted, qualified

    @property
    def has_identity(self) -> bool:
        return bool(self.identity_sequences)


class ForeignKeyEdge(BaseModel):
    """A foreign key: ``child`` holds columns referencing ``parent``.

    Child rows must be deleted before parent rows when both are cleaned.
    """

    name: str
    parent: TableRef
    child: TableRef
    parent_columns: list[str] = Field(default_factory=list)
    child_columns: list[str] = Field(default_factory=list)

    @property
    def is_self_reference(self) -> bool:
        return self.parent == self.child


class SchemaSnapshot(BaseModel):
    """Everything the reset generator needs from the catalog."""

    database: str = ""
    server: str = ""
    tables: list[TableInfo] = Field(default_factory=list)
    foreign_keys: list[ForeignKeyEdge] = Field(default_factory=list)

    @property
    def table_refs(self) -> list[TableRef]:
        return [t.ref for t in self.tables]

    def get_table(self, ref: TableRef) -> TableInfo | None:
        """Look up a table by reference."""
        for table in self.tables:
            if table.ref == ref:
                return table
        return None


# ============================================================================
# Planning Models
# ============================================================================


class TableClassification(BaseModel):
    """Partition of all tables into preserved and cleaned sets."""

    preserve: list[TableRef] = Field(default_factory=list)
    clean: list[TableRef] = Field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        """True when there is nothing to clean."""
        return not self.clean


@dataclass
class DeletionPlan:
    """Deletion order for clean tables.

    Attributes:
        order: Tables that can be deleted linearly, children before parents.
        circular: Tables on (or depending on) a foreign key cycle.  These
            are cleared with constraint enforcement suspended.
    """

    order: list[TableRef] = field(default_factory=list)
    circular: list[TableRef] = field(default_factory=list)

    @property
    def tables(self) -> list[TableRef]:
        """Every planned table: circular bucket first, then the ordered list."""
        return self.circular + self.order

    @property
    def is_empty(self) -> bool:
        return not (self.order or self.circular)
