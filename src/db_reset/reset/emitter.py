"""Render a deletion plan into a transactional PostgreSQL reset script.

Pure logic -- no I/O.  The script body runs inside ``BEGIN``/``COMMIT`` and
a ``DO`` block whose exception handler re-raises the original error with
its SQLSTATE, so any failure rolls back every delete.

Body order:
1. Circular tables: disable triggers, delete, re-enable, validate
2. Remaining tables, children before parents
3. Restart every identity/serial sequence of a cleaned table

The fallback strategy suspends enforcement on every clean table instead of
only the circular ones.

Usage:
    from db_reset.reset.emitter import ResetStrategy, render_reset_script

    script = render_reset_script(snapshot, classification, plan)
    fallback = render_reset_script(
        snapshot, classification, plan, strategy=ResetStrategy.CONSTRAINTS_DISABLED
    )

Run a stored script manually with ``psql -v ON_ERROR_STOP=1 -f reset.sql``.
"""

from collections.abc import Iterable
from datetime import datetime, timezone
from enum import Enum

from db_reset.schema.models import (
    DeletionPlan,
    ForeignKeyEdge,
    SchemaSnapshot,
    TableClassification,
    TableRef,
    quote_ident,
)

GENERATOR_NAME = "db-reset"
_DO_TAG = "$reset$"
_INDENT = "    "


class ResetStrategy(str, Enum):
    """How constraint enforcement is handled while deleting."""

    ORDERED = "ordered"
    CONSTRAINTS_DISABLED = "constraints-disabled"


def quote_literal(value: str) -> str:
    """Quote a SQL string literal.

    Example:
        >>> quote_literal("O'Brien")
        "'O''Brien'"
    """
    return "'" + value.replace("'", "''") + "'"


# ------------------------------------------------------------------
# Statement builders
# ------------------------------------------------------------------


def _disable(table: TableRef) -> str:
    return f"ALTER TABLE {table.qualified_name} DISABLE TRIGGER ALL;"


def _enable(table: TableRef) -> str:
    return f"ALTER TABLE {table.qualified_name} ENABLE TRIGGER ALL;"


def _delete(table: TableRef) -> str:
    return f"DELETE FROM {table.qualified_name};"


def _orphan_check(fk: ForeignKeyEdge) -> list[str]:
    """IF block raising when child rows reference removed parent rows.

    Null keys are skipped (MATCH SIMPLE semantics).
    """
    not_null = " AND ".join(f"c.{quote_ident(col)} IS NOT NULL" for col in fk.child_columns)
    join = " AND ".join(
        f"p.{quote_ident(p_col)} = c.{quote_ident(c_col)}"
        for p_col, c_col in zip(fk.parent_columns, fk.child_columns)
    )
    return [
        "IF EXISTS (",
        f"{_INDENT}SELECT 1 FROM {fk.child.qualified_name} c",
        f"{_INDENT}WHERE {not_null}",
        f"{_INDENT}  AND NOT EXISTS (SELECT 1 FROM {fk.parent.qualified_name} p WHERE {join})",
        ") THEN",
        f"{_INDENT}RAISE EXCEPTION 'foreign key % on % references rows removed by the reset',",
        f"{_INDENT}{_INDENT}{quote_literal(fk.name)}, {quote_literal(fk.child.display_name)}",
        f"{_INDENT}{_INDENT}USING ERRCODE = 'foreign_key_violation';",
        "END IF;",
    ]


def _validation_block(
    suspended: Iterable[TableRef], foreign_keys: Iterable[ForeignKeyEdge]
) -> list[str]:
    """Orphan checks for every key into a suspended table from outside it.

    Keys whose child is itself suspended are skipped: suspended tables are
    emptied, so they cannot hold orphans.
    """
    suspended_set = set(suspended)
    checks: list[str] = []
    for fk in sorted(foreign_keys, key=lambda f: (f.child.sort_key, f.name)):
        if fk.parent not in suspended_set or fk.child in suspended_set:
            continue
        if not fk.child_columns or len(fk.child_columns) != len(fk.parent_columns):
            continue
        checks.extend(_orphan_check(fk))
    return checks


# ------------------------------------------------------------------
# Script rendering
# ------------------------------------------------------------------


def render_header(
    snapshot: SchemaSnapshot,
    classification: TableClassification,
    plan: DeletionPlan,
    strategy: ResetStrategy,
    generated_at: datetime,
) -> list[str]:
    """Comment block recording provenance and table counts."""
    rule = "-- " + "=" * 72
    return [
        rule,
        "-- Database reset script",
        f"-- Generated by {GENERATOR_NAME} at {generated_at.isoformat(timespec='seconds')}",
        f"-- Database: {snapshot.database or '(unknown)'} on {snapshot.server or '(unknown)'}",
        f"-- Tables preserved: {len(classification.preserve)}",
        f"-- Tables cleaned: {len(classification.clean)} (circular: {len(plan.circular)})",
        f"-- Strategy: {strategy.value}",
        "-- Run manually with: psql -v ON_ERROR_STOP=1 -f <this file>",
        rule,
    ]


def _body(
    snapshot: SchemaSnapshot,
    plan: DeletionPlan,
    strategy: ResetStrategy,
) -> list[str]:
    lines: list[str] = []

    if strategy is ResetStrategy.CONSTRAINTS_DISABLED:
        suspended = plan.tables
        lines.append("-- Suspend constraint enforcement on every clean table")
        lines.extend(_disable(t) for t in suspended)
        lines.append("")
        lines.append("-- Delete all clean tables")
        lines.extend(_delete(t) for t in plan.order + plan.circular)
        lines.append("")
        lines.append("-- Restore and validate constraint enforcement")
        lines.extend(_enable(t) for t in suspended)
        lines.extend(_validation_block(suspended, snapshot.foreign_keys))
    else:
        if plan.circular:
            lines.append("-- Circular references: suspend constraint enforcement")
            lines.extend(_disable(t) for t in plan.circular)
            lines.extend(_delete(t) for t in plan.circular)
            lines.extend(_enable(t) for t in plan.circular)
            lines.extend(_validation_block(plan.circular, snapshot.foreign_keys))
            lines.append("")
        if plan.order:
            lines.append("-- Ordered deletes, children before parents")
            lines.extend(_delete(t) for t in plan.order)

    sequences: list[str] = []
    for ref in plan.tables:
        table = snapshot.get_table(ref)
        if table is not None:
            sequences.extend(table.identity_sequences)

    if sequences:
        lines.append("")
        lines.append("-- Reseed identity columns")
        lines.extend(f"ALTER SEQUENCE {seq} RESTART;" for seq in sorted(sequences))

    return lines


def render_reset_script(
    snapshot: SchemaSnapshot,
    classification: TableClassification,
    plan: DeletionPlan,
    strategy: ResetStrategy = ResetStrategy.ORDERED,
    generated_at: datetime | None = None,
) -> str:
    """Render the complete reset script.

    Args:
        snapshot: Introspected schema (names, foreign keys, sequences).
        classification: Preserve/clean partition, used for header counts.
        plan: Deletion plan for the clean tables.
        strategy: ``ORDERED`` (primary) or ``CONSTRAINTS_DISABLED`` (fallback).
        generated_at: Timestamp for the header.  Defaults to now (UTC).

    Returns:
        Script text ending with a newline.  With no clean tables the script
        is a no-op transaction.
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    lines = render_header(snapshot, classification, plan, strategy, generated_at)
    lines.append("")

    if plan.is_empty:
        lines.extend(["-- No application tables to reset.", "BEGIN;", "COMMIT;"])
        return "\n".join(lines) + "\n"

    lines.extend(
        [
            "BEGIN;",
            "",
            f"DO {_DO_TAG}",
            "DECLARE",
            f"{_INDENT}v_state text;",
            f"{_INDENT}v_message text;",
            "BEGIN",
        ]
    )
    lines.extend(f"{_INDENT}{line}" if line else "" for line in _body(snapshot, plan, strategy))
    lines.extend(
        [
            "EXCEPTION",
            f"{_INDENT}WHEN OTHERS THEN",
            f"{_INDENT}{_INDENT}GET STACKED DIAGNOSTICS v_state = RETURNED_SQLSTATE, v_message = MESSAGE_TEXT;",
            f"{_INDENT}{_INDENT}RAISE EXCEPTION 'database reset rolled back: %', v_message USING ERRCODE = v_state;",
            "END",
            f"{_DO_TAG};",
            "",
            "COMMIT;",
        ]
    )
    return "\n".join(lines) + "\n"
