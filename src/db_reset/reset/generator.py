"""Reset script generation with self-test and a single fallback tier.

Introspects the database, classifies and orders the tables, writes the
script, then executes it once against the same database to prove it works.

State machine::

    DRAFT -> SELF_TESTING -> VERIFIED
                          -> FALLBACK_DRAFT -> FALLBACK_TESTING -> VERIFIED
                                                                -> FAILED

There are exactly two tiers (strict, then constraints
disabled).  ``FAILED`` raises ``FatalGenerationError``; the previous
``output_path`` is never replaced by a script that did not pass.

Usage:
    from db_reset.reset.generator import generate_reset_script

    async with AsyncPostgresAdapter(url) as client:
        result = await generate_reset_script(client, "reset-database.sql")
    print(result.tables_cleaned, result.wrote_fallback)
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from db_reset.adapters.base import DatabaseClient
from db_reset.config.models import DEFAULT_SELF_TEST_TIMEOUT
from db_reset.errors import FatalGenerationError, ScriptExecutionError, SelfTestError
from db_reset.reset.emitter import ResetStrategy, render_reset_script
from db_reset.schema.classifier import DEFAULT_PRESERVE_PATTERNS, classify_tables
from db_reset.schema.introspector import SchemaIntrospector
from db_reset.schema.models import DeletionPlan, SchemaSnapshot, TableClassification
from db_reset.schema.ordering import build_deletion_plan

logger = logging.getLogger(__name__)


class ScriptState(str, Enum):
    """Lifecycle of a generated script."""

    DRAFT = "draft"
    SELF_TESTING = "self-testing"
    VERIFIED = "verified"
    FALLBACK_DRAFT = "fallback-draft"
    FALLBACK_TESTING = "fallback-testing"
    FAILED = "failed"


class ResetResult(BaseModel):
    """Result of reset script generation.

    Attributes:
        tables_cleaned: Number of tables the script deletes from.
        tables_preserved: Number of framework tables left untouched.
        wrote_fallback: True if the constraints-disabled script was written.
        state: Current state, ``None`` before the first transition
            (always ``VERIFIED`` on return).
        strategy: Strategy of the script now at ``output_path``.
        output_path: Where the verified script was written.
        circular_tables: Tables handled by suspending constraints.
        self_test_error: Primary self-test failure when the fallback was used.
        transitions: Every state the generation passed through.
    """

    tables_cleaned: int = 0
    tables_preserved: int = 0
    wrote_fallback: bool = False
    state: ScriptState | None = None
    strategy: ResetStrategy = ResetStrategy.ORDERED
    output_path: str = ""
    circular_tables: list[str] = Field(default_factory=list)
    self_test_error: str | None = None
    transitions: list[ScriptState] = Field(default_factory=list)


@dataclass
class ResetPreview:
    """Everything computed before a script is rendered."""

    snapshot: SchemaSnapshot
    classification: TableClassification
    plan: DeletionPlan


def _transition(result: ResetResult, state: ScriptState) -> None:
    if result.state is None:
        logger.info("Reset script state: %s", state.value)
    else:
        logger.info("Reset script state: %s -> %s", result.state.value, state.value)
    result.state = state
    result.transitions.append(state)


async def plan_reset(
    client: DatabaseClient,
    patterns: Iterable[str] = DEFAULT_PRESERVE_PATTERNS,
    scope: set[str] | None = None,
    schemas: list[str] | None = None,
) -> ResetPreview:
    """Introspect, classify and order without writing or executing anything.

    Raises:
        ConnectivityError: If catalog queries fail.
    """
    snapshot = await SchemaIntrospector(client, schemas=schemas).introspect()
    classification = classify_tables(snapshot.table_refs, patterns=patterns, scope=scope)
    plan = build_deletion_plan(classification.clean, snapshot.foreign_keys)

    logger.info(
        "Planned reset of %s: %d clean (%d circular), %d preserved",
        snapshot.database or "database",
        len(classification.clean),
        len(plan.circular),
        len(classification.preserve),
    )
    return ResetPreview(snapshot=snapshot, classification=classification, plan=plan)


async def _self_test(
    client: DatabaseClient, script_path: Path, script: str, timeout: float | None
) -> None:
    """Execute a freshly written script once; timeouts count as failures."""
    logger.debug("Self-testing %s (timeout=%ss)", script_path, timeout)
    try:
        await client.execute_script(script, timeout=timeout)
    except ScriptExecutionError as e:
        raise SelfTestError(str(script_path), e.message) from e


async def generate_reset_script(
    client: DatabaseClient,
    output_path: str | Path,
    patterns: Iterable[str] = DEFAULT_PRESERVE_PATTERNS,
    scope: set[str] | None = None,
    schemas: list[str] | None = None,
    self_test_timeout: float | None = DEFAULT_SELF_TEST_TIMEOUT,
    generated_at: datetime | None = None,
) -> ResetResult:
    """Generate, self-test and persist a reset script.

    The draft is written next to ``output_path`` (``<name>.draft``) and
    executed against the database.  Only a script that executed cleanly
    replaces ``output_path``.

    Args:
        client: Connected database client.  The self-test really deletes
            data, so point it at a test database.
        output_path: Destination of the verified script.
        patterns: Preserve patterns for the classifier.
        scope: Optional application table names; others are preserved.
        schemas: Restrict introspection to these schemas.
        self_test_timeout: Seconds allowed for each self-test execution.
        generated_at: Header timestamp (defaults to now, UTC).

    Returns:
        ``ResetResult`` in state ``VERIFIED``.

    Raises:
        ConnectivityError: If the database cannot be introspected.
        FatalGenerationError: If both the primary and fallback scripts fail.
            The fallback is kept at ``<name>.failed`` for debugging.
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    generated_at = generated_at or datetime.now(timezone.utc)

    preview = await plan_reset(client, patterns=patterns, scope=scope, schemas=schemas)
    snapshot, classification, plan = preview.snapshot, preview.classification, preview.plan

    result = ResetResult(
        tables_cleaned=len(classification.clean),
        tables_preserved=len(classification.preserve),
        output_path=str(output),
        circular_tables=[t.display_name for t in plan.circular],
    )

    if classification.is_noop:
        output.write_text(
            render_reset_script(snapshot, classification, plan, generated_at=generated_at)
        )
        logger.info("No application tables found; wrote no-op script to %s", output)
        _transition(result, ScriptState.VERIFIED)
        return result

    draft_path = output.with_name(output.name + ".draft")

    _transition(result, ScriptState.DRAFT)
    script = render_reset_script(
        snapshot, classification, plan, ResetStrategy.ORDERED, generated_at
    )
    draft_path.write_text(script)

    _transition(result, ScriptState.SELF_TESTING)
    try:
        await _self_test(client, draft_path, script, self_test_timeout)
    except SelfTestError as primary:
        logger.warning("Primary reset script failed self-test: %s", primary.output)
        result.self_test_error = primary.output

        _transition(result, ScriptState.FALLBACK_DRAFT)
        fallback = render_reset_script(
            snapshot, classification, plan, ResetStrategy.CONSTRAINTS_DISABLED, generated_at
        )
        draft_path.write_text(fallback)
        result.wrote_fallback = True
        result.strategy = ResetStrategy.CONSTRAINTS_DISABLED

        _transition(result, ScriptState.FALLBACK_TESTING)
        try:
            await _self_test(client, draft_path, fallback, self_test_timeout)
        except SelfTestError as secondary:
            _transition(result, ScriptState.FAILED)
            failed_path = output.with_name(output.name + ".failed")
            draft_path.replace(failed_path)
            logger.error("Fallback reset script failed self-test: %s", secondary.output)
            raise FatalGenerationError(
                str(failed_path),
                f"Primary script: {primary.output}\nFallback script: {secondary.output}",
            ) from secondary

    draft_path.replace(output)
    _transition(result, ScriptState.VERIFIED)
    logger.info(
        "Wrote %s reset script to %s (%d tables cleaned, %d preserved)",
        result.strategy.value,
        output,
        result.tables_cleaned,
        result.tables_preserved,
    )
    return result


async def execute_reset_script(
    client: DatabaseClient,
    script_path: str | Path,
    timeout: float | None = DEFAULT_SELF_TEST_TIMEOUT,
) -> None:
    """Run a previously generated reset script.

    Raises:
        FileNotFoundError: If the script does not exist.
        ScriptExecutionError: If execution fails or times out.  Regenerate
            the script when the schema has drifted.
    """
    path = Path(script_path)
    if not path.exists():
        raise FileNotFoundError(f"Reset script not found: {path}")

    logger.info("Executing reset script %s", path)
    await client.execute_script(path.read_text(), timeout=timeout)
