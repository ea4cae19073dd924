"""Reset script rendering, generation and execution.

Usage:
    from db_reset.reset import generate_reset_script, execute_reset_script
    from db_reset.reset import render_reset_script, ResetStrategy
"""

from db_reset.reset.emitter import ResetStrategy, render_reset_script
from db_reset.reset.generator import (
    DEFAULT_SELF_TEST_TIMEOUT,
    ResetPreview,
    ResetResult,
    ScriptState,
    execute_reset_script,
    generate_reset_script,
    plan_reset,
)

__all__ = [
    "ResetStrategy",
    "render_reset_script",
    "DEFAULT_SELF_TEST_TIMEOUT",
    "ResetPreview",
    "ResetResult",
    "ScriptState",
    "execute_reset_script",
    "generate_reset_script",
    "plan_reset",
]
