"""db-reset: foreign-key-safe reset scripts for PostgreSQL test databases.

Introspects a live schema, preserves framework tables by name pattern,
orders application-table deletes children-first (isolating foreign key
cycles), and writes a transactional SQL script that is self-tested against
the database before it is accepted.

Usage:
    from db_reset import AsyncPostgresAdapter, generate_reset_script
    from db_reset import classify_tables, build_deletion_plan, render_reset_script
    from db_reset import load_db_config, get_adapter
"""

__version__ = "0.1.0"

# Adapters
from db_reset.adapters.base import DatabaseClient
from db_reset.adapters.postgres import AsyncPostgresAdapter

# Config
from db_reset.config.loader import load_db_config
from db_reset.config.models import DatabaseConfig, DatabaseProfile, ResetSettings

# Errors
from db_reset.errors import (
    ConnectivityError,
    FatalGenerationError,
    ResetError,
    ScriptExecutionError,
    SelfTestError,
)

# Factory
from db_reset.factory import ProfileNotFoundError, get_adapter, resolve_url

# Reset
from db_reset.reset.emitter import ResetStrategy, render_reset_script
from db_reset.reset.generator import (
    ResetResult,
    ScriptState,
    execute_reset_script,
    generate_reset_script,
    plan_reset,
)

# Schema
from db_reset.schema.classifier import DEFAULT_PRESERVE_PATTERNS, classify_tables
from db_reset.schema.introspector import SchemaIntrospector
from db_reset.schema.models import DeletionPlan, ForeignKeyEdge, TableRef
from db_reset.schema.ordering import build_deletion_plan

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncPostgresAdapter",
    # Config
    "load_db_config",
    "DatabaseConfig",
    "DatabaseProfile",
    "ResetSettings",
    # Errors
    "ResetError",
    "ConnectivityError",
    "ScriptExecutionError",
    "SelfTestError",
    "FatalGenerationError",
    # Factory
    "get_adapter",
    "resolve_url",
    "ProfileNotFoundError",
    # Reset
    "ResetStrategy",
    "render_reset_script",
    "ResetResult",
    "ScriptState",
    "generate_reset_script",
    "execute_reset_script",
    "plan_reset",
    # Schema
    "DEFAULT_PRESERVE_PATTERNS",
    "classify_tables",
    "SchemaIntrospector",
    "DeletionPlan",
    "ForeignKeyEdge",
    "TableRef",
    "build_deletion_plan",
]
