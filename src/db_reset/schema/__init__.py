"""Schema introspection, table classification and deletion ordering.

Usage:
    from db_reset.schema import SchemaIntrospector, classify_tables
    from db_reset.schema import build_deletion_plan, DeletionPlan
"""

from db_reset.schema.classifier import (
    DEFAULT_PRESERVE_PATTERNS,
    classify_tables,
    load_scope,
    matches_preserve_pattern,
)
from db_reset.schema.introspector import SchemaIntrospector
from db_reset.schema.models import (
    DeletionPlan,
    ForeignKeyEdge,
    SchemaSnapshot,
    TableClassification,
    TableInfo,
    TableRef,
)
from db_reset.schema.ordering import build_dependency_graph, build_deletion_plan

__all__ = [
    "DEFAULT_PRESERVE_PATTERNS",
    "classify_tables",
    "load_scope",
    "matches_preserve_pattern",
    "SchemaIntrospector",
    "DeletionPlan",
    "ForeignKeyEdge",
    "SchemaSnapshot",
    "TableClassification",
    "TableInfo",
    "TableRef",
    "build_dependency_graph",
    "build_deletion_plan",
]
