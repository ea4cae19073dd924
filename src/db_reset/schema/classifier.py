"""Table classification into preserved (framework) and clean (application) sets.

Classification is purely name based: a table is preserved if and only if
its bare name matches one of the preserve patterns, whatever it references
or is referenced by.  Patterns are shell-style globs matched
case-insensitively.

Usage:
    from db_reset.schema.classifier import classify_tables, load_scope

    result = classify_tables(snapshot.table_refs)
    result = classify_tables(refs, patterns=["Abp*", "*_Audit"], scope=load_scope("app-tables.txt"))
"""

from collections.abc import Iterable
from fnmatch import fnmatchcase
from pathlib import Path

from db_reset.schema.models import TableClassification, TableRef


# Framework-owned tables: ABP/Shesha infrastructure, audit and version
# history, migration history, background jobs, and view-like names.
DEFAULT_PRESERVE_PATTERNS: tuple[str, ...] = (
    "abp*",
    "frwk_*",
    "core_*",
    "__efmigrationshistory",
    "versioninfo",
    "schema_migrations",
    "alembic_version",
    "hangfire*",
    "*_audit",
    "*_auditlog*",
    "*auditlogs",
    "*_history",
    "*_versions",
    "vw_*",
    "*_view",
)


def matches_preserve_pattern(name: str, patterns: Iterable[str]) -> bool:
    """Return True if the bare table name matches any pattern.

    Example:
        >>> matches_preserve_pattern("AbpUsers", DEFAULT_PRESERVE_PATTERNS)
        True
        >>> matches_preserve_pattern("Orders", DEFAULT_PRESERVE_PATTERNS)
        False
    """
    lowered = name.lower()
    return any(fnmatchcase(lowered, pattern.lower()) for pattern in patterns)


def classify_tables(
    tables: Iterable[TableRef],
    patterns: Iterable[str] = DEFAULT_PRESERVE_PATTERNS,
    scope: set[str] | None = None,
) -> TableClassification:
    """Partition tables into ``preserve`` and ``clean``.

    Args:
        tables: Every user table in the database.
        patterns: Preserve patterns.  Defaults to ``DEFAULT_PRESERVE_PATTERNS``.
        scope: Optional set of application table names (bare ``name`` or
            ``schema.name``, compared case-insensitively).  Tables outside
            the scope are preserved.

    Returns:
        ``TableClassification`` with both lists sorted by (schema, name).
    """
    patterns = tuple(patterns)
    scope_keys = {s.lower() for s in scope} if scope is not None else None

    preserve: list[TableRef] = []
    clean: list[TableRef] = []

    for ref in sorted(set(tables), key=lambda t: t.sort_key):
        if matches_preserve_pattern(ref.name, patterns):
            preserve.append(ref)
        elif scope_keys is not None and not _in_scope(ref, scope_keys):
            preserve.append(ref)
        else:
            clean.append(ref)

    return TableClassification(preserve=preserve, clean=clean)


def _in_scope(ref: TableRef, scope_keys: set[str]) -> bool:
    return ref.name.lower() in scope_keys or ref.display_name.lower() in scope_keys


def load_scope(path: str | Path) -> set[str]:
    """Read application table names from a scope file.

    One table per line (``name`` or ``schema.name``).  Blank lines and
    ``#`` comments are ignored.

    Raises:
        FileNotFoundError: If the scope file does not exist.
    """
    scope_path = Path(path)
    if not scope_path.exists():
        raise FileNotFoundError(f"Scope file not found: {scope_path}")

    names: set[str] = set()
    for line in scope_path.read_text().splitlines():
        entry = line.split("#", 1)[0].strip()
        if entry:
            names.add(entry)
    return names
