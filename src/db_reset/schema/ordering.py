"""Foreign-key-safe deletion ordering.

Builds the dependency graph between clean tables and runs Kahn's algorithm.
Pure logic -- no I/O.

Usage:
    from db_reset.schema.ordering import build_deletion_plan

    plan = build_deletion_plan(classification.clean, snapshot.foreign_keys)
    plan.order     # children before parents
    plan.circular  # tables Kahn's algorithm could not emit
"""

import heapq
from collections.abc import Iterable

from db_reset.schema.models import DeletionPlan, ForeignKeyEdge, TableRef


def build_dependency_graph(
    clean: Iterable[TableRef],
    foreign_keys: Iterable[ForeignKeyEdge],
) -> dict[TableRef, set[TableRef]]:
    """Map each clean table to the clean parents it references.

    Edges touching a non-clean table and self references are dropped.
    Parallel foreign keys between the same pair collapse into one edge.
    """
    clean_set = set(clean)
    graph: dict[TableRef, set[TableRef]] = {table: set() for table in clean_set}

    for fk in foreign_keys:
        if fk.is_self_reference:
            continue
        if fk.child in clean_set and fk.parent in clean_set:
            graph[fk.child].add(fk.parent)

    return graph


def build_deletion_plan(
    clean: Iterable[TableRef],
    foreign_keys: Iterable[ForeignKeyEdge],
) -> DeletionPlan:
    """Compute the deletion order for the clean tables.

    In-degree of a table is the number of distinct clean parents it depends
    on.  Kahn's algorithm then emits parents first; ties are broken
    lexicographically by (schema, name) so output is reproducible.  The
    deletion order is the reverse: every child precedes its parents.

    Tables never emitted sit on a cycle or depend on one; they form the
    circular bucket.  A fully cyclic graph makes everything circular.

    Example:
        >>> orders = TableRef(name="Orders")
        >>> lines = TableRef(name="OrderLines")
        >>> fk = ForeignKeyEdge(name="fk", parent=orders, child=lines)
        >>> [t.name for t in build_deletion_plan([orders, lines], [fk]).order]
        ['OrderLines', 'Orders']
    """
    graph = build_dependency_graph(clean, foreign_keys)

    in_degree = {table: len(parents) for table, parents in graph.items()}
    dependents: dict[TableRef, list[TableRef]] = {table: [] for table in graph}
    for child, parents in graph.items():
        for parent in parents:
            dependents[parent].append(child)

    heap = [(table.sort_key, table) for table, degree in in_degree.items() if degree == 0]
    heapq.heapify(heap)

    parents_first: list[TableRef] = []
    while heap:
        _, table = heapq.heappop(heap)
        parents_first.append(table)
        for child in dependents[table]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                heapq.heappush(heap, (child.sort_key, child))

    emitted = set(parents_first)
    circular = sorted(
        (table for table in graph if table not in emitted),
        key=lambda t: t.sort_key,
    )

    return DeletionPlan(order=list(reversed(parents_first)), circular=circular)
