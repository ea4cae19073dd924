"""Tests for the dependency sorter (Kahn's algorithm with a circular bucket)."""

import itertools

import pytest

from db_reset.schema.models import DeletionPlan, ForeignKeyEdge, TableRef
from db_reset.schema.ordering import build_dependency_graph, build_deletion_plan


def _names(tables: list[TableRef]) -> list[str]:
    return [t.name for t in tables]


def _assert_children_first(plan: DeletionPlan, edges: list[ForeignKeyEdge]) -> None:
    """Every ordered child precedes its ordered parent."""
    position = {t: i for i, t in enumerate(plan.order)}
    for fk in edges:
        if fk.is_self_reference:
            continue
        if fk.child in position and fk.parent in position:
            assert position[fk.child] < position[fk.parent], (
                f"{fk.child.name} must be deleted before {fk.parent.name}"
            )


def _assert_partition(plan: DeletionPlan, clean: list[TableRef]) -> None:
    """order + circular equals the clean set with no duplicates."""
    combined = plan.order + plan.circular
    assert len(combined) == len(set(combined))
    assert set(combined) == set(clean)


def _simulate_ordered_deletes(plan: DeletionPlan, edges: list[ForeignKeyEdge]) -> None:
    """Delete one row per table in plan order with foreign keys enforced.

    Circular tables are cleared first with enforcement suspended, as the
    emitted script does.
    """
    remaining = set(plan.order)
    for table in plan.order:
        for fk in edges:
            if fk.parent == table and fk.child != table and fk.child in remaining:
                pytest.fail(f"Deleting {table.name} while {fk.child.name} still references it")
        remaining.discard(table)


# ============================================================
# Test: deletion scenarios
# ============================================================


class TestScenarios:
    """Concrete scenarios for the deletion order."""

    def test_order_lines_before_orders(self, ref, edge) -> None:
        """OrderLines references Orders -> [OrderLines, Orders]."""
        orders, lines = ref("Orders"), ref("OrderLines")
        plan = build_deletion_plan([orders, lines], [edge(lines, orders)])

        assert _names(plan.order) == ["OrderLines", "Orders"]
        assert plan.circular == []

    def test_chain_c_b_a(self, ref, edge) -> None:
        """B->A and C->B give C before B before A."""
        a, b, c = ref("A"), ref("B"), ref("C")
        plan = build_deletion_plan([a, b, c], [edge(b, a), edge(c, b)])

        assert _names(plan.order) == ["C", "B", "A"]
        assert plan.circular == []

    def test_mutual_reference_goes_circular(self, ref, edge) -> None:
        """X->Y and Y->X put both in the circular bucket; order is empty."""
        x, y = ref("X"), ref("Y")
        plan = build_deletion_plan([x, y], [edge(x, y), edge(y, x)])

        assert plan.order == []
        assert _names(plan.circular) == ["X", "Y"]

    def test_no_foreign_keys(self, ref) -> None:
        """Without edges every table is ordered and nothing is circular."""
        tables = [ref("Invoices"), ref("Customers"), ref("Notes")]
        plan = build_deletion_plan(tables, [])

        assert set(plan.order) == set(tables)
        assert plan.circular == []

    def test_empty_clean_set(self) -> None:
        plan = build_deletion_plan([], [])
        assert plan.is_empty
        assert plan.tables == []


# ============================================================
# Test: graph restriction
# ============================================================


class TestDependencyGraph:
    """Edges are restricted to clean tables."""

    def test_self_reference_never_circular(self, ref, edge) -> None:
        """A self-referencing table is ordered, not circular."""
        employees = ref("Employees")
        plan = build_deletion_plan([employees], [edge(employees, employees)])

        assert plan.order == [employees]
        assert plan.circular == []

    def test_self_reference_with_parent(self, ref, edge) -> None:
        categories, products = ref("Categories"), ref("Products")
        edges = [edge(categories, categories), edge(products, categories)]
        plan = build_deletion_plan([categories, products], edges)

        assert _names(plan.order) == ["Products", "Categories"]

    def test_edges_to_preserved_tables_ignored(self, ref, edge) -> None:
        """A clean table referencing a preserved table has no in-degree from it."""
        users, orders = ref("AbpUsers"), ref("Orders")
        graph = build_dependency_graph([orders], [edge(orders, users)])

        assert graph == {orders: set()}

    def test_parallel_edges_collapse(self, ref, edge) -> None:
        """Two keys between the same pair count once."""
        people, tasks = ref("People"), ref("Tasks")
        edges = [
            edge(tasks, people, name="FK_Tasks_Owner"),
            edge(tasks, people, name="FK_Tasks_Assignee"),
        ]
        graph = build_dependency_graph([people, tasks], edges)

        assert graph[tasks] == {people}
        assert _names(build_deletion_plan([people, tasks], edges).order) == ["Tasks", "People"]

    def test_tables_in_other_schemas_are_distinct(self, ref, edge) -> None:
        app_orders = ref("Orders", "app")
        audit_orders = ref("Orders", "audit")
        plan = build_deletion_plan([app_orders, audit_orders], [edge(audit_orders, app_orders)])

        assert plan.order == [audit_orders, app_orders]


# ============================================================
# Test: cycles
# ============================================================


class TestCycles:
    """Cycle members (and tables depending on them) are circular."""

    def test_three_cycle(self, ref, edge) -> None:
        a, b, c = ref("A"), ref("B"), ref("C")
        plan = build_deletion_plan([a, b, c], [edge(a, b), edge(b, c), edge(c, a)])

        assert plan.order == []
        assert set(plan.circular) == {a, b, c}

    def test_cycle_with_independent_tables(self, ref, edge) -> None:
        x, y, orders, lines = ref("X"), ref("Y"), ref("Orders"), ref("OrderLines")
        edges = [edge(x, y), edge(y, x), edge(lines, orders)]
        plan = build_deletion_plan([x, y, orders, lines], edges)

        assert _names(plan.circular) == ["X", "Y"]
        assert _names(plan.order) == ["OrderLines", "Orders"]

    def test_table_depending_on_cycle_is_circular(self, ref, edge) -> None:
        """A child of a cycle member cannot be emitted, so it joins the bucket.

        This keeps the ordered tables free of references into the circular
        bucket, which is cleared first.
        """
        x, y, child = ref("X"), ref("Y"), ref("Child")
        plan = build_deletion_plan([x, y, child], [edge(x, y), edge(y, x), edge(child, x)])

        assert set(plan.circular) == {x, y, child}

    def test_parent_of_cycle_is_ordered(self, ref, edge) -> None:
        """A table a cycle references is still ordered (deleted after it)."""
        x, y, root = ref("X"), ref("Y"), ref("Root")
        plan = build_deletion_plan([x, y, root], [edge(x, y), edge(y, x), edge(x, root)])

        assert _names(plan.circular) == ["X", "Y"]
        assert plan.order == [root]

    def test_fully_cyclic_graph(self, ref, edge) -> None:
        tables = [ref(f"T{i}") for i in range(5)]
        edges = [edge(tables[i], tables[(i + 1) % 5]) for i in range(5)]
        plan = build_deletion_plan(tables, edges)

        assert plan.order == []
        _assert_partition(plan, tables)


# ============================================================
# Test: properties over generated graphs
# ============================================================


def _acyclic_graphs():
    """Every DAG over four tables where edges only point to lower indexes."""
    tables = [TableRef(name=n) for n in ("A", "B", "C", "D")]
    pairs = [(i, j) for i in range(4) for j in range(i)]  # child i -> parent j
    for mask in range(1 << len(pairs)):
        edges = [
            ForeignKeyEdge(
                name=f"FK_{tables[i].name}_{tables[j].name}",
                parent=tables[j],
                child=tables[i],
            )
            for bit, (i, j) in enumerate(pairs)
            if mask & (1 << bit)
        ]
        yield tables, edges


class TestProperties:
    """Ordering invariants over many graphs."""

    def test_acyclic_graphs_order_children_first(self) -> None:
        for tables, edges in _acyclic_graphs():
            for permutation in itertools.islice(itertools.permutations(tables), 6):
                plan = build_deletion_plan(list(permutation), edges)
                assert plan.circular == []
                _assert_partition(plan, tables)
                _assert_children_first(plan, edges)
                _simulate_ordered_deletes(plan, edges)

    def test_deterministic_regardless_of_input_order(self) -> None:
        for tables, edges in _acyclic_graphs():
            first = build_deletion_plan(tables, edges)
            second = build_deletion_plan(list(reversed(tables)), list(reversed(edges)))
            assert first == second

    def test_cycles_partition_and_order_remaining(self, ref, edge) -> None:
        tables = [ref(n) for n in ("A", "B", "C", "D", "E", "F")]
        a, b, c, d, e, f = tables
        edges = [edge(b, a), edge(c, b), edge(b, c), edge(d, a), edge(e, d), edge(f, e)]
        plan = build_deletion_plan(tables, edges)

        assert {b, c} <= set(plan.circular)
        _assert_partition(plan, tables)
        _assert_children_first(plan, edges)
        _simulate_ordered_deletes(plan, edges)
