"""Tests for FK dependency graph construction and topological ordering."""

from db_porter.schema.dependencies import build_dependency_graph, topological_order
from db_porter.schema.models import ColumnDescriptor, ForeignKeyDescriptor, TableDescription


def _table(name: str, *parents: str) -> TableDescription:
    return TableDescription(
        name=name,
        columns=[ColumnDescriptor(name="id", logical_type="integer", is_primary_key=True)],
        foreign_keys=[
            ForeignKeyDescriptor(
                owning_table=name,
                columns=[f"{parent}_id"],
                referenced_table=parent,
                referenced_columns=["id"],
            )
            for parent in parents
        ],
    )


# ------------------------------------------------------------------
# topological_order
# ------------------------------------------------------------------


class TestTopologicalOrder:
    """Verify topological sort of tables by FK dependencies."""

    def test_chain_parents_first(self):
        """Three-level hierarchy: grandparent -> parent -> child."""
        edges = {"child": {"parent"}, "parent": {"grandparent"}, "grandparent": set()}
        result = topological_order(["child", "parent", "grandparent"], edges)
        assert result == ["grandparent", "parent", "child"]

    def test_diamond(self):
        """Both middle tables precede the shared child."""
        edges = {"a": set(), "b": {"a"}, "c": {"a"}, "d": {"b", "c"}}
        assert topological_order(["a", "b", "c", "d"], edges) == ["a", "b", "c", "d"]
        assert topological_order(["d", "c", "b", "a"], edges) == ["a", "b", "c", "d"]

    def test_cycle_is_broken(self):
        """Circular dependencies terminate and keep every table once."""
        edges = {"a": {"b"}, "b": {"a"}}
        assert topological_order(["a", "b"], edges) == ["b", "a"]

    def test_self_reference_ignored(self):
        edges = {"tasks": {"tasks"}}
        assert topological_order(["tasks"], edges) == ["tasks"]

    def test_disconnected_tables_keep_input_order(self):
        edges = {"c": set(), "a": set(), "b": set()}
        assert topological_order(["c", "a", "b"], edges) == ["c", "a", "b"]

    def test_edges_outside_set_ignored(self):
        edges = {"child": {"missing"}}
        assert topological_order(["child"], edges) == ["child"]

    def test_deterministic(self):
        edges = {"x": {"m", "k", "z"}, "m": set(), "k": set(), "z": set()}
        first = topological_order(["x", "m", "k", "z"], edges)
        for _ in range(5):
            assert topological_order(["x", "m", "k", "z"], edges) == first
        assert first == ["k", "m", "z", "x"]

    def test_reverse_order_for_drops(self):
        """Reverse of the forward order puts children first."""
        edges = {"children": {"parents"}, "parents": set()}
        drop_order = list(reversed(topological_order(["children", "parents"], edges)))
        assert drop_order.index("children") < drop_order.index("parents")


# ------------------------------------------------------------------
# build_dependency_graph
# ------------------------------------------------------------------


class TestBuildDependencyGraph:
    """Verify graph edges come from foreign keys inside the dump set."""

    def test_edges_from_foreign_keys(self):
        descriptions = [_table("projects"), _table("tasks", "projects")]
        graph = build_dependency_graph(descriptions, ["projects", "tasks"])
        assert graph == {"projects": set(), "tasks": {"projects"}}

    def test_self_reference_dropped(self):
        graph = build_dependency_graph([_table("tasks", "tasks")], ["tasks"])
        assert graph == {"tasks": set()}

    def test_parent_outside_set_dropped(self):
        descriptions = [_table("tasks", "projects")]
        graph = build_dependency_graph(descriptions, ["tasks"])
        assert graph == {"tasks": set()}

    def test_descriptions_outside_set_ignored(self):
        descriptions = [_table("projects"), _table("tasks", "projects")]
        graph = build_dependency_graph(descriptions, ["projects"])
        assert graph == {"projects": set()}

    def test_graph_feeds_ordering(self):
        descriptions = [
            _table("task_tags", "tasks"),
            _table("tasks", "projects", "tasks"),
            _table("projects"),
        ]
        tables = ["task_tags", "tasks", "projects"]
        order = topological_order(tables, build_dependency_graph(descriptions, tables))
        assert order == ["projects", "tasks", "task_tags"]
