"""
Tests for DAG utilities — validation and stable ordering.
"""

from dataclasses import dataclass, field

from tenvctl.core.services.tenv_install.domain.dag import topological_order, validate_dag


@dataclass
class Node:
    id: str
    depends_on: list[str] = field(default_factory=list)


class TestValidateDag:
    def test_valid_chain(self):
        nodes = [Node("a"), Node("b", ["a"]), Node("c", ["b"])]
        assert validate_dag(nodes) == []

    def test_duplicate_ids(self):
        errors = validate_dag([Node("a"), Node("a")])
        assert errors == ["Duplicate task ID: a"]

    def test_unknown_dependency(self):
        errors = validate_dag([Node("a", ["ghost"])])
        assert "depends on unknown task 'ghost'" in errors[0]

    def test_cycle(self):
        nodes = [Node("a", ["c"]), Node("b", ["a"]), Node("c", ["b"])]
        assert validate_dag(nodes) == ["Dependency cycle detected in task graph"]

    def test_empty_graph(self):
        assert validate_dag([]) == []


class TestTopologicalOrder:
    def test_dependencies_first(self):
        nodes = [Node("install", ["verify"]), Node("verify", ["fetch"]), Node("fetch")]
        ordered = [n.id for n in topological_order(nodes)]
        assert ordered == ["fetch", "verify", "install"]

    def test_ties_keep_insertion_order(self):
        nodes = [Node("user:bob"), Node("user:alice"), Node("pkg"), Node("cfg", ["pkg"])]
        ordered = [n.id for n in topological_order(nodes)]
        assert ordered == ["user:bob", "user:alice", "pkg", "cfg"]

    def test_deterministic(self):
        nodes = [Node("a"), Node("c", ["a"]), Node("b", ["a"]), Node("d", ["b", "c"])]
        first = [n.id for n in topological_order(nodes)]
        second = [n.id for n in topological_order(list(nodes))]
        assert first == second == ["a", "c", "b", "d"]

    def test_cycle_members_dropped(self):
        nodes = [Node("free"), Node("x", ["y"]), Node("y", ["x"])]
        assert [n.id for n in topological_order(nodes)] == ["free"]
