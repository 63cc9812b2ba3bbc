"""Tests for the DependencyGraph class."""

import sys

import pytest

from src.webloader.dependency.graph import DependencyGraph
from src.webloader.models.resource import ResourceSpec, ResourceType
from src.webloader.utils.exceptions import CyclicDependencyError, NodeNotFoundError


class TestDependencyGraph:
    """Test suite for node and edge management."""

    def test_add_node_stores_id_as_default_payload(self, graph):
        """Test that a node added without data carries its own id."""
        graph.add_node("jquery")

        assert graph.has_node("jquery")
        assert graph.get_data("jquery") == "jquery"

    def test_add_node_stores_explicit_none(self, graph):
        """Test that an explicit None payload is kept as None."""
        graph.add_node("empty", None)

        assert graph.has_node("empty")
        assert graph.get_data("empty") is None

    def test_add_node_twice_keeps_first_payload(self, graph):
        """Test that re-adding an existing node is a no-op."""
        graph.add_node("a", {"v": 1})
        graph.add_node("b")
        graph.add_dependency("a", "b")

        graph.add_node("a", {"v": 2})

        assert graph.get_data("a") == {"v": 1}
        assert graph.outgoing_edges["a"] == ["b"]
        assert len(graph) == 2

    def test_len_contains_and_size(self, graph):
        """Test size helpers."""
        assert len(graph) == 0
        graph.add_node("a")
        graph.add_node("b")

        assert len(graph) == 2
        assert graph.size() == 2
        assert "a" in graph
        assert "missing" not in graph

    def test_remove_node_removes_edges(self, diamond_graph):
        """Test that removing a node drops every edge that references it."""
        diamond_graph.remove_node("b")

        assert not diamond_graph.has_node("b")
        assert "b" not in diamond_graph.outgoing_edges
        assert "b" not in diamond_graph.incoming_edges
        assert diamond_graph.outgoing_edges["a"] == ["c"]
        assert diamond_graph.incoming_edges["d"] == ["c"]

    def test_remove_missing_node_is_noop(self, diamond_graph):
        """Test that removing an unknown node changes nothing."""
        diamond_graph.remove_node("zzz")

        assert len(diamond_graph) == 4

    def test_get_data_missing_node(self, graph):
        """Test that get_data raises for an unknown node."""
        with pytest.raises(NodeNotFoundError, match="Node does not exist: ghost") as exc_info:
            graph.get_data("ghost")

        assert exc_info.value.node_id == "ghost"

    def test_set_data(self, graph):
        """Test replacing a node payload."""
        graph.add_node("a")
        graph.set_data("a", {"url": "/a.js"})

        assert graph.get_data("a") == {"url": "/a.js"}

    def test_set_data_missing_node(self, graph):
        """Test that set_data raises for an unknown node."""
        with pytest.raises(NodeNotFoundError):
            graph.set_data("ghost", 1)

    def test_add_dependency(self, graph):
        """Test that an edge is stored in both directions."""
        graph.add_node("app")
        graph.add_node("lib")

        assert graph.add_dependency("app", "lib") is True
        assert graph.outgoing_edges["app"] == ["lib"]
        assert graph.incoming_edges["lib"] == ["app"]

    def test_add_dependency_is_idempotent(self, graph):
        """Test that adding the same edge twice stores it once."""
        graph.add_node("app")
        graph.add_node("lib")

        graph.add_dependency("app", "lib")
        graph.add_dependency("app", "lib")

        assert graph.outgoing_edges["app"] == ["lib"]
        assert graph.incoming_edges["lib"] == ["app"]

    @pytest.mark.parametrize(("from_id", "to_id"), [("ghost", "lib"), ("lib", "ghost")])
    def test_add_dependency_missing_node(self, graph, from_id, to_id):
        """Test that both ends of an edge must exist."""
        graph.add_node("lib")

        with pytest.raises(NodeNotFoundError, match="Node does not exist: ghost"):
            graph.add_dependency(from_id, to_id)

        assert graph.outgoing_edges["lib"] == []
        assert graph.incoming_edges["lib"] == []

    def test_remove_dependency(self, diamond_graph):
        """Test removing an edge from both directions."""
        diamond_graph.remove_dependency("a", "b")

        assert diamond_graph.outgoing_edges["a"] == ["c"]
        assert diamond_graph.incoming_edges["b"] == []

    def test_remove_dependency_missing_is_noop(self, diamond_graph):
        """Test that removing unknown edges or nodes is ignored."""
        diamond_graph.remove_dependency("a", "d")
        diamond_graph.remove_dependency("ghost", "a")
        diamond_graph.remove_dependency("a", "ghost")

        assert diamond_graph.outgoing_edges["a"] == ["b", "c"]

    def test_edges_stay_symmetric(self, diamond_graph):
        """Test that outgoing and incoming edges mirror each other."""
        diamond_graph.remove_node("c")
        diamond_graph.add_node("e")
        diamond_graph.add_dependency("e", "a")

        for frm, targets in diamond_graph.outgoing_edges.items():
            for to in targets:
                assert frm in diamond_graph.incoming_edges[to]
        for to, sources in diamond_graph.incoming_edges.items():
            for frm in sources:
                assert to in diamond_graph.outgoing_edges[frm]

    def test_entry_nodes(self, diamond_graph):
        """Test that entry nodes are the ones nothing depends on."""
        diamond_graph.add_node("standalone")

        assert diamond_graph.entry_nodes() == ["a", "standalone"]

    def test_clone_is_independent(self, diamond_graph):
        """Test that mutating a clone leaves the original untouched."""
        copy = diamond_graph.clone()
        copy.remove_node("d")
        copy.add_node("x")

        assert diamond_graph.has_node("d")
        assert not diamond_graph.has_node("x")
        assert diamond_graph.outgoing_edges["b"] == ["d"]
        assert copy.outgoing_edges["b"] == []

    def test_to_dot(self, graph):
        """Test DOT output with resource payloads."""
        graph.add_node("jquery", ResourceSpec(url="/jquery.js", type=ResourceType.SCRIPT))
        graph.add_node("theme", ResourceSpec(url="/theme.css", type=ResourceType.STYLESHEET))
        graph.add_dependency("theme", "jquery")

        dot = graph.to_dot()

        assert dot.startswith("digraph DependencyGraph {")
        assert dot.endswith("}")
        assert '"jquery" -> "theme";' in dot
        assert "jquery\\n(js)" in dot
        assert "theme\\n(css)" in dot

    def test_to_dot_plain_payloads(self, graph):
        """Test DOT output when payloads are not resources."""
        graph.add_node("a")

        assert '"a" [label="a" fillcolor="#eeeeee"];' in graph.to_dot()


class TestTraversal:
    """Test suite for DFS-based queries and ordering."""

    def test_dependencies_of(self, diamond_graph):
        """Test transitive dependencies in post-order."""
        assert diamond_graph.dependencies_of("a") == ["d", "b", "c"]
        assert diamond_graph.dependencies_of("b") == ["d"]
        assert diamond_graph.dependencies_of("d") == []

    def test_dependencies_of_leaves_only(self, diamond_graph):
        """Test that leaves_only keeps nodes without dependencies."""
        assert diamond_graph.dependencies_of("a", leaves_only=True) == ["d"]

    def test_dependants_of(self, diamond_graph):
        """Test transitive dependants."""
        assert diamond_graph.dependants_of("d") == ["a", "b", "c"]
        assert diamond_graph.dependants_of("a") == []

    def test_dependants_of_leaves_only(self, diamond_graph):
        """Test that leaves_only keeps nodes nothing depends on."""
        assert diamond_graph.dependants_of("d", leaves_only=True) == ["a"]

    def test_queries_exclude_start_node(self, diamond_graph):
        """Test that a node never lists itself."""
        for node_id in diamond_graph.nodes:
            assert node_id not in diamond_graph.dependencies_of(node_id)
            assert node_id not in diamond_graph.dependants_of(node_id)

    def test_queries_missing_node(self, graph):
        """Test that queries on unknown nodes raise."""
        with pytest.raises(NodeNotFoundError):
            graph.dependencies_of("ghost")
        with pytest.raises(NodeNotFoundError):
            graph.dependants_of("ghost")

    def test_overall_order(self, diamond_graph):
        """Test that every node follows its dependencies."""
        order = diamond_graph.overall_order()

        assert order == ["d", "b", "c", "a"]
        for frm, targets in diamond_graph.outgoing_edges.items():
            for to in targets:
                assert order.index(to) < order.index(frm)

    def test_overall_order_leaves_only(self, diamond_graph):
        """Test overall order restricted to nodes without dependencies."""
        assert diamond_graph.overall_order(leaves_only=True) == ["d"]

    def test_overall_order_independent_nodes(self, graph):
        """Test that unrelated nodes keep registration order."""
        for node_id in ("x", "y", "z"):
            graph.add_node(node_id)

        assert graph.overall_order() == ["x", "y", "z"]

    def test_overall_order_contains_each_node_once(self, diamond_graph):
        """Test that shared dependencies appear exactly once."""
        diamond_graph.add_node("e")
        diamond_graph.add_dependency("e", "d")

        order = diamond_graph.overall_order()

        assert sorted(order) == ["a", "b", "c", "d", "e"]

    def test_overall_order_disconnected_chains(self, graph):
        """Test that every chain of a disconnected graph is ordered."""
        for node_id in ("a", "b", "c", "d"):
            graph.add_node(node_id)
        graph.add_dependency("a", "b")
        graph.add_dependency("c", "d")

        assert graph.overall_order() == ["b", "a", "d", "c"]

    def test_overall_order_empty_graph(self, graph):
        """Test that an empty graph has an empty order."""
        assert graph.overall_order() == []

    def test_cycle_detection(self, graph):
        """Test that a cycle is reported with its path."""
        for node_id in ("a", "b", "c"):
            graph.add_node(node_id)
        graph.add_dependency("a", "b")
        graph.add_dependency("b", "c")
        graph.add_dependency("c", "a")

        with pytest.raises(CyclicDependencyError) as exc_info:
            graph.overall_order()

        assert str(exc_info.value) == "Dependency cycle found: a -> b -> c -> a"
        assert exc_info.value.path == ["a", "b", "c", "a"]
        assert exc_info.value.cycles == [["a", "b", "c", "a"]]

    def test_self_dependency_is_a_cycle(self, graph):
        """Test that a node depending on itself is reported."""
        graph.add_node("a")
        graph.add_dependency("a", "a")

        with pytest.raises(CyclicDependencyError, match="a -> a"):
            graph.overall_order()

    def test_cycle_without_entry_nodes_is_found(self, graph):
        """Test that a cycle is found even in a component with no entry node."""
        for node_id in ("standalone", "a", "b"):
            graph.add_node(node_id)
        graph.add_dependency("a", "b")
        graph.add_dependency("b", "a")

        with pytest.raises(CyclicDependencyError, match="a -> b -> a"):
            graph.overall_order()

    def test_cycle_reported_by_queries(self, graph):
        """Test that queries reaching a cycle raise."""
        for node_id in ("app", "a", "b"):
            graph.add_node(node_id)
        graph.add_dependency("app", "a")
        graph.add_dependency("a", "b")
        graph.add_dependency("b", "a")

        with pytest.raises(CyclicDependencyError, match="app -> a -> b -> a") as exc_info:
            graph.dependencies_of("app")

        assert exc_info.value.cycles == [["a", "b", "a"]]

    def test_unreachable_cycle_does_not_affect_queries(self, graph):
        """Test that a query only walks what it can reach."""
        for node_id in ("x", "a", "b"):
            graph.add_node(node_id)
        graph.add_dependency("a", "b")
        graph.add_dependency("b", "a")

        assert graph.dependencies_of("x") == []

    def test_removing_edge_breaks_cycle(self, graph):
        """Test that the graph orders again once a cycle edge is removed."""
        graph.add_node("a")
        graph.add_node("b")
        graph.add_dependency("a", "b")
        graph.add_dependency("b", "a")

        graph.remove_dependency("b", "a")

        assert graph.overall_order() == ["b", "a"]

    def test_graphs_do_not_share_state(self):
        """Test that graphs do not share state."""
        first = DependencyGraph()
        second = DependencyGraph()
        first.add_node("a")

        assert not second.has_node("a")

    def test_deep_chain_beyond_recursion_limit(self, graph):
        """Test that a chain deeper than the interpreter recursion limit is ordered."""
        depth = sys.getrecursionlimit() + 50
        node_ids = [f"n{i}" for i in range(depth)]
        for node_id in node_ids:
            graph.add_node(node_id)
        for dependant, dependency in zip(node_ids, node_ids[1:]):
            graph.add_dependency(dependant, dependency)

        order = graph.overall_order()
        steps = graph.steps()

        assert order == list(reversed(node_ids))
        assert graph.dependencies_of("n0")[0] == node_ids[-1]
        assert len(steps) == depth
        assert steps[0] == [node_ids[-1]]
        assert steps[-1] == ["n0"]

    def test_deep_chain_cycle_is_reported(self, graph):
        """Test that a cycle closing a very deep chain is still found."""
        depth = sys.getrecursionlimit() + 50
        node_ids = [f"n{i}" for i in range(depth)]
        for node_id in node_ids:
            graph.add_node(node_id)
        for dependant, dependency in zip(node_ids, node_ids[1:]):
            graph.add_dependency(dependant, dependency)
        graph.add_dependency(node_ids[-1], "n0")

        with pytest.raises(CyclicDependencyError) as exc_info:
            graph.overall_order()

        assert exc_info.value.cycles[0][0] == exc_info.value.cycles[0][-1]
        assert len(exc_info.value.cycles[0]) == depth + 1
