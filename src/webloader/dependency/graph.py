"""Dependency Graph - node store with DFS traversal and cycle detection.

Holds registered resources and the "depends on" relation between them, and
derives orderings from that relation on demand.
"""

from collections.abc import Callable, Iterator
from typing import Any

import structlog

from ..utils.exceptions import CyclicDependencyError, NodeNotFoundError

logger = structlog.get_logger(__name__)

# Marker for "no data argument given" so that an explicit None can be stored.
_MISSING: Any = object()


def _create_dfs(
    edges: dict[str, list[str]],
    leaves_only: bool,
    result: list[str],
) -> Callable[[str], None]:
    """
    Create a depth-first search over one adjacency mapping.

    Algorithm:
    - `visited` records every node the search has entered
    - `current_path` is the active search path, kept on an explicit stack so
      chains of any depth are walked without recursion
    - Reaching a node that is still on `current_path` = back edge = cycle

    Example:
        Edges: A -> B -> C -> A
        1. DFS visits A (path: A)
        2. DFS visits B (path: A, B)
        3. DFS visits C (path: A, B, C)
        4. C points to A (on path!) -> "A -> B -> C -> A"

    Nodes are appended to `result` in post-order, so every node comes after
    everything it reaches. A node already present in `result` is not appended
    again, which lets one closure be reused from several start nodes.

    Args:
        edges: Adjacency mapping to walk (outgoing or incoming edges)
        leaves_only: Only collect nodes without edges in `edges`
        result: List the visited nodes are appended to

    Returns:
        The DFS function, taking the start node id

    Raises:
        CyclicDependencyError: From the returned function, when a cycle is reached
    """
    visited: set[str] = set()
    current_path: list[str] = []
    on_path: set[str] = set()
    collected = set(result)

    def enter(node: str, stack: list[tuple[str, Iterator[str]]]) -> None:
        visited.add(node)
        current_path.append(node)
        on_path.add(node)
        stack.append((node, iter(edges[node])))

    def dfs(start: str) -> None:
        stack: list[tuple[str, Iterator[str]]] = []
        enter(start, stack)

        while stack:
            current, remaining = stack[-1]
            node = next(remaining, None)

            if node is None:
                stack.pop()
                current_path.pop()
                on_path.discard(current)
                if (not leaves_only or not edges[current]) and current not in collected:
                    collected.add(current)
                    result.append(current)
            elif node not in visited:
                enter(node, stack)
            elif node in on_path:
                path = [*current_path, node]
                cycle = path[path.index(node) :]
                raise CyclicDependencyError(
                    f"Dependency cycle found: {' -> '.join(path)}",
                    path=path,
                    cycles=[cycle],
                )

    return dfs


class DependencyGraph:
    """
    Directed graph of named nodes where an edge `a -> b` means "a depends on b".

    Features:
    - Idempotent node and edge registration
    - Cascading removal of edges when a node is removed
    - Transitive dependency / dependant queries
    - Cycle detection and topological ordering
    - Step (level) planning via StepPlanner

    Edges are stored twice, once per direction, and both lists are kept in sync:
    `to in outgoing_edges[frm]` if and only if `frm in incoming_edges[to]`.
    """

    def __init__(self) -> None:
        """Initialize an empty dependency graph."""
        # Node id -> payload, in registration order
        self.nodes: dict[str, Any] = {}
        # Node id -> ids it depends on
        self.outgoing_edges: dict[str, list[str]] = {}
        # Node id -> ids that depend on it
        self.incoming_edges: dict[str, list[str]] = {}

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def size(self) -> int:
        """Number of nodes in the graph."""
        return len(self.nodes)

    def add_node(self, node_id: str, data: Any = _MISSING) -> None:
        """
        Add a node to the graph. Does nothing if the node already exists.

        Args:
            node_id: Unique node identifier
            data: Payload to associate with the node. When omitted the node id
                itself is stored; an explicit None is stored as None.
        """
        if node_id in self.nodes:
            logger.debug("Node already in graph", node_id=node_id)
            return

        self.nodes[node_id] = node_id if data is _MISSING else data
        self.outgoing_edges[node_id] = []
        self.incoming_edges[node_id] = []

        logger.debug("Added node to graph", node_id=node_id)

    def remove_node(self, node_id: str) -> None:
        """
        Remove a node and every edge that references it. Does nothing if absent.

        Args:
            node_id: Node to remove
        """
        if node_id not in self.nodes:
            return

        del self.nodes[node_id]
        del self.outgoing_edges[node_id]
        del self.incoming_edges[node_id]

        for edge_list in (self.incoming_edges, self.outgoing_edges):
            for targets in edge_list.values():
                if node_id in targets:
                    targets.remove(node_id)

        logger.debug("Removed node from graph", node_id=node_id)

    def has_node(self, node_id: str) -> bool:
        """Check if a node exists in the graph."""
        return node_id in self.nodes

    def get_data(self, node_id: str) -> Any:
        """
        Get the payload associated with a node.

        Raises:
            NodeNotFoundError: If the node does not exist
        """
        if node_id not in self.nodes:
            raise NodeNotFoundError(node_id)
        return self.nodes[node_id]

    def set_data(self, node_id: str, data: Any) -> None:
        """
        Replace the payload associated with a node.

        Raises:
            NodeNotFoundError: If the node does not exist
        """
        if node_id not in self.nodes:
            raise NodeNotFoundError(node_id)
        self.nodes[node_id] = data

    def add_dependency(self, from_id: str, to_id: str) -> bool:
        """
        Add a dependency edge: `from_id` depends on `to_id`.

        Adding an edge that already exists leaves the graph unchanged. Cycles are
        not checked here; they are reported by the ordering operations.

        Args:
            from_id: Dependant node (ready AFTER to_id)
            to_id: Dependency node (ready BEFORE from_id)

        Returns:
            True once the edge is recorded

        Raises:
            NodeNotFoundError: If either node does not exist
        """
        if from_id not in self.nodes:
            raise NodeNotFoundError(from_id)
        if to_id not in self.nodes:
            raise NodeNotFoundError(to_id)

        if to_id not in self.outgoing_edges[from_id]:
            self.outgoing_edges[from_id].append(to_id)
        if from_id not in self.incoming_edges[to_id]:
            self.incoming_edges[to_id].append(from_id)

        logger.debug("Added dependency edge", dependant=from_id, dependency=to_id)
        return True

    def remove_dependency(self, from_id: str, to_id: str) -> None:
        """
        Remove the dependency edge `from_id -> to_id`.

        Missing nodes or edges are ignored.
        """
        if from_id in self.nodes and to_id in self.outgoing_edges[from_id]:
            self.outgoing_edges[from_id].remove(to_id)

        if to_id in self.nodes and from_id in self.incoming_edges[to_id]:
            self.incoming_edges[to_id].remove(from_id)

    def dependencies_of(self, node_id: str, leaves_only: bool = False) -> list[str]:
        """
        Get the nodes `node_id` depends on, transitively.

        Args:
            node_id: Start node
            leaves_only: Only return nodes that depend on nothing

        Returns:
            Dependency ids, each listed after its own dependencies

        Raises:
            NodeNotFoundError: If the node does not exist
            CyclicDependencyError: If a cycle is reachable from the node
        """
        return self._walk_from(node_id, self.outgoing_edges, leaves_only)

    def dependants_of(self, node_id: str, leaves_only: bool = False) -> list[str]:
        """
        Get the nodes that depend on `node_id`, transitively.

        Args:
            node_id: Start node
            leaves_only: Only return nodes that nothing depends on

        Raises:
            NodeNotFoundError: If the node does not exist
            CyclicDependencyError: If a cycle is reachable from the node
        """
        return self._walk_from(node_id, self.incoming_edges, leaves_only)

    def _walk_from(
        self, node_id: str, edges: dict[str, list[str]], leaves_only: bool
    ) -> list[str]:
        if node_id not in self.nodes:
            raise NodeNotFoundError(node_id)

        result: list[str] = []
        dfs = _create_dfs(edges, leaves_only, result)
        dfs(node_id)

        if node_id in result:
            result.remove(node_id)
        return result

    def entry_nodes(self) -> list[str]:
        """Nodes that nothing depends on, in registration order."""
        return [node_id for node_id, dependants in self.incoming_edges.items() if not dependants]

    def overall_order(self, leaves_only: bool = False) -> list[str]:
        """
        Construct the overall processing order for the graph.

        The cycle check runs a DFS from every node, so cycles in components that
        have no entry node are found as well. The order itself comes from a DFS
        started at every entry node, in registration order.

        Args:
            leaves_only: Only return nodes that depend on nothing

        Returns:
            Node ids where every node comes after all of its dependencies

        Raises:
            CyclicDependencyError: If the graph contains a cycle
        """
        if not self.nodes:
            return []

        cycle_dfs = _create_dfs(self.outgoing_edges, False, [])
        for node_id in self.nodes:
            cycle_dfs(node_id)

        result: list[str] = []
        dfs = _create_dfs(self.outgoing_edges, leaves_only, result)
        for node_id in self.entry_nodes():
            dfs(node_id)

        logger.debug("Computed overall order", node_count=len(result))
        return result

    def steps(self) -> list[list[str]]:
        """
        Group nodes into steps that can be processed one after another.

        See StepPlanner.steps.
        """
        from .planner import StepPlanner

        return StepPlanner().steps(self)

    def clone(self) -> "DependencyGraph":
        """Copy nodes and edges into a new graph. Payloads are shared, not copied."""
        other = DependencyGraph()
        other.nodes = dict(self.nodes)
        other.outgoing_edges = {k: list(v) for k, v in self.outgoing_edges.items()}
        other.incoming_edges = {k: list(v) for k, v in self.incoming_edges.items()}
        return other

    def to_dot(self) -> str:
        """
        Generate DOT format representation of the dependency graph.

        Edges point from a dependency to its dependant (load direction).

        Returns:
            String containing the Graphviz DOT definition
        """
        lines = ["digraph DependencyGraph {"]
        lines.append("    rankdir=LR;")
        lines.append("    node [shape=box style=filled];")

        for node_id, data in self.nodes.items():
            resource_type = getattr(data, "type", None)
            type_value = getattr(resource_type, "value", resource_type)

            color = "#eeeeee"
            if type_value == "js":
                color = "#fff3cd"
            elif type_value == "css":
                color = "#cce5ff"

            label = f"{node_id}\\n({type_value})" if type_value else node_id
            lines.append(f'    "{node_id}" [label="{label}" fillcolor="{color}"];')

            for dep_id in self.outgoing_edges[node_id]:
                lines.append(f'    "{dep_id}" -> "{node_id}";')

        lines.append("}")
        return "\n".join(lines)
