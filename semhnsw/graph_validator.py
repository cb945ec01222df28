"""Structural checks for HNSW graphs.

The insertion algorithm is responsible for keeping the graph well formed:
edges are mutual, degrees stay within bounds, and every node can be reached
from the entry point. This module verifies those properties after the fact,
which is useful in tests and after restoring a graph from an external record.
"""

from collections import deque
from typing import List, Set, Tuple

from semhnsw.hnsw.graph import HNSWGraph


# (node_id, neighbor_id, layer)
LayerEdge = Tuple[int, int, int]


class GraphValidator:
    """Validates graph structure and connectivity properties."""

    def __init__(self, graph: HNSWGraph) -> None:
        """
        Args:
            graph: Graph to inspect (never modified)
        """
        self.graph = graph

    def find_asymmetric_edges(self) -> List[LayerEdge]:
        """Edges A->B at layer L where B does not list A at layer L."""
        asymmetric = []
        for node in self.graph:
            for layer, neighbor_ids in enumerate(node.neighbors):
                for neighbor_id in neighbor_ids:
                    neighbor = self.graph.get_node(neighbor_id)
                    if neighbor is None or node.id not in neighbor.get_neighbors(layer):
                        asymmetric.append((node.id, neighbor_id, layer))
        return asymmetric

    def find_degree_violations(self) -> List[Tuple[int, int, int]]:
        """(node_id, layer, degree) for every list above the layer bound."""
        violations = []
        for node in self.graph:
            for layer, neighbor_ids in enumerate(node.neighbors):
                if len(neighbor_ids) > self.graph.max_connections(layer):
                    violations.append((node.id, layer, len(neighbor_ids)))
        return violations

    def find_unreachable_nodes(self, layer: int = 0) -> Set[int]:
        """Nodes present at a layer that BFS from the entry point cannot reach.

        Upper layers are entered from the entry point as well, so the same
        start node is used for every layer.
        """
        members = {node.id for node in self.graph if node.level >= layer}
        if self.graph.entry_point is None:
            return members

        start = self.graph.entry_point
        visited: Set[int] = {start}
        queue: deque = deque([start])

        while queue:
            current = queue.popleft()
            for neighbor in self.graph.nodes[current].get_neighbors(layer):
                if neighbor not in visited:
                    visited.add(neighbor)
                    queue.append(neighbor)

        return members - visited

    def find_entry_point_issues(self) -> List[str]:
        """Problems with the entry point / max level bookkeeping."""
        issues = []
        entry = self.graph.entry_point

        if self.graph.size() == 0:
            if entry is not None:
                issues.append(f"Empty graph has entry point {entry}")
            return issues

        if entry is None:
            issues.append("Non-empty graph has no entry point")
            return issues

        entry_node = self.graph.get_node(entry)
        if entry_node is None:
            issues.append(f"Entry point {entry} is not a node of the graph")
            return issues

        if entry_node.level != self.graph.max_level:
            issues.append(
                f"Entry point level {entry_node.level} != max level {self.graph.max_level}"
            )

        top = max(node.level for node in self.graph)
        if top > self.graph.max_level:
            issues.append(f"Node level {top} exceeds max level {self.graph.max_level}")

        return issues

    def validate(self) -> List[str]:
        """Run every check and describe the problems found (empty when healthy)."""
        issues = list(self.find_entry_point_issues())

        for node_id, neighbor_id, layer in self.find_asymmetric_edges():
            issues.append(f"Edge {node_id}->{neighbor_id} at layer {layer} has no reverse edge")

        for node_id, layer, degree in self.find_degree_violations():
            issues.append(
                f"Node {node_id} has {degree} neighbors at layer {layer} "
                f"(bound {self.graph.max_connections(layer)})"
            )

        for layer in range(self.graph.max_level + 1):
            unreachable = self.find_unreachable_nodes(layer=layer)
            if unreachable:
                issues.append(
                    f"{len(unreachable)} nodes unreachable at layer {layer}: {sorted(unreachable)[:10]}"
                )

        return issues

    def is_valid(self) -> bool:
        return not self.validate()
