"""
HNSW graph data structures.

This module defines the core data structures for storing the HNSW graph:
- HNSWNode: Represents a single node (vector) in the graph with its connections
- HNSWGraph: Container for the entire graph structure

The graph is hierarchical: nodes at layer 0 form a dense graph with all vectors,
while higher layers contain progressively fewer nodes for faster coarse-grained search.
Each node stores connections (neighbors) at each layer it participates in.

No search or insertion logic lives here, only storage and edge-list mutation.
"""

from typing import Dict, Iterable, Iterator, List, Optional
import numpy as np
import numpy.typing as npt

Vector = npt.NDArray[np.float32]


class HNSWNode:
    """
    Represents a single node in the HNSW graph.

    Each node contains a vector and its connections to other nodes across multiple layers.
    The node appears in layers 0 through its assigned 'level' (higher levels are sparser).
    The level is fixed when the node is created and never changes.
    """

    __slots__ = ("id", "vector", "level", "neighbors")

    def __init__(self, node_id: int, vector: Vector, level: int) -> None:
        """
        Create a new HNSW node.

        Args:
            node_id: Unique identifier for this node
            vector: The vector data (1D numpy array)
            level: Maximum layer this node appears in (0 = base layer only)
        """
        self.id = node_id
        self.vector = vector
        self.level = level

        # neighbors[layer] holds neighbor ids in the order they were linked.
        # Lists never hold duplicates, so they behave as ordered sets.
        self.neighbors: List[List[int]] = [[] for _ in range(level + 1)]

    @property
    def top_layer(self) -> int:
        return self.level

    def add_neighbor(self, neighbor_id: int, layer: int) -> None:
        """
        Add a connection to another node at a specific layer.

        Args:
            neighbor_id: ID of the neighbor node to connect to
            layer: Which layer to add the connection at
        """
        if layer > self.level:
            raise ValueError(
                f"Cannot add neighbor at layer {layer} (node max level is {self.level})"
            )

        if neighbor_id not in self.neighbors[layer]:
            self.neighbors[layer].append(neighbor_id)

    def remove_neighbor(self, neighbor_id: int, layer: int) -> None:
        """Drop a connection at a layer (no-op if it does not exist)."""
        if layer <= self.level and neighbor_id in self.neighbors[layer]:
            self.neighbors[layer].remove(neighbor_id)

    def get_neighbors(self, layer: int) -> List[int]:
        """
        Get all neighbors at a specific layer.

        Args:
            layer: Which layer to query

        Returns:
            List of neighbor node IDs at that layer
        """
        if layer > self.level:
            return []

        return self.neighbors[layer]

    def set_neighbors(self, layer: int, neighbor_ids: Iterable[int]) -> None:
        """Replace the neighbor list at a layer."""
        if layer > self.level:
            raise ValueError(
                f"Cannot set neighbors at layer {layer} (node max level is {self.level})"
            )
        self.neighbors[layer] = list(dict.fromkeys(neighbor_ids))

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"HNSWNode(id={self.id}, level={self.level}, dim={len(self.vector)})"


class HNSWGraph:
    """
    Container for the entire HNSW graph structure.

    Manages all nodes, tracks the entry point for searches, and maintains
    graph parameters like maximum connections per layer.

    Node IDs are assigned by the caller. Nodes are kept in insertion order, which
    is also the tie-break order for equally scored search results.
    """

    def __init__(
        self,
        dimension: Optional[int] = None,
        M: int = 16,
        M_L: Optional[int] = None,
        level_multiplier: Optional[float] = None,
    ) -> None:
        """
        Initialize an empty HNSW graph.

        Args:
            dimension: Dimensionality of vectors to store (None = set by first node)
            M: Maximum number of neighbors per node at layers > 0 (typical: 16-64)
            M_L: Maximum neighbors at layer 0 (default: 2*M for denser base layer)
            level_multiplier: Controls layer distribution (default: 1/ln(M) per HNSW paper)
        """
        self.dimension = dimension
        self.M = M
        self.M_L = M_L if M_L is not None else 2 * M  # Layer 0 has more connections

        # Formula: mL = 1/ln(M) gives exponential decay P(layer >= l) = (1/M)^l
        if level_multiplier is None:
            self.level_multiplier = 1.0 / np.log(M)
        else:
            self.level_multiplier = level_multiplier

        # Storage for all nodes (dict preserves insertion order)
        self.nodes: Dict[int, HNSWNode] = {}

        # Entry point: the node at the highest layer where searches begin
        # None when graph is empty
        self.entry_point: Optional[int] = None
        self.max_level: int = -1

        # Insertion rank of every node, used for stable ordering of ties
        self._rank: Dict[int, int] = {}
        self._next_rank = 0

    def max_connections(self, layer: int) -> int:
        """Degree bound at a layer: M_L on layer 0, M above it."""
        return self.M_L if layer == 0 else self.M

    def add_node(self, node_id: int, vector: Vector, level: int) -> HNSWNode:
        """
        Add a new node to the graph structure (without connecting it yet).

        The entry point is left untouched; the builder promotes the node once
        its edges are in place.

        Args:
            node_id: Caller-assigned unique ID
            vector: Vector data for the node
            level: Maximum layer this node should appear in

        Returns:
            The created HNSWNode
        """
        if node_id in self.nodes:
            raise ValueError(f"Node {node_id} already exists")

        if self.dimension is None:
            self.dimension = len(vector)
        elif len(vector) != self.dimension:
            raise ValueError(
                f"Vector dimension {len(vector)} doesn't match graph dimension {self.dimension}"
            )

        node = HNSWNode(node_id, vector, level)
        self.nodes[node_id] = node
        self._rank[node_id] = self._next_rank
        self._next_rank += 1
        return node

    def discard_node(self, node_id: int) -> None:
        """
        Remove a node that was added but never linked.

        Only used to roll back a failed insertion. It does not touch
        other nodes' neighbor lists.
        """
        self.nodes.pop(node_id, None)
        self._rank.pop(node_id, None)

    def get_node(self, node_id: int) -> Optional[HNSWNode]:
        """
        Retrieve a node by its ID.

        Args:
            node_id: ID of the node to retrieve

        Returns:
            The HNSWNode, or None if not found
        """
        return self.nodes.get(node_id)

    def add_edge(self, node1_id: int, node2_id: int, layer: int) -> None:
        """
        Create a bidirectional connection between two nodes at a specific layer.

        Args:
            node1_id: First node ID
            node2_id: Second node ID
            layer: Layer at which to create the connection
        """
        node1 = self.nodes.get(node1_id)
        node2 = self.nodes.get(node2_id)

        if node1 is None or node2 is None:
            raise ValueError(f"Node not found: {node1_id} or {node2_id}")

        # Two explicit one-way adds
        node1.add_neighbor(node2_id, layer)
        node2.add_neighbor(node1_id, layer)

    def remove_edge(self, node1_id: int, node2_id: int, layer: int) -> None:
        """Remove a connection in both directions at a layer."""
        node1 = self.nodes.get(node1_id)
        node2 = self.nodes.get(node2_id)
        if node1 is not None:
            node1.remove_neighbor(node2_id, layer)
        if node2 is not None:
            node2.remove_neighbor(node1_id, layer)

    def set_entry_point(self, node_id: int) -> None:
        """Make a node the search entry point and raise max_level to its level."""
        node = self.nodes[node_id]
        self.entry_point = node_id
        self.max_level = node.level

    def get_max_level(self) -> int:
        """
        Get the maximum layer level in the graph (level of entry point).

        Returns:
            Maximum layer number, or -1 if graph is empty
        """
        return self.max_level

    def insertion_rank(self, node_id: int) -> int:
        """Position of a node in insertion order (0 for the first node)."""
        return self._rank[node_id]

    def size(self) -> int:
        """
        Get the total number of nodes in the graph.

        Returns:
            Number of nodes
        """
        return len(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __iter__(self) -> Iterator[HNSWNode]:
        return iter(self.nodes.values())

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"HNSWGraph(nodes={self.size()}, max_level={self.get_max_level()}, "
            f"M={self.M}, dim={self.dimension})"
        )
