"""
Tests for HNSW graph data structures.

These tests verify the graph container and node structures work correctly:
- Node creation and neighbor management
- Graph initialization and node addition
- Edge creation and bidirectional connections
- Entry point tracking
"""

import numpy as np
import pytest
from semhnsw.hnsw.graph import HNSWNode, HNSWGraph


def test_create_node():
    """Create a basic HNSW node"""
    vector = np.array([1.0, 2.0, 3.0], dtype=np.float32)
    node = HNSWNode(node_id=42, vector=vector, level=2)

    assert node.id == 42
    assert np.allclose(node.vector, vector)
    assert node.level == 2
    assert node.top_layer == 2
    # Should have empty neighbor lists for layers 0, 1, 2
    assert node.neighbors == [[], [], []]


def test_add_neighbor_to_node():
    """Add neighbors to a node at different layers"""
    vector = np.array([1.0, 2.0], dtype=np.float32)
    node = HNSWNode(node_id=1, vector=vector, level=2)

    node.add_neighbor(neighbor_id=10, layer=0)
    node.add_neighbor(neighbor_id=20, layer=0)
    node.add_neighbor(neighbor_id=30, layer=1)

    assert node.get_neighbors(layer=0) == [10, 20]
    assert node.get_neighbors(layer=1) == [30]
    assert node.get_neighbors(layer=2) == []


def test_node_prevents_duplicate_neighbors():
    """Adding the same neighbor twice should not create duplicates"""
    node = HNSWNode(node_id=1, vector=np.array([1.0], dtype=np.float32), level=1)

    node.add_neighbor(neighbor_id=10, layer=0)
    node.add_neighbor(neighbor_id=10, layer=0)  # Duplicate

    assert node.get_neighbors(layer=0) == [10], "Should not have duplicate neighbors"


def test_node_invalid_layer():
    """Adding neighbor at layer higher than node level should fail"""
    node = HNSWNode(node_id=1, vector=np.array([1.0], dtype=np.float32), level=1)

    with pytest.raises(ValueError):
        node.add_neighbor(neighbor_id=10, layer=5)  # Layer 5 > node level 1


def test_get_neighbors_above_level():
    """Getting neighbors at layer > node level should return empty list"""
    node = HNSWNode(node_id=1, vector=np.array([1.0], dtype=np.float32), level=1)

    assert node.get_neighbors(layer=5) == []


def test_set_and_remove_neighbors():
    """set_neighbors replaces a layer (deduplicated), remove_neighbor drops one id"""
    node = HNSWNode(node_id=1, vector=np.array([1.0], dtype=np.float32), level=0)

    node.set_neighbors(0, [5, 3, 5, 8])
    assert node.get_neighbors(0) == [5, 3, 8]

    node.remove_neighbor(3, layer=0)
    node.remove_neighbor(99, layer=0)  # Unknown id is a no-op
    assert node.get_neighbors(0) == [5, 8]


def test_create_empty_graph():
    """Initialize an empty HNSW graph"""
    graph = HNSWGraph(dimension=128, M=16)

    assert graph.dimension == 128
    assert graph.M == 16
    assert graph.M_L == 32  # Default is 2*M
    assert graph.size() == 0
    assert graph.entry_point is None
    assert graph.get_max_level() == -1


def test_max_connections_per_layer():
    """Layer 0 allows M_L edges, upper layers M"""
    graph = HNSWGraph(dimension=2, M=6)

    assert graph.max_connections(0) == 12
    assert graph.max_connections(1) == 6
    assert graph.max_connections(4) == 6


def test_add_node_to_graph():
    """Add a node with a caller-assigned ID"""
    graph = HNSWGraph(dimension=3, M=16)
    vector = np.array([1.0, 2.0, 3.0], dtype=np.float32)

    node = graph.add_node(7, vector, level=2)

    assert node.id == 7
    assert graph.size() == 1
    assert 7 in graph
    assert graph.get_node(7) is node
    # Entry point is promoted by the builder, not by add_node
    assert graph.entry_point is None


def test_dimension_set_by_first_node():
    """A graph without a dimension adopts the first vector's length"""
    graph = HNSWGraph(M=4)
    graph.add_node(0, np.zeros(5, dtype=np.float32), level=0)

    assert graph.dimension == 5
    with pytest.raises(ValueError):
        graph.add_node(1, np.zeros(4, dtype=np.float32), level=0)


def test_duplicate_node_id_rejected():
    """Node IDs are unique"""
    graph = HNSWGraph(dimension=2, M=4)
    graph.add_node(1, np.array([1.0, 0.0], dtype=np.float32), level=0)

    with pytest.raises(ValueError):
        graph.add_node(1, np.array([0.0, 1.0], dtype=np.float32), level=0)


def test_entry_point_updates():
    """set_entry_point tracks the node and its level"""
    graph = HNSWGraph(dimension=2, M=16)
    graph.add_node(0, np.array([1.0, 0.0], dtype=np.float32), level=0)
    graph.add_node(1, np.array([0.0, 1.0], dtype=np.float32), level=2)

    graph.set_entry_point(0)
    assert graph.entry_point == 0
    assert graph.get_max_level() == 0

    graph.set_entry_point(1)
    assert graph.entry_point == 1
    assert graph.get_max_level() == 2


def test_add_edge_bidirectional():
    """Adding an edge should create bidirectional connection"""
    graph = HNSWGraph(dimension=2, M=16)
    graph.add_node(0, np.array([1.0, 0.0], dtype=np.float32), level=1)
    graph.add_node(1, np.array([0.0, 1.0], dtype=np.float32), level=1)

    graph.add_edge(0, 1, layer=0)

    assert 1 in graph.get_node(0).get_neighbors(layer=0)
    assert 0 in graph.get_node(1).get_neighbors(layer=0)


def test_remove_edge_bidirectional():
    """Removing an edge drops both directions"""
    graph = HNSWGraph(dimension=2, M=16)
    graph.add_node(0, np.array([1.0, 0.0], dtype=np.float32), level=0)
    graph.add_node(1, np.array([0.0, 1.0], dtype=np.float32), level=0)
    graph.add_edge(0, 1, layer=0)

    graph.remove_edge(0, 1, layer=0)

    assert graph.get_node(0).get_neighbors(0) == []
    assert graph.get_node(1).get_neighbors(0) == []


def test_add_edge_multiple_layers():
    """Nodes can be connected at multiple layers"""
    graph = HNSWGraph(dimension=2, M=16)
    graph.add_node(0, np.array([1.0, 0.0], dtype=np.float32), level=2)
    graph.add_node(1, np.array([0.0, 1.0], dtype=np.float32), level=2)

    graph.add_edge(0, 1, layer=0)
    graph.add_edge(0, 1, layer=1)

    node0 = graph.get_node(0)
    assert 1 in node0.get_neighbors(layer=0)
    assert 1 in node0.get_neighbors(layer=1)
    assert node0.get_neighbors(layer=2) == []  # Not connected at layer 2


def test_add_edge_invalid_node():
    """Adding edge with non-existent node should raise error"""
    graph = HNSWGraph(dimension=2, M=16)
    graph.add_node(0, np.array([1.0, 0.0], dtype=np.float32), level=1)

    with pytest.raises(ValueError):
        graph.add_edge(0, 999, layer=0)  # Node 999 doesn't exist


def test_insertion_rank_and_discard():
    """Ranks follow insertion order; discard_node forgets a node"""
    graph = HNSWGraph(dimension=1, M=4)
    for node_id in (30, 10, 20):
        graph.add_node(node_id, np.array([float(node_id)], dtype=np.float32), level=0)

    assert [graph.insertion_rank(i) for i in (30, 10, 20)] == [0, 1, 2]
    assert [node.id for node in graph] == [30, 10, 20]

    graph.discard_node(10)
    assert 10 not in graph
    assert graph.get_node(10) is None
    assert len(graph) == 2


def test_custom_M_L():
    """Graph should accept custom M_L parameter"""
    graph = HNSWGraph(dimension=2, M=16, M_L=48)

    assert graph.M == 16
    assert graph.M_L == 48
