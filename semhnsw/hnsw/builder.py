"""
HNSW graph construction and insertion logic.

This module handles adding new nodes to the HNSW graph. The insertion algorithm:
1. Takes a randomly assigned top layer for the new node (geometric distribution)
2. Greedily descends from the entry point through the layers above it
3. Runs a beam search on each layer the node joins and picks diverse neighbors
4. Links the new node to its neighbors in both directions
5. Prunes neighbors that went over the degree bound

The key insight: start search at the top (sparse) layer and progressively
zoom in through denser layers until reaching the target layer.
"""

import logging
from typing import Callable, Dict, List, Tuple

import numpy as np
import numpy.typing as npt

from semhnsw.hnsw.graph import HNSWGraph, HNSWNode
from semhnsw.hnsw.searcher import greedy_closest, search_layer
from semhnsw.hnsw.utils import select_neighbors_heuristic, sort_by_score

logger = logging.getLogger(__name__)

Vector = npt.NDArray[np.float32]
SimilarityFunction = Callable[[Vector, Vector], float]

# Saved neighbor lists keyed by (node_id, layer), restored on failure
Journal = Dict[Tuple[int, int], List[int]]


class HNSWBuilder:
    """
    Handles insertion of nodes into the HNSW graph.

    This class encapsulates the logic for adding new vectors to the index,
    including neighbor search, connection creation, and pruning.
    """

    def __init__(
        self,
        graph: HNSWGraph,
        similarity_fn: SimilarityFunction,
        ef_construction: int = 200,
    ) -> None:
        """
        Initialize builder with a graph to operate on.

        Args:
            graph: The HNSWGraph to insert nodes into
            similarity_fn: Metric used to rank neighbors (higher = more similar)
            ef_construction: Beam width used while searching for neighbors
        """
        self.graph = graph
        self.similarity_fn = similarity_fn
        self.ef_construction = ef_construction

    def insert(self, vector: Vector, node_id: int, level: int) -> None:
        """
        Insert a new node into the graph at a specific level.

        Either every edge update of the insertion is applied or, if anything
        raises half way, the graph is restored to its previous state.

        Args:
            vector: Vector data for the new node
            node_id: ID to assign to the new node
            level: Maximum layer for this node
        """
        dimension_before = self.graph.dimension
        node = self.graph.add_node(node_id, vector, level)

        # Special case: first node in the graph
        if self.graph.size() == 1:
            self.graph.set_entry_point(node_id)
            return

        journal: Journal = {}
        try:
            self._link(node, journal)
        except BaseException:
            for (saved_id, layer), saved in journal.items():
                self.graph.nodes[saved_id].neighbors[layer] = saved
            self.graph.discard_node(node_id)
            self.graph.dimension = dimension_before
            raise

        # Promote only after all edges exist
        if level > self.graph.max_level:
            self.graph.set_entry_point(node_id)

    def _link(self, node: HNSWNode, journal: Journal) -> None:
        """Find neighbors for a freshly added node on every layer it joins."""
        max_level = self.graph.max_level

        # Search from top layer down to level+1, keeping only 1 closest candidate
        current = self.graph.entry_point
        for layer in range(max_level, node.level, -1):
            _, current = greedy_closest(
                self.graph, node.vector, current, layer, self.similarity_fn
            )

        entry_points = [current]
        for layer in range(min(node.level, max_level), -1, -1):
            candidates = search_layer(
                self.graph,
                node.vector,
                entry_points,
                self.ef_construction,
                layer,
                self.similarity_fn,
            )
            candidates = [(score, cid) for score, cid in candidates if cid != node.id]

            neighbors = select_neighbors_heuristic(
                candidates, self.graph, self.similarity_fn, self.graph.M
            )

            # Two-step update: link both ways first, then prune each neighbor
            for neighbor_id in neighbors:
                self._save(journal, node.id, layer)
                self._save(journal, neighbor_id, layer)
                self.graph.add_edge(node.id, neighbor_id, layer)

            for neighbor_id in neighbors:
                self._prune_neighbors(neighbor_id, layer, journal)

            # The whole beam seeds the next layer down
            entry_points = [cid for _, cid in candidates] or entry_points

    def _prune_neighbors(self, node_id: int, layer: int, journal: Journal) -> None:
        """
        Prune connections of a node if it exceeds the degree bound.

        The node's full neighbor list is ranked with the diversity heuristic:
        accepted neighbors first, then the rejected ones by score. Only the
        overflow is dropped, from the end of that ranking. Dropped edges are
        removed in both directions to keep the graph symmetric.

        An edge is only dropped while its two ends stay connected through the
        rest of the layer. When every remaining overflow edge is a bridge, the
        worst one is dropped anyway and its far end is relinked to a kept
        neighbor with a free slot.

        Args:
            node_id: Node to prune
            layer: Which layer to prune at
            journal: Rollback journal of the running insertion
        """
        node = self.graph.nodes[node_id]
        neighbors = node.get_neighbors(layer)
        bound = self.graph.max_connections(layer)

        # If within limit, no pruning needed
        if len(neighbors) <= bound:
            return

        scored = [
            (self.similarity_fn(node.vector, self.graph.nodes[nid].vector), nid)
            for nid in neighbors
        ]
        ranked = select_neighbors_heuristic(
            scored, self.graph, self.similarity_fn, len(neighbors), keep_pruned=True
        )

        overflow = len(neighbors) - bound
        bridges = []
        for pruned_id in reversed(ranked):
            if overflow == 0:
                break
            if not self._connected_without_edge(pruned_id, node_id, layer):
                bridges.append(pruned_id)
                continue
            self._drop_edge(node_id, pruned_id, layer, journal)
            overflow -= 1

        for pruned_id in bridges[:overflow]:
            self._drop_edge(node_id, pruned_id, layer, journal)
            self._relink(pruned_id, node_id, layer, journal)

    def _connected_without_edge(self, start: int, target: int, layer: int) -> bool:
        """BFS from start to target on a layer, ignoring the direct start-target edge."""
        visited = {start}
        frontier = [nid for nid in self.graph.nodes[start].get_neighbors(layer) if nid != target]
        visited.update(frontier)

        while frontier:
            next_frontier = []
            for current in frontier:
                for neighbor_id in self.graph.nodes[current].get_neighbors(layer):
                    if neighbor_id == target:
                        return True
                    if neighbor_id not in visited:
                        visited.add(neighbor_id)
                        next_frontier.append(neighbor_id)
            frontier = next_frontier

        return False

    def _drop_edge(self, node_id: int, pruned_id: int, layer: int, journal: Journal) -> None:
        self._save(journal, node_id, layer)
        self._save(journal, pruned_id, layer)
        self.graph.remove_edge(node_id, pruned_id, layer)

    def _relink(self, orphan_id: int, hub_id: int, layer: int, journal: Journal) -> None:
        """Attach a node cut off from hub_id to the most similar hub neighbor with room."""
        orphan = self.graph.nodes[orphan_id]
        bound = self.graph.max_connections(layer)

        options = [
            (self.similarity_fn(orphan.vector, self.graph.nodes[nid].vector), nid)
            for nid in self.graph.nodes[hub_id].get_neighbors(layer)
            if nid not in orphan.get_neighbors(layer)
            and len(self.graph.nodes[nid].get_neighbors(layer)) < bound
        ]
        if not options:
            logger.debug("No free slot to relink node %s at layer %d", orphan_id, layer)
            return

        _, target_id = sort_by_score(options, self.graph)[0]
        self._save(journal, orphan_id, layer)
        self._save(journal, target_id, layer)
        self.graph.add_edge(orphan_id, target_id, layer)

    def _save(self, journal: Journal, node_id: int, layer: int) -> None:
        key = (node_id, layer)
        if key not in journal:
            journal[key] = list(self.graph.nodes[node_id].neighbors[layer])
