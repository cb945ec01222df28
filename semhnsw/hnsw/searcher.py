"""
HNSW search algorithm.

This module handles querying the HNSW graph to find approximate nearest neighbors.
The search algorithm:
1. Starts at the entry point (top layer)
2. Greedily navigates down through layers to get closer to the query
3. At layer 0, expands the search with a beam of width ef_search
4. Returns the k nearest neighbors

The ef_search parameter controls the accuracy-speed tradeoff:
- Higher ef_search = better recall, slower search
- Lower ef_search = faster search, lower recall

greedy_closest and search_layer are shared with the builder, which runs the
same descent and beam search when linking a new node.
"""

from typing import Callable, List, Optional, Sequence, Set, Tuple
import numpy as np
import numpy.typing as npt

from semhnsw.hnsw.graph import HNSWGraph
from semhnsw.hnsw.pqueue import PriorityQueue
from semhnsw.hnsw.utils import sort_by_score

Vector = npt.NDArray[np.float32]
SimilarityFunction = Callable[[Vector, Vector], float]


def greedy_closest(
    graph: HNSWGraph,
    query: Vector,
    entry_id: int,
    layer: int,
    similarity_fn: SimilarityFunction,
) -> Tuple[float, int]:
    """
    Single-best-neighbor walk on one layer.

    Moves to the neighbor most similar to the query until no neighbor
    improves on the current node.

    Returns:
        (score, node_id) of the local optimum
    """
    current = entry_id
    best = similarity_fn(query, graph.nodes[current].vector)

    changed = True
    while changed:
        changed = False
        for neighbor_id in graph.nodes[current].get_neighbors(layer):
            score = similarity_fn(query, graph.nodes[neighbor_id].vector)
            if score > best:
                best = score
                current = neighbor_id
                changed = True

    return best, current


def search_layer(
    graph: HNSWGraph,
    query: Vector,
    entry_points: Sequence[int],
    ef: int,
    layer: int,
    similarity_fn: SimilarityFunction,
) -> List[Tuple[float, int]]:
    """
    Beam search for nearest neighbors at a single layer.

    Priorities in both queues are negated scores, so lower means closer:
    the candidate min-queue pops the most promising node, the bounded
    best-set max-queue evicts the worst of the current best.

    Args:
        graph: Graph to search
        query: Query vector
        entry_points: Starting node IDs
        ef: Width of the beam (size of the best set)
        layer: Which layer to search on
        similarity_fn: Metric (higher = more similar)

    Returns:
        Up to ef (score, node_id) pairs, best first, ties by insertion order
    """
    visited: Set[int] = set(entry_points)

    candidates: PriorityQueue[int] = PriorityQueue("min")
    best: PriorityQueue[int] = PriorityQueue("max", capacity=ef)

    # Equal distances rank by insertion order, in the queues and at admission
    for node_id in entry_points:
        distance = -similarity_fn(query, graph.nodes[node_id].vector)
        rank = graph.insertion_rank(node_id)
        candidates.push(distance, node_id, rank)
        best.push(distance, node_id, rank)

    while candidates:
        current_distance, current_id = candidates.peek()

        # Nothing left that can improve the best set
        if best.is_full() and current_distance > best.peek()[0]:
            break

        candidates.pop()

        for neighbor_id in graph.nodes[current_id].get_neighbors(layer):
            if neighbor_id in visited:
                continue
            visited.add(neighbor_id)

            distance = -similarity_fn(query, graph.nodes[neighbor_id].vector)
            rank = graph.insertion_rank(neighbor_id)

            if best.is_full():
                worst_distance, worst_id = best.peek()
                if (distance, rank) >= (worst_distance, graph.insertion_rank(worst_id)):
                    continue

            candidates.push(distance, neighbor_id, rank)
            best.push(distance, neighbor_id, rank)

    return sort_by_score([(-distance, node_id) for distance, node_id in best.items()], graph)


class HNSWSearcher:
    """
    Handles search queries on the HNSW graph.

    This class provides the search functionality to find k nearest neighbors
    for a given query vector.
    """

    def __init__(
        self,
        graph: HNSWGraph,
        similarity_fn: SimilarityFunction,
        ef_search: int = 50,
    ) -> None:
        """
        Initialize searcher with a graph.

        Args:
            graph: The HNSWGraph to search in
            similarity_fn: Metric used to score nodes against the query
            ef_search: Size of candidate list during search (higher = better recall)
        """
        self.graph = graph
        self.similarity_fn = similarity_fn
        self.ef_search = ef_search

    def search(self, query: Vector, k: int, ef_search: Optional[int] = None) -> List[Tuple[int, float]]:
        """
        Search for k nearest neighbors to the query vector.

        Args:
            query: Query vector to search for
            k: Number of nearest neighbors to return
            ef_search: Override default ef_search for this query

        Returns:
            List of (node_id, score) tuples, best first
        """
        if self.graph.size() == 0 or k <= 0:
            return []

        ef = ef_search if ef_search is not None else self.ef_search

        # The beam must hold at least k results
        ef = max(ef, k)

        # Greedy descent from the top layer down to layer 1
        current = self.graph.entry_point
        for layer in range(self.graph.max_level, 0, -1):
            _, current = greedy_closest(
                self.graph, query, current, layer, self.similarity_fn
            )

        candidates = search_layer(
            self.graph, query, [current], ef, 0, self.similarity_fn
        )

        return [(node_id, score) for score, node_id in candidates[:k]]
