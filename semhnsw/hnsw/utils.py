"""
Utility functions for HNSW graph construction and maintenance.

This module provides helper functions used during HNSW index building:
- Layer assignment: Determines which layers a new node should appear in
- Neighbor selection: Chooses which edges to keep when building the graph

The layer assignment uses a geometric distribution to create a hierarchical structure,
where most nodes are only in layer 0, and progressively fewer nodes appear in higher layers.
This hierarchy allows for efficient search by starting at sparse top layers and zooming in.
"""

from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from semhnsw.hnsw.graph import HNSWGraph

ScoredId = Tuple[float, int]


def assign_layer(
    rng: Optional[np.random.Generator] = None,
    M: Optional[int] = None,
    level_multiplier: Optional[float] = None,
    max_level: Optional[int] = None,
) -> int:
    """
    Randomly assign a layer for a new node using geometric distribution per HNSW paper.

    In HNSW, nodes are assigned to different layers probabilistically. Most nodes
    only appear in layer 0 (the base layer), while fewer nodes extend to higher layers.
    This creates a hierarchical structure for efficient multi-scale search.

    Formula (Malkov & Yashunin 2016): layer = floor(-ln(uniform(0,1)) * mL)
    where mL = 1/ln(M) for optimal performance

    Args:
        rng: Random generator to draw from. Pass a seeded generator for
             reproducible graph shapes (default: fresh unseeded generator)
        M: Maximum connections per node (used to calculate level_multiplier if not provided)
           Default: 16 (recommended by HNSW paper)
        level_multiplier: Explicit level multiplier (overrides M if provided)
        max_level: Upper cap on the returned layer (None = uncapped)

    Returns:
        Layer number (0 = bottom layer, higher = sparser upper layers)

    Example:
        >>> # For M=16: ~93.75% at layer 0, ~6.25% at layer 1, ~0.39% at layer 2
        >>> rng = np.random.default_rng(0)
        >>> layers = [assign_layer(rng, M=16) for _ in range(10000)]
    """
    if level_multiplier is None:
        if M is None:
            M = 16
        level_multiplier = 1.0 / np.log(M)

    if rng is None:
        rng = np.random.default_rng()

    # random() is in [0, 1); flip it to (0, 1] so the log is always finite
    random_value = 1.0 - rng.random()

    layer = int(-np.log(random_value) * level_multiplier)

    if max_level is not None:
        layer = min(layer, max_level)

    return layer


def sort_by_score(candidates: Sequence[ScoredId], graph: HNSWGraph) -> List[ScoredId]:
    """Order (score, id) pairs best first, equal scores by insertion order."""
    return sorted(candidates, key=lambda c: (-c[0], graph.insertion_rank(c[1])))


def select_neighbors_heuristic(
    candidates: Sequence[ScoredId],
    graph: HNSWGraph,
    similarity_fn: Callable[[np.ndarray, np.ndarray], float],
    M: int,
    keep_pruned: bool = False,
) -> List[int]:
    """
    Select neighbors using diversity-aware heuristic from HNSW paper (Algorithm 4).

    Key principle: avoid selecting candidates that are already well represented
    by an existing selected neighbor. This prevents all edges pointing into one
    dense cluster and keeps the long-range links search depends on.

    Args:
        candidates: (score, node_id) pairs, score = similarity to the base point
        graph: Graph holding the candidate vectors
        similarity_fn: Metric used to compare candidates with each other
        M: Maximum number of neighbors to select
        keep_pruned: Fill remaining slots with the best rejected candidates
                     (used when shrinking an overfull neighbor list)

    Returns:
        List of selected node IDs (up to M), accepted ones first in score order

    Algorithm:
        1. Sort candidates by similarity to the base point (best first)
        2. Accept a candidate only if it is not closer to an already accepted
           neighbor than to the base point
        3. Stop once M neighbors are accepted or candidates run out
        4. With keep_pruned, top up with rejected candidates in score order
    """
    if len(candidates) == 0:
        return []

    selected: List[int] = []
    selected_vectors: List[np.ndarray] = []
    rejected: List[int] = []

    for score, candidate_id in sort_by_score(candidates, graph):
        if len(selected) >= M:
            break

        candidate_vector = graph.nodes[candidate_id].vector

        # Dominated: some accepted neighbor is more similar to the candidate
        # than the base point is
        dominated = any(
            similarity_fn(candidate_vector, accepted) > score
            for accepted in selected_vectors
        )

        if dominated:
            rejected.append(candidate_id)
        else:
            selected.append(candidate_id)
            selected_vectors.append(candidate_vector)

    if keep_pruned and len(selected) < M:
        selected.extend(rejected[:M - len(selected)])

    return selected
