"""
Metrics for evaluating HNSW search quality.

This module provides functions to:
- Compute exact ground truth via brute force search
- Compute recall@k (fraction of ground truth neighbors retrieved)
"""

from typing import List, Sequence, Tuple

import numpy as np

from semhnsw.hnsw.distance import get_similarity_function


def brute_force_knn(
    vectors: Sequence[np.ndarray],
    ids: Sequence[int],
    query: np.ndarray,
    k: int,
    metric: str = "cosine",
) -> List[Tuple[int, float]]:
    """
    Exact k nearest neighbors by scoring every vector.

    Args:
        vectors: Stored vectors
        ids: IDs parallel to vectors
        query: Query vector
        k: Number of neighbors
        metric: "cosine" or "euclidean"

    Returns:
        (id, score) pairs, best first; equal scores keep the input order
    """
    if len(vectors) != len(ids):
        raise ValueError(f"Got {len(vectors)} vectors but {len(ids)} ids")

    similarity_fn = get_similarity_function(metric)
    scored = [(node_id, similarity_fn(query, vector)) for node_id, vector in zip(ids, vectors)]

    # sorted() is stable, so ties stay in input order
    scored.sort(key=lambda pair: -pair[1])
    return scored[:max(k, 0)]


def compute_recall_at_k(
    retrieved_ids: List[int],
    ground_truth_ids: List[int],
    k: int = 10
) -> float:
    """
    Compute recall@k: fraction of ground truth neighbors retrieved.

    Args:
        retrieved_ids: IDs returned by search (ordered by relevance)
        ground_truth_ids: True k-nearest neighbor IDs
        k: Number of neighbors to consider

    Returns:
        Recall@k value between 0.0 (no correct neighbors) and 1.0 (all correct)

    Example:
        >>> retrieved = [1, 2, 3, 99, 98]
        >>> ground_truth = [1, 2, 3, 4, 5]
        >>> compute_recall_at_k(retrieved, ground_truth, k=5)
        0.6
    """
    if k <= 0:
        return 0.0

    retrieved_set = set(retrieved_ids[:k])
    ground_truth_set = set(ground_truth_ids[:k])

    return len(retrieved_set & ground_truth_set) / k
