"""
Similarity metrics for vector comparisons.

This module provides functions to measure how similar two vectors are.
Every metric follows the same convention: higher scores mean more similar.
The graph code ranks candidates by score and never needs to know which
metric produced it.

Cosine similarity measures the angle between vectors (ranges from -1 to 1, where 1 means
identical direction). It's commonly used for text embeddings since it ignores magnitude
and focuses on semantic similarity.

Euclidean similarity maps the L2 distance into (0, 1] with 1 / (1 + distance), so
identical vectors score 1.0 and the score decays as vectors move apart.
"""

from typing import Callable, Dict

import numpy as np
import numpy.typing as npt

from semhnsw.errors import DimensionMismatch

Vector = npt.NDArray[np.float32]
SimilarityFunction = Callable[[Vector, Vector], float]

# Norm products below this are treated as zero vectors
_NORM_EPSILON = 1e-12


def _check_dimensions(v1: Vector, v2: Vector) -> None:
    if len(v1) != len(v2):
        raise DimensionMismatch(expected=len(v1), actual=len(v2))


def cosine_similarity(v1: Vector, v2: Vector) -> float:
    """
    Compute cosine similarity between two vectors.

    Cosine similarity measures the cosine of the angle between two vectors.
    It ranges from -1 (opposite directions) to 1 (same direction).
    For normalized vectors, this is equivalent to their dot product.

    Args:
        v1: First vector (1D numpy array)
        v2: Second vector (1D numpy array)

    Returns:
        Similarity score between -1 and 1 (higher means more similar)

    Raises:
        DimensionMismatch: If the vectors have different lengths

    Example:
        >>> v1 = np.array([1.0, 0.0, 0.0])
        >>> v2 = np.array([1.0, 0.0, 0.0])
        >>> cosine_similarity(v1, v2)
        1.0
    """
    _check_dimensions(v1, v2)

    dot_product = np.dot(v1, v2)
    norm_product = np.linalg.norm(v1) * np.linalg.norm(v2)

    # Near-zero vectors have no direction, score them as unrelated
    if norm_product < _NORM_EPSILON:
        return 0.0

    return float(dot_product / norm_product)


def euclidean_similarity(v1: Vector, v2: Vector) -> float:
    """
    Compute a bounded similarity from the Euclidean (L2) distance.

    Args:
        v1: First vector (1D numpy array)
        v2: Second vector (1D numpy array)

    Returns:
        1 / (1 + distance), in (0, 1]; 1.0 for identical vectors

    Raises:
        DimensionMismatch: If the vectors have different lengths

    Example:
        >>> euclidean_similarity(np.array([0.0, 0.0]), np.array([3.0, 4.0]))
        0.16666666666666666
    """
    _check_dimensions(v1, v2)

    distance = np.linalg.norm(np.subtract(v1, v2))
    return float(1.0 / (1.0 + distance))


_METRICS: Dict[str, SimilarityFunction] = {
    "cosine": cosine_similarity,
    "euclidean": euclidean_similarity,
}


def get_similarity_function(metric: str) -> SimilarityFunction:
    """
    Look up the similarity function for a metric name.

    Args:
        metric: "cosine" or "euclidean"

    Returns:
        Function taking two vectors and returning a score (higher = more similar)

    Raises:
        ValueError: If the metric is not supported
    """
    try:
        return _METRICS[metric]
    except KeyError:
        raise ValueError(
            f"Unsupported metric {metric!r}, expected one of {sorted(_METRICS)}"
        ) from None


def similarity(v1: Vector, v2: Vector, metric: str = "cosine") -> float:
    """
    Score two vectors under the given metric (higher means more similar).

    Args:
        v1: First vector
        v2: Second vector
        metric: "cosine" or "euclidean"

    Returns:
        Similarity score
    """
    return get_similarity_function(metric)(v1, v2)


def normalize_vector(v: Vector) -> Vector:
    """
    Normalize a vector to unit length (L2 norm = 1).

    The index never normalizes on its own. Callers relying on cosine similarity
    should normalize stored vectors and queries the same way.

    Args:
        v: Input vector (1D numpy array)

    Returns:
        Normalized vector with L2 norm = 1

    Example:
        >>> v = np.array([3.0, 4.0])
        >>> normalized = normalize_vector(v)
        >>> np.linalg.norm(normalized)  # Should be 1.0
        1.0
    """
    norm = np.linalg.norm(v)

    # Avoid division by zero
    if norm == 0.0:
        return v

    return v / norm
