"""
Pytest configuration and shared fixtures for SemHNSW tests
"""

import pytest
import numpy as np

from semhnsw import HNSW
from semhnsw.hnsw.distance import normalize_vector


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator for reproducible vectors."""
    return np.random.default_rng(42)


@pytest.fixture
def sample_vectors(rng) -> np.ndarray:
    """Generate sample vectors for testing."""
    return rng.random((10, 384)).astype(np.float32)


@pytest.fixture
def random_vectors_8d() -> np.ndarray:
    """500 random 8-dimensional vectors."""
    return np.random.default_rng(7).standard_normal((500, 8)).astype(np.float32)


@pytest.fixture
def built_index(random_vectors_8d) -> HNSW:
    """Cosine index over random_vectors_8d with ids 0..499."""
    index = HNSW(M=16, ef_construction=100, metric="cosine", seed=3)
    index.build_index(enumerate(random_vectors_8d))
    return index


@pytest.fixture
def two_clusters() -> tuple:
    """
    100 normalized 32-d vectors from two well separated clusters.

    Returns:
        (vectors, centroid_a, centroid_b); ids 0..49 are cluster A, 50..99 cluster B
    """
    rng = np.random.default_rng(11)
    dimension = 32

    centroid_a = np.zeros(dimension, dtype=np.float32)
    centroid_a[:dimension // 2] = 1.0
    centroid_b = np.zeros(dimension, dtype=np.float32)
    centroid_b[dimension // 2:] = 1.0

    vectors = []
    for centroid in (centroid_a, centroid_b):
        for _ in range(50):
            noisy = centroid + 0.1 * rng.standard_normal(dimension)
            vectors.append(normalize_vector(noisy.astype(np.float32)))

    return np.array(vectors, dtype=np.float32), centroid_a, centroid_b


@pytest.fixture
def dimension() -> int:
    """Standard vector dimension for testing."""
    return 384
