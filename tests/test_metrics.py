"""
Unit tests for metrics module.

Tests recall@k and brute-force ground truth.
"""

import pytest
import numpy as np
from semhnsw.metrics import brute_force_knn, compute_recall_at_k


class TestRecallAtK:
    """Tests for recall@k computation."""

    def test_perfect_recall(self):
        """Test recall@10 with perfect retrieval."""
        retrieved = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]
        ground_truth = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]
        recall = compute_recall_at_k(retrieved, ground_truth, k=10)
        assert recall == 1.0, "Perfect retrieval should give recall=1.0"

    def test_partial_recall(self):
        """Test recall@10 with 70% correct retrieval."""
        retrieved = [1, 2, 3, 4, 5, 6, 7, 99, 98, 97]
        ground_truth = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]
        recall = compute_recall_at_k(retrieved, ground_truth, k=10)
        assert recall == 0.7, "7/10 correct should give recall=0.7"

    def test_zero_recall(self):
        """Test recall@10 with no correct retrievals."""
        retrieved = [99, 98, 97, 96, 95, 94, 93, 92, 91, 90]
        ground_truth = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]
        recall = compute_recall_at_k(retrieved, ground_truth, k=10)
        assert recall == 0.0, "No correct retrievals should give recall=0.0"

    def test_recall_at_different_k(self):
        """Test recall with different k values."""
        retrieved = [1, 2, 3, 99, 98]
        ground_truth = [1, 2, 3, 4, 5]

        assert compute_recall_at_k(retrieved, ground_truth, k=3) == 1.0
        assert compute_recall_at_k(retrieved, ground_truth, k=5) == 0.6

    def test_order_does_not_matter(self):
        """Recall counts overlap, not rank."""
        assert compute_recall_at_k([3, 2, 1], [1, 2, 3], k=3) == 1.0

    def test_non_positive_k(self):
        assert compute_recall_at_k([1], [1], k=0) == 0.0


class TestBruteForce:
    """Tests for exact ground truth."""

    def test_cosine_ranking(self):
        vectors = [
            np.array([1.0, 0.0], dtype=np.float32),
            np.array([0.0, 1.0], dtype=np.float32),
            np.array([0.7, 0.7], dtype=np.float32),
        ]
        result = brute_force_knn(vectors, [10, 11, 12], np.array([1.0, 0.1], dtype=np.float32), k=2)

        assert [node_id for node_id, _ in result] == [10, 12]
        assert result[0][1] > result[1][1]

    def test_euclidean_ranking(self):
        vectors = [np.array([float(i)], dtype=np.float32) for i in range(5)]
        result = brute_force_knn(vectors, list(range(5)), np.array([3.2], dtype=np.float32), k=3, metric="euclidean")

        assert [node_id for node_id, _ in result] == [3, 4, 2]

    def test_ties_keep_input_order(self):
        vectors = [np.array([1.0, 0.0], dtype=np.float32)] * 3
        result = brute_force_knn(vectors, [7, 3, 5], np.array([1.0, 0.0], dtype=np.float32), k=3)

        assert [node_id for node_id, _ in result] == [7, 3, 5]

    def test_k_larger_than_data(self):
        vectors = [np.array([1.0, 0.0], dtype=np.float32)]
        assert len(brute_force_knn(vectors, [0], vectors[0], k=10)) == 1

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            brute_force_knn([np.zeros(2, dtype=np.float32)], [0, 1], np.zeros(2, dtype=np.float32), k=1)
