"""
End-to-end tests for the HNSW index facade.

These tests verify the public index API:
- Construction and configuration precedence
- Insertion (single and bulk), dimension and duplicate checks
- k-NN search behaviour, ranking and recall
- Graph invariants after realistic builds
"""

import itertools

import numpy as np
import pytest
from semhnsw import HNSW, HNSWConfig, DimensionMismatch, DuplicateId
from semhnsw.graph_validator import GraphValidator
from semhnsw.hnsw.distance import normalize_vector
from semhnsw.metrics import brute_force_knn


def test_create_index_defaults():
    """Defaults follow the documented parameters"""
    index = HNSW()

    assert index.M == 16
    assert index.ef_construction == 200
    assert index.metric == "cosine"
    assert index.dimension is None
    assert index.size() == 0
    assert index.entry_point is None
    assert index.max_level == -1


def test_explicit_arguments_override_config():
    """Explicit constructor arguments win over config values"""
    config = HNSWConfig(M=8, ef_construction=50, metric="euclidean")
    index = HNSW(M=12, config=config)

    assert index.M == 12
    assert index.ef_construction == 50
    assert index.metric == "euclidean"


def test_invalid_metric_rejected():
    """Unsupported metrics fail at construction"""
    with pytest.raises(ValueError):
        HNSW(metric="dot")


def test_first_insert_sets_dimension_and_entry_point():
    """The first vector fixes the dimension and becomes the entry point"""
    index = HNSW(seed=0)
    index.add_point(42, [0.1, 0.2, 0.3])

    assert index.dimension == 3
    assert index.entry_point == 42
    assert index.graph.get_node(42).neighbors == [[] for _ in range(index.max_level + 1)]


def test_dimension_mismatch_on_insert():
    """Wrong-length vectors are rejected without touching the index"""
    index = HNSW(dimension=3, seed=0)
    index.add_point(0, [1.0, 0.0, 0.0])

    with pytest.raises(DimensionMismatch):
        index.add_point(1, [1.0, 0.0])

    assert index.size() == 1
    assert 1 not in index


def test_dimension_mismatch_on_search():
    """Queries must match the index dimension"""
    index = HNSW(seed=0)
    index.add_point(0, [1.0, 0.0, 0.0])

    with pytest.raises(DimensionMismatch):
        index.search_knn([1.0, 0.0], k=1)


def test_duplicate_id_rejected():
    """Reusing an id raises and leaves the stored vector unchanged"""
    index = HNSW(seed=0)
    index.add_point(7, [1.0, 0.0])

    with pytest.raises(DuplicateId):
        index.add_point(7, [0.0, 1.0])

    assert index.size() == 1
    assert np.allclose(index.get_vector(7), [1.0, 0.0])


def test_search_empty_index():
    """An empty index returns no results"""
    assert HNSW().search_knn([1.0, 0.0], k=5) == []


def test_search_non_positive_k():
    """k <= 0 returns an empty list instead of raising"""
    index = HNSW(seed=0)
    index.add_point(0, [1.0, 0.0])

    assert index.search_knn([1.0, 0.0], k=0) == []
    assert index.search_knn([1.0, 0.0], k=-1) == []


def test_search_result_format():
    """Results are {'id', 'score'} dicts, best first"""
    index = HNSW(seed=0)
    index.build_index([(0, [1.0, 0.0]), (1, [0.0, 1.0]), (2, [0.7, 0.7])])

    results = index.search_knn([1.0, 0.0], k=2)

    assert [r["id"] for r in results] == [0, 2]
    assert results[0]["score"] == pytest.approx(1.0)
    assert set(results[0]) == {"id", "score"}


def test_build_index_accepts_mappings():
    """Bulk entries may be dicts with 'id' and 'vector'"""
    index = HNSW(seed=0)
    index.build_index([{"id": 10, "vector": [1.0, 0.0]}, {"id": 20, "vector": [0.0, 1.0]}])

    assert index.ids() == [10, 20]
    assert 20 in index


def test_same_seed_builds_same_graph(random_vectors_8d):
    """Seeded level draws give identical graphs"""
    first = HNSW(M=8, ef_construction=50, seed=123)
    second = HNSW(M=8, ef_construction=50, seed=123)
    first.build_index(enumerate(random_vectors_8d[:100]))
    second.build_index(enumerate(random_vectors_8d[:100]))

    assert first.to_portable() == second.to_portable()


def test_euclidean_index_ranks_by_distance():
    """With the euclidean metric, the closest point wins"""
    index = HNSW(metric="euclidean", seed=0)
    index.build_index([(i, [float(i), 0.0]) for i in range(10)])

    results = index.search_knn([6.2, 0.0], k=3)

    assert [r["id"] for r in results] == [6, 7, 5]
    assert results[0]["score"] == pytest.approx(1.0 / 1.2, rel=1e-5)


def test_recall_matches_brute_force(built_index, random_vectors_8d):
    """Top-1 agrees with brute force in at least 95% of queries"""
    rng = np.random.default_rng(99)
    queries = rng.standard_normal((100, 8)).astype(np.float32)
    ids = list(range(len(random_vectors_8d)))

    hits = 0
    for query in queries:
        expected = brute_force_knn(random_vectors_8d, ids, query, k=1, metric="cosine")[0][0]
        results = built_index.search_knn(query, k=10)
        hits += results[0]["id"] == expected

    assert hits >= 95, f"Top-1 recall too low: {hits}/100"


def test_two_clusters_top5_from_same_cluster(two_clusters):
    """A query near cluster A only returns cluster A ids"""
    vectors, centroid_a, _ = two_clusters
    index = HNSW(M=16, ef_construction=200, metric="cosine", seed=5)
    index.build_index(enumerate(vectors))

    results = index.search_knn(normalize_vector(centroid_a), k=5)

    assert len(results) == 5
    assert all(r["id"] < 50 for r in results), results


def test_insertion_order_does_not_change_top1():
    """Any insertion order of a small set yields the brute-force top-1"""
    points = {
        0: np.array([1.0, 0.0, 0.0], dtype=np.float32),
        1: np.array([0.0, 1.0, 0.0], dtype=np.float32),
        2: np.array([0.6, 0.6, 0.5], dtype=np.float32),
    }
    queries = [
        np.array([0.9, 0.1, 0.0], dtype=np.float32),
        np.array([0.1, 0.9, 0.1], dtype=np.float32),
        np.array([0.5, 0.5, 0.6], dtype=np.float32),
    ]

    for order in itertools.permutations(points):
        index = HNSW(M=4, seed=1)
        index.build_index((i, points[i]) for i in order)

        for query in queries:
            expected = brute_force_knn(list(points.values()), list(points), query, k=1)[0][0]
            assert index.search_knn(query, k=1)[0]["id"] == expected


def test_graph_invariants_after_build(built_index):
    """Edges are symmetric and degrees bounded (M above layer 0, 2M on layer 0)"""
    validator = GraphValidator(built_index.graph)

    assert validator.find_asymmetric_edges() == []
    assert validator.find_degree_violations() == []
    assert validator.find_entry_point_issues() == []

    for node in built_index.graph:
        assert len(node.get_neighbors(0)) <= 2 * built_index.M
        for layer in range(1, node.level + 1):
            assert len(node.get_neighbors(layer)) <= built_index.M


def test_entry_point_has_max_level(built_index):
    """The entry point sits on the top layer"""
    graph = built_index.graph

    assert graph.get_node(graph.entry_point).level == graph.max_level
    assert max(node.level for node in graph) == graph.max_level


@pytest.mark.parametrize("bad_id", ["a", 1.0, True, None])
def test_non_integer_ids_rejected(bad_id):
    """Only integer ids are accepted, so every record stays loadable"""
    index = HNSW(seed=0)

    with pytest.raises(TypeError):
        index.add_point(bad_id, [1.0, 0.0])

    assert index.size() == 0
    assert index.dimension is None


def test_numpy_integer_ids_are_stored_as_int(tmp_path):
    """numpy integer ids become plain ints and survive save/load"""
    index = HNSW(seed=0)
    index.build_index([(np.int64(0), [1.0, 0.0]), (np.int32(1), [0.0, 1.0])])

    assert all(type(node_id) is int for node_id in index.ids())

    path = tmp_path / "index.json"
    index.save(str(path))
    loaded = HNSW.load(str(path))

    assert loaded.ids() == [0, 1]
    assert loaded.search_knn([1.0, 0.0], k=1)[0]["id"] == 0
