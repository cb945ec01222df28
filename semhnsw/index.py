"""
HNSW index: the public entry point for building and querying a graph.

IMPORTANT: The index operates on pre-embedded vectors (numpy arrays or lists of
floats). Producing embeddings is the caller's responsibility, and so is
normalization: for cosine similarity, normalize stored vectors and queries the
same way (see semhnsw.hnsw.distance.normalize_vector).

Example:
    >>> index = HNSW(M=16, ef_construction=200, metric="cosine", seed=7)
    >>> index.add_point(0, [1.0, 0.0])
    >>> index.add_point(1, [0.0, 1.0])
    >>> index.search_knn([0.9, 0.1], k=1)
    [{'id': 0, 'score': 0.99...}]
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import numpy.typing as npt

from semhnsw.config import HNSWConfig, get_default_config
from semhnsw.errors import DimensionMismatch, DuplicateId
from semhnsw.hnsw.builder import HNSWBuilder
from semhnsw.hnsw.distance import get_similarity_function
from semhnsw.hnsw.graph import HNSWGraph
from semhnsw.hnsw.searcher import HNSWSearcher
from semhnsw.hnsw.utils import assign_layer
from semhnsw.serialization import graph_from_record, graph_to_record, load_record, save_record

logger = logging.getLogger(__name__)

Vector = npt.NDArray[np.float32]
VectorLike = Union[Vector, Sequence[float]]
Entry = Union[Tuple[int, VectorLike], Mapping[str, Any]]


def _as_node_id(node_id: Any) -> int:
    """Plain int id; numpy integers are converted so records stay JSON-safe."""
    if isinstance(node_id, bool) or not isinstance(node_id, (int, np.integer)):
        raise TypeError(f"Node id must be an integer, got {node_id!r}")
    return int(node_id)


class HNSW:
    """
    Hierarchical Navigable Small World index over fixed-length vectors.

    Supports incremental insertion, approximate k-NN search and a portable
    record format for persistence. Nodes cannot be deleted; rebuild the index
    from a filtered set of vectors instead.

    Not thread-safe: serialize access externally (one writer at a time, no
    readers during a write).
    """

    def __init__(
        self,
        M: Optional[int] = None,
        ef_construction: Optional[int] = None,
        dimension: Optional[int] = None,
        metric: Optional[str] = None,
        ef_search: Optional[int] = None,
        seed: Optional[int] = None,
        config: Optional[HNSWConfig] = None,
    ) -> None:
        """
        Create an empty index.

        Args:
            M: Target edges per node on layers > 0 (layer 0 allows 2*M)
            ef_construction: Beam width while linking new nodes
            dimension: Vector dimension (None = taken from the first insert)
            metric: "cosine" or "euclidean"
            ef_search: Default beam width for queries (None = ef_construction)
            seed: Seed for the level draw (None = nondeterministic)
            config: HNSWConfig with defaults; explicit arguments take precedence
        """
        if config is None:
            config = get_default_config()

        # Explicit arguments override the config; re-validate the merged result
        overrides = {
            "M": M,
            "ef_construction": ef_construction,
            "dimension": dimension,
            "metric": metric,
            "ef_search": ef_search,
            "seed": seed,
        }
        merged = config.to_dict()
        merged.update({key: value for key, value in overrides.items() if value is not None})
        self.config = HNSWConfig.from_dict(merged)

        self.M = self.config.M
        self.ef_construction = self.config.ef_construction
        self.metric = self.config.metric
        self.ef_search = self.config.ef_search

        self._similarity = get_similarity_function(self.metric)
        self._rng = np.random.default_rng(self.config.seed)

        self._graph = HNSWGraph(dimension=self.config.dimension, M=self.M)
        self._builder = HNSWBuilder(self._graph, self._similarity, self.ef_construction)
        self._searcher = HNSWSearcher(
            self._graph,
            self._similarity,
            ef_search=self.ef_search if self.ef_search is not None else self.ef_construction,
        )

    @property
    def dimension(self) -> Optional[int]:
        return self._graph.dimension

    @property
    def graph(self) -> HNSWGraph:
        return self._graph

    @property
    def entry_point(self) -> Optional[int]:
        return self._graph.entry_point

    @property
    def max_level(self) -> int:
        return self._graph.max_level

    def _as_vector(self, vector: VectorLike) -> Vector:
        """Convert input to a 1-D float32 array of the index dimension."""
        array = np.array(vector, dtype=np.float32)
        if array.ndim != 1:
            raise ValueError(f"Expected a 1-D vector, got shape {array.shape}")
        if self.dimension is not None and len(array) != self.dimension:
            raise DimensionMismatch(expected=self.dimension, actual=len(array))
        return array

    def add_point(self, node_id: int, vector: VectorLike) -> None:
        """
        Insert a vector under a caller-assigned id.

        Args:
            node_id: Unique integer id
            vector: Vector of the index dimension (the first insert fixes it
                    when no dimension was given)

        Raises:
            TypeError: If node_id is not an integer (bools are rejected)
            DuplicateId: If node_id is already indexed (nothing is changed)
            DimensionMismatch: If the vector length is wrong (nothing is changed)
        """
        node_id = _as_node_id(node_id)
        if node_id in self._graph:
            raise DuplicateId(node_id)

        array = self._as_vector(vector)
        level = assign_layer(
            self._rng,
            level_multiplier=self._graph.level_multiplier,
            max_level=self.config.max_level,
        )
        self._builder.insert(array, node_id=node_id, level=level)

        logger.debug("Inserted node %s at level %d (size=%d)", node_id, level, self.size())

    def build_index(self, entries: Iterable[Entry]) -> None:
        """
        Insert many vectors, equivalent to add_point for each entry in order.

        Args:
            entries: (id, vector) pairs or mappings with "id" and "vector" keys
        """
        count = 0
        for entry in entries:
            if isinstance(entry, Mapping):
                node_id, vector = entry["id"], entry["vector"]
            else:
                node_id, vector = entry
            self.add_point(node_id, vector)
            count += 1

        logger.info(
            "Built HNSW index with %d new vectors (size=%d, max_level=%d)",
            count, self.size(), self.max_level,
        )

    def search_knn(
        self, query: VectorLike, k: int, ef_search: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Approximate k nearest neighbors of a query.

        Args:
            query: Query vector of the index dimension
            k: Number of results; k <= 0 returns an empty list
            ef_search: Beam width for this query (default: index ef_search,
                       else ef_construction; never below k)

        Returns:
            Up to k {"id", "score"} dicts, best first, ties in insertion order

        Raises:
            DimensionMismatch: If the query length is wrong
        """
        if k <= 0:
            logger.debug("search_knn called with k=%d, returning no results", k)
            return []

        array = self._as_vector(query)
        results = self._searcher.search(array, k=k, ef_search=ef_search)
        return [{"id": node_id, "score": score} for node_id, score in results]

    def get_vector(self, node_id: int) -> Optional[Vector]:
        """Stored vector of a node, or None if the id is unknown."""
        node = self._graph.get_node(node_id)
        return None if node is None else node.vector

    def ids(self) -> List[int]:
        """All indexed ids in insertion order."""
        return list(self._graph.nodes)

    def size(self) -> int:
        """Number of indexed vectors."""
        return self._graph.size()

    def __len__(self) -> int:
        return self._graph.size()

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._graph

    def to_portable(self) -> Dict[str, Any]:
        """Full index state as a JSON-compatible record."""
        return graph_to_record(
            self._graph, self.ef_construction, self.metric, ef_search=self.ef_search
        )

    @classmethod
    def from_portable(
        cls,
        record: Mapping[str, Any],
        seed: Optional[int] = None,
        ef_search: Optional[int] = None,
    ) -> "HNSW":
        """
        Rebuild an index from a record produced by to_portable.

        Args:
            record: Portable record
            seed: Seed for level draws of future insertions
            ef_search: Default query beam width of the restored index
                       (None = the width stored in the record, if any)

        Raises:
            CorruptRecord: If the record is malformed (no index is built)
        """
        graph, params = graph_from_record(record)

        index = cls(
            M=graph.M,
            ef_construction=params["ef_construction"],
            dimension=graph.dimension,
            metric=params["metric"],
            ef_search=ef_search if ef_search is not None else params["ef_search"],
            seed=seed,
        )
        index._attach_graph(graph)
        return index

    def _attach_graph(self, graph: HNSWGraph) -> None:
        self._graph = graph
        self._builder.graph = graph
        self._searcher.graph = graph

    def save(self, filepath: str) -> None:
        """
        Save the index to a JSON file.

        Args:
            filepath: Path to save the index (e.g., "index.json")
        """
        save_record(self.to_portable(), filepath)
        logger.info("Saved HNSW index with %d vectors to %s", self.size(), filepath)

    @classmethod
    def load(cls, filepath: str, seed: Optional[int] = None) -> "HNSW":
        """
        Load an index saved with save().

        Raises:
            CorruptRecord: If the file does not hold a valid record
        """
        index = cls.from_portable(load_record(filepath), seed=seed)
        logger.info("Loaded HNSW index with %d vectors from %s", index.size(), filepath)
        return index

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"HNSW(size={self.size()}, max_level={self.max_level}, M={self.M}, "
            f"ef_construction={self.ef_construction}, metric={self.metric}, dim={self.dimension})"
        )
