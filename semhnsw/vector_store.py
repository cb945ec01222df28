"""
Document-level vector storage on top of the HNSW index.

VectorStore is what an application talks to: it maps string document IDs to
internal integer node IDs, keeps per-document metadata, normalizes vectors,
and handles updates and removals by rebuilding the graph from the remaining
vectors (the HNSW index itself never deletes nodes).
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import numpy.typing as npt

from semhnsw.config import HNSWConfig
from semhnsw.errors import CorruptRecord, DimensionMismatch, DuplicateId
from semhnsw.hnsw.distance import normalize_vector
from semhnsw.index import HNSW
from semhnsw.serialization import decode_vector, encode_vector

logger = logging.getLogger(__name__)

Vector = npt.NDArray[np.float32]


class VectorStore:
    """
    In-memory vector database with HNSW indexing.

    IMPORTANT: This class operates on pre-embedded vectors (numpy arrays).
    Text embedding is the user's responsibility. You must convert text to vectors
    using an embedding model before adding them to the store, and embed queries
    with the same model.

    Example:
        >>> store = VectorStore(dimension=3)
        >>> store.add([np.array([1.0, 0.0, 0.0])], ids=["note-a"], metadata=[{"title": "A"}])
        ['note-a']
        >>> store.search(np.array([0.9, 0.1, 0.0]), k=1)[0]["id"]
        'note-a'
    """

    def __init__(
        self,
        dimension: Optional[int] = None,
        M: Optional[int] = None,
        ef_construction: Optional[int] = None,
        ef_search: Optional[int] = None,
        metric: Optional[str] = None,
        normalize: bool = True,
        seed: Optional[int] = None,
        config: Optional[HNSWConfig] = None,
    ) -> None:
        """
        Initialize the vector store.

        Args:
            dimension: Dimensionality of vectors (None = taken from the first add)
            M: HNSW max connections per node (typically 16-64)
            ef_construction: HNSW construction parameter (higher = better quality, slower)
            ef_search: Default search parameter (higher = better recall, slower)
            metric: "cosine" or "euclidean"
            normalize: Whether to normalize vectors to unit length (recommended for cosine similarity)
            seed: Seed for reproducible graph construction
            config: HNSWConfig with defaults; explicit arguments take precedence
        """
        self._index_kwargs: Dict[str, Any] = {
            "M": M,
            "ef_construction": ef_construction,
            "dimension": dimension,
            "metric": metric,
            "ef_search": ef_search,
            "seed": seed,
            "config": config,
        }
        self.normalize = normalize
        self._index = HNSW(**self._index_kwargs)

        # Track next auto-generated document number and next node ID
        self._next_id = 0
        self._next_node = 0

        # ID mapping: external ID <-> internal node ID
        self._id_to_node: Dict[str, int] = {}
        self._node_to_id: Dict[int, str] = {}

        # Metadata storage: external_id -> metadata dict
        self._metadata: Dict[str, dict] = {}

    @property
    def dimension(self) -> Optional[int]:
        return self._index.dimension

    @property
    def index(self) -> HNSW:
        return self._index

    def _prepare(self, vector: Any, expected_dim: Optional[int]) -> Vector:
        vec = np.asarray(vector, dtype=np.float32)
        if vec.ndim != 1:
            raise ValueError(f"Expected a 1-D vector, got shape {vec.shape}")
        if expected_dim is not None and len(vec) != expected_dim:
            raise DimensionMismatch(expected=expected_dim, actual=len(vec))
        if self.normalize:
            vec = normalize_vector(vec)
        return vec.astype(np.float32)

    def add(
        self,
        vectors: Union[Vector, Sequence[Vector]],
        ids: Optional[List[str]] = None,
        metadata: Optional[List[dict]] = None,
    ) -> List[str]:
        """
        Add vectors to the store with optional IDs and metadata.

        All inputs are validated before the first insert, so a bad batch
        leaves the store unchanged.

        Args:
            vectors: Single vector or list of vectors
            ids: Optional list of external IDs (auto-generated if not provided)
            metadata: Optional list of metadata dicts (one per vector)

        Returns:
            List of external document IDs assigned to the added vectors

        Raises:
            DimensionMismatch: If vector dimensions don't match store dimension
            DuplicateId: If an ID already exists (or repeats within the batch)
            ValueError: If number of IDs or metadata doesn't match number of vectors
        """
        # Handle single vector case
        if isinstance(vectors, np.ndarray) and vectors.ndim == 1:
            vectors = [vectors]

        num_vectors = len(vectors)

        # Auto-generate IDs if not provided
        if ids is None:
            ids = [f"doc_{self._next_id + i}" for i in range(num_vectors)]
        elif len(ids) != num_vectors:
            raise ValueError(f"Number of IDs ({len(ids)}) doesn't match number of vectors ({num_vectors})")

        seen = set()
        for ext_id in ids:
            if ext_id in self._id_to_node or ext_id in seen:
                raise DuplicateId(ext_id)
            seen.add(ext_id)

        if metadata is None:
            metadata = [{} for _ in range(num_vectors)]
        elif len(metadata) != num_vectors:
            raise ValueError(f"Number of metadata dicts ({len(metadata)}) doesn't match number of vectors ({num_vectors})")

        expected_dim = self.dimension
        processed = []
        for vec in vectors:
            vec = self._prepare(vec, expected_dim)
            expected_dim = len(vec)
            processed.append(vec)

        for vec, ext_id, meta in zip(processed, ids, metadata):
            self._insert(ext_id, vec, meta)

        self._next_id += num_vectors
        logger.debug("Added %d vectors (size=%d)", num_vectors, self.size())
        return list(ids)

    def _insert(self, ext_id: str, vec: Vector, meta: dict) -> None:
        node_id = self._next_node
        self._index.add_point(node_id, vec)
        self._next_node += 1

        self._id_to_node[ext_id] = node_id
        self._node_to_id[node_id] = ext_id
        self._metadata[ext_id] = meta

    def update(self, ext_id: str, vector: Vector, metadata: Optional[dict] = None) -> None:
        """
        Replace a document's vector (and metadata, when given), then rebuild.

        Raises:
            KeyError: If the ID is unknown
        """
        if ext_id not in self._id_to_node:
            raise KeyError(ext_id)

        vec = self._prepare(vector, self.dimension)
        entries = self._entries()
        entries[ext_id] = (vec, metadata if metadata is not None else self._metadata[ext_id])
        self._rebuild(entries)

    def remove(self, ids: Union[str, List[str]]) -> int:
        """
        Remove documents and rebuild the index from what is left.

        Unknown IDs are ignored.

        Returns:
            Number of documents removed
        """
        if isinstance(ids, str):
            ids = [ids]

        entries = self._entries()
        removed = 0
        for ext_id in ids:
            if entries.pop(ext_id, None) is not None:
                removed += 1

        if removed:
            self._rebuild(entries)
        return removed

    def _entries(self) -> Dict[str, tuple]:
        """Current (vector, metadata) per external ID, in insertion order."""
        return {
            ext_id: (self._index.get_vector(node_id), self._metadata[ext_id])
            for node_id, ext_id in self._node_to_id.items()
        }

    def _rebuild(self, entries: Mapping[str, tuple]) -> None:
        kwargs = dict(self._index_kwargs)
        if kwargs["dimension"] is None and entries:
            kwargs["dimension"] = len(next(iter(entries.values()))[0])
        self._index = HNSW(**kwargs)
        self._next_node = 0
        self._id_to_node.clear()
        self._node_to_id.clear()
        self._metadata.clear()

        for ext_id, (vec, meta) in entries.items():
            self._insert(ext_id, vec, meta)

        logger.info("Rebuilt HNSW index with %d vectors", self.size())

    def search(
        self, query: Vector, k: int = 10, ef_search: Optional[int] = None
    ) -> List[dict]:
        """
        Search for nearest neighbors.

        Args:
            query: Query vector (must use the same embedding model as stored vectors)
            k: Number of results to return
            ef_search: Override default ef_search for this query

        Returns:
            List of dicts with keys 'id', 'score', 'metadata', best first

        Raises:
            DimensionMismatch: If query dimension doesn't match store dimension
        """
        if self.size() == 0 or k <= 0:
            return []

        query = self._prepare(query, self.dimension)
        results = self._index.search_knn(query, k, ef_search=ef_search)

        return [
            {
                "id": self._node_to_id[result["id"]],
                "score": result["score"],
                "metadata": self._metadata[self._node_to_id[result["id"]]],
            }
            for result in results
        ]

    def get_metadata(self, ext_id: str) -> Optional[dict]:
        return self._metadata.get(ext_id)

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get statistics about the vector store.

        Returns:
            Dictionary with size and graph shape
        """
        return {
            "total_vectors": self.size(),
            "dimension": self.dimension,
            "metric": self._index.metric,
            "max_level": self._index.max_level,
            "M": self._index.M,
            "ef_construction": self._index.ef_construction,
        }

    def size(self) -> int:
        """
        Get the total number of vectors in the store.

        Returns:
            Number of vectors stored
        """
        return self._index.size()

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, ext_id: object) -> bool:
        return ext_id in self._id_to_node

    def export_rows(self) -> List[Dict[str, Any]]:
        """
        Export documents as rows for a blob-oriented persistence layer.

        Returns:
            Dicts with 'id', 'vector_blob' (float32 bytes), 'dim' and 'metadata'
        """
        return [
            {
                "id": ext_id,
                "vector_blob": encode_vector(vec),
                "dim": len(vec),
                "metadata": meta,
            }
            for ext_id, (vec, meta) in self._entries().items()
        ]

    def load_rows(self, rows: Sequence[Mapping[str, Any]]) -> int:
        """
        Replace the store contents with rows from export_rows().

        Rows that cannot be decoded are logged and skipped; the index is then
        rebuilt from the valid ones.

        Returns:
            Number of rows loaded
        """
        entries: Dict[str, tuple] = {}
        expected_dim = self._index_kwargs["dimension"]

        for row in rows:
            try:
                vec = decode_vector(row["vector_blob"], row["dim"])
                vec = self._prepare(vec, expected_dim)
                ext_id = row["id"]
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping invalid row %r: %s", row.get("id") if isinstance(row, Mapping) else row, exc)
                continue

            if ext_id in entries:
                logger.warning("Skipping duplicate row %r", ext_id)
                continue

            expected_dim = len(vec)
            entries[ext_id] = (vec, row.get("metadata") or {})

        logger.info("Loaded %d of %d rows", len(entries), len(rows))
        self._rebuild(entries)
        return len(entries)

    def save(self, filepath: str) -> None:
        """
        Save the vector store (index record, ID mapping and metadata) to JSON.

        Args:
            filepath: Path to save the store (e.g., "store.json")
        """
        state = {
            "store": {
                "normalize": self.normalize,
                "seed": self._index.config.seed,
                "next_id": self._next_id,
                "next_node": self._next_node,
                "nodes": [[node_id, ext_id] for node_id, ext_id in self._node_to_id.items()],
                "metadata": self._metadata,
            },
            "index": self._index.to_portable(),
        }
        with open(filepath, 'w') as f:
            json.dump(state, f)
        logger.info("Saved vector store with %d vectors to %s", self.size(), filepath)

    @classmethod
    def load(cls, filepath: str) -> 'VectorStore':
        """
        Load a vector store from disk.

        Args:
            filepath: Path to the saved store

        Returns:
            Loaded VectorStore instance

        Raises:
            CorruptRecord: If the file is not a saved store
        """
        with open(filepath, 'r') as f:
            try:
                state = json.load(f)
            except json.JSONDecodeError as exc:
                raise CorruptRecord(f"{filepath} is not valid JSON: {exc}") from exc

        try:
            store_state = state["store"]
            seed = store_state.get("seed")
            index = HNSW.from_portable(state["index"], seed=seed)
            store = cls(
                dimension=index.dimension,
                M=index.M,
                ef_construction=index.ef_construction,
                ef_search=index.ef_search,
                metric=index.metric,
                normalize=store_state["normalize"],
                seed=seed,
            )
            store._index = index
            store._next_id = store_state["next_id"]
            store._next_node = store_state["next_node"]
            for node_id, ext_id in store_state["nodes"]:
                if node_id not in index:
                    raise CorruptRecord(f"Store maps unknown node {node_id}")
                store._id_to_node[ext_id] = node_id
                store._node_to_id[node_id] = ext_id
                store._metadata[ext_id] = store_state["metadata"].get(ext_id, {})

            unmapped = set(index.ids()) - set(store._node_to_id)
            if unmapped:
                raise CorruptRecord(f"Index nodes without a document id: {sorted(unmapped)[:10]}")
        except (AttributeError, KeyError, TypeError) as exc:
            raise CorruptRecord(f"{filepath} is not a saved vector store: {exc}") from exc

        logger.info("Loaded vector store with %d vectors from %s", store.size(), filepath)
        return store
