"""
Per-id application payloads stored next to an HNSW index.

PayloadIndex wraps (rather than subclasses) an HNSW index and keeps a side
table of id -> payload, so search results come back with their data attached
and the core index stays unaware of what callers store.
"""

import logging
from typing import Any, Dict, Generic, Iterable, List, Mapping, Optional, Tuple, TypeVar

from semhnsw.errors import CorruptRecord
from semhnsw.index import HNSW, VectorLike

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PayloadIndex(Generic[T]):
    """
    HNSW index with an attached id -> payload map.

    Example:
        >>> index: PayloadIndex[dict] = PayloadIndex(HNSW(seed=1))
        >>> index.add_point_with_data(0, [1.0, 0.0], {"title": "first"})
        >>> index.search_knn_with_data([1.0, 0.0], k=1)[0]["data"]
        {'title': 'first'}
    """

    def __init__(self, index: Optional[HNSW] = None, **index_kwargs: Any) -> None:
        """
        Args:
            index: Index to wrap (default: new HNSW built from index_kwargs)
            **index_kwargs: Forwarded to HNSW() when no index is given
        """
        self.index = index if index is not None else HNSW(**index_kwargs)
        self._payloads: Dict[int, T] = {}

    def add_point(self, node_id: int, vector: VectorLike) -> None:
        """Insert a vector without a payload."""
        self.index.add_point(node_id, vector)

    def add_point_with_data(self, node_id: int, vector: VectorLike, data: T) -> None:
        """
        Insert a vector and record its payload.

        The payload is stored only after the graph insert succeeded, so a
        rejected insert leaves both the graph and the map untouched.
        """
        self.index.add_point(node_id, vector)
        self._payloads[int(node_id)] = data

    def build_index_with_data(self, entries: Iterable[Tuple[int, VectorLike, T]]) -> None:
        """Insert (id, vector, data) triples in order."""
        count = 0
        for node_id, vector, data in entries:
            self.add_point_with_data(node_id, vector, data)
            count += 1
        logger.info("Inserted %d vectors with payloads (size=%d)", count, len(self))

    def get_point_data(self, node_id: int) -> Optional[T]:
        """Payload for an id, or None if none was attached."""
        return self._payloads.get(node_id)

    def search_knn(self, query: VectorLike, k: int, ef_search: Optional[int] = None) -> List[Dict[str, Any]]:
        return self.index.search_knn(query, k, ef_search=ef_search)

    def search_knn_with_data(
        self, query: VectorLike, k: int, ef_search: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Like HNSW.search_knn, with each result's payload under "data"."""
        return [
            {**result, "data": self.get_point_data(result["id"])}
            for result in self.index.search_knn(query, k, ef_search=ef_search)
        ]

    def __len__(self) -> int:
        return len(self.index)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.index

    def to_portable(self) -> Dict[str, Any]:
        """Index record plus the payload map under "db" as [id, data] pairs."""
        record = self.index.to_portable()
        record["db"] = [[node_id, data] for node_id, data in self._payloads.items()]
        return record

    @classmethod
    def from_portable(
        cls,
        record: Mapping[str, Any],
        seed: Optional[int] = None,
        ef_search: Optional[int] = None,
    ) -> "PayloadIndex":
        """
        Rebuild an index and its payload map.

        A record without "db" restores an empty map. seed and ef_search are
        forwarded to HNSW.from_portable.

        Raises:
            CorruptRecord: If the graph record or the payload entries are malformed
        """
        index = HNSW.from_portable(record, seed=seed, ef_search=ef_search)

        raw_db = record.get("db") or []
        if not isinstance(raw_db, (list, tuple)):
            raise CorruptRecord("'db' must be a list of [id, data] pairs")

        payloads: Dict[int, Any] = {}
        for entry in raw_db:
            if not isinstance(entry, (list, tuple)) or len(entry) != 2:
                raise CorruptRecord(f"Invalid payload entry {entry!r}")
            node_id, data = entry
            if not isinstance(node_id, int) or node_id not in index:
                raise CorruptRecord(f"Payload for unknown id {node_id!r}")
            payloads[node_id] = data

        wrapped = cls(index)
        wrapped._payloads = payloads
        return wrapped
