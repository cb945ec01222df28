"""
SemHNSW - HNSW approximate nearest neighbor index for embedding vectors

A pure-Python HNSW graph with incremental insertion, k-NN search, a portable
record format for persistence, and an optional per-id payload map.
"""

__version__ = "0.1.0"

from semhnsw.index import HNSW
from semhnsw.payload import PayloadIndex
from semhnsw.vector_store import VectorStore
from semhnsw.errors import HNSWError, DimensionMismatch, DuplicateId, CorruptRecord
from semhnsw.config import (
    HNSWConfig,
    get_default_config,
    get_high_recall_config,
    get_fast_build_config,
)

__all__ = [
    "HNSW",
    "PayloadIndex",
    "VectorStore",
    "HNSWError",
    "DimensionMismatch",
    "DuplicateId",
    "CorruptRecord",
    "HNSWConfig",
    "get_default_config",
    "get_high_recall_config",
    "get_fast_build_config",
]
