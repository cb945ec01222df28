"""
HNSW (Hierarchical Navigable Small World) implementation module.

This module contains the core HNSW algorithm components for building and searching
graph-based approximate nearest neighbor indexes. HNSW is a fast and accurate method
for finding similar vectors in high-dimensional spaces.

Components:
- distance: Similarity metrics (cosine, euclidean), higher is always better
- pqueue: Min/max priority queue used by the beam search
- graph: Node and graph storage
- utils: Layer assignment and diversity-aware neighbor selection
- builder: Insertion algorithm
- searcher: Greedy descent and beam search
"""

from semhnsw.hnsw.distance import (
    cosine_similarity,
    euclidean_similarity,
    similarity,
    normalize_vector,
)
from semhnsw.hnsw.pqueue import PriorityQueue
from semhnsw.hnsw.graph import HNSWNode, HNSWGraph
from semhnsw.hnsw.builder import HNSWBuilder
from semhnsw.hnsw.searcher import HNSWSearcher

__all__ = [
    "cosine_similarity",
    "euclidean_similarity",
    "similarity",
    "normalize_vector",
    "PriorityQueue",
    "HNSWNode",
    "HNSWGraph",
    "HNSWBuilder",
    "HNSWSearcher",
]
