"""
Portable records for HNSW graphs.

An index is converted to a plain JSON-compatible dict:

    {
        "M": 16,
        "efConstruction": 200,
        "metric": "cosine",
        "d": 384,
        "maxLayer": 2,
        "entryPointId": 17,
        "efSearch": 64,
        "nodes": [{"id": 0, "vector": [...], "neighbors": [[...], [...]]}, ...]
    }

"efSearch" is optional: records without it (or with null) restore an index
whose query beam width defaults to efConstruction.

The record shape is the compatibility contract with any persistence layer
(file, database blob, network transfer). Nodes are listed in insertion order
and neighbor lists keep their order, so a restored index answers every query
exactly like the one it was taken from.

This module also converts single vectors to and from little-endian float32
blobs for stores that keep raw vector bytes.
"""

import json
import logging
from numbers import Real
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np
import numpy.typing as npt

from semhnsw.config import SUPPORTED_METRICS
from semhnsw.errors import CorruptRecord
from semhnsw.hnsw.graph import HNSWGraph

logger = logging.getLogger(__name__)

Vector = npt.NDArray[np.float32]

RECORD_KEYS = ("M", "efConstruction", "metric", "d", "maxLayer", "entryPointId", "nodes")
OPTIONAL_RECORD_KEYS = ("efSearch",)

_BLOB_DTYPE = np.dtype("<f4")


def graph_to_record(
    graph: HNSWGraph,
    ef_construction: int,
    metric: str,
    ef_search: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Capture the full state of a graph as a portable record.

    Args:
        graph: Graph to serialize
        ef_construction: Construction beam width of the owning index
        metric: Metric name of the owning index
        ef_search: Default query beam width of the owning index (None = unset)

    Returns:
        JSON-compatible dict (see module docstring)
    """
    return {
        "M": graph.M,
        "efConstruction": ef_construction,
        "metric": metric,
        "d": graph.dimension,
        "maxLayer": graph.max_level,
        "entryPointId": graph.entry_point,
        "efSearch": ef_search,
        "nodes": [
            {
                "id": node.id,
                "vector": node.vector.tolist(),
                "neighbors": [list(layer) for layer in node.neighbors],
            }
            for node in graph
        ],
    }


def _is_int(value: Any) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def _require_int(record: Mapping[str, Any], key: str, minimum: int) -> int:
    value = record[key]
    if not _is_int(value) or value < minimum:
        raise CorruptRecord(f"{key!r} must be an integer >= {minimum}, got {value!r}")
    return int(value)


def _parse_vector(raw: Any, dimension: int, node_id: int) -> Vector:
    if not isinstance(raw, (list, tuple)) or not all(
        isinstance(x, Real) and not isinstance(x, bool) for x in raw
    ):
        raise CorruptRecord(f"Node {node_id}: vector must be a list of numbers")
    if len(raw) != dimension:
        raise CorruptRecord(
            f"Node {node_id}: vector has {len(raw)} components, expected {dimension}"
        )
    return np.asarray(raw, dtype=np.float32)


def _parse_neighbors(raw: Any, node_id: int) -> List[List[int]]:
    if not isinstance(raw, (list, tuple)) or len(raw) == 0:
        raise CorruptRecord(f"Node {node_id}: neighbors must be a non-empty list of layers")
    layers = []
    for layer in raw:
        if not isinstance(layer, (list, tuple)) or not all(_is_int(x) for x in layer):
            raise CorruptRecord(f"Node {node_id}: neighbor layers must be lists of integer ids")
        layers.append([int(x) for x in layer])
    return layers


def graph_from_record(record: Any) -> Tuple[HNSWGraph, Dict[str, Any]]:
    """
    Rebuild a graph from a portable record.

    The record is fully validated before anything is returned, so a malformed
    record never yields a partially built graph.

    Args:
        record: Dict produced by graph_to_record (or parsed from its JSON)

    Returns:
        (graph, params) where params holds "ef_construction", "metric" and
        "ef_search" (None when the record does not set it)

    Raises:
        CorruptRecord: If the record is malformed or inconsistent
    """
    if not isinstance(record, Mapping):
        raise CorruptRecord(f"Record must be a mapping, got {type(record).__name__}")

    missing = [key for key in RECORD_KEYS if key not in record]
    if missing:
        raise CorruptRecord(f"Record is missing keys: {missing}")

    M = _require_int(record, "M", 2)
    ef_construction = _require_int(record, "efConstruction", 1)

    metric = record["metric"]
    if metric not in SUPPORTED_METRICS:
        raise CorruptRecord(f"Unsupported metric {metric!r}")

    dimension = record["d"]
    if dimension is not None:
        dimension = _require_int(record, "d", 1)

    ef_search = record.get("efSearch")
    if ef_search is not None:
        ef_search = _require_int(record, "efSearch", 1)

    max_level = record["maxLayer"]
    if not _is_int(max_level):
        raise CorruptRecord(f"'maxLayer' must be an integer, got {max_level!r}")

    raw_nodes = record["nodes"]
    if not isinstance(raw_nodes, (list, tuple)):
        raise CorruptRecord("'nodes' must be a list")
    if raw_nodes and dimension is None:
        raise CorruptRecord("'d' must be set when the record holds nodes")

    parsed = []
    seen = set()
    for raw in raw_nodes:
        if not isinstance(raw, Mapping) or not {"id", "vector", "neighbors"} <= raw.keys():
            raise CorruptRecord("Each node needs 'id', 'vector' and 'neighbors'")
        node_id = raw["id"]
        if not _is_int(node_id):
            raise CorruptRecord(f"Node id must be an integer, got {node_id!r}")
        node_id = int(node_id)
        if node_id in seen:
            raise CorruptRecord(f"Duplicate node id {node_id}")
        seen.add(node_id)
        parsed.append((
            node_id,
            _parse_vector(raw["vector"], dimension, node_id),
            _parse_neighbors(raw["neighbors"], node_id),
        ))

    levels = {node_id: len(layers) - 1 for node_id, _, layers in parsed}
    for node_id, _, layers in parsed:
        for layer, neighbor_ids in enumerate(layers):
            for neighbor_id in neighbor_ids:
                if levels.get(neighbor_id, -1) < layer:
                    raise CorruptRecord(
                        f"Node {node_id}: neighbor {neighbor_id} does not exist at layer {layer}"
                    )

    entry_point = record["entryPointId"]
    if not parsed:
        if entry_point is not None:
            raise CorruptRecord("Empty record must have a null 'entryPointId'")
    else:
        if not _is_int(entry_point) or int(entry_point) not in levels:
            raise CorruptRecord(f"Entry point {entry_point!r} is not a node of the record")
        entry_point = int(entry_point)
        if levels[entry_point] != max_level or max(levels.values()) > max_level:
            raise CorruptRecord(
                f"Entry point level {levels[entry_point]} disagrees with maxLayer {max_level}"
            )

    graph = HNSWGraph(dimension=dimension, M=M)
    for node_id, vector, layers in parsed:
        node = graph.add_node(node_id, vector, len(layers) - 1)
        for layer, neighbor_ids in enumerate(layers):
            node.set_neighbors(layer, neighbor_ids)
    if entry_point is not None:
        graph.set_entry_point(entry_point)

    logger.debug("Restored graph with %d nodes (max level %d)", graph.size(), graph.max_level)
    return graph, {"ef_construction": ef_construction, "metric": metric, "ef_search": ef_search}


def save_record(record: Mapping[str, Any], filepath: str) -> None:
    """Write a record to a JSON file."""
    with open(filepath, 'w') as f:
        json.dump(record, f)


def load_record(filepath: str) -> Dict[str, Any]:
    """
    Read a record from a JSON file.

    Raises:
        CorruptRecord: If the file is not valid JSON
    """
    with open(filepath, 'r') as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as exc:
            raise CorruptRecord(f"{filepath} is not valid JSON: {exc}") from exc


def encode_vector(vector: Vector) -> bytes:
    """Pack a vector into little-endian float32 bytes."""
    return np.asarray(vector, dtype=_BLOB_DTYPE).tobytes()


def decode_vector(blob: bytes, dimension: int) -> Vector:
    """
    Unpack a float32 blob produced by encode_vector.

    Raises:
        CorruptRecord: If the blob size does not match the dimension
    """
    expected = dimension * _BLOB_DTYPE.itemsize
    if len(blob) != expected:
        raise CorruptRecord(
            f"Vector blob has {len(blob)} bytes, expected {expected} for dimension {dimension}"
        )
    return np.frombuffer(blob, dtype=_BLOB_DTYPE).astype(np.float32)
