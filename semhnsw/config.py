"""Configuration for SemHNSW indexes.

Usage:
    from semhnsw import HNSW, HNSWConfig

    # Default config
    index = HNSW()

    # Custom config
    config = HNSWConfig(M=32, ef_construction=400)
    index = HNSW(config=config)

    # From file
    config = HNSWConfig.from_json("my_config.json")
    index = HNSW(config=config)
"""

from typing import Dict, Any, Optional
import json
from dataclasses import dataclass, asdict


SUPPORTED_METRICS = ("cosine", "euclidean")


@dataclass
class HNSWConfig:
    """Configuration for an HNSW index.

    Graph parameters:
        M: Target number of bidirectional edges per node on layers > 0
           (layer 0 allows 2*M)
        ef_construction: Candidate list size used while linking a new node
        max_level: Upper cap for the randomly drawn top layer of a node

    Search parameters:
        ef_search: Default candidate list size for queries. None means
                   max(k, ef_construction)

    Vector parameters:
        metric: "cosine" or "euclidean"
        dimension: Vector dimension, None to take it from the first insert

    Reproducibility:
        seed: Seed for the level draw generator (None = nondeterministic)
    """

    # Graph parameters
    M: int = 16
    ef_construction: int = 200
    max_level: int = 16

    # Search parameters
    ef_search: Optional[int] = None

    # Vector parameters
    metric: str = "cosine"
    dimension: Optional[int] = None

    # Reproducibility
    seed: Optional[int] = None

    # Metadata
    config_name: str = "default"

    def __post_init__(self):
        """Validate configuration."""
        if self.M < 2:
            raise ValueError("M must be >= 2")

        if self.ef_construction < 1:
            raise ValueError("ef_construction must be >= 1")

        if self.ef_search is not None and self.ef_search < 1:
            raise ValueError("ef_search must be >= 1")

        if self.max_level < 0:
            raise ValueError("max_level must be >= 0")

        if self.metric not in SUPPORTED_METRICS:
            raise ValueError(f"metric must be one of {list(SUPPORTED_METRICS)}")

        if self.dimension is not None and self.dimension < 1:
            raise ValueError("dimension must be >= 1")

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    def to_json(self, filepath: str) -> None:
        """Save configuration to JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'HNSWConfig':
        """Load configuration from dictionary."""
        return cls(**config_dict)

    @classmethod
    def from_json(cls, filepath: str) -> 'HNSWConfig':
        """Load configuration from JSON file."""
        with open(filepath, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"HNSWConfig("
            f"{self.config_name}, "
            f"M={self.M}, "
            f"ef_construction={self.ef_construction}, "
            f"metric={self.metric})"
        )


# Preset configurations

def get_default_config() -> HNSWConfig:
    """Default configuration (recommended)."""
    return HNSWConfig(config_name="default")


def get_high_recall_config() -> HNSWConfig:
    """Denser graph and wider beams for recall-sensitive workloads.

    Roughly doubles memory per node and build time compared to the default.
    """
    return HNSWConfig(
        config_name="high_recall",
        M=32,
        ef_construction=400,
        ef_search=200,
    )


def get_fast_build_config() -> HNSWConfig:
    """Cheaper construction for frequently rebuilt, small indexes."""
    return HNSWConfig(
        config_name="fast_build",
        M=8,
        ef_construction=64,
    )
