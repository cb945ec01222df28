"""
Exceptions raised by SemHNSW.

All errors derive from HNSWError so callers can catch index failures in one place.
They also derive from ValueError because every one of them describes bad input
(a vector, an id, or a serialized record) rather than an internal fault.
"""


class HNSWError(Exception):
    """Base class for all index errors."""


class DimensionMismatch(HNSWError, ValueError):
    """A vector's length disagrees with the index dimension."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Vector dimension {actual} doesn't match index dimension {expected}"
        )


class DuplicateId(HNSWError, ValueError):
    """An insertion reused an id that is already present."""

    def __init__(self, node_id) -> None:
        self.node_id = node_id
        super().__init__(f"ID {node_id!r} already exists in the index")


class CorruptRecord(HNSWError, ValueError):
    """A serialized record is malformed or incomplete."""
