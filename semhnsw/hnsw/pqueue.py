"""
Binary-heap priority queue used by the HNSW search routines.

Search keeps two queues at once:
- a min-queue of candidates still to expand (closest first)
- a max-queue of the best results found so far, bounded to ef entries,
  so the worst of the current best can be evicted in O(log n)

Both are instances of PriorityQueue with a different orientation.
"""

import heapq
import itertools
from typing import Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")


class PriorityQueue(Generic[T]):
    """
    Ordered container of (priority, value) pairs.

    A "min" queue pops the lowest priority first, a "max" queue the highest.
    Equal priorities pop in the order they were pushed, so results stay
    deterministic for identical inputs. An optional integer tiebreak orders
    equal priorities first (lower tiebreak counts as lower priority), and push
    order only decides what is still equal after that.

    With a capacity, a push that overflows the queue evicts the element at the
    pop end and returns it. For a max-queue holding the best-k results (keyed
    by distance-like priorities) that evicts the worst of the best.
    """

    def __init__(self, order: str = "min", capacity: Optional[int] = None) -> None:
        """
        Create an empty queue.

        Args:
            order: "min" or "max"
            capacity: Maximum number of elements kept (None = unbounded)
        """
        if order not in ("min", "max"):
            raise ValueError(f"order must be 'min' or 'max', got {order!r}")
        if capacity is not None and capacity < 1:
            raise ValueError("capacity must be >= 1")

        self.order = order
        self.capacity = capacity

        # Heap entries: (sort_key, tie_key, sequence, priority, value)
        # sort_key and tie_key are negated for max-queues; sequence breaks ties
        self._heap: List[Tuple[float, int, int, float, T]] = []
        self._counter = itertools.count()

    def _key(self, priority: float) -> float:
        return priority if self.order == "min" else -priority

    def push(self, priority: float, value: T, tiebreak: int = 0) -> Optional[Tuple[float, T]]:
        """
        Insert a value.

        Args:
            priority: Ordering key
            value: Payload stored with the priority
            tiebreak: Secondary key for equal priorities

        Returns:
            The evicted (priority, value) pair when a bounded queue overflows,
            otherwise None
        """
        entry = (
            self._key(priority),
            tiebreak if self.order == "min" else -tiebreak,
            next(self._counter),
            priority,
            value,
        )
        heapq.heappush(self._heap, entry)

        if self.capacity is not None and len(self._heap) > self.capacity:
            return self.pop()
        return None

    def pop(self) -> Tuple[float, T]:
        """
        Remove and return the extreme (priority, value) pair.

        Raises:
            IndexError: If the queue is empty
        """
        if not self._heap:
            raise IndexError("pop from an empty priority queue")
        _, _, _, priority, value = heapq.heappop(self._heap)
        return priority, value

    def peek(self) -> Tuple[float, T]:
        """
        Return the extreme (priority, value) pair without removing it.

        Raises:
            IndexError: If the queue is empty
        """
        if not self._heap:
            raise IndexError("peek into an empty priority queue")
        _, _, _, priority, value = self._heap[0]
        return priority, value

    def size(self) -> int:
        """Number of elements in the queue."""
        return len(self._heap)

    def is_full(self) -> bool:
        """True when a bounded queue holds capacity elements."""
        return self.capacity is not None and len(self._heap) >= self.capacity

    def items(self) -> List[Tuple[float, T]]:
        """Snapshot of all (priority, value) pairs in pop order."""
        return [(priority, value) for _, _, _, priority, value in sorted(self._heap)]

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"PriorityQueue(order={self.order}, size={self.size()}, capacity={self.capacity})"
