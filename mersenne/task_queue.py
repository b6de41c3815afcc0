"""
Bounded task queue for handing exponents from one producer to many workers.

The queue is a fixed-size circular buffer guarded by two counting
semaphores (free slots / occupied slots) and a mutex around the buffer
bookkeeping. A full queue suspends the producer, an empty queue suspends
the consumers; neither operation fails unless a timeout is requested.
"""

import threading
from typing import Any, List, Optional

from .errors import QueueTimeout


class BoundedTaskQueue:
    """
    Fixed-capacity FIFO queue with blocking enqueue/dequeue.

    Usage:
        queue = BoundedTaskQueue(capacity=100)

        # Producer thread
        queue.enqueue(31)

        # Worker thread
        p = queue.dequeue()
    """

    def __init__(self, capacity: int = 100):
        """
        Initialize the queue.

        Args:
            capacity: Number of slots in the ring buffer (must be >= 1)

        Raises:
            ValueError: If capacity is less than 1
        """
        if capacity < 1:
            raise ValueError(f"Queue capacity must be at least 1, got {capacity}")

        self._capacity = capacity
        self._slots: List[Any] = [None] * capacity
        self._head = 0
        self._tail = 0
        self._count = 0

        self._mutex = threading.Lock()
        self._free_slots = threading.Semaphore(capacity)
        self._occupied_slots = threading.Semaphore(0)

    @property
    def capacity(self) -> int:
        return self._capacity

    def enqueue(self, candidate: Any, timeout: Optional[float] = None) -> None:
        """
        Insert a candidate at the tail, blocking while the queue is full.

        Args:
            candidate: Item to hand to a worker
            timeout: Seconds to wait for a free slot (None = wait forever)

        Raises:
            QueueTimeout: If timeout elapsed before a slot became free
        """
        if not self._free_slots.acquire(timeout=timeout):
            raise QueueTimeout(f"No free slot after {timeout}s (capacity {self._capacity})")

        with self._mutex:
            self._slots[self._tail] = candidate
            self._tail = (self._tail + 1) % self._capacity
            self._count += 1

        self._occupied_slots.release()

    def dequeue(self, timeout: Optional[float] = None) -> Any:
        """
        Remove and return the candidate at the head, blocking while empty.

        Args:
            timeout: Seconds to wait for an item (None = wait forever)

        Returns:
            The oldest enqueued candidate

        Raises:
            QueueTimeout: If timeout elapsed before an item arrived
        """
        if not self._occupied_slots.acquire(timeout=timeout):
            raise QueueTimeout(f"Queue still empty after {timeout}s")

        with self._mutex:
            candidate = self._slots[self._head]
            self._slots[self._head] = None
            self._head = (self._head + 1) % self._capacity
            self._count -= 1

        self._free_slots.release()
        return candidate

    def __len__(self) -> int:
        with self._mutex:
            return self._count

    def empty(self) -> bool:
        """Snapshot check; may be stale by the time the caller acts on it."""
        return len(self) == 0

    def full(self) -> bool:
        """Snapshot check; may be stale by the time the caller acts on it."""
        return len(self) == self._capacity

    def __repr__(self) -> str:
        return f"BoundedTaskQueue(capacity={self._capacity}, count={len(self)})"
