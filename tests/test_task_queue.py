"""
Tests for BoundedTaskQueue.

Tests cover:
- FIFO ordering under arbitrary enqueue/dequeue interleavings
- Back-pressure on a full queue and suspension on an empty one
- Exactly-once delivery with many concurrent consumers
- Timeouts
"""
import random
import threading
import time

import pytest

from mersenne.errors import QueueTimeout
from mersenne.task_queue import BoundedTaskQueue


class TestConstruction:
    def test_default_capacity(self):
        queue = BoundedTaskQueue()
        assert queue.capacity == 100
        assert len(queue) == 0
        assert queue.empty()

    def test_invalid_capacity_raises(self):
        with pytest.raises(ValueError, match="at least 1"):
            BoundedTaskQueue(capacity=0)


class TestOrdering:
    def test_fifo_single_thread(self):
        queue = BoundedTaskQueue(capacity=5)
        for p in range(2, 7):
            queue.enqueue(p)
        assert queue.full()
        assert [queue.dequeue() for _ in range(5)] == [2, 3, 4, 5, 6]
        assert queue.empty()

    def test_wraparound_preserves_order(self):
        """Head and tail wrap modulo capacity several times."""
        queue = BoundedTaskQueue(capacity=3)
        out = []
        for p in range(20):
            queue.enqueue(p)
            if len(queue) == 3:
                out.append(queue.dequeue())
        while not queue.empty():
            out.append(queue.dequeue())
        assert out == list(range(20))

    @pytest.mark.parametrize("seed", [1, 7, 42, 1234])
    def test_random_interleaving_is_fifo_and_exactly_once(self, seed):
        """Any interleaving that respects capacity delivers each value once, in order."""
        rng = random.Random(seed)
        capacity = rng.randint(1, 8)
        queue = BoundedTaskQueue(capacity=capacity)

        produced = 0
        total = 200
        out = []
        while len(out) < total:
            can_put = produced < total and len(queue) < capacity
            can_get = len(queue) > 0
            if can_put and (not can_get or rng.random() < 0.5):
                queue.enqueue(produced)
                produced += 1
            else:
                out.append(queue.dequeue())

        assert out == list(range(total))


class TestBlocking:
    def test_enqueue_blocks_when_full(self):
        """The (C+1)-th enqueue waits until a dequeue frees a slot."""
        queue = BoundedTaskQueue(capacity=2)
        queue.enqueue(1)
        queue.enqueue(2)

        done = threading.Event()

        def producer():
            queue.enqueue(3)
            done.set()

        thread = threading.Thread(target=producer, daemon=True)
        thread.start()

        assert not done.wait(0.2), "Enqueue on a full queue should block"
        assert len(queue) == 2

        assert queue.dequeue() == 1
        assert done.wait(2.0), "Enqueue should resume after a dequeue"
        thread.join(2.0)
        assert [queue.dequeue(), queue.dequeue()] == [2, 3]

    def test_dequeue_blocks_when_empty(self):
        queue = BoundedTaskQueue(capacity=2)
        received = []

        def consumer():
            received.append(queue.dequeue())

        thread = threading.Thread(target=consumer, daemon=True)
        thread.start()

        time.sleep(0.2)
        assert received == [], "Dequeue on an empty queue should block"

        queue.enqueue(31)
        thread.join(2.0)
        assert received == [31]

    def test_enqueue_timeout_leaves_queue_unchanged(self):
        queue = BoundedTaskQueue(capacity=1)
        queue.enqueue(5)
        with pytest.raises(QueueTimeout):
            queue.enqueue(7, timeout=0.05)
        assert len(queue) == 1
        assert queue.dequeue() == 5
        assert queue.empty()

    def test_dequeue_timeout(self):
        queue = BoundedTaskQueue(capacity=1)
        with pytest.raises(QueueTimeout):
            queue.dequeue(timeout=0.05)
        # The queue still works afterwards
        queue.enqueue(3)
        assert queue.dequeue(timeout=1.0) == 3


class TestConcurrentConsumers:
    def test_each_item_delivered_exactly_once(self):
        """One producer, many consumers: no loss, no duplicates, per-consumer order kept."""
        queue = BoundedTaskQueue(capacity=10)
        total = 2000
        consumers = 6
        stop = object()
        results = [[] for _ in range(consumers)]

        def consume(bucket):
            while True:
                item = queue.dequeue()
                if item is stop:
                    return
                bucket.append(item)

        threads = [
            threading.Thread(target=consume, args=(results[i],), daemon=True)
            for i in range(consumers)
        ]
        for thread in threads:
            thread.start()

        for p in range(total):
            queue.enqueue(p)
        for _ in range(consumers):
            queue.enqueue(stop)
        for thread in threads:
            thread.join(10.0)
            assert not thread.is_alive()

        delivered = [p for bucket in results for p in bucket]
        assert len(delivered) == total
        assert sorted(delivered) == list(range(total))
        # Each consumer saw items in admission order
        for bucket in results:
            assert bucket == sorted(bucket)
        assert queue.empty()
