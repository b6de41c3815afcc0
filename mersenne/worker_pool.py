"""
Worker pool that runs the Mersenne pipeline over a stream of exponents.

One producer (the thread calling MersenneSearch.run) enqueues exponents in
order; a fixed set of worker threads dequeue, check and report them. The
bounded queue is the only state the threads share besides the sink.
"""
import itertools
import logging
import threading
from typing import Dict, Iterable, Iterator, List, Optional

from .errors import PipelineCancelled
from .primality import MersennePipeline, Verdict
from .reporting import CollectingReporter, VerdictSink
from .task_queue import BoundedTaskQueue

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 8
DEFAULT_QUEUE_CAPACITY = 100

# Dequeued by a worker to make it exit; one per worker
_STOP = object()


def exponent_source(start: int = 1, end: Optional[int] = None) -> Iterator[int]:
    """
    Exponents start, start+1, ... up to end inclusive (unbounded if end is None).

    Each call returns a fresh iterator.
    """
    if end is None:
        return itertools.count(start)
    return iter(range(start, end + 1))


class MersenneSearch:
    """
    Fixed-size worker pool fed through a BoundedTaskQueue.

    If the pipeline has no on_lucas_lehmer callback, the sink's
    lucas_lehmer_required is installed as that callback. Each instance
    runs once; a second run() raises RuntimeError.

    Usage:
        search = MersenneSearch(pipeline, ConsoleReporter(), workers=8)
        search.run(exponent_source(start=1))      # runs until interrupted

        search = MersenneSearch(pipeline, CollectingReporter(), workers=4)
        search.run(range(2, 201))                 # returns once all are checked
    """

    def __init__(
        self,
        pipeline: MersennePipeline,
        sink: VerdictSink,
        workers: int = DEFAULT_WORKERS,
        queue_capacity: int = DEFAULT_QUEUE_CAPACITY
    ):
        if workers < 1:
            raise ValueError(f"Worker count must be at least 1, got {workers}")

        if pipeline.on_lucas_lehmer is None:
            pipeline.on_lucas_lehmer = sink.lucas_lehmer_required

        self.pipeline = pipeline
        self.sink = sink
        self.workers = workers
        self.queue = BoundedTaskQueue(queue_capacity)
        self.stop_event = threading.Event()
        self._threads: List[threading.Thread] = []
        self._start_lock = threading.Lock()
        self._sentinels_sent = False
        self._ran = False
        self.logger = logging.getLogger(f"{__name__}.MersenneSearch")

    @property
    def started(self) -> bool:
        return bool(self._threads)

    def start(self) -> None:
        """Start the worker threads (idempotent)."""
        with self._start_lock:
            if self._threads:
                return
            for i in range(self.workers):
                thread = threading.Thread(
                    target=self._worker_loop,
                    name=f"mersenne-worker-{i + 1}",
                    daemon=True
                )
                thread.start()
                self._threads.append(thread)
        self.logger.debug(f"Started {self.workers} workers (queue capacity {self.queue.capacity})")

    def _worker_loop(self) -> None:
        name = threading.current_thread().name
        while True:
            exponent = self.queue.dequeue()
            if exponent is _STOP:
                break
            if self.stop_event.is_set():
                # Drain quickly so the stop sentinels are reached
                continue

            try:
                verdict = self.pipeline.check(exponent, cancel=self.stop_event)
            except PipelineCancelled as e:
                self.logger.info(f"{name}: {e}")
                continue
            except Exception:
                self.logger.exception(f"{name}: check of M{exponent} failed")
                continue

            self.sink.report(verdict, worker=name)

        self.logger.debug(f"{name} exiting")

    def run(self, exponents: Iterable[int]) -> None:
        """
        Produce exponents into the queue on the calling thread.

        Blocks while the queue is full. A finite iterable is fully checked
        before this returns; an infinite one runs until stop() or
        KeyboardInterrupt.

        Raises:
            RuntimeError: If this search has already been run
        """
        with self._start_lock:
            if self._ran:
                raise RuntimeError("MersenneSearch.run() can only be called once per instance")
            self._ran = True
        self.start()
        try:
            for exponent in exponents:
                if self.stop_event.is_set():
                    break
                self.queue.enqueue(exponent)
        except KeyboardInterrupt:
            self.logger.info("Interrupted, stopping workers...")
            self.stop()
            raise

        if not self.stop_event.is_set():
            self._finish()

    def _send_stop_sentinels(self) -> None:
        with self._start_lock:
            if self._sentinels_sent:
                return
            self._sentinels_sent = True
        for _ in self._threads:
            self.queue.enqueue(_STOP)

    def _finish(self) -> None:
        """Let workers drain the queue, then wait for them to exit."""
        self._send_stop_sentinels()
        self.join()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """
        Abort the search.

        In-flight checks are cancelled, queued exponents are discarded and
        the workers exit.
        """
        self.stop_event.set()
        self._send_stop_sentinels()
        self.join(timeout)

    def join(self, timeout: Optional[float] = None) -> None:
        for thread in self._threads:
            thread.join(timeout)
            if thread.is_alive():
                self.logger.warning(f"{thread.name} did not exit within {timeout}s")


def search_range(
    pipeline: MersennePipeline,
    exponents: Iterable[int],
    workers: int = DEFAULT_WORKERS,
    queue_capacity: int = DEFAULT_QUEUE_CAPACITY
) -> Dict[int, Verdict]:
    """
    Check a finite set of exponents with a worker pool.

    Returns:
        Verdicts keyed by exponent
    """
    sink = CollectingReporter()
    search = MersenneSearch(pipeline, sink, workers=workers, queue_capacity=queue_capacity)
    search.run(exponents)
    return dict(sink.verdicts)
