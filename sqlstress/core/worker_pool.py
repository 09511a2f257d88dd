"""Bounded worker pool for query execution.

A fixed set of worker threads consumes a bounded task queue. The dispatcher
watches `queue_depth` to apply backpressure; the monitor ends the run with
`shutdown()` followed, if needed, by `shutdown_now()`.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)

Task = Callable[[], None]


class PoolShutdownError(RuntimeError):
    """Raised when submitting to a pool that no longer accepts work."""


class WorkerPool:
    """Manages a fixed pool of worker threads fed from a bounded queue.

    Attributes:
        size: Number of worker threads
        capacity: Maximum number of queued (not yet running) tasks
    """

    def __init__(
        self,
        *,
        size: int,
        capacity: int,
        name: str = "stress-worker",
        poll_interval_seconds: float = 0.1,
    ) -> None:
        """Initialize and start the worker pool.

        Args:
            size: Number of worker threads (max queries in flight)
            capacity: Hard cap on queued tasks
            name: Thread name prefix
            poll_interval_seconds: How often idle workers re-check for shutdown
        """
        if size < 1:
            raise ValueError("size must be >= 1")
        self.size = int(size)
        self.capacity = max(1, int(capacity))
        self._poll_interval = max(0.001, float(poll_interval_seconds))

        self._queue: queue.Queue[Task] = queue.Queue(maxsize=self.capacity)
        self._accepting = True
        self._forced = threading.Event()
        self._state_lock = threading.Lock()
        self._active = 0

        self._threads = [
            threading.Thread(
                target=self._worker_loop,
                name=f"{name}-{i}",
                daemon=True,
            )
            for i in range(self.size)
        ]
        for t in self._threads:
            t.start()

    @property
    def queue_depth(self) -> int:
        """Tasks waiting for a worker (running tasks are not counted)."""
        return self._queue.qsize()

    @property
    def active_count(self) -> int:
        with self._state_lock:
            return self._active

    @property
    def is_shutdown(self) -> bool:
        with self._state_lock:
            return not self._accepting

    def submit(self, task: Task) -> None:
        """Queue a task; blocks only if the hard capacity is reached.

        Raises:
            PoolShutdownError: If shutdown() or shutdown_now() was called
        """
        while True:
            if self.is_shutdown:
                raise PoolShutdownError("worker pool is shut down")
            try:
                self._queue.put(task, timeout=self._poll_interval)
                return
            except queue.Full:
                continue

    def _worker_loop(self) -> None:
        while not self._forced.is_set():
            try:
                task = self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                if self.is_shutdown:
                    return
                continue
            if self._forced.is_set():
                return
            with self._state_lock:
                self._active += 1
            try:
                task()
            except Exception:
                # Tasks report their own outcome; anything escaping is a bug in the task.
                logger.exception("Unhandled exception in worker task")
            finally:
                with self._state_lock:
                    self._active -= 1

    def shutdown(self) -> None:
        """Stop accepting work; queued and running tasks still complete."""
        with self._state_lock:
            if not self._accepting:
                return
            self._accepting = False
        logger.info("Worker pool shutting down (queued=%d)", self.queue_depth)

    def shutdown_now(self) -> int:
        """Stop accepting work and discard queued tasks.

        Running tasks cannot be interrupted; their threads exit once the current
        call returns.

        Returns:
            Number of queued tasks that were discarded
        """
        with self._state_lock:
            self._accepting = False
        self._forced.set()
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
                dropped += 1
            except queue.Empty:
                break
        logger.warning(
            "Worker pool forced shutdown: %d queued tasks dropped, %d still running",
            dropped,
            self.active_count,
        )
        return dropped

    def await_termination(self, timeout_seconds: float | None = None) -> bool:
        """Wait for all worker threads to exit.

        Args:
            timeout_seconds: Maximum time to wait (None waits forever)

        Returns:
            True if every worker exited within the timeout
        """
        deadline = None if timeout_seconds is None else time.monotonic() + timeout_seconds
        for t in self._threads:
            if deadline is None:
                t.join()
            else:
                t.join(max(0.0, deadline - time.monotonic()))
        return not any(t.is_alive() for t in self._threads)
