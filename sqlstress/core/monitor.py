"""
Stress Monitor

Background watchdog that ends the run once the target duration has elapsed
or a sequential run has handed out its last pool index.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from sqlstress.core.worker_pool import WorkerPool

logger = logging.getLogger(__name__)


class StressMonitor:
    """
    Checks completion conditions on a fixed interval.

    Shutdown is graceful first (queued and running work may finish within
    `grace_seconds`), then forced. Only one shutdown sequence ever runs.
    """

    def __init__(
        self,
        *,
        worker_pool: WorkerPool,
        duration_target_ms: int,
        exhausted: Optional[Callable[[], bool]] = None,
        interval_seconds: float = 5.0,
        grace_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._pool = worker_pool
        self._duration_target_ms = int(duration_target_ms)
        self._exhausted = exhausted
        self._interval = max(0.01, float(interval_seconds))
        self._grace = max(0.0, float(grace_seconds))
        self._clock = clock

        self._start: Optional[float] = None
        self._stop_signal = threading.Event()
        self._shutdown_lock = threading.Lock()
        self._shutdown_started = False
        self.finished = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def elapsed_ms(self) -> float:
        if self._start is None:
            return 0.0
        return (self._clock() - self._start) * 1000.0

    def completion_reason(self) -> Optional[str]:
        """Return why the run should end, or None to keep going."""
        if self.elapsed_ms() >= self._duration_target_ms:
            return "duration reached"
        if self._exhausted is not None and self._exhausted():
            return "all sequential queries submitted"
        return None

    def shutdown(self, reason: str) -> bool:
        """Run the graceful-then-forced shutdown sequence once.

        Returns:
            True if this call performed the shutdown, False if one already ran
        """
        with self._shutdown_lock:
            if self._shutdown_started:
                return False
            self._shutdown_started = True

        logger.info("Completion condition met (%s). Shutting down worker pool.", reason)
        try:
            self._pool.shutdown()
            if not self._pool.await_termination(self._grace):
                logger.warning(
                    "Worker pool did not terminate gracefully within %.0f seconds. Forcing shutdown.",
                    self._grace,
                )
                self._pool.shutdown_now()
        finally:
            self.finished.set()
        return True

    def _monitor_loop(self) -> None:
        while not self._stop_signal.wait(self._interval):
            reason = self.completion_reason()
            if reason is not None:
                self.shutdown(reason)
                break
        logger.debug("Stress monitor thread finished")

    def start(self) -> None:
        if self._thread is not None:
            return
        self._start = self._clock()
        self._thread = threading.Thread(
            target=self._monitor_loop, name="stress-monitor", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Cancel monitoring without triggering a shutdown."""
        self._stop_signal.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self._grace + self._interval + 1.0)
