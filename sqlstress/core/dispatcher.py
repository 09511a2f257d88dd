"""
Dispatcher

Main submission loop: picks pool entries, resolves them into statements and
hands each statement to the worker pool as an independent task, throttling on
queue depth.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from sqlstress.connectors.base import ProtocolEngine
from sqlstress.core.query_mapper import QueryMapper
from sqlstress.core.query_pool import QueryPool
from sqlstress.core.reporter import RunCounters
from sqlstress.core.sequencer import ExecutionSequencer
from sqlstress.core.worker_pool import PoolShutdownError, WorkerPool
from sqlstress.models import ResolvedQuery

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Feeds the worker pool until it is shut down.

    Backpressure uses a hysteresis band: once the queue holds more than
    `high_water` tasks, submission pauses until the depth is below
    `low_water`.
    """

    def __init__(
        self,
        *,
        pool: QueryPool,
        sequencer: ExecutionSequencer,
        mapper: QueryMapper,
        engine: ProtocolEngine,
        worker_pool: WorkerPool,
        counters: RunCounters,
        high_water: int,
        low_water: int,
        throttle_sleep_seconds: float = 0.1,
        exhausted_backoff_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if low_water > high_water:
            raise ValueError("low_water must not exceed high_water")
        self._pool = pool
        self._sequencer = sequencer
        self._mapper = mapper
        self._engine = engine
        self._workers = worker_pool
        self._counters = counters
        self._high_water = int(high_water)
        self._low_water = int(low_water)
        self._throttle_sleep = float(throttle_sleep_seconds)
        self._exhausted_backoff = float(exhausted_backoff_seconds)
        self._sleep = sleep
        self.throttle_count = 0

    def _throttle(self) -> None:
        if self._workers.queue_depth <= self._high_water:
            return
        self.throttle_count += 1
        logger.info(
            "Queue depth %d above %d, pausing submission",
            self._workers.queue_depth,
            self._high_water,
        )
        while self._workers.queue_depth >= self._low_water:
            if self._workers.is_shutdown:
                return
            self._sleep(self._throttle_sleep)

    def _make_task(self, query: ResolvedQuery) -> Callable[[], None]:
        engine = self._engine
        counters = self._counters

        def _task() -> None:
            start = time.perf_counter()
            try:
                outcome = engine.execute(query.sql, query.context)
            except Exception as e:
                counters.record_failure()
                logger.warning("Query raised %s: %s - %s", type(e).__name__, e, query.sql)
                return
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            if outcome.successful:
                counters.record_success(elapsed_ms)
                logger.debug("Query succeeded in %.0fms", elapsed_ms)
            else:
                counters.record_failure()
                logger.warning("Query failed: %s - %s", outcome.error_message, query.sql)

        return _task

    def dispatch_once(self) -> int:
        """
        Run one loop iteration.

        Returns:
            Number of tasks submitted (0 when the sequencer is exhausted)
        """
        index: Optional[int] = self._sequencer.next_index()
        if index is None:
            self._sleep(self._exhausted_backoff)
            return 0

        submitted = 0
        for query in self._mapper.resolve(self._pool[index]):
            self._throttle()
            self._workers.submit(self._make_task(query))
            self._counters.increment_submitted()
            submitted += 1
        return submitted

    def run(self) -> None:
        """Dispatch until the worker pool stops accepting work."""
        logger.info(
            "Dispatching %d pool entries to %d workers using %s",
            len(self._pool),
            self._workers.size,
            self._engine.name,
        )
        while not self._workers.is_shutdown:
            try:
                self.dispatch_once()
            except PoolShutdownError:
                break
        logger.info("Dispatch loop finished")
