"""
Stress Execution

Wires the query pool, sequencer, worker pool, protocol engine, reporter and
monitor together for one run and returns the process exit status.
"""

from __future__ import annotations

import logging
import random
from typing import Callable, Optional, TextIO

from sqlstress.config import settings
from sqlstress.connectors import connect
from sqlstress.connectors.base import EngineConnectError, ProtocolEngine
from sqlstress.core.dispatcher import Dispatcher
from sqlstress.core.monitor import StressMonitor
from sqlstress.core.parameters import ParameterResolver
from sqlstress.core.query_mapper import QueryMapper
from sqlstress.core.query_pool import QueryPool, WorkloadError, load_query_pool
from sqlstress.core.reporter import RunCounters, StressReporter
from sqlstress.core.sequencer import create_sequencer
from sqlstress.core.worker_pool import WorkerPool
from sqlstress.models import ExecutionSequence, StressOptions

logger = logging.getLogger(__name__)

ConnectFn = Callable[..., ProtocolEngine]


class StressRun:
    """One configured stress run."""

    def __init__(
        self,
        options: StressOptions,
        *,
        connect_fn: ConnectFn = connect,
        rng: Optional[random.Random] = None,
        out: Optional[TextIO] = None,
    ) -> None:
        self.options = options
        self._connect_fn = connect_fn
        self._rng = rng or random.Random()
        self._out = out
        self.counters = RunCounters()

    def _load_pool(self) -> QueryPool:
        return load_query_pool(
            self.options.workload_path,
            self.options.file_type,
            limit_results=self.options.limit_results,
        )

    def _connect(self) -> ProtocolEngine:
        opts = self.options
        return self._connect_fn(
            opts.credentials,
            opts.endpoint,
            opts.query_timeout_seconds,
            opts.protocol,
            opts.skip_tls_verification,
        )

    def run(self) -> int:
        """
        Execute the run.

        Returns:
            0 after a clean run, 1 if the workload or the connection failed
        """
        try:
            pool = self._load_pool()
        except WorkloadError as e:
            logger.error("Unable to load workload %s: %s", self.options.workload_path, e)
            return 1

        try:
            engine = self._connect()
        except EngineConnectError as e:
            logger.error("Unable to connect to %s: %s", self.options.endpoint, e)
            return 1

        try:
            self._execute(pool, engine)
        finally:
            engine.close()
        return 0

    def _execute(self, pool: QueryPool, engine: ProtocolEngine) -> None:
        opts = self.options
        size = opts.max_queries_in_flight
        sequential = opts.execution_sequence == ExecutionSequence.SEQUENTIAL

        sequencer = create_sequencer(
            opts.execution_sequence,
            len(pool),
            restart_index=opts.restart_index,
            rng=self._rng,
        )
        mapper = QueryMapper(pool.groups, ParameterResolver(self._rng))
        workers = WorkerPool(
            size=size, capacity=size * settings.QUEUE_CAPACITY_FACTOR
        )
        reporter = StressReporter(
            self.counters,
            duration_target_ms=opts.duration_target_ms,
            index_source=(lambda: sequencer.last_index) if sequential else None,
            interval_seconds=settings.REPORT_INTERVAL_SECONDS,
            out=self._out,
        )
        monitor = StressMonitor(
            worker_pool=workers,
            duration_target_ms=opts.duration_target_ms,
            exhausted=(lambda: sequencer.exhausted) if sequential else None,
            interval_seconds=settings.MONITOR_INTERVAL_SECONDS,
            grace_seconds=settings.SHUTDOWN_GRACE_SECONDS,
        )
        dispatcher = Dispatcher(
            pool=pool,
            sequencer=sequencer,
            mapper=mapper,
            engine=engine,
            worker_pool=workers,
            counters=self.counters,
            high_water=size * settings.BACKPRESSURE_HIGH_FACTOR,
            low_water=size * settings.BACKPRESSURE_LOW_FACTOR,
            throttle_sleep_seconds=settings.THROTTLE_SLEEP_SECONDS,
            exhausted_backoff_seconds=settings.EXHAUSTED_BACKOFF_SECONDS,
        )

        logger.info(
            "Starting %s stress run: %d pool entries, %d in flight, %ds duration, protocol %s",
            opts.execution_sequence.value,
            len(pool),
            size,
            opts.duration_seconds,
            engine.name,
        )
        reporter.start()
        monitor.start()
        try:
            dispatcher.run()
            monitor.finished.wait()
        except KeyboardInterrupt:
            logger.warning("Interrupted, stopping run")
            monitor.shutdown("interrupted")
        finally:
            monitor.stop()
            reporter.stop()
            reporter.print_final_summary()
