"""
Core stress execution components.
"""

from sqlstress.core.dispatcher import Dispatcher
from sqlstress.core.monitor import StressMonitor
from sqlstress.core.parameters import ParameterResolver
from sqlstress.core.query_mapper import QueryMapper
from sqlstress.core.query_pool import (
    QueryPool,
    QueryPoolBuilder,
    WorkloadError,
    load_query_pool,
)
from sqlstress.core.reporter import RunCounters, StressReporter
from sqlstress.core.sequencer import (
    RandomSequencer,
    SequentialSequencer,
    create_sequencer,
)
from sqlstress.core.worker_pool import PoolShutdownError, WorkerPool

__all__ = [
    "Dispatcher",
    "ParameterResolver",
    "PoolShutdownError",
    "QueryMapper",
    "QueryPool",
    "QueryPoolBuilder",
    "RandomSequencer",
    "RunCounters",
    "SequentialSequencer",
    "StressMonitor",
    "StressReporter",
    "WorkerPool",
    "WorkloadError",
    "create_sequencer",
    "load_query_pool",
]
