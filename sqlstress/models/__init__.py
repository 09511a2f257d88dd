"""
Data Models

Pydantic models for workload descriptions and run options, plus the small
immutable value types passed between the core components.
"""

from sqlstress.models.outcome import CounterSnapshot, ExecutionOutcome
from sqlstress.models.run_config import (
    Credentials,
    ExecutionSequence,
    ProtocolKind,
    StressOptions,
    WorkloadFileType,
)
from sqlstress.models.workload import (
    QueryGroup,
    QueryTemplate,
    ReplayRecord,
    ResolvedQuery,
    Sequence,
    WorkloadConfig,
)

__all__ = [
    "CounterSnapshot",
    "Credentials",
    "ExecutionOutcome",
    "ExecutionSequence",
    "ProtocolKind",
    "QueryGroup",
    "QueryTemplate",
    "ReplayRecord",
    "ResolvedQuery",
    "Sequence",
    "StressOptions",
    "WorkloadConfig",
    "WorkloadFileType",
]
