"""
Execution Outcome Models

Result of handing one statement to a protocol engine, and the point-in-time
view of the run counters used for reporting.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ExecutionOutcome:
    successful: bool
    error_message: Optional[str] = None

    @classmethod
    def success(cls) -> "ExecutionOutcome":
        return cls(successful=True)

    @classmethod
    def failure(cls, message: str) -> "ExecutionOutcome":
        return cls(successful=False, error_message=message)


@dataclass(frozen=True)
class CounterSnapshot:
    """Consistent-enough read of RunCounters for a single report line."""

    submitted: int
    successful: int
    failed: int
    successful_duration_ms: int

    @property
    def completed(self) -> int:
        return self.successful + self.failed

    def minus(self, other: "CounterSnapshot") -> "CounterSnapshot":
        return CounterSnapshot(
            submitted=self.submitted - other.submitted,
            successful=self.successful - other.successful,
            failed=self.failed - other.failed,
            successful_duration_ms=self.successful_duration_ms
            - other.successful_duration_ms,
        )
