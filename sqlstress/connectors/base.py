"""
Protocol engine capability shared by every connector.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence, runtime_checkable

from sqlstress.models import ExecutionOutcome


class EngineConnectError(Exception):
    """Raised when an engine cannot authenticate or open its connection."""


@runtime_checkable
class ProtocolEngine(Protocol):
    """
    Executes one statement and reports success or a descriptive failure.

    Implementations must be safe to call from several worker threads at once;
    whether calls actually run in parallel is up to the implementation.
    """

    name: str

    def execute(
        self, sql: str, context: Optional[Sequence[str]] = None
    ) -> ExecutionOutcome: ...

    def close(self) -> None: ...
