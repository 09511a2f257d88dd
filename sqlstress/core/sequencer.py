"""
Execution Sequencers

Choose the next pool index for the dispatcher:
- RandomSequencer: uniform pick over the pool, never exhausts
- SequentialSequencer: walks the pool once, starting after a restart offset
"""

from __future__ import annotations

import random
import threading
from typing import Optional, Protocol

from sqlstress.models import ExecutionSequence


class SequenceCursor:
    """Shared pool index for sequential mode; mutated only by increment_if_below."""

    def __init__(self, initial: int = -1) -> None:
        self._value = int(initial)
        self._lock = threading.Lock()

    def get(self) -> int:
        with self._lock:
            return self._value

    def increment_if_below(self, limit: int) -> Optional[int]:
        """Advance and return the new value if it stays below limit, else None."""
        with self._lock:
            if self._value + 1 < limit:
                self._value += 1
                return self._value
            return None


class ExecutionSequencer(Protocol):
    def next_index(self) -> Optional[int]: ...

    @property
    def exhausted(self) -> bool: ...

    @property
    def last_index(self) -> int: ...


class RandomSequencer:
    def __init__(self, pool_size: int, rng: random.Random | None = None) -> None:
        if pool_size <= 0:
            raise ValueError("pool_size must be positive")
        self._pool_size = int(pool_size)
        self._rng = rng or random.Random()
        self._last = -1

    def next_index(self) -> Optional[int]:
        index = self._rng.randrange(self._pool_size)
        self._last = index
        return index

    @property
    def exhausted(self) -> bool:
        return False

    @property
    def last_index(self) -> int:
        return self._last


class SequentialSequencer:
    """
    Hands out pool indexes in order.

    With restart_index=n the first index returned is n+1. Once the cursor sits
    on the last pool index, next_index() returns None. `exhausted` turns True on
    the first such refusal, i.e. only after the caller has come back for more
    work, so the burst for the last index has already been submitted.
    """

    def __init__(self, pool_size: int, restart_index: int | None = None) -> None:
        if pool_size <= 0:
            raise ValueError("pool_size must be positive")
        self._pool_size = int(pool_size)
        self.cursor = SequenceCursor(-1 if restart_index is None else int(restart_index))
        self._refused = threading.Event()

    def next_index(self) -> Optional[int]:
        index = self.cursor.increment_if_below(self._pool_size)
        if index is None:
            self._refused.set()
        return index

    @property
    def exhausted(self) -> bool:
        return self._refused.is_set()

    @property
    def last_index(self) -> int:
        return self.cursor.get()


def create_sequencer(
    mode: ExecutionSequence,
    pool_size: int,
    *,
    restart_index: int | None = None,
    rng: random.Random | None = None,
) -> RandomSequencer | SequentialSequencer:
    if mode == ExecutionSequence.SEQUENTIAL:
        return SequentialSequencer(pool_size, restart_index=restart_index)
    return RandomSequencer(pool_size, rng=rng)
