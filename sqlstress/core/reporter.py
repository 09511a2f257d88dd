"""
Stress Reporter

Owns the run counters and prints progress lines on a fixed interval plus one
final summary when the run ends.
"""

from __future__ import annotations

import logging
import sys
import threading
import time
from datetime import UTC, datetime
from typing import Callable, Optional, TextIO

from sqlstress.models import CounterSnapshot

logger = logging.getLogger(__name__)


class RunCounters:
    """
    Process-wide counters for one run.

    Written by worker threads and the dispatcher, read by the reporter and
    monitor. Each counter only ever increases.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._submitted = 0
        self._successful = 0
        self._failed = 0
        self._successful_duration_ms = 0

    def increment_submitted(self) -> None:
        with self._lock:
            self._submitted += 1

    def record_success(self, duration_ms: float) -> None:
        with self._lock:
            self._successful += 1
            self._successful_duration_ms += int(duration_ms)

    def record_failure(self) -> None:
        with self._lock:
            self._failed += 1

    @property
    def submitted(self) -> int:
        return self._submitted

    @property
    def successful(self) -> int:
        return self._successful

    @property
    def failed(self) -> int:
        return self._failed

    @property
    def successful_duration_ms(self) -> int:
        return self._successful_duration_ms

    def snapshot(self) -> CounterSnapshot:
        with self._lock:
            return CounterSnapshot(
                submitted=self._submitted,
                successful=self._successful,
                failed=self._failed,
                successful_duration_ms=self._successful_duration_ms,
            )


def format_duration_ms(ms: float) -> str:
    """Human readable duration, e.g. 1h2m3s, 45s, 250ms."""
    total_ms = max(0, int(ms))
    if total_ms < 1000:
        return f"{total_ms}ms"
    seconds = total_ms // 1000
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{secs}s")
    return "".join(parts)


def _rate(count: int, elapsed_ms: float) -> float:
    if elapsed_ms <= 0:
        return 0.0
    return count / (elapsed_ms / 1000.0)


def _percent(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return (part / whole) * 100.0


class StressReporter:
    """Periodic and final metrics reporting for a run."""

    def __init__(
        self,
        counters: RunCounters,
        *,
        duration_target_ms: int,
        index_source: Optional[Callable[[], int]] = None,
        interval_seconds: float = 5.0,
        out: Optional[TextIO] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.counters = counters
        self._duration_target_ms = int(duration_target_ms)
        self._index_source = index_source
        self._interval = max(0.01, float(interval_seconds))
        self._out = out
        self._clock = clock

        self._start: Optional[float] = None
        self._last_time: Optional[float] = None
        self._last = CounterSnapshot(0, 0, 0, 0)
        self._stop_signal = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _write(self, line: str) -> None:
        out = self._out or sys.stdout
        print(line, file=out, flush=True)

    def _index_suffix(self) -> str:
        if self._index_source is None:
            return ""
        return f" - last query index: {self._index_source()}"

    def _elapsed_ms(self, now: float) -> float:
        start = self._start if self._start is not None else now
        return (now - start) * 1000.0

    def progress_line(self) -> str:
        """Build one progress line and advance the interval baseline."""
        now = self._clock()
        if self._start is None:
            self._start = now
        current = self.counters.snapshot()
        since = self._last_time if self._last_time is not None else self._start
        interval_ms = (now - since) * 1000.0
        delta = current.minus(self._last)
        self._last = current
        self._last_time = now

        return (
            f"{datetime.now(UTC).isoformat()} - queries submitted (total): {current.submitted}; "
            f"queries successful (total): {current.successful}; "
            f"queries successful per second (current phase): {_rate(delta.successful, interval_ms):.2f}; "
            f"failure rate: {_percent(delta.failed, delta.submitted):.2f} % (current phase) - "
            f"time elapsed: {format_duration_ms(self._elapsed_ms(now))}/"
            f"{format_duration_ms(self._duration_target_ms)}"
            f"{self._index_suffix()}"
        )

    def summary_line(self) -> str:
        now = self._clock()
        elapsed_ms = self._elapsed_ms(now)
        current = self.counters.snapshot()
        mean_ms = (
            current.successful_duration_ms / current.successful
            if current.successful
            else 0.0
        )
        return (
            f"{datetime.now(UTC).isoformat()} - Stress Summary: queries submitted: {current.submitted}; "
            f"queries successful: {current.successful}; queries failed: {current.failed}; "
            f"queries successful per second: {_rate(current.successful, elapsed_ms):.2f}; "
            f"failure rate: {_percent(current.failed, current.submitted):.2f} %; "
            f"mean successful query time: {format_duration_ms(mean_ms)} - "
            f"time elapsed: {format_duration_ms(elapsed_ms)}/"
            f"{format_duration_ms(self._duration_target_ms)}"
            f"{self._index_suffix()}"
        )

    def report_progress(self) -> None:
        self._write(self.progress_line())

    def print_final_summary(self) -> None:
        self._write(self.summary_line())

    def _report_loop(self) -> None:
        while not self._stop_signal.wait(self._interval):
            try:
                self.report_progress()
            except Exception:
                logger.exception("Failed to write progress report")

    def start(self) -> None:
        """Mark the run start and begin periodic reporting."""
        if self._thread is not None:
            return
        now = self._clock()
        self._start = now
        self._last_time = now
        self._last = self.counters.snapshot()
        self._thread = threading.Thread(
            target=self._report_loop, name="stress-reporter", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_signal.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self._interval + 1.0)
