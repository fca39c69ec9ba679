"""
Rolling statistics for the inference loop (cycle rate and classifier latency).
"""

import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque


class RollingAverage:
    """Rolling average over the last N values."""

    def __init__(self, maxlen: int = 30) -> None:
        self._values: Deque[float] = deque(maxlen=maxlen)

    def add(self, value: float) -> None:
        self._values.append(value)

    @property
    def average(self) -> float:
        if not self._values:
            return 0.0
        return sum(self._values) / len(self._values)

    def clear(self) -> None:
        self._values.clear()


@dataclass(frozen=True)
class CycleStats:
    cycles_per_s: float
    inference_ms: float
    rolling_inference_ms: float
    completed_cycles: int
    failed_cycles: int


class CycleTimer:
    """Tracks completed cycles: rate between completions and classifier latency."""

    def __init__(
        self, rolling_size: int = 30, clock: Callable[[], float] = time.perf_counter
    ) -> None:
        self._clock = clock
        self._last_done: float | None = None
        self._periods = RollingAverage(maxlen=rolling_size)
        self._latency = RollingAverage(maxlen=rolling_size)
        self._last_latency_ms = 0.0
        self._completed = 0
        self._failed = 0

    def now(self) -> float:
        return self._clock()

    def record(self, started_at: float, *, failed: bool = False) -> None:
        """Call when a classifier call resolves; started_at is now() at submit time."""
        done = self._clock()
        self._last_latency_ms = (done - started_at) * 1000.0
        self._latency.add(self._last_latency_ms)
        if self._last_done is not None:
            self._periods.add(done - self._last_done)
        self._last_done = done
        if failed:
            self._failed += 1
        else:
            self._completed += 1

    def snapshot(self) -> CycleStats:
        period = self._periods.average
        return CycleStats(
            cycles_per_s=1.0 / period if period > 0 else 0.0,
            inference_ms=self._last_latency_ms,
            rolling_inference_ms=self._latency.average,
            completed_cycles=self._completed,
            failed_cycles=self._failed,
        )

    def reset(self) -> None:
        self._last_done = None
        self._periods.clear()
        self._latency.clear()
        self._last_latency_ms = 0.0
        self._completed = 0
        self._failed = 0
