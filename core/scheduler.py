"""
Inference scheduler: snapshot frame -> classify -> publish -> request next refresh.

All methods except prepare() run on the clock's thread. Classifier calls run on the
executor and their completions are posted back through the clock, so the state below
is only ever touched from one thread.

States: IDLE -> STARTING -> RUNNING -> STOPPING -> IDLE. STOPPING means a classifier
call is still outstanding after halt(); its result will be discarded.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor, Future
from enum import Enum
from functools import partial
from typing import Callable

import numpy as np

from classifiers.base import Classifier
from core.capture import CaptureSource
from core.clock import FrameClock
from core.errors import InferenceError
from core.frame_buffer import FrameBuffer
from core.models import PredictionSet
from core.results import ResultSink
from core.utils import CycleStats, CycleTimer

log = logging.getLogger(__name__)


class SchedulerState(Enum):
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class LoopToken:
    """Gate authorizing one run's scheduling. Once revoked it can never be granted again."""

    __slots__ = ("run_id", "_authorized", "_revoked")

    def __init__(self, run_id: int) -> None:
        self.run_id = run_id
        self._authorized = False
        self._revoked = False

    @property
    def authorized(self) -> bool:
        return self._authorized

    @property
    def revoked(self) -> bool:
        return self._revoked

    def grant(self) -> bool:
        if self._revoked:
            return False
        self._authorized = True
        return True

    def revoke(self) -> None:
        self._revoked = True
        self._authorized = False

    def __repr__(self) -> str:
        return f"LoopToken(run_id={self.run_id}, authorized={self._authorized})"


class InferenceScheduler:
    """Single-flight capture/classify loop driven by display-refresh callbacks."""

    def __init__(
        self,
        clock: FrameClock,
        executor: Executor,
        sink: ResultSink,
        frame_buffer: FrameBuffer,
        *,
        on_snapshot: Callable[[np.ndarray], None] | None = None,
        on_cycle: Callable[[CycleStats], None] | None = None,
    ) -> None:
        self._clock = clock
        self._executor = executor
        self._sink = sink
        self._frame_buffer = frame_buffer
        self._on_snapshot = on_snapshot
        # Called with fresh stats after every completed or failed cycle
        self._on_cycle = on_cycle
        self._state = SchedulerState.IDLE
        self._token: LoopToken | None = None
        self._source: CaptureSource | None = None
        self._classifier: Classifier | None = None
        self._pending_frame: int | None = None
        self._in_flight: Future | None = None
        self._cycle = 0
        self._timer = CycleTimer()

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None

    @property
    def cycle(self) -> int:
        """Number of classifier calls issued since the last run() began."""
        return self._cycle

    @property
    def stats(self) -> CycleStats:
        return self._timer.snapshot()

    def prepare(self) -> None:
        """Idle -> Starting. Called by the lifecycle manager when start() begins."""
        self._state = SchedulerState.STARTING

    def run(self, token: LoopToken, source: CaptureSource, classifier: Classifier) -> bool:
        """Starting -> Running and request the first cycle. No-op if token is not authorized."""
        if not token.authorized:
            log.debug("run() with %r ignored", token)
            return False
        self._token = token
        self._source = source
        self._classifier = classifier
        self._cycle = 0
        self._timer.reset()
        self._state = SchedulerState.RUNNING
        self._request_next(token)
        return True

    def halt(self) -> None:
        """Cancel the pending cycle. Any outstanding classifier call finishes and is discarded."""
        if self._pending_frame is not None:
            self._clock.cancel_frame(self._pending_frame)
            self._pending_frame = None
        self._token = None
        self._source = None
        self._classifier = None
        self._state = SchedulerState.STOPPING if self._in_flight is not None else SchedulerState.IDLE

    def _request_next(self, token: LoopToken) -> None:
        if not token.authorized or token is not self._token:
            return
        self._pending_frame = self._clock.request_frame(partial(self._run_cycle, token))

    def _run_cycle(self, token: LoopToken) -> None:
        self._pending_frame = None
        if not token.authorized or token is not self._token:
            return
        if self._in_flight is not None:
            # An earlier call (possibly from a previous run) is still outstanding
            self._request_next(token)
            return
        classifier = self._classifier
        cycle = self._cycle + 1
        started_at = self._timer.now()
        try:
            frame = self._source.current_frame()
            if frame is not None:
                bitmap = self._frame_buffer.snapshot(frame)
                if self._on_snapshot is not None:
                    self._on_snapshot(bitmap)
                started_at = self._timer.now()
                future = self._executor.submit(classifier.predict, bitmap)
        except Exception:  # noqa: BLE001
            self._timer.record(started_at, failed=True)
            log.warning("Cycle %d failed before inference", cycle, exc_info=True)
            self._report_stats()
            self._request_next(token)
            return
        if frame is None:
            self._request_next(token)
            return
        self._cycle = cycle
        self._in_flight = future
        future.add_done_callback(
            lambda f: self._clock.post(
                partial(self._on_inference_done, token, cycle, classifier, started_at, f)
            )
        )

    def _on_inference_done(
        self,
        token: LoopToken,
        cycle: int,
        classifier: Classifier,
        started_at: float,
        future: Future,
    ) -> None:
        if future is self._in_flight:
            self._in_flight = None
        if not token.authorized or token is not self._token:
            log.debug("Discarding stale result of cycle %d (run %d)", cycle, token.run_id)
            if self._state is SchedulerState.STOPPING and self._in_flight is None:
                self._state = SchedulerState.IDLE
            return
        try:
            predictions = self._check(future.result(), classifier)
        except InferenceError as e:
            self._timer.record(started_at, failed=True)
            log.warning("Inference failed on cycle %d: %s", cycle, e)
        except Exception:  # noqa: BLE001
            self._timer.record(started_at, failed=True)
            log.warning("Inference failed on cycle %d", cycle, exc_info=True)
        else:
            self._timer.record(started_at)
            self._sink.publish(predictions)
        self._report_stats()
        self._request_next(token)

    def _report_stats(self) -> None:
        if self._on_cycle is not None:
            self._on_cycle(self._timer.snapshot())

    @staticmethod
    def _check(predictions: PredictionSet, classifier: Classifier) -> PredictionSet:
        result = tuple(predictions)
        expected = classifier.total_classes()
        if len(result) != expected:
            raise InferenceError(f"expected {expected} predictions, got {len(result)}")
        return result
