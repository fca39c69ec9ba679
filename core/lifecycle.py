"""
Lifecycle manager: owns the camera stream, the classifier and the loop token for one
mounted pipeline, and sequences start()/stop() around the inference scheduler.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from threading import Lock
from typing import Callable

import numpy as np

from classifiers import load_classifier
from classifiers.base import Classifier
from core.capture import CaptureSource, StreamHandle
from core.clock import FrameClock
from core.config import PipelineSettings
from core.errors import MediaAccessError, ModelLoadError
from core.frame_buffer import FrameBuffer
from core.results import ResultSink
from core.scheduler import InferenceScheduler, LoopToken, SchedulerState
from core.utils import CycleStats

log = logging.getLogger(__name__)


@dataclass
class PipelineContext:
    """Everything one pipeline needs, passed in explicitly instead of living in module globals."""

    settings: PipelineSettings
    clock: FrameClock
    executor: Executor
    open_capture: Callable[[PipelineSettings], CaptureSource] = CaptureSource.from_settings
    load_classifier: Callable[[Path, Path], Classifier] = load_classifier
    sink: ResultSink = field(default_factory=ResultSink)
    frame_buffer: FrameBuffer = field(default_factory=FrameBuffer)


class LifecycleManager:
    """
    start(): load classifier -> acquire camera -> wait for first frame -> size frame buffer
    -> grant loop token -> post the first cycle. Safe to call from a worker thread.

    stop(): revoke token, cancel the pending cycle, stop every track. Idempotent and
    safe before or during start(). Runs on the clock's thread.
    """

    def __init__(
        self,
        context: PipelineContext,
        *,
        on_error: Callable[[str], None] | None = None,
        on_snapshot: Callable[[np.ndarray], None] | None = None,
        on_cycle: Callable[[CycleStats], None] | None = None,
    ) -> None:
        self._ctx = context
        self._on_error = on_error
        self._lock = Lock()
        self._scheduler = InferenceScheduler(
            context.clock,
            context.executor,
            context.sink,
            context.frame_buffer,
            on_snapshot=on_snapshot,
            on_cycle=on_cycle,
        )
        self._started = False
        self._run_id = 0
        self._token: LoopToken | None = None
        self._stream: StreamHandle | None = None
        self._classifier: Classifier | None = None
        self._error: str | None = None

    @property
    def context(self) -> PipelineContext:
        return self._ctx

    @property
    def scheduler(self) -> InferenceScheduler:
        return self._scheduler

    @property
    def sink(self) -> ResultSink:
        return self._ctx.sink

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def has_error(self) -> bool:
        return self._error is not None

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def is_running(self) -> bool:
        return self._scheduler.state is SchedulerState.RUNNING

    @property
    def stream(self) -> StreamHandle | None:
        return self._stream

    def start(self) -> bool:
        """Bring the pipeline up. Returns False if already started, stopped meanwhile, or failed."""
        with self._lock:
            if self._started:
                log.debug("start() ignored: pipeline already started")
                return False
            self._started = True
            self._run_id += 1
            token = LoopToken(self._run_id)
            self._token = token
            settings = self._ctx.settings
            self._scheduler.prepare()
        log.info("Starting pipeline (run %d)", token.run_id)

        try:
            settings.validate()
        except ValueError as e:
            self._fail(token, e, classifier=None, stream=None)
            return False

        classifier: Classifier | None = None
        stream: StreamHandle | None = None
        phase: type[ModelLoadError] | type[MediaAccessError] = ModelLoadError
        try:
            classifier = self._ctx.load_classifier(settings.model_path, settings.metadata_path)
            if self._abandoned(token, classifier=classifier):
                return False
            phase = MediaAccessError
            capture = self._ctx.open_capture(settings)
            stream = capture.acquire()
            # Published before the warm-up wait so a concurrent stop() can release it
            with self._lock:
                abandoned = token.revoked
                if not abandoned:
                    self._stream = stream
            if abandoned:
                self._abandoned(token, classifier=classifier, stream=stream)
                return False
            width, height = capture.wait_until_ready(settings.ready_timeout_s)
        except (MediaAccessError, ModelLoadError) as e:
            self._fail(token, e, classifier=classifier, stream=stream)
            return False
        except Exception as e:  # noqa: BLE001
            log.error("Unexpected error while starting run %d", token.run_id, exc_info=True)
            wrapped = phase(f"{type(e).__name__}: {e}")
            wrapped.__cause__ = e
            self._fail(token, wrapped, classifier=classifier, stream=stream)
            return False

        with self._lock:
            if token.revoked:
                granted = False
            else:
                self._ctx.frame_buffer.flip = settings.flip
                self._ctx.frame_buffer.resize(width, height)
                self._classifier = classifier
                granted = token.grant()
        if not granted:
            self._release(classifier=classifier, stream=stream)
            log.info("Run %d stopped during start; released its resources", token.run_id)
            return False
        self._ctx.clock.post(partial(self._begin, token, capture, classifier))
        return True

    def _begin(self, token: LoopToken, capture: CaptureSource, classifier: Classifier) -> None:
        with self._lock:
            if self._scheduler.run(token, capture, classifier):
                log.info("Pipeline running (run %d, %d classes)", token.run_id, classifier.total_classes())

    def stop(self) -> None:
        """Tear down the current run. Never raises; safe to call repeatedly."""
        with self._lock:
            was_started = self._started
            self._started = False
            if self._token is not None:
                self._token.revoke()
            self._token = None
            self._scheduler.halt()
            stream, self._stream = self._stream, None
            classifier, self._classifier = self._classifier, None
        self._release(classifier=classifier, stream=stream)
        self._ctx.sink.clear()
        if was_started:
            log.info("Pipeline stopped")

    def restart(self) -> bool:
        """Full reload: stop, clear the error state, start again."""
        self.stop()
        self.clear_error()
        return self.start()

    def clear_error(self) -> None:
        self._error = None

    def close(self) -> None:
        """Stop and shut down the inference executor. Call when the host is destroyed."""
        self.stop()
        self._ctx.executor.shutdown(wait=False)

    def _abandoned(
        self,
        token: LoopToken,
        *,
        classifier: Classifier | None = None,
        stream: StreamHandle | None = None,
    ) -> bool:
        if not token.revoked:
            return False
        self._release(classifier=classifier, stream=stream)
        log.info("Run %d stopped during start; released its resources", token.run_id)
        return True

    def _fail(
        self,
        token: LoopToken,
        exc: Exception,
        *,
        classifier: Classifier | None,
        stream: StreamHandle | None,
    ) -> None:
        with self._lock:
            if stream is not None and self._stream is stream:
                self._stream = None
        self._release(classifier=classifier, stream=stream)
        with self._lock:
            if token.revoked:
                log.info("Run %d failed after stop: %s", token.run_id, exc)
                return
            token.revoke()
            self._scheduler.halt()
            if isinstance(exc, MediaAccessError):
                message = f"Camera unavailable: {exc}"
            elif isinstance(exc, ModelLoadError):
                message = f"Model failed to load: {exc}"
            else:
                message = f"Invalid settings: {exc}"
            self._error = message
        log.error("Pipeline start failed: %s", message)
        if self._on_error is not None:
            self._on_error(message)

    def _release(
        self,
        *,
        classifier: Classifier | None = None,
        stream: StreamHandle | None = None,
    ) -> None:
        if stream is not None:
            stream.stop()
        if classifier is not None:
            # Queued behind any outstanding predict() on the same single worker
            try:
                self._ctx.executor.submit(classifier.close)
            except RuntimeError:
                # Executor already shut down, nothing can still be using the model
                classifier.close()
