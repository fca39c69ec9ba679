from __future__ import annotations

import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Callable

import numpy as np
import pytest

from classifiers.base import Classifier
from core.clock import FrameClock
from core.config import PipelineSettings
from core.errors import MediaAccessError, ModelLoadError
from core.lifecycle import LifecycleManager, PipelineContext
from core.models import Prediction


class ManualClock(FrameClock):
    """Frames fire only when the test calls tick(); posted callbacks run on drain()."""

    def __init__(self) -> None:
        self._next = 0
        self.frames: dict[int, Callable[[], None]] = {}
        self.posted: list[Callable[[], None]] = []
        self.requested = 0
        self.cancelled: list[int] = []

    def request_frame(self, callback):
        self._next += 1
        self.requested += 1
        self.frames[self._next] = callback
        return self._next

    def cancel_frame(self, handle):
        self.cancelled.append(handle)
        self.frames.pop(handle, None)

    def post(self, callback):
        self.posted.append(callback)

    def drain(self) -> None:
        while self.posted:
            self.posted.pop(0)()

    def tick(self) -> None:
        """One display refresh: run posted work, then every pending frame callback."""
        self.drain()
        frames, self.frames = self.frames, {}
        for callback in frames.values():
            callback()

    @property
    def pending(self) -> int:
        return len(self.frames)


class ManualExecutor:
    """Jobs run only when the test resolves them, so calls can be held 'in flight'."""

    def __init__(self) -> None:
        self.jobs: list[tuple[Callable, tuple, Future]] = []
        self.max_outstanding = 0
        self.shut_down = False

    def submit(self, fn, *args):
        if self.shut_down:
            raise RuntimeError("cannot schedule new futures after shutdown")
        future: Future = Future()
        self.jobs.append((fn, args, future))
        self.max_outstanding = max(self.max_outstanding, self.outstanding)
        return future

    @property
    def outstanding(self) -> int:
        return sum(1 for _, _, f in self.jobs if not f.done())

    @property
    def predictions_outstanding(self) -> int:
        return sum(1 for fn, _, f in self.jobs if fn.__name__ == "predict" and not f.done())

    def run_next(self) -> Future:
        fn, args, future = self.jobs.pop(0)
        try:
            future.set_result(fn(*args))
        except Exception as e:  # noqa: BLE001
            future.set_exception(e)
        return future

    def fail_next(self, exc: Exception) -> Future:
        _, _, future = self.jobs.pop(0)
        future.set_exception(exc)
        return future

    def run_all(self) -> None:
        while self.jobs:
            self.run_next()

    def shutdown(self, wait: bool = True, **kwargs) -> None:
        self.shut_down = True


class FakeClassifier(Classifier):
    def __init__(self, labels=("A", "B"), scores=(0.9, 0.1)) -> None:
        self.labels = list(labels)
        self.scores = list(scores)
        self.calls = 0
        self.closed = False
        self.fail_on: set[int] = set()

    def total_classes(self) -> int:
        return len(self.labels)

    def predict(self, bitmap_bgr):
        self.calls += 1
        if self.calls in self.fail_on:
            raise RuntimeError(f"predict failed on call {self.calls}")
        return tuple(Prediction(l, s) for l, s in zip(self.labels, self.scores))

    def close(self) -> None:
        self.closed = True


class FakeTrack:
    kind = "video"

    def __init__(self) -> None:
        self.stop_calls = 0

    @property
    def live(self) -> bool:
        return self.stop_calls == 0

    def stop(self) -> None:
        self.stop_calls += 1


class FakeStream:
    def __init__(self) -> None:
        self.tracks = [FakeTrack()]

    @property
    def active(self) -> bool:
        return any(t.live for t in self.tracks)

    def get_tracks(self):
        return list(self.tracks)

    def stop(self) -> None:
        for t in self.tracks:
            t.stop()


class FakeCapture:
    """Stands in for CaptureSource; frames are 4x6 BGR arrays."""

    def __init__(self, *, deny: bool = False, size=(6, 4)) -> None:
        self.deny = deny
        self.size = size
        self.streams: list[FakeStream] = []
        self.reads = 0
        self.on_acquire: Callable[[], None] | None = None
        # When set, wait_until_ready() blocks until the test releases it
        self.ready_gate: threading.Event | None = None
        self.waiting = threading.Event()

    def acquire(self):
        if self.deny:
            raise MediaAccessError("permission denied")
        stream = FakeStream()
        self.streams.append(stream)
        if self.on_acquire is not None:
            self.on_acquire()
        return stream

    def wait_until_ready(self, timeout_s: float = 5.0):
        self.waiting.set()
        if self.ready_gate is not None:
            self.ready_gate.wait(timeout=5.0)
        if not self.streams[-1].active:
            raise MediaAccessError("stream stopped before its first frame")
        return self.size

    def current_frame(self):
        stream = self.streams[-1] if self.streams else None
        if stream is None or not stream.active:
            raise AssertionError("frame read from a released stream")
        self.reads += 1
        w, h = self.size
        return np.full((h, w, 3), self.reads % 255, dtype=np.uint8)


class Harness:
    def __init__(self, *, deny_camera=False, model_error=False) -> None:
        self.clock = ManualClock()
        self.executor = ManualExecutor()
        self.capture = FakeCapture(deny=deny_camera)
        self.classifiers: list[FakeClassifier] = []
        self.errors: list[str] = []
        self.model_error = model_error

        def load(model_path, metadata_path):
            if self.model_error:
                raise ModelLoadError("bad model")
            classifier = FakeClassifier()
            self.classifiers.append(classifier)
            return classifier

        self.context = PipelineContext(
            settings=PipelineSettings(model_dir=Path("my_model")),
            clock=self.clock,
            executor=self.executor,
            open_capture=lambda settings: self.capture,
            load_classifier=load,
        )
        self.manager = LifecycleManager(self.context, on_error=self.errors.append)

    @property
    def classifier(self) -> FakeClassifier:
        return self.classifiers[-1]

    def start_and_begin(self) -> bool:
        ok = self.manager.start()
        self.clock.drain()
        return ok

    def cycle(self) -> None:
        """Fire the pending frame, then resolve the classifier call it issued."""
        self.clock.tick()
        self.executor.run_next()
        self.clock.drain()


@pytest.fixture
def harness() -> Harness:
    return Harness()
