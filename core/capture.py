"""
Video capture: webcam by index or video file. The stream handle owns the hardware
tracks; the capture source only reads frames from whatever stream it acquired.
"""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import Any, Callable

import cv2
import numpy as np

from core.config import PipelineSettings
from core.errors import MediaAccessError

log = logging.getLogger(__name__)

_READY_POLL_S = 0.1


class VideoTrack:
    """One stoppable hardware track (a cv2.VideoCapture)."""

    kind = "video"

    def __init__(self, cap: Any, label: str) -> None:
        self._cap = cap
        self.label = label

    @property
    def live(self) -> bool:
        return self._cap is not None

    def read(self) -> np.ndarray | None:
        if self._cap is None:
            return None
        ok, frame = self._cap.read()
        if not ok or frame is None or frame.size == 0:
            return None
        return frame

    def stop(self) -> None:
        """Release the device. Safe to call more than once."""
        if self._cap is None:
            return
        self._cap.release()
        self._cap = None
        log.debug("Track stopped: %s", self.label)


class StreamHandle:
    """Live media stream: a set of tracks that stop together."""

    def __init__(self, tracks: list[VideoTrack]) -> None:
        self._tracks = list(tracks)

    @property
    def active(self) -> bool:
        return any(t.live for t in self._tracks)

    def get_tracks(self) -> list[VideoTrack]:
        return list(self._tracks)

    def video_track(self) -> VideoTrack | None:
        for track in self._tracks:
            if track.kind == "video":
                return track
        return None

    def stop(self) -> None:
        for track in self._tracks:
            track.stop()


class CaptureSource:
    """Unified source for webcam (by index) or video file."""

    def __init__(
        self,
        source: int | str | Path = 0,
        *,
        width: int | None = None,
        height: int | None = None,
        capture_factory: Callable[..., Any] = cv2.VideoCapture,
    ) -> None:
        self._source = source
        self._width = width
        self._height = height
        self._capture_factory = capture_factory
        self._stream: StreamHandle | None = None

    @classmethod
    def from_settings(cls, settings: PipelineSettings) -> CaptureSource:
        return cls(settings.camera, width=settings.width, height=settings.height)

    @property
    def source(self) -> int | str | Path:
        return self._source

    def _open(self) -> Any:
        if isinstance(self._source, int):
            # On Windows, use DirectShow so index order matches the enumerated camera list
            if sys.platform == "win32":
                return self._capture_factory(self._source, cv2.CAP_DSHOW)
            return self._capture_factory(self._source)
        return self._capture_factory(str(self._source))

    def acquire(self) -> StreamHandle:
        """Open the camera or video file. Raises MediaAccessError if it cannot be opened."""
        try:
            cap = self._open()
        except cv2.error as e:
            raise MediaAccessError(f"Could not open video source {self._source!r}: {e}") from e
        if not cap.isOpened():
            cap.release()
            raise MediaAccessError(
                f"Could not open video source {self._source!r} (denied, busy or missing)"
            )
        if self._width and self._height:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)
        self._stream = StreamHandle([VideoTrack(cap, label=str(self._source))])
        log.info("Opened video source %r", self._source)
        return self._stream

    def wait_until_ready(self, timeout_s: float = 5.0) -> tuple[int, int]:
        """Block until the stream yields a non-empty frame; return its (width, height)."""
        track = self._stream.video_track() if self._stream is not None else None
        if track is None or not track.live:
            raise MediaAccessError("No active stream; call acquire() first")
        deadline = time.monotonic() + timeout_s
        while True:
            if not track.live:
                raise MediaAccessError(
                    f"Video source {self._source!r} was stopped before its first frame"
                )
            frame = track.read()
            if frame is not None:
                h, w = frame.shape[:2]
                log.info("Video source ready at %dx%d", w, h)
                return w, h
            if time.monotonic() >= deadline:
                raise MediaAccessError(
                    f"Video source {self._source!r} produced no frames within {timeout_s:.1f}s"
                )
            time.sleep(_READY_POLL_S)

    def current_frame(self) -> np.ndarray | None:
        """Read the live frame now (not cached). None if the stream is gone or the read failed."""
        track = self._stream.video_track() if self._stream is not None else None
        if track is None or not track.live:
            log.debug("current_frame() on a released stream")
            return None
        frame = track.read()
        if frame is None:
            log.debug("Frame read failed on %r", self._source)
        return frame
