"""
Offscreen bitmap that holds the frame handed to the classifier. Allocated once per run
at the negotiated camera size and overwritten in place every cycle.
"""

from __future__ import annotations

import cv2
import numpy as np


class FrameBuffer:
    """Fixed-size BGR bitmap. Only the scheduler writes to it."""

    def __init__(self, flip: bool = False) -> None:
        self._bitmap: np.ndarray | None = None
        self.flip = flip

    @property
    def size(self) -> tuple[int, int] | None:
        """(width, height), or None before the first resize/snapshot."""
        if self._bitmap is None:
            return None
        h, w = self._bitmap.shape[:2]
        return w, h

    @property
    def bitmap(self) -> np.ndarray | None:
        return self._bitmap

    def resize(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Frame buffer size must be positive, got {width}x{height}")
        self._bitmap = np.zeros((height, width, 3), dtype=np.uint8)

    def clear(self) -> None:
        self._bitmap = None

    def snapshot(self, frame: np.ndarray) -> np.ndarray:
        """Copy frame into the bitmap and return the bitmap.

        The first call sizes the bitmap from the frame; later calls reuse it. Frames of a
        different size are scaled to fit.
        """
        if frame.ndim == 2:
            frame = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
        elif frame.shape[2] == 4:
            frame = cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)
        if self._bitmap is None:
            h, w = frame.shape[:2]
            self.resize(w, h)
        target = self._bitmap
        if frame.shape != target.shape:
            h, w = target.shape[:2]
            frame = cv2.resize(frame, (w, h), interpolation=cv2.INTER_AREA)
        # Mirror like a selfie view
        np.copyto(target, frame[:, ::-1] if self.flip else frame)
        return target
