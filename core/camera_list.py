"""
Enumerate cameras with display names. On Windows uses DirectShow (pygrabber) for exact names;
same device order as OpenCV with CAP_DSHOW.
"""

from __future__ import annotations

import logging
import sys
from typing import NamedTuple

import cv2

log = logging.getLogger(__name__)


class CameraInfo(NamedTuple):
    index: int
    name: str


def _probe_opencv(max_cameras: int = 8) -> list[CameraInfo]:
    """Probe indices 0..max_cameras-1; keep each one that opens."""
    found: list[CameraInfo] = []
    for i in range(max_cameras):
        cap = cv2.VideoCapture(i)
        try:
            if cap.isOpened():
                found.append(CameraInfo(i, f"Camera {i}"))
        finally:
            cap.release()
    return found


def get_camera_list() -> list[CameraInfo]:
    """
    Return available cameras in OpenCV index order.
    On Windows with pygrabber installed, names come from DirectShow; otherwise "Camera N".
    """
    if sys.platform == "win32":
        try:
            from pygrabber.dshow_graph import FilterGraph
        except ImportError:
            log.debug("pygrabber not installed; probing cameras with OpenCV")
        else:
            devices = FilterGraph().get_input_devices()
            if devices:
                return [CameraInfo(i, name) for i, name in enumerate(devices)]
    cameras = _probe_opencv()
    log.debug("Found %d camera(s)", len(cameras))
    return cameras
