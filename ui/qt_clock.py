"""
Qt display-refresh clock: one single-shot QTimer per requested frame, plus a queued
signal for handing callbacks from worker threads to the GUI thread.
"""

from __future__ import annotations

import itertools
import logging
from typing import Callable

from PySide6.QtCore import QObject, Qt, QTimer, Signal, Slot
from PySide6.QtGui import QGuiApplication

from core.clock import FrameClock

log = logging.getLogger(__name__)

_FALLBACK_HZ = 60.0


class _PostBridge(QObject):
    posted = Signal(object)

    @Slot(object)
    def run(self, callback: Callable[[], None]) -> None:
        callback()


class QtFrameClock(FrameClock):
    """Create on the GUI thread; timers and posted callbacks run there."""

    def __init__(self, refresh_hz: float | None = None) -> None:
        if refresh_hz is None:
            screen = QGuiApplication.primaryScreen()
            refresh_hz = screen.refreshRate() if screen is not None else _FALLBACK_HZ
            if refresh_hz <= 0:
                refresh_hz = _FALLBACK_HZ
        self._interval_ms = max(1, round(1000.0 / refresh_hz))
        self._bridge = _PostBridge()
        # Queued so callbacks posted from the inference thread run on the GUI thread
        self._bridge.posted.connect(self._bridge.run, Qt.ConnectionType.QueuedConnection)
        self._timers: dict[int, QTimer] = {}
        self._handles = itertools.count(1)
        log.debug("Frame clock at %.1f Hz (%d ms)", refresh_hz, self._interval_ms)

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    def request_frame(self, callback: Callable[[], None]) -> int:
        handle = next(self._handles)
        timer = QTimer(self._bridge)
        timer.setSingleShot(True)
        timer.setTimerType(Qt.TimerType.PreciseTimer)
        timer.timeout.connect(lambda: self._fire(handle, callback))
        self._timers[handle] = timer
        timer.start(self._interval_ms)
        return handle

    def cancel_frame(self, handle: int) -> None:
        timer = self._timers.pop(handle, None)
        if timer is not None:
            timer.stop()
            timer.deleteLater()

    def post(self, callback: Callable[[], None]) -> None:
        self._bridge.posted.emit(callback)

    def cancel_all(self) -> None:
        for handle in list(self._timers):
            self.cancel_frame(handle)

    def _fire(self, handle: int, callback: Callable[[], None]) -> None:
        timer = self._timers.pop(handle, None)
        if timer is None:
            return
        timer.deleteLater()
        callback()
