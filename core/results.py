"""
Result sink: holds the latest prediction set for rendering. No history is kept.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, Iterable

from core.models import Prediction, PredictionSet

log = logging.getLogger(__name__)

Listener = Callable[[PredictionSet], None]


class ResultSink:
    """Latest prediction set, swapped as one immutable tuple so readers never see a mix."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._current: PredictionSet = ()
        self._listeners: list[Listener] = []

    def publish(self, predictions: Iterable[Prediction]) -> None:
        snapshot: PredictionSet = tuple(predictions)
        with self._lock:
            self._current = snapshot
            listeners = list(self._listeners)
        self._notify(listeners, snapshot)

    def current(self) -> PredictionSet:
        with self._lock:
            return self._current

    def clear(self) -> None:
        with self._lock:
            had_results = bool(self._current)
            self._current = ()
            listeners = list(self._listeners)
        if had_results:
            self._notify(listeners, ())

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener after every publish/clear. Returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    @staticmethod
    def _notify(listeners: list[Listener], snapshot: PredictionSet) -> None:
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:  # noqa: BLE001
                log.exception("Result listener %r failed", listener)
