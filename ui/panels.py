"""
Right-side panels: Predictions (one row per class + error), Logs, Performance.
"""

from __future__ import annotations

import logging

from PySide6.QtCore import QObject, Signal
from PySide6.QtWidgets import (
    QLabel,
    QPlainTextEdit,
    QVBoxLayout,
    QWidget,
)

from core.models import PredictionSet, format_prediction
from core.utils import CycleStats


class PredictionsPanel(QWidget):
    """One label per class, updated in place every published cycle."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        self._error_label = QLabel(self)
        self._error_label.setWordWrap(True)
        self._error_label.setStyleSheet("color: #c62828; font-weight: bold;")
        self._error_label.hide()
        layout.addWidget(self._error_label)
        self._placeholder = QLabel("Predictions will appear here when the camera is running.")
        self._placeholder.setStyleSheet("color: #888;")
        layout.addWidget(self._placeholder)
        self._rows_layout = QVBoxLayout()
        layout.addLayout(self._rows_layout)
        layout.addStretch()
        self._rows: list[QLabel] = []

    def update_predictions(self, predictions: PredictionSet) -> None:
        if not predictions:
            self.clear()
            return
        if len(self._rows) != len(predictions):
            self._build_rows(len(predictions))
        for row, prediction in zip(self._rows, predictions):
            row.setText(format_prediction(prediction))
        self._placeholder.hide()

    def _build_rows(self, count: int) -> None:
        self._remove_rows()
        for _ in range(count):
            row = QLabel(self)
            row.setStyleSheet("font-size: 16px;")
            self._rows_layout.addWidget(row)
            self._rows.append(row)

    def _remove_rows(self) -> None:
        for row in self._rows:
            self._rows_layout.removeWidget(row)
            row.deleteLater()
        self._rows = []

    def clear(self) -> None:
        self._remove_rows()
        self._placeholder.show()

    def show_error(self, message: str | None) -> None:
        if message:
            self._error_label.setText(message)
            self._error_label.show()
        else:
            self._error_label.clear()
            self._error_label.hide()


class LogsPanel(QWidget):
    """Shows application log records."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        self._text = QPlainTextEdit(self)
        self._text.setReadOnly(True)
        self._text.setMaximumBlockCount(2000)
        layout.addWidget(self._text)

    def append(self, message: str) -> None:
        self._text.appendPlainText(message)
        # Auto-scroll to bottom
        scrollbar = self._text.verticalScrollBar()
        scrollbar.setValue(scrollbar.maximum())

    def clear(self) -> None:
        self._text.clear()


class PerformancePanel(QWidget):
    """Shows cycle rate, classifier latency (ms), and rolling average."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        self._rate_label = QLabel()
        self._latency_label = QLabel()
        self._rolling_label = QLabel()
        self._failed_label = QLabel()
        for w in (self._rate_label, self._latency_label, self._rolling_label, self._failed_label):
            layout.addWidget(w)
        layout.addStretch()
        self.reset()

    def update_stats(self, stats: CycleStats) -> None:
        self._rate_label.setText(f"Cycles/s: {stats.cycles_per_s:.1f}")
        self._latency_label.setText(f"Inference (ms): {stats.inference_ms:.1f}")
        self._rolling_label.setText(f"Rolling avg (ms): {stats.rolling_inference_ms:.1f}")
        self._failed_label.setText(f"Failed cycles: {stats.failed_cycles}")

    def reset(self) -> None:
        self._rate_label.setText("Cycles/s: —")
        self._latency_label.setText("Inference (ms): —")
        self._rolling_label.setText("Rolling avg (ms): —")
        self._failed_label.setText("Failed cycles: —")


class _LogBridge(QObject):
    message = Signal(str)


class QtLogHandler(logging.Handler):
    """Forwards log records to a LogsPanel through a queued signal (any thread may log)."""

    def __init__(self, panel: LogsPanel, level: int = logging.INFO) -> None:
        super().__init__(level)
        self._bridge = _LogBridge()
        self._bridge.message.connect(panel.append)
        self.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s", "%H:%M:%S"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._bridge.message.emit(self.format(record))
        except RuntimeError:
            # Panel already destroyed during shutdown
            pass
