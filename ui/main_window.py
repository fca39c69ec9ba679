"""
Main window: left sidebar (source, model, start/stop/restart), center live preview,
right tabs (Predictions, Logs, Performance).
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import numpy as np
from PySide6.QtCore import QObject, Qt, QThread, Signal, Slot
from PySide6.QtGui import QImage, QPixmap
from PySide6.QtWidgets import (
    QComboBox,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

from core.camera_list import get_camera_list
from core.config import PipelineSettings
from core.lifecycle import LifecycleManager, PipelineContext
from core.models import PredictionSet
from core.utils import CycleStats
from ui.panels import LogsPanel, PerformancePanel, PredictionsPanel, QtLogHandler
from ui.qt_clock import QtFrameClock

log = logging.getLogger(__name__)


class PipelineStartWorker(QObject):
    """Runs manager.start() in a background thread so the UI stays responsive."""

    start_done = Signal(bool)

    def __init__(self, manager: LifecycleManager) -> None:
        super().__init__()
        self._manager = manager

    def run(self) -> None:
        ok = False
        try:
            ok = self._manager.start()
        finally:
            self.start_done.emit(ok)


class MainWindow(QWidget):
    """Main application window with sidebar, live preview, and right panels."""

    # Emitted from the start worker thread; delivered on the GUI thread
    _error_raised = Signal(str)

    def __init__(self, settings: PipelineSettings) -> None:
        super().__init__()
        self.setWindowTitle("Webcam Classifier")
        self._settings = settings
        self._video_path: str | None = None
        self._start_thread: QThread | None = None
        self._start_worker: PipelineStartWorker | None = None

        self._clock = QtFrameClock(settings.refresh_hz)
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="inference")
        self._manager = LifecycleManager(
            PipelineContext(settings=settings, clock=self._clock, executor=executor),
            on_error=self._error_raised.emit,
            on_snapshot=self._show_frame,
            on_cycle=self._on_cycle_stats,
        )
        self._error_raised.connect(self._on_pipeline_error)
        self._unsubscribe = self._manager.sink.subscribe(self._on_predictions)

        layout = QHBoxLayout(self)
        # --- Left sidebar ---
        sidebar = QWidget()
        sidebar_layout = QVBoxLayout(sidebar)
        sidebar_layout.addWidget(QLabel("Input"))
        self._camera_combo = QComboBox()
        self._camera_combo.setToolTip("Select the camera to use.")
        self._camera_combo.activated.connect(self._on_camera_selected)
        sidebar_layout.addWidget(self._camera_combo)
        refresh_cam_btn = QPushButton("Refresh cameras")
        refresh_cam_btn.clicked.connect(self._refresh_cameras)
        sidebar_layout.addWidget(refresh_cam_btn)
        self._open_video_btn = QPushButton("Open Video")
        self._open_video_btn.setToolTip("Classify a video file instead of the camera.")
        self._open_video_btn.clicked.connect(self._on_open_video)
        sidebar_layout.addWidget(self._open_video_btn)
        sidebar_layout.addWidget(QLabel("Model"))
        self._model_label = QLabel(str(settings.model_dir))
        self._model_label.setWordWrap(True)
        self._model_label.setStyleSheet("color: #666; font-size: 11px;")
        sidebar_layout.addWidget(self._model_label)
        model_btn = QPushButton("Choose model folder")
        model_btn.clicked.connect(self._on_choose_model)
        sidebar_layout.addWidget(model_btn)
        self._start_stop_btn = QPushButton("Start")
        self._start_stop_btn.clicked.connect(self._on_start_stop)
        sidebar_layout.addWidget(self._start_stop_btn)
        self._restart_btn = QPushButton("Restart")
        self._restart_btn.setToolTip("Stop everything and reload model and camera.")
        self._restart_btn.clicked.connect(self._on_restart)
        sidebar_layout.addWidget(self._restart_btn)
        sidebar_layout.addStretch()
        layout.addWidget(sidebar)

        # --- Center: live preview ---
        self._video_label = QLabel()
        self._video_label.setMinimumSize(640, 480)
        self._video_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._video_label.setStyleSheet("background-color: #1e1e1e; color: #888;")
        self._video_label.setText("No video")
        layout.addWidget(self._video_label, stretch=1)

        # --- Right: tabs ---
        tabs = QTabWidget()
        self._predictions_panel = PredictionsPanel()
        tabs.addTab(self._predictions_panel, "Predictions")
        self._logs_panel = LogsPanel()
        tabs.addTab(self._logs_panel, "Logs")
        self._performance_panel = PerformancePanel()
        tabs.addTab(self._performance_panel, "Performance")
        layout.addWidget(tabs)

        self._log_handler = QtLogHandler(self._logs_panel)
        logging.getLogger().addHandler(self._log_handler)

        self._refresh_cameras()
        log.info("Application started. Select input and model folder, then Start.")
        self.resize(1100, 640)

    def _refresh_cameras(self) -> None:
        cameras = get_camera_list()
        self._camera_combo.clear()
        for camera in cameras:
            self._camera_combo.addItem(camera.name, camera.index)
        if not cameras:
            self._camera_combo.addItem("No cameras found", 0)
            log.warning("No cameras detected. Connect a camera and click Refresh cameras.")

    def _on_camera_selected(self, _index: int) -> None:
        self._video_path = None

    def _on_open_video(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Video", "", "Video (*.mp4 *.avi *.mov *.mkv);;All (*)"
        )
        if not path:
            return
        self._video_path = path
        log.info("Video selected: %s (used on next start)", path)

    def _on_choose_model(self) -> None:
        path = QFileDialog.getExistingDirectory(self, "Model folder", str(self._settings.model_dir))
        if not path:
            return
        self._settings = self._settings.with_changes(model_dir=Path(path))
        self._model_label.setText(path)
        log.info("Model folder: %s (used on next start)", path)

    def _current_settings(self) -> PipelineSettings:
        if self._video_path is not None:
            return self._settings.with_changes(camera=self._video_path)
        index = self._camera_combo.currentData()
        return self._settings.with_changes(camera=index if index is not None else 0)

    def _on_start_stop(self) -> None:
        if self._manager.is_started:
            self._stop_pipeline()
            return
        self._start_pipeline()

    def _on_restart(self) -> None:
        self._stop_pipeline()
        self._manager.clear_error()
        self._predictions_panel.show_error(None)
        self._start_pipeline()

    def _start_pipeline(self) -> None:
        if self._start_thread is not None:
            return
        self._manager.context.settings = self._current_settings()
        self._start_stop_btn.setEnabled(False)
        self._restart_btn.setEnabled(False)
        self._start_stop_btn.setText("Loading...")
        self._start_worker = PipelineStartWorker(self._manager)
        self._start_thread = QThread()
        self._start_worker.moveToThread(self._start_thread)
        self._start_thread.started.connect(self._start_worker.run)
        self._start_worker.start_done.connect(self._on_start_done)
        self._start_thread.start()

    @Slot(bool)
    def _on_start_done(self, success: bool) -> None:
        self._finish_start_thread()
        self._restart_btn.setEnabled(True)
        if self._manager.has_error:
            self._start_stop_btn.setText("Start")
            # Terminal until Restart
            self._start_stop_btn.setEnabled(False)
            return
        self._start_stop_btn.setEnabled(True)
        self._start_stop_btn.setText("Stop" if success else "Start")
        self._performance_panel.reset()

    def _finish_start_thread(self) -> None:
        if self._start_thread is not None:
            self._start_thread.quit()
            self._start_thread.wait(2000)
            self._start_thread = None
        self._start_worker = None

    def _stop_pipeline(self) -> None:
        self._manager.stop()
        self._start_stop_btn.setEnabled(True)
        self._start_stop_btn.setText("Start")
        self._performance_panel.reset()
        self._video_label.clear()
        self._video_label.setText("No video")

    @Slot(str)
    def _on_pipeline_error(self, message: str) -> None:
        self._predictions_panel.show_error(message)

    def _on_predictions(self, predictions: PredictionSet) -> None:
        self._predictions_panel.update_predictions(predictions)

    def _on_cycle_stats(self, stats: CycleStats) -> None:
        self._performance_panel.update_stats(stats)

    def _show_frame(self, bitmap: np.ndarray) -> None:
        h, w = bitmap.shape[:2]
        qimg = QImage(bitmap.data, w, h, 3 * w, QImage.Format.Format_BGR888)
        self._video_label.setPixmap(QPixmap.fromImage(qimg).scaled(
            self._video_label.size(),
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation,
        ))

    def closeEvent(self, event) -> None:
        self._manager.close()
        self._clock.cancel_all()
        if self._start_thread is not None:
            self._start_thread.quit()
            self._start_thread.wait(int((self._settings.ready_timeout_s + 1) * 1000))
        self._unsubscribe()
        logging.getLogger().removeHandler(self._log_handler)
        event.accept()
