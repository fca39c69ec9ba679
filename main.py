"""
Webcam classifier GUI — entry point.
Run: python main.py --model-dir path/to/my_model
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

# Reduce TensorFlow/MediaPipe console noise (INFO and WARNING)
os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "2")
os.environ.setdefault("GLOG_minloglevel", "2")

from PySide6.QtWidgets import QApplication

from core.config import DEFAULT_MODEL_DIR, PipelineSettings, parse_camera
from core.logging_config import setup_logging
from ui.main_window import MainWindow


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Live webcam image classification.")
    parser.add_argument("--model-dir", type=Path, default=DEFAULT_MODEL_DIR,
                        help="Folder holding the model and its labels (default: %(default)s)")
    parser.add_argument("--model-file", default="model.tflite")
    parser.add_argument("--metadata-file", default="metadata.json",
                        help="metadata.json or labels.txt inside the model folder")
    parser.add_argument("--camera", type=parse_camera, default=0,
                        help="Camera index or path to a video file")
    parser.add_argument("--width", type=int, default=None)
    parser.add_argument("--height", type=int, default=None)
    parser.add_argument("--no-flip", action="store_true", help="Do not mirror the camera image")
    parser.add_argument("--ready-timeout", type=float, default=5.0,
                        help="Seconds to wait for the first camera frame")
    parser.add_argument("--refresh-hz", type=float, default=None,
                        help="Loop rate; defaults to the screen refresh rate")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, ... (default: env LOG_LEVEL or INFO)")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    return parser


def settings_from_args(args: argparse.Namespace) -> PipelineSettings:
    settings = PipelineSettings(
        model_dir=args.model_dir,
        model_file=args.model_file,
        metadata_file=args.metadata_file,
        camera=args.camera,
        width=args.width,
        height=args.height,
        flip=not args.no_flip,
        ready_timeout_s=args.ready_timeout,
        refresh_hz=args.refresh_hz,
    )
    settings.validate()
    return settings


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(level=args.log_level, log_file=args.log_file)
    try:
        settings = settings_from_args(args)
    except ValueError as e:
        parser.error(str(e))
    app = QApplication(sys.argv[:1])
    window = MainWindow(settings)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
