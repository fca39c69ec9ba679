"""
MediaPipe Image Classifier backend: scores every class of a .tflite classification model
(e.g. a Teachable Machine TensorFlow Lite export) for one frame.
"""

from __future__ import annotations

import logging
from pathlib import Path

import cv2
import mediapipe as mp
import numpy as np

from classifiers.base import Classifier
from classifiers.metadata import read_labels
from core.errors import InferenceError, ModelLoadError
from core.models import Prediction, PredictionSet

log = logging.getLogger(__name__)


class MediaPipeImageClassifier(Classifier):
    def __init__(self, task: mp.tasks.vision.ImageClassifier, labels: list[str]) -> None:
        self._task: mp.tasks.vision.ImageClassifier | None = task
        self._labels = list(labels)

    @classmethod
    def load(cls, model_path: str | Path, metadata_path: str | Path) -> MediaPipeImageClassifier:
        labels = read_labels(metadata_path)
        model_path = Path(model_path)
        if not model_path.is_file():
            raise ModelLoadError(f"Model file not found: {model_path}")
        base_options = mp.tasks.BaseOptions(model_asset_path=str(model_path))
        options = mp.tasks.vision.ImageClassifierOptions(
            base_options=base_options,
            running_mode=mp.tasks.vision.RunningMode.IMAGE,
            # -1 = score every category, not just the top ones
            max_results=-1,
        )
        try:
            task = mp.tasks.vision.ImageClassifier.create_from_options(options)
        except (RuntimeError, ValueError) as e:
            raise ModelLoadError(f"Could not load model {model_path}: {e}") from e
        log.info("Loaded %s with %d classes", model_path.name, len(labels))
        return cls(task, labels)

    def total_classes(self) -> int:
        return len(self._labels)

    def predict(self, bitmap_bgr: np.ndarray) -> PredictionSet:
        if self._task is None:
            raise InferenceError("classifier is closed")
        rgb = cv2.cvtColor(bitmap_bgr, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        try:
            result = self._task.classify(mp_image)
        except (RuntimeError, ValueError) as e:
            raise InferenceError(str(e)) from e
        scores = [0.0] * len(self._labels)
        if result.classifications:
            for category in result.classifications[0].categories:
                if 0 <= category.index < len(scores):
                    scores[category.index] = min(max(float(category.score or 0.0), 0.0), 1.0)
        return tuple(Prediction(label, score) for label, score in zip(self._labels, scores))

    def close(self) -> None:
        if self._task is not None:
            self._task.close()
            self._task = None
