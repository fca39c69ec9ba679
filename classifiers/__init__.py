"""
Classifier backends. load_classifier() picks one from the model file's suffix.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from core.errors import ModelLoadError

if TYPE_CHECKING:
    from classifiers.base import Classifier

SUPPORTED_SUFFIXES = (".tflite",)


def load_classifier(model_path: str | Path, metadata_path: str | Path) -> Classifier:
    """Load the classifier for model_path with labels from metadata_path. Raises ModelLoadError."""
    suffix = Path(model_path).suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ModelLoadError(
            f"Unsupported model format {suffix or '(none)'!r}; expected one of {SUPPORTED_SUFFIXES}"
        )
    # Imported here so the loop and its tests don't pull in mediapipe
    from classifiers.image_classifier import MediaPipeImageClassifier

    return MediaPipeImageClassifier.load(model_path, metadata_path)


__all__ = ["SUPPORTED_SUFFIXES", "load_classifier"]
