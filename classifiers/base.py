"""
Classifier interface the inference loop drives. Backends wrap a concrete model runtime.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import numpy as np

    from core.models import PredictionSet


class Classifier(ABC):
    """Image classifier over a fixed set of classes."""

    @abstractmethod
    def total_classes(self) -> int:
        """Number of classes; every predict() result has exactly this many entries."""
        ...

    @abstractmethod
    def predict(self, bitmap_bgr: np.ndarray) -> PredictionSet:
        """
        Classify one BGR frame. Blocking; the scheduler runs it off the UI thread.
        Returns one Prediction per class in label order. Raises InferenceError on failure.
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Release model resources."""
        ...
