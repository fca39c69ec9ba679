"""
Shared data models: a single class score and the per-cycle prediction set.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple


@dataclass(frozen=True)
class Prediction:
    """Score for one class."""

    label: str
    probability: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.probability <= 1.0:
            raise ValueError(
                f"probability for {self.label!r} must be in [0, 1], got {self.probability}"
            )


# Ordered, one entry per class; replaced wholesale every cycle
PredictionSet = Tuple[Prediction, ...]


def format_prediction(prediction: Prediction) -> str:
    """Row text shown for one class, e.g. 'A: 0.90'."""
    return f"{prediction.label}: {prediction.probability:.2f}"


def render_lines(predictions: Iterable[Prediction]) -> list[str]:
    return [format_prediction(p) for p in predictions]
