from __future__ import annotations

from types import SimpleNamespace

import numpy as np
import pytest

from classifiers.image_classifier import MediaPipeImageClassifier
from core.errors import InferenceError
from core.models import Prediction


class StubTask:
    """Stands in for mp.tasks.vision.ImageClassifier; returns canned categories."""

    def __init__(self, categories=None, error: Exception | None = None) -> None:
        self.categories = categories
        self.error = error
        self.images = []
        self.closed = False

    def classify(self, image):
        self.images.append(image)
        if self.error is not None:
            raise self.error
        if self.categories is None:
            return SimpleNamespace(classifications=[])
        return SimpleNamespace(classifications=[SimpleNamespace(categories=self.categories)])

    def close(self) -> None:
        self.closed = True


def _category(index, score):
    return SimpleNamespace(index=index, score=score, category_name=f"c{index}")


def _frame():
    frame = np.zeros((4, 6, 3), dtype=np.uint8)
    frame[..., 0] = 255  # blue in BGR
    return frame


def test_scores_follow_label_order_not_result_order():
    task = StubTask([_category(2, 0.25), _category(0, 0.7), _category(1, 0.05)])
    classifier = MediaPipeImageClassifier(task, ["Cats", "Dogs", "Birds"])
    assert classifier.predict(_frame()) == (
        Prediction("Cats", 0.7),
        Prediction("Dogs", 0.05),
        Prediction("Birds", 0.25),
    )


def test_unscored_classes_get_zero_and_unknown_indices_are_ignored():
    task = StubTask([_category(1, 0.6), _category(9, 0.4)])
    classifier = MediaPipeImageClassifier(task, ["Cats", "Dogs", "Birds"])
    result = classifier.predict(_frame())
    assert [p.probability for p in result] == [0.0, 0.6, 0.0]
    assert len(result) == classifier.total_classes()


def test_out_of_range_scores_are_clamped():
    task = StubTask([_category(0, 1.3), _category(1, -0.2), _category(2, None)])
    classifier = MediaPipeImageClassifier(task, ["Cats", "Dogs", "Birds"])
    assert [p.probability for p in classifier.predict(_frame())] == [1.0, 0.0, 0.0]


def test_empty_classification_scores_every_class_zero():
    classifier = MediaPipeImageClassifier(StubTask(), ["Cats", "Dogs"])
    assert classifier.predict(_frame()) == (Prediction("Cats", 0.0), Prediction("Dogs", 0.0))


def test_frame_is_converted_to_rgb():
    task = StubTask([_category(0, 1.0)])
    MediaPipeImageClassifier(task, ["Cats"]).predict(_frame())
    rgb = task.images[0].numpy_view()
    assert rgb.shape == (4, 6, 3)
    assert tuple(int(v) for v in rgb[0, 0]) == (0, 0, 255)


def test_runtime_failure_becomes_inference_error():
    task = StubTask(error=RuntimeError("tflite interpreter failed"))
    classifier = MediaPipeImageClassifier(task, ["Cats"])
    with pytest.raises(InferenceError, match="tflite interpreter failed"):
        classifier.predict(_frame())


def test_predict_after_close_raises():
    task = StubTask([_category(0, 1.0)])
    classifier = MediaPipeImageClassifier(task, ["Cats"])
    classifier.close()
    classifier.close()
    assert task.closed is True
    with pytest.raises(InferenceError, match="closed"):
        classifier.predict(_frame())
    assert task.images == []
