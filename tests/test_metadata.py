from __future__ import annotations

import json

import pytest

from classifiers import load_classifier
from classifiers.metadata import read_labels
from core.errors import ModelLoadError


def test_reads_teachable_machine_metadata_json(tmp_path):
    path = tmp_path / "metadata.json"
    path.write_text(json.dumps({"tfjsVersion": "1.3.1", "labels": ["Cats", "Dogs"], "imageSize": 224}))
    assert read_labels(path) == ["Cats", "Dogs"]


def test_reads_labels_txt_and_strips_index_prefix(tmp_path):
    path = tmp_path / "labels.txt"
    path.write_text("0 Class 1\n1 Class 2\n\n2 Background\n")
    assert read_labels(path) == ["Class 1", "Class 2", "Background"]


def test_plain_labels_txt(tmp_path):
    path = tmp_path / "labels.txt"
    path.write_text("cat\ndog\n")
    assert read_labels(path) == ["cat", "dog"]


def test_missing_metadata_file(tmp_path):
    with pytest.raises(ModelLoadError, match="not found"):
        read_labels(tmp_path / "metadata.json")


@pytest.mark.parametrize(
    "content",
    ["{not json", json.dumps({"labels": "Cats"}), json.dumps([1, 2]), json.dumps({"labels": []})],
)
def test_invalid_metadata_json(tmp_path, content):
    path = tmp_path / "metadata.json"
    path.write_text(content)
    with pytest.raises(ModelLoadError):
        read_labels(path)


def test_load_classifier_rejects_unsupported_format(tmp_path):
    with pytest.raises(ModelLoadError, match="Unsupported model format"):
        load_classifier(tmp_path / "model.json", tmp_path / "metadata.json")


@pytest.mark.parametrize("name", ["labels.txt", "metadata.json"])
def test_undecodable_metadata_is_a_model_load_error(tmp_path, name):
    path = tmp_path / name
    path.write_bytes(b"\xff\xfe\x00\xc3(")
    with pytest.raises(ModelLoadError, match="Could not read metadata"):
        read_labels(path)
