"""
Class labels for a model: Teachable Machine metadata.json or a labels.txt file.
"""

from __future__ import annotations

import json
import re
from pathlib import Path

from core.errors import ModelLoadError

# "0 Cats" -> "Cats" (Teachable Machine labels.txt prefixes each line with its index)
_INDEX_PREFIX = re.compile(r"^\d+\s+")


def _labels_from_json(path: Path) -> list[str]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ModelLoadError(f"Invalid metadata JSON in {path}: {e}") from e
    labels = data.get("labels") if isinstance(data, dict) else None
    if not isinstance(labels, list) or not all(isinstance(x, str) for x in labels):
        raise ModelLoadError(f"{path} has no 'labels' list of strings")
    return list(labels)


def _labels_from_text(path: Path) -> list[str]:
    labels = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line:
            labels.append(_INDEX_PREFIX.sub("", line, count=1))
    return labels


def read_labels(metadata_path: str | Path) -> list[str]:
    """Return class labels in model output order. Raises ModelLoadError."""
    path = Path(metadata_path)
    if not path.is_file():
        raise ModelLoadError(f"Metadata file not found: {path}")
    try:
        if path.suffix.lower() == ".json":
            labels = _labels_from_json(path)
        else:
            labels = _labels_from_text(path)
    except (OSError, UnicodeDecodeError) as e:
        raise ModelLoadError(f"Could not read metadata {path}: {e}") from e
    if not labels:
        raise ModelLoadError(f"No class labels in {path}")
    return labels
