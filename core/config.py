"""
Pipeline settings: where the model lives, which camera to open, and how to sample it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any

# Model folder next to the project root, same layout as a Teachable Machine export
DEFAULT_MODEL_DIR = Path(__file__).resolve().parent.parent / "my_model"


@dataclass(frozen=True)
class PipelineSettings:
    model_dir: Path = DEFAULT_MODEL_DIR
    model_file: str = "model.tflite"
    metadata_file: str = "metadata.json"
    # Camera index, or a path to a video file
    camera: int | str = 0
    width: int | None = None
    height: int | None = None
    flip: bool = True
    ready_timeout_s: float = 5.0
    # None = use the screen's refresh rate
    refresh_hz: float | None = None

    @property
    def model_path(self) -> Path:
        return Path(self.model_dir) / self.model_file

    @property
    def metadata_path(self) -> Path:
        return Path(self.model_dir) / self.metadata_file

    def with_changes(self, **changes: Any) -> PipelineSettings:
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["model_dir"] = str(self.model_dir)
        return out

    def validate(self) -> None:
        """Raise ValueError describing the first invalid field."""
        if not self.model_file.strip():
            raise ValueError("model_file must be a non-empty file name")
        if not self.metadata_file.strip():
            raise ValueError("metadata_file must be a non-empty file name")
        if isinstance(self.camera, bool) or not isinstance(self.camera, (int, str)):
            raise ValueError(f"camera must be an index or a video path, got {self.camera!r}")
        if isinstance(self.camera, int) and self.camera < 0:
            raise ValueError(f"camera index must be >= 0, got {self.camera}")
        for name in ("width", "height"):
            value = getattr(self, name)
            if value is not None and (not isinstance(value, int) or value <= 0):
                raise ValueError(f"{name} must be a positive int or None, got {value!r}")
        if (self.width is None) != (self.height is None):
            raise ValueError("width and height must be given together")
        if self.ready_timeout_s <= 0:
            raise ValueError(f"ready_timeout_s must be positive, got {self.ready_timeout_s}")
        if self.refresh_hz is not None and self.refresh_hz <= 0:
            raise ValueError(f"refresh_hz must be positive, got {self.refresh_hz}")


def default_settings() -> dict[str, Any]:
    """Default settings as a plain dict (for display / logging)."""
    return PipelineSettings().to_dict()


def parse_camera(value: str) -> int | str:
    """'0' -> 0 (camera index); anything else is treated as a video path."""
    value = value.strip()
    return int(value) if value.isdigit() else value
