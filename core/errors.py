"""
Error taxonomy for the capture -> classify -> render pipeline.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for pipeline errors."""


class MediaAccessError(PipelineError):
    """Camera could not be opened or never produced a usable frame. Fatal to start()."""


class ModelLoadError(PipelineError):
    """Classifier model or its metadata failed to load. Fatal to start()."""


class InferenceError(PipelineError):
    """A single predict() call failed. The loop skips that cycle and keeps going."""
