"""Exception hierarchy for the detection pipeline."""

from __future__ import annotations


class DetectLensError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(DetectLensError, ValueError):
    """Raised for unsupported formats, rotations or missing catalog mappings."""


class DataIntegrityError(DetectLensError):
    """Raised when raw output tensors do not match their declared shapes."""


class ModelLoadError(DetectLensError, RuntimeError):
    """Raised when the engine cannot build a usable network handle."""


class InferenceError(DetectLensError, RuntimeError):
    """Raised when the engine fails to execute a frame."""
