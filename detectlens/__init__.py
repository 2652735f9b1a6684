"""DetectLens: on-device detection post-processing and overlay pipeline."""

from __future__ import annotations

import importlib

from detectlens.core import (
    DEFAULT_MODEL,
    MODEL_CATALOG,
    DetectionDecoder,
    PixelNormalizer,
    decode_detections,
    find_model,
    iou,
    non_max_suppression,
    yuv_to_rgb,
)
from detectlens.errors import (
    ConfigurationError,
    DataIntegrityError,
    DetectLensError,
    InferenceError,
    ModelLoadError,
)
from detectlens.pipeline import (
    AnalysisLoop,
    InferenceOrchestrator,
    ModelState,
    RateTracker,
    Runtime,
)
from detectlens.types import (
    BoundingBox,
    CameraFrame,
    DetectionResult,
    ModelDescriptor,
    RectFormat,
)
from detectlens.ui import OverlayView, map_detections


def run_app(*args: object, **kwargs: object) -> int:
    """Run the live detection app via lazy import."""
    module = importlib.import_module("detectlens.app")
    return module.run_app(*args, **kwargs)


__all__ = [
    "DEFAULT_MODEL",
    "MODEL_CATALOG",
    "AnalysisLoop",
    "BoundingBox",
    "CameraFrame",
    "ConfigurationError",
    "DataIntegrityError",
    "DetectLensError",
    "DetectionDecoder",
    "DetectionResult",
    "InferenceError",
    "InferenceOrchestrator",
    "ModelDescriptor",
    "ModelLoadError",
    "ModelState",
    "OverlayView",
    "PixelNormalizer",
    "RateTracker",
    "RectFormat",
    "Runtime",
    "decode_detections",
    "find_model",
    "iou",
    "map_detections",
    "non_max_suppression",
    "run_app",
    "yuv_to_rgb",
]
