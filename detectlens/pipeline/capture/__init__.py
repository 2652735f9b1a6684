"""Camera capture backends."""

from __future__ import annotations

from detectlens.pipeline.capture.core import CaptureProtocol
from detectlens.pipeline.capture.opencv import OpenCVCapture, frame_from_bgr


__all__ = [
    "CaptureProtocol",
    "OpenCVCapture",
    "frame_from_bgr",
]
