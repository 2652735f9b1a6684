"""Runtime pipeline: engine contract, orchestration, threading and capture."""

from __future__ import annotations

from detectlens.pipeline.analysis import (
    AnalysisLoop,
    LatestUpdateSink,
    ModelLoader,
    UiDispatcher,
)
from detectlens.pipeline.capture import OpenCVCapture, frame_from_bgr
from detectlens.pipeline.engine import NetworkEngine, NetworkHandle, Runtime
from detectlens.pipeline.metrics.rate import RateTracker
from detectlens.pipeline.orchestrator import (
    InferenceOrchestrator,
    ModelState,
    file_model_loader,
)


__all__ = [
    "AnalysisLoop",
    "InferenceOrchestrator",
    "LatestUpdateSink",
    "ModelLoader",
    "ModelState",
    "NetworkEngine",
    "NetworkHandle",
    "OpenCVCapture",
    "RateTracker",
    "Runtime",
    "UiDispatcher",
    "file_model_loader",
    "frame_from_bgr",
]
