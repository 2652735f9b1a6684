"""Shared fixtures for the detection pipeline tests."""

from __future__ import annotations

import numpy as np
import pytest

from detectlens.core.catalog import MODEL_CATALOG
from detectlens.pipeline.capture import frame_from_bgr
from detectlens.pipeline.orchestrator import InferenceOrchestrator
from tests.fakes import ScriptedEngine, ScriptedHandle, coco_scores, make_outputs


@pytest.fixture
def coco_model():
    """A corner-format model using the COCO class table."""
    return MODEL_CATALOG[0]


@pytest.fixture
def hagrid_model():
    """A center-format model using the gesture class table."""
    return MODEL_CATALOG[3]


@pytest.fixture
def scripted_handle() -> ScriptedHandle:
    """Handle with a 32x32 input that detects one person at (2, 2, 12, 12)."""
    return ScriptedHandle(
        outputs=make_outputs(
            [[2.0, 2.0, 12.0, 12.0], [20.0, 20.0, 30.0, 30.0]],
            [coco_scores(person=0.9), coco_scores(car=0.1)],
        )
    )


@pytest.fixture
def orchestrator(scripted_handle: ScriptedHandle) -> InferenceOrchestrator:
    """Orchestrator over a scripted engine with an in-memory model loader."""
    engine = ScriptedEngine(handles=[scripted_handle])
    return InferenceOrchestrator(engine, model_loader=lambda path: path.encode())


@pytest.fixture
def bright_image() -> np.ndarray:
    """64x64 RGB raster bright enough to pass the black-frame check."""
    return np.full((64, 64, 3), 200, dtype=np.uint8)


class ReleaseCounter:
    """Count release callbacks per frame."""

    def __init__(self) -> None:
        self.counts: dict[int, int] = {}

    def frame(self, index: int, bgr: np.ndarray | None = None):
        self.counts[index] = 0
        image = bgr if bgr is not None else np.full((48, 64, 3), 180, dtype=np.uint8)

        def _release() -> None:
            self.counts[index] += 1

        return frame_from_bgr(image, release=_release)


@pytest.fixture
def release_counter() -> ReleaseCounter:
    """Factory of frames whose releases are counted."""
    return ReleaseCounter()
