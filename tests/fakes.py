"""Deterministic stand-ins for the network engine."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from detectlens.core.constants import OUTPUT_NAMES
from detectlens.errors import ModelLoadError


def make_outputs(
    boxes: list[list[float]], scores: list[list[float]]
) -> dict[str, np.ndarray]:
    """Build named output tensors shaped (1, N, C) like the engine emits."""
    return {
        OUTPUT_NAMES[0]: np.asarray([boxes], dtype=np.float32),
        OUTPUT_NAMES[1]: np.asarray([scores], dtype=np.float32),
    }


def coco_scores(**labels: float) -> list[float]:
    """Return an 80-class score row with the given label scores set."""
    from detectlens.core.constants import COCO_CLASS_NAMES

    row = [0.0] * len(COCO_CLASS_NAMES)
    for name, score in labels.items():
        row[COCO_CLASS_NAMES.index(name.replace("_", " "))] = score
    return row


@dataclass
class ScriptedHandle:
    """Network handle replaying a fixed output or raising on execute."""

    shape: list[int] | None = field(default_factory=lambda: [1, 32, 32, 3])
    outputs: dict[str, np.ndarray] = field(default_factory=dict)
    error: Exception | None = None
    executed: list[np.ndarray] = field(default_factory=list)
    released: int = 0

    def input_shape(self, layer_name: str) -> list[int] | None:
        return self.shape if layer_name == "input" else None

    def execute(self, inputs: dict[str, np.ndarray]) -> dict[str, np.ndarray]:
        if self.error is not None:
            raise self.error
        self.executed.append(np.array(inputs["input"], copy=True))
        return self.outputs

    def release(self) -> None:
        self.released += 1


@dataclass
class ScriptedEngine:
    """Engine returning pre-built handles in order, recording build calls."""

    handles: list[ScriptedHandle] = field(default_factory=list)
    fail_with: Exception | None = None
    builds: list[dict] = field(default_factory=list)

    def build(self, model_bytes, output_layers, runtime, unsigned_pd):
        self.builds.append(
            {
                "model_bytes": model_bytes,
                "output_layers": list(output_layers),
                "runtime": runtime,
                "unsigned_pd": unsigned_pd,
            }
        )
        if self.fail_with is not None:
            raise self.fail_with
        if not self.handles:
            message = "no scripted handle left"
            raise ModelLoadError(message)
        return self.handles.pop(0)

