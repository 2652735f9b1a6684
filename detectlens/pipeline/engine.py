"""Contract for the external neural-network execution engine."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Protocol


if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    import numpy as np


class Runtime(Enum):
    """Compute backend that executes the network."""

    CPU = "C"
    GPU = "G"
    DSP = "D"

    @classmethod
    def from_code(cls, code: str | None) -> Runtime:
        """Map a single-character selector to a runtime; unknown codes mean CPU."""
        if code:
            for member in cls:
                if member.value == code.strip().upper()[:1]:
                    return member
        return cls.CPU


class NetworkHandle(Protocol):
    """A built network ready to execute frames."""

    def input_shape(self, layer_name: str) -> Sequence[int] | None:
        """Return the (height, width, channels) shape of an input, if known."""
        ...

    def execute(self, inputs: Mapping[str, np.ndarray]) -> Mapping[str, np.ndarray]:
        """Run one inference and return named output tensors."""
        ...

    def release(self) -> None:
        """Free engine resources held by the handle."""
        ...


class NetworkEngine(Protocol):
    """Factory building network handles from serialized models."""

    def build(
        self,
        model_bytes: bytes,
        output_layers: Sequence[str],
        runtime: Runtime,
        unsigned_pd: bool,
    ) -> NetworkHandle:
        """Build a handle or raise when the model cannot run on ``runtime``."""
        ...
