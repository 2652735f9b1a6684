"""ONNX Runtime implementation of the network engine contract."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import onnxruntime as ort
from loguru import logger

from detectlens.core.constants import INPUT_LAYER, OUTPUT_NAMES
from detectlens.errors import InferenceError, ModelLoadError
from detectlens.pipeline.engine import Runtime


if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


RUNTIME_PROVIDERS: dict[Runtime, str] = {
    Runtime.CPU: "CPUExecutionProvider",
    Runtime.GPU: "CUDAExecutionProvider",
    Runtime.DSP: "QNNExecutionProvider",
}


class OnnxNetworkHandle:
    """Wrap an inference session behind the handle contract.

    Frames arrive as flat NHWC float vectors under the ``input`` layer name and
    are reshaped (and transposed for NCHW models) before the session runs.
    Outputs are published as ``output_bboxes`` and ``output_classes``.
    """

    def __init__(
        self, session: ort.InferenceSession, output_layers: Sequence[str]
    ) -> None:
        """Bind a session and the output layers to fetch."""
        self.session: ort.InferenceSession | None = session
        self.output_layers = list(output_layers)
        model_input = session.get_inputs()[0]
        self.input_name = model_input.name
        self._raw_shape = list(model_input.shape)
        self._channels_first = len(self._raw_shape) == 4 and self._raw_shape[1] == 3

    def input_shape(self, layer_name: str) -> list[int] | None:
        """Return the input as (height, width, channels) when it is static."""
        if layer_name not in {INPUT_LAYER, self.input_name}:
            return None
        shape = self._raw_shape
        if len(shape) != 4:
            return None
        if self._channels_first:
            _, channels, height, width = shape
        else:
            _, height, width, channels = shape
        dims = [height, width, channels]
        if not all(isinstance(dim, int) for dim in dims):
            return None
        return dims

    def execute(self, inputs: Mapping[str, np.ndarray]) -> dict[str, np.ndarray]:
        """Run the session on the ``input`` tensor and return renamed outputs."""
        if self.session is None:
            message = "Network handle already released"
            raise InferenceError(message)
        shape = self.input_shape(INPUT_LAYER)
        if shape is None:
            message = f"Model input shape is not static: {self._raw_shape}"
            raise InferenceError(message)

        height, width, channels = shape
        tensor = np.asarray(inputs[INPUT_LAYER], dtype=np.float32)
        tensor = tensor.reshape(1, height, width, channels)
        if self._channels_first:
            tensor = np.ascontiguousarray(tensor.transpose(0, 3, 1, 2))

        results = self.session.run(self.output_layers, {self.input_name: tensor})
        return {
            name: np.asarray(value)
            for name, value in zip(OUTPUT_NAMES, results, strict=False)
        }

    def release(self) -> None:
        """Drop the session reference."""
        self.session = None


class OnnxRuntimeEngine:
    """Build ONNX Runtime sessions pinned to the requested execution provider.

    CPU fallback is disabled: a runtime whose provider is missing fails the
    build instead of silently running elsewhere.
    """

    def __init__(self, provider_options: Mapping[str, dict] | None = None) -> None:
        """Create an engine with optional per-provider options."""
        self.provider_options = dict(provider_options or {})

    def build(
        self,
        model_bytes: bytes,
        output_layers: Sequence[str],
        runtime: Runtime,
        unsigned_pd: bool,
    ) -> OnnxNetworkHandle:
        """Create an inference session for ``runtime``."""
        provider = RUNTIME_PROVIDERS[runtime]
        available = ort.get_available_providers()
        if provider not in available:
            message = f"{provider} not available (have: {', '.join(available)})"
            raise ModelLoadError(message)

        logger.debug(
            "Building session with {} (unsigned PD requested: {})",
            provider,
            unsigned_pd,
        )
        options = self.provider_options.get(provider, {})
        try:
            session = ort.InferenceSession(
                model_bytes, providers=[(provider, options)]
            )
        except Exception as exc:
            message = f"Failed to create session with {provider}"
            raise ModelLoadError(message) from exc

        known_outputs = {output.name for output in session.get_outputs()}
        missing = [layer for layer in output_layers if layer not in known_outputs]
        if missing:
            message = f"Model has no output layer(s) {missing}"
            raise ModelLoadError(message)

        logger.success("Model session ready on {}", session.get_providers()[0])
        return OnnxNetworkHandle(session, output_layers)
