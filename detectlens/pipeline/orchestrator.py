"""Model lifecycle and per-frame inference sequencing."""

from __future__ import annotations

import threading
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from detectlens.core.catalog import output_layers_for
from detectlens.core.constants import INPUT_LAYER
from detectlens.core.postprocess import DEFAULT_IOU_THRESHOLD, DetectionDecoder
from detectlens.core.preprocess import (
    PixelNormalizer,
    infer_input_size,
    resize_to_input,
)
from detectlens.errors import ModelLoadError
from detectlens.pipeline.engine import Runtime
from detectlens.types import LoadResult


if TYPE_CHECKING:
    from collections.abc import Callable

    import numpy as np

    from detectlens.pipeline.engine import NetworkEngine, NetworkHandle
    from detectlens.types import DetectionResult, ModelDescriptor


class ModelState(Enum):
    """Lifecycle of the network handle."""

    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"


def file_model_loader(models_dir: str | Path) -> Callable[[str], bytes]:
    """Return a loader reading model files relative to ``models_dir``."""
    root = Path(models_dir)

    def _load(storage_path: str) -> bytes:
        return (root / storage_path).read_bytes()

    return _load


class InferenceOrchestrator:
    """Own at most one network handle and run frames through it.

    ``load_model`` and ``infer`` may be called from different threads. A new
    load waits for an in-flight ``infer`` to finish before disposing the old
    handle, and a frame that starts after a reselect sees a non-ready state
    and returns no detections. A result computed just before a reselect can
    still reach the caller after the new load began; callers treat it as stale
    UI data only.
    """

    def __init__(
        self,
        engine: NetworkEngine,
        *,
        model_loader: Callable[[str], bytes] | None = None,
        models_dir: str | Path = "models",
        unsigned_pd: bool = True,
        iou_threshold: float = DEFAULT_IOU_THRESHOLD,
        normalizer: PixelNormalizer | None = None,
    ) -> None:
        """Create an orchestrator around a black-box engine."""
        self.engine = engine
        self.model_loader = model_loader or file_model_loader(models_dir)
        self.unsigned_pd = unsigned_pd
        self.iou_threshold = iou_threshold
        self.state = ModelState.UNLOADED
        self.descriptor: ModelDescriptor | None = None
        self.runtime: Runtime | None = None
        self.skipped_frames = 0

        self._normalizer = normalizer or PixelNormalizer()
        self._handle: NetworkHandle | None = None
        self._decoder: DetectionDecoder | None = None
        self._input_size: tuple[int, int] | None = None
        self._lock = threading.Lock()
        self._load_lock = threading.Lock()

    @property
    def is_ready(self) -> bool:
        return self.state is ModelState.READY

    @property
    def input_size(self) -> tuple[int, int] | None:
        """Return the network input as (height, width) while ready."""
        return self._input_size

    def load_model(
        self, runtime: Runtime | str, descriptor: ModelDescriptor
    ) -> LoadResult:
        """Dispose the current handle and build one for ``descriptor``.

        Never raises; failures leave the orchestrator unloaded and are returned
        as ``LoadResult(ok=False, cause=...)``.
        """
        if not isinstance(runtime, Runtime):
            runtime = Runtime.from_code(runtime)

        with self._load_lock:
            with self._lock:
                self._dispose_locked()
                self.state = ModelState.LOADING
                self.descriptor = descriptor
                self.runtime = runtime

            logger.info(
                "Loading model '{}' on {}", descriptor.display_name, runtime.name
            )
            try:
                handle, input_size, decoder = self._build(runtime, descriptor)
            except Exception as exc:
                logger.error(
                    "Model loading error for '{}': {}", descriptor.display_name, exc
                )
                with self._lock:
                    self.state = ModelState.UNLOADED
                return LoadResult(ok=False, cause=exc)

            with self._lock:
                self._handle = handle
                self._input_size = input_size
                self._decoder = decoder
                self.state = ModelState.READY
            logger.success(
                "Model '{}' ready, input {}x{}",
                descriptor.display_name,
                input_size[1],
                input_size[0],
            )
            return LoadResult(ok=True)

    def _build(
        self, runtime: Runtime, descriptor: ModelDescriptor
    ) -> tuple[NetworkHandle, tuple[int, int], DetectionDecoder]:
        output_layers = output_layers_for(descriptor)
        decoder = DetectionDecoder(descriptor, iou_threshold=self.iou_threshold)
        model_bytes = self.model_loader(descriptor.storage_path)
        handle = self.engine.build(
            model_bytes, list(output_layers), runtime, self.unsigned_pd
        )
        try:
            input_size = infer_input_size(handle.input_shape(INPUT_LAYER))
            if input_size is None:
                message = f"Model has no usable '{INPUT_LAYER}' shape"
                raise ModelLoadError(message)
        except Exception:
            handle.release()
            raise
        return handle, input_size, decoder

    def infer(
        self, image: np.ndarray, threshold: float = 0.5
    ) -> list[DetectionResult]:
        """Run one RGB raster through the network and decode its detections.

        Returns an empty list when no model is ready, the frame is near-black,
        or the engine fails. Malformed output tensors raise
        ``DataIntegrityError``.
        """
        if self.state is not ModelState.READY:
            return []

        with self._lock:
            if (
                self.state is not ModelState.READY
                or self._handle is None
                or self._decoder is None
                or self._input_size is None
            ):
                return []

            height, width = self._input_size
            resized = resize_to_input(image, width, height)
            if resized.shape[0] != height or resized.shape[1] != width:
                logger.warning(
                    "Resized frame is {}x{}, expected {}x{}",
                    resized.shape[1],
                    resized.shape[0],
                    width,
                    height,
                )
                return []

            try:
                floats = self._normalizer.normalize(resized)
            except Exception as exc:
                logger.warning("Could not normalize frame: {}", exc)
                return []

            if self._normalizer.is_black:
                self.skipped_frames += 1
                logger.trace("Skipping near-black frame")
                return []

            try:
                outputs = self._handle.execute({INPUT_LAYER: floats})
            except Exception as exc:
                logger.error("Inference error: {}", exc)
                return []

            return self._decoder.decode(
                outputs,
                threshold=threshold,
                image_size=(image.shape[1], image.shape[0]),
                input_size=(width, height),
            )

    def dispose(self) -> None:
        """Release the network handle and return to the unloaded state."""
        with self._lock:
            self._dispose_locked()
            self.state = ModelState.UNLOADED

    def _dispose_locked(self) -> None:
        if self._handle is not None:
            try:
                self._handle.release()
            except Exception as exc:
                logger.warning("Failed to release network handle: {}", exc)
        self._handle = None
        self._decoder = None
        self._input_size = None
