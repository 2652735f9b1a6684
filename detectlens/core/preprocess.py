"""Resizing and pixel normalization ahead of network execution."""

from __future__ import annotations

from collections.abc import Sequence

import cv2
import numpy as np
from loguru import logger

from detectlens.errors import DataIntegrityError


INPUT_SCALE = 1.0 / 255.0
DEFAULT_BLACK_THRESHOLD = 13

_CHANNEL_ORDERS = {
    "rgb": (0, 1, 2),
    "bgr": (2, 1, 0),
}


def infer_input_size(input_shape: Sequence[int] | None) -> tuple[int, int] | None:
    """Return (height, width) from an NHWC or HWC input shape, or None if malformed."""
    if input_shape is None:
        return None
    dims = list(input_shape)
    if len(dims) == 4:
        dims = dims[1:]
    if len(dims) != 3:
        return None
    height, width, channels = dims
    if not all(isinstance(dim, (int, np.integer)) and dim > 0 for dim in dims):
        return None
    if channels != 3:
        return None
    return int(height), int(width)


def resize_to_input(image: np.ndarray, width: int, height: int) -> np.ndarray:
    """Scale a raster to the network input size with bilinear filtering."""
    if image.shape[1] == width and image.shape[0] == height:
        return image
    return cv2.resize(image, (width, height), interpolation=cv2.INTER_LINEAR)


class PixelNormalizer:
    """Turn RGB(A) rasters into normalized float tensors using reusable buffers.

    The byte and float buffers are reallocated only when the raster size
    changes. Instances are not thread-safe and belong to the inference thread.
    """

    def __init__(
        self,
        channel_order: str = "rgb",
        black_threshold: float = DEFAULT_BLACK_THRESHOLD,
    ) -> None:
        """Create a normalizer emitting channels in ``channel_order``."""
        if channel_order not in _CHANNEL_ORDERS:
            message = f"Unsupported channel order: {channel_order!r}"
            raise ValueError(message)
        self.channel_order = channel_order
        self.black_threshold = float(black_threshold)
        self._byte_buffer: np.ndarray | None = None
        self._float_buffer = np.empty(0, dtype=np.float32)
        self._channels = 0
        self.reallocations = 0
        self.is_black = False

    def convert(self, image: np.ndarray) -> None:
        """Copy raster bytes into the reusable byte buffer."""
        if image.dtype != np.uint8 or image.ndim != 3 or image.shape[2] not in (3, 4):
            message = (
                f"Expected HxWx3 or HxWx4 uint8 raster, "
                f"got {image.dtype} {image.shape}"
            )
            raise DataIntegrityError(message)

        height, width, channels = image.shape
        float_size = width * height * 3
        if (
            self._byte_buffer is None
            or self._byte_buffer.size != image.size
            or self._float_buffer.size != float_size
        ):
            logger.debug(
                "Allocating normalization buffers for {}x{}x{}", width, height, channels
            )
            self._byte_buffer = np.empty(image.size, dtype=np.uint8)
            self._float_buffer = np.empty(float_size, dtype=np.float32)
            self.reallocations += 1

        self._channels = channels
        np.copyto(self._byte_buffer, image.reshape(-1))

    def to_floats(self) -> np.ndarray:
        """Fill the float buffer from the byte buffer and update ``is_black``."""
        if self._byte_buffer is None:
            return np.empty(0, dtype=np.float32)

        pixel_count = self._float_buffer.size // 3
        pixels = self._byte_buffer.reshape(pixel_count, self._channels)
        order = list(_CHANNEL_ORDERS[self.channel_order])
        out = self._float_buffer.reshape(pixel_count, 3)
        np.multiply(pixels[:, order], INPUT_SCALE, out=out)

        blue_sum = int(pixels[:, 2].sum(dtype=np.int64))
        self.is_black = blue_sum < self.black_threshold * pixel_count
        return self._float_buffer

    def normalize(self, image: np.ndarray) -> np.ndarray:
        """Convert and normalize a raster in one call."""
        self.convert(image)
        return self.to_floats()
