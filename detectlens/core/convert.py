"""Conversion of planar camera frames into upright RGB rasters."""

from __future__ import annotations

from typing import TYPE_CHECKING

import cv2
import numpy as np

from detectlens.errors import ConfigurationError, DataIntegrityError


if TYPE_CHECKING:
    from detectlens.types import CameraFrame, Plane


_ROTATIONS = {
    0: None,
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


def _plane_samples(plane: Plane, width: int, height: int) -> np.ndarray:
    data = np.asarray(plane.data, dtype=np.uint8).reshape(-1)
    needed = (height - 1) * plane.row_stride + (width - 1) * plane.pixel_stride + 1
    if data.size < needed:
        message = (
            f"Plane holds {data.size} bytes, {needed} required for "
            f"{width}x{height} with strides ({plane.row_stride}, {plane.pixel_stride})"
        )
        raise DataIntegrityError(message)
    rows = np.arange(height) * plane.row_stride
    cols = np.arange(width) * plane.pixel_stride
    return data[rows[:, None] + cols[None, :]]


def pack_nv21(frame: CameraFrame) -> np.ndarray:
    """Pack the Y, U and V planes into a single NV21 image of shape (1.5*H, W)."""
    width, height = frame.width, frame.height
    if width <= 0 or height <= 0 or width % 2 or height % 2:
        message = f"YUV 4:2:0 frames need even dimensions, got {width}x{height}"
        raise DataIntegrityError(message)

    chroma_w, chroma_h = width // 2, height // 2
    luma = _plane_samples(frame.y, width, height)
    u = _plane_samples(frame.u, chroma_w, chroma_h)
    v = _plane_samples(frame.v, chroma_w, chroma_h)

    vu = np.empty((chroma_h, width), dtype=np.uint8)
    vu[:, 0::2] = v
    vu[:, 1::2] = u
    return np.concatenate([luma, vu.reshape(-1, width)], axis=0)


def rotate(image: np.ndarray, degrees: int) -> np.ndarray:
    """Rotate a raster clockwise by a multiple of 90 degrees."""
    normalized = degrees % 360
    if normalized not in _ROTATIONS:
        message = f"Unsupported rotation: {degrees} degrees"
        raise ConfigurationError(message)
    code = _ROTATIONS[normalized]
    if code is None:
        return image
    return cv2.rotate(image, code)


def yuv_to_rgb(frame: CameraFrame, *, jpeg_quality: int | None = None) -> np.ndarray:
    """Decode a planar camera frame into an upright RGB raster.

    The default path decodes NV21 directly. Passing ``jpeg_quality`` routes the
    image through a JPEG encode/decode first, which reproduces the lossy
    conversion some camera stacks perform.
    """
    nv21 = pack_nv21(frame)
    if jpeg_quality is None:
        rgb = cv2.cvtColor(nv21, cv2.COLOR_YUV2RGB_NV21)
    else:
        bgr = cv2.cvtColor(nv21, cv2.COLOR_YUV2BGR_NV21)
        ok, encoded = cv2.imencode(
            ".jpg", bgr, [cv2.IMWRITE_JPEG_QUALITY, int(jpeg_quality)]
        )
        if not ok:
            message = "JPEG encoding of camera frame failed"
            raise DataIntegrityError(message)
        rgb = cv2.cvtColor(cv2.imdecode(encoded, cv2.IMREAD_COLOR), cv2.COLOR_BGR2RGB)
    return rotate(rgb, frame.rotation_degrees)
