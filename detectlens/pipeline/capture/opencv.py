"""OpenCV capture backend delivering planar YUV frames."""

from __future__ import annotations

import threading
from contextlib import suppress
from typing import TYPE_CHECKING

import cv2
import numpy as np
from loguru import logger

from detectlens.pipeline.metrics.rate import monotonic_ms
from detectlens.types import CameraFrame, Plane


if TYPE_CHECKING:
    from collections.abc import Callable

    from detectlens.types import CameraConfig


def frame_from_bgr(
    bgr: np.ndarray,
    *,
    rotation_degrees: int = 0,
    timestamp_ms: float = 0.0,
    release: Callable[[], None] | None = None,
) -> CameraFrame:
    """Wrap a BGR image as an I420 camera frame with separate Y, U and V planes."""
    height, width = bgr.shape[:2]
    even = bgr[: height - height % 2, : width - width % 2]
    height, width = even.shape[:2]
    i420 = cv2.cvtColor(even, cv2.COLOR_BGR2YUV_I420).reshape(-1)

    luma_size = width * height
    chroma_size = luma_size // 4
    return CameraFrame(
        y=Plane(i420[:luma_size], row_stride=width),
        u=Plane(i420[luma_size : luma_size + chroma_size], row_stride=width // 2),
        v=Plane(i420[luma_size + chroma_size :], row_stride=width // 2),
        width=width,
        height=height,
        rotation_degrees=rotation_degrees,
        timestamp_ms=timestamp_ms,
        release=release,
    )


class OpenCVCapture:
    """OpenCV video capture wrapper."""

    def __init__(self, config: CameraConfig) -> None:
        """Create an OpenCV capture instance."""
        self.config = config
        self.cap: cv2.VideoCapture | None = None
        self.actual_width = 0
        self.actual_height = 0
        self.actual_fps = 0.0
        self._outstanding = 0
        self._lock = threading.Lock()

    @property
    def outstanding_frames(self) -> int:
        """Frames handed out and not yet released."""
        return self._outstanding

    def open(self) -> bool:
        """Open the camera device and configure capture settings."""
        logger.info("Opening camera {} with OpenCV...", self.config.device_index)

        self.cap = cv2.VideoCapture(self.config.device_index)
        if not self.cap.isOpened():
            logger.error("Cannot open camera with OpenCV!")
            return False

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.config.fps)
        with suppress(Exception):
            self.cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        self.actual_width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.actual_height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.actual_fps = float(self.cap.get(cv2.CAP_PROP_FPS))

        logger.success(
            "Camera opened: {}x{} @ {:.1f} FPS",
            self.actual_width,
            self.actual_height,
            self.actual_fps,
        )
        return True

    def read(self) -> tuple[bool, CameraFrame | None]:
        """Grab the next frame; the caller must ``close()`` it exactly once."""
        if self.cap is None:
            return False, None
        ok, bgr = self.cap.read()
        if not ok or bgr is None:
            return False, None

        with self._lock:
            self._outstanding += 1
        frame = frame_from_bgr(
            bgr,
            rotation_degrees=self.config.rotation_degrees,
            timestamp_ms=monotonic_ms(),
            release=self._on_release,
        )
        return True, frame

    def _on_release(self) -> None:
        with self._lock:
            self._outstanding -= 1

    def release(self) -> None:
        """Release the OpenCV capture handle."""
        if self.cap:
            self.cap.release()
            self.cap = None
        if self.outstanding_frames:
            logger.warning(
                "{} frame(s) were never released", self.outstanding_frames
            )

    def is_opened(self) -> bool:
        """Return True if the camera is open."""
        return self.cap is not None and self.cap.isOpened()

    def get_info(self) -> dict:
        """Describe the negotiated capture mode and frames still held by callers."""
        return {
            "backend": f"OpenCV device {self.config.device_index}",
            "width": self.actual_width,
            "height": self.actual_height,
            "fps": self.actual_fps,
            "rotation": self.config.rotation_degrees,
            "outstanding_frames": self.outstanding_frames,
        }
