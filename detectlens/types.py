"""Shared data structures for the detection pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from detectlens.errors import ConfigurationError


if TYPE_CHECKING:
    from collections.abc import Callable

    import numpy as np


class RectFormat(Enum):
    """Box encoding emitted by a detection model."""

    CENTER = "center"
    CORNER = "corner"

    @classmethod
    def parse(cls, value: RectFormat | str) -> RectFormat:
        """Return the format for an enum member or a case-insensitive name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        message = f"Unsupported format: {value!r}. Use 'center' or 'corner'."
        raise ConfigurationError(message)


class ScaleMode(Enum):
    """How a source image is placed inside a differently shaped view."""

    FIT = "fit"
    FILL = "fill"


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box as (left, top, right, bottom) in pixels.

    Edges are not reordered, so an inverted box keeps a negative width.
    """

    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_tuple(self) -> tuple[float, float, float, float]:
        """Return as (left, top, right, bottom) tuple."""
        return (self.left, self.top, self.right, self.bottom)


@dataclass(frozen=True)
class DetectionResult:
    """A labeled detection in source-image pixel coordinates."""

    label: str
    confidence: float
    bounding_box: BoundingBox

    def format_label(self) -> str:
        """Return the overlay caption, e.g. ``person 87%``."""
        return f"{self.label} {round(self.confidence * 100)}%"


@dataclass(frozen=True)
class ModelDescriptor:
    """Static catalog entry describing one packaged detection model."""

    display_name: str
    storage_path: str
    rect_format: RectFormat
    output_group_index: int


@dataclass
class Plane:
    """One image plane of a camera frame."""

    data: np.ndarray
    row_stride: int
    pixel_stride: int = 1


@dataclass
class CameraFrame:
    """Planar YUV 4:2:0 frame owned by the capture subsystem until closed."""

    y: Plane
    u: Plane
    v: Plane
    width: int
    height: int
    rotation_degrees: int = 0
    timestamp_ms: float = 0.0
    release: Callable[[], None] | None = None
    closed: bool = field(default=False, init=False)

    def close(self) -> None:
        """Hand the frame back to the capture subsystem; later calls do nothing."""
        if self.closed:
            return
        self.closed = True
        if self.release is not None:
            self.release()


@dataclass(frozen=True)
class LoadResult:
    """Outcome of a model load request."""

    ok: bool
    cause: BaseException | None = None

    def __bool__(self) -> bool:
        return self.ok


@dataclass(frozen=True)
class OverlayUpdate:
    """Snapshot handed from the inference thread to the UI thread."""

    detections: tuple[DetectionResult, ...]
    image_width: int
    image_height: int
    mirror: bool = False
    fps: float | None = None


@dataclass
class CameraConfig:
    """Camera configuration settings."""

    device_index: int = 0
    width: int = 640
    height: int = 480
    fps: int = 30
    rotation_degrees: int = 0
    front_facing: bool = False
