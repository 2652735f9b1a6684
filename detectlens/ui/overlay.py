"""Mapping detections into view space and drawing them."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

import cv2

from detectlens.core.constants import BOX_COLOR, LABEL_TEXT_COLOR
from detectlens.types import BoundingBox, ScaleMode


if TYPE_CHECKING:
    from collections.abc import Sequence

    import numpy as np

    from detectlens.types import DetectionResult, OverlayUpdate


LABEL_PADDING = 12
BOX_THICKNESS = 4
FONT = cv2.FONT_HERSHEY_SIMPLEX
FONT_SCALE = 0.8
FONT_THICKNESS = 2
LOG_FONT_SCALE = 0.45


@dataclass(frozen=True)
class ViewTransform:
    """Uniform scale plus offset taking image coordinates to view coordinates."""

    scale: float
    dx: float
    dy: float


def flip_horizontally(box: BoundingBox, image_width: float) -> BoundingBox:
    """Mirror a box across the vertical center line of the image."""
    return BoundingBox(
        image_width - box.right,
        box.top,
        image_width - box.left,
        box.bottom,
    )


def compute_view_transform(
    image_width: float,
    image_height: float,
    view_width: float,
    view_height: float,
    mode: ScaleMode = ScaleMode.FIT,
) -> ViewTransform:
    """Place the image centered in the view, preserving its aspect ratio.

    ``FIT`` letterboxes or pillarboxes the whole image inside the view. ``FILL``
    covers the view and crops the overflowing axis, like a center-crop preview.
    """
    scale_x = view_width / image_width
    scale_y = view_height / image_height
    scale = min(scale_x, scale_y) if mode is ScaleMode.FIT else max(scale_x, scale_y)
    dx = (view_width - image_width * scale) / 2.0
    dy = (view_height - image_height * scale) / 2.0
    return ViewTransform(scale=scale, dx=dx, dy=dy)


def map_box(box: BoundingBox, transform: ViewTransform) -> BoundingBox:
    """Apply ``coordinate * scale + offset`` to each edge."""
    return BoundingBox(
        box.left * transform.scale + transform.dx,
        box.top * transform.scale + transform.dy,
        box.right * transform.scale + transform.dx,
        box.bottom * transform.scale + transform.dy,
    )


def map_detections(
    detections: Sequence[DetectionResult],
    image_size: tuple[int, int],
    view_size: tuple[int, int],
    *,
    mirror: bool = False,
    mode: ScaleMode = ScaleMode.FIT,
) -> list[BoundingBox]:
    """Return view-space boxes for detections; sizes are (width, height)."""
    image_w, image_h = image_size
    view_w, view_h = view_size
    if image_w <= 0 or image_h <= 0 or view_w <= 0 or view_h <= 0:
        return []
    transform = compute_view_transform(image_w, image_h, view_w, view_h, mode)
    mapped = []
    for detection in detections:
        box = detection.bounding_box
        if mirror:
            box = flip_horizontally(box, image_w)
        mapped.append(map_box(box, transform))
    return mapped


def label_background(
    box: BoundingBox,
    text_size: tuple[int, int],
    baseline: int,
    padding: float = LABEL_PADDING,
) -> tuple[tuple[float, float], BoundingBox]:
    """Return the text origin and filled background rect for a box caption.

    The text baseline sits ``padding`` above the top edge of the box.
    """
    text_w, text_h = text_size
    origin = (box.left, box.top - padding)
    background = BoundingBox(
        origin[0] - padding,
        origin[1] - text_h - padding,
        origin[0] + text_w + padding,
        origin[1] + baseline + padding,
    )
    return origin, background


def _pt(x: float, y: float) -> tuple[int, int]:
    return int(round(x)), int(round(y))


def draw_detections(
    canvas: np.ndarray,
    detections: Sequence[DetectionResult],
    image_size: tuple[int, int],
    *,
    mirror: bool = False,
    mode: ScaleMode = ScaleMode.FIT,
) -> int:
    """Draw boxes and captions onto ``canvas``; return how many were drawn."""
    view_h, view_w = canvas.shape[:2]
    boxes = map_detections(
        detections, image_size, (view_w, view_h), mirror=mirror, mode=mode
    )
    for detection, box in zip(detections, boxes, strict=False):
        cv2.rectangle(
            canvas,
            _pt(box.left, box.top),
            _pt(box.right, box.bottom),
            BOX_COLOR,
            BOX_THICKNESS,
        )
        label = detection.format_label()
        (text_w, text_h), baseline = cv2.getTextSize(
            label, FONT, FONT_SCALE, FONT_THICKNESS
        )
        origin, background = label_background(box, (text_w, text_h), baseline)
        cv2.rectangle(
            canvas,
            _pt(background.left, background.top),
            _pt(background.right, background.bottom),
            BOX_COLOR,
            -1,
        )
        cv2.putText(
            canvas,
            label,
            _pt(*origin),
            FONT,
            FONT_SCALE,
            LABEL_TEXT_COLOR,
            FONT_THICKNESS,
            cv2.LINE_AA,
        )
    return len(boxes)


def draw_status(canvas: np.ndarray, text: str) -> None:
    """Draw a status line in the top-left corner."""
    (text_w, text_h), baseline = cv2.getTextSize(text, FONT, 0.6, 1)
    cv2.rectangle(canvas, (5, 5), (15 + text_w, 15 + text_h + baseline), (0, 0, 0), -1)
    cv2.putText(
        canvas,
        text,
        (10, 10 + text_h),
        FONT,
        0.6,
        (0, 255, 0),
        1,
        cv2.LINE_AA,
    )


def draw_log_lines(canvas: np.ndarray, lines: Sequence[str]) -> int:
    """Draw log lines bottom-up along the lower edge; return how many fit."""
    if not lines or canvas.shape[0] == 0 or canvas.shape[1] == 0:
        return 0
    (_, text_h), baseline = cv2.getTextSize("Ag", FONT, LOG_FONT_SCALE, 1)
    line_h = text_h + baseline + 4
    bottom = canvas.shape[0] - 4
    drawn = 0
    for line in reversed(lines):
        top = bottom - line_h
        if top < 0:
            break
        cv2.rectangle(canvas, (0, top), (canvas.shape[1] - 1, bottom), (0, 0, 0), -1)
        cv2.putText(
            canvas,
            line,
            (6, bottom - baseline - 2),
            FONT,
            LOG_FONT_SCALE,
            (220, 220, 220),
            1,
            cv2.LINE_AA,
        )
        bottom = top
        drawn += 1
    return drawn


class OverlayView:
    """UI-thread sink holding the latest detections and status text."""

    def __init__(self, mode: ScaleMode = ScaleMode.FIT) -> None:
        """Start with no detections and a default 480x640 source image."""
        self.mode = mode
        self.image_width = 480
        self.image_height = 640
        self.is_front_camera = False
        self.detections: tuple[DetectionResult, ...] = ()
        self.status_text = "FPS: 0.0"
        self.model_ready = False
        self._lock = threading.Lock()

    def apply(self, update: OverlayUpdate) -> None:
        """Replace the displayed detections with ``update``."""
        with self._lock:
            self.image_width = update.image_width
            self.image_height = update.image_height
            self.is_front_camera = update.mirror
            self.detections = update.detections
            if update.fps is not None and self.model_ready:
                self.status_text = f"FPS: {update.fps:.1f}"

    def set_status(self, text: str, *, model_ready: bool | None = None) -> None:
        """Set the status line, optionally recording whether a model is ready."""
        with self._lock:
            self.status_text = text
            if model_ready is not None:
                self.model_ready = model_ready

    def draw(self, canvas: np.ndarray) -> np.ndarray:
        """Render the current overlay onto ``canvas``; zero-sized views are skipped."""
        if canvas.size == 0 or canvas.shape[0] == 0 or canvas.shape[1] == 0:
            return canvas
        with self._lock:
            detections = self.detections
            image_size = (self.image_width, self.image_height)
            mirror = self.is_front_camera
            status = self.status_text
        draw_detections(canvas, detections, image_size, mirror=mirror, mode=self.mode)
        draw_status(canvas, status)
        return canvas
