"""Overlay rendering helpers."""

from __future__ import annotations

from detectlens.ui.overlay import (
    OverlayView,
    ViewTransform,
    compute_view_transform,
    draw_detections,
    draw_log_lines,
    flip_horizontally,
    map_box,
    map_detections,
)


__all__ = [
    "OverlayView",
    "ViewTransform",
    "compute_view_transform",
    "draw_detections",
    "draw_log_lines",
    "flip_horizontally",
    "map_box",
    "map_detections",
]
