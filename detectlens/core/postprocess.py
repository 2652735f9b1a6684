"""Decoding of raw detection tensors into labeled, deduplicated boxes."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

import numpy as np
from loguru import logger

from detectlens.core.catalog import class_names_for
from detectlens.core.constants import OUTPUT_NAMES, UNKNOWN_LABEL
from detectlens.errors import DataIntegrityError
from detectlens.types import BoundingBox, DetectionResult, RectFormat


if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from detectlens.types import ModelDescriptor


DEFAULT_IOU_THRESHOLD = 0.2


def iou(a: BoundingBox, b: BoundingBox) -> float:
    """Intersection-over-union of two boxes; 0.0 when the union is not positive."""
    left = max(a.left, b.left)
    top = max(a.top, b.top)
    right = min(a.right, b.right)
    bottom = min(a.bottom, b.bottom)
    intersection = max(0.0, right - left) * max(0.0, bottom - top)
    union = a.area + b.area - intersection
    if union <= 0.0:
        return 0.0
    return float(intersection / union)


def non_max_suppression(
    detections: Iterable[DetectionResult],
    iou_threshold: float = DEFAULT_IOU_THRESHOLD,
) -> list[DetectionResult]:
    """Greedy per-label NMS.

    Labels are processed independently. Within a label the highest-confidence
    box is kept and every remaining box overlapping it by more than
    ``iou_threshold`` is dropped, until none remain. Kept boxes of one label
    appear in descending confidence order.
    """
    groups: dict[str, list[DetectionResult]] = defaultdict(list)
    for detection in detections:
        groups[detection.label].append(detection)

    kept: list[DetectionResult] = []
    for group in groups.values():
        remaining = sorted(group, key=lambda det: det.confidence, reverse=True)
        while remaining:
            top = remaining.pop(0)
            kept.append(top)
            remaining = [
                det
                for det in remaining
                if iou(top.bounding_box, det.bounding_box) <= iou_threshold
            ]
    return kept


def _as_2d(tensor: np.ndarray, name: str) -> np.ndarray:
    data = np.asarray(tensor, dtype=np.float32)
    if data.ndim == 3 and data.shape[0] == 1:
        data = data[0]
    if data.ndim != 2:
        message = f"{name} tensor must be (1, N, C) or (N, C), got shape {data.shape}"
        raise DataIntegrityError(message)
    return data


def decode_boxes(raw: np.ndarray, rect_format: RectFormat | str) -> np.ndarray:
    """Convert (N, 4) raw box rows into (left, top, right, bottom) rows."""
    fmt = RectFormat.parse(rect_format)
    if fmt is RectFormat.CORNER:
        return raw[:, :4].copy()
    cx, cy, w, h = raw[:, 0], raw[:, 1], raw[:, 2], raw[:, 3]
    return np.stack([cx - w / 2, cy - h / 2, cx + w / 2, cy + h / 2], axis=1)


def best_classes(scores: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Return per-anchor (index, score) of the best class; the first maximum wins."""
    indices = np.argmax(scores, axis=1)
    return indices, scores[np.arange(scores.shape[0]), indices]


def decode_detections(
    boxes: np.ndarray,
    classes: np.ndarray,
    *,
    threshold: float,
    image_width: int,
    image_height: int,
    input_width: int,
    input_height: int,
    rect_format: RectFormat | str,
    class_names: Mapping[int, str],
    iou_threshold: float = DEFAULT_IOU_THRESHOLD,
) -> list[DetectionResult]:
    """Decode box and class-score tensors into NMS-filtered detections."""
    fmt = RectFormat.parse(rect_format)
    box_rows = _as_2d(boxes, "boxes")
    score_rows = _as_2d(classes, "classes")

    if box_rows.shape[0] != score_rows.shape[0]:
        message = (
            f"Anchor count mismatch: {box_rows.shape[0]} boxes vs "
            f"{score_rows.shape[0]} class rows"
        )
        raise DataIntegrityError(message)
    if box_rows.shape[1] < 4:
        message = f"Box rows need 4 coordinates, got {box_rows.shape[1]}"
        raise DataIntegrityError(message)
    if box_rows.shape[0] == 0:
        return []
    if score_rows.shape[1] == 0:
        message = "Class tensor has no class columns"
        raise DataIntegrityError(message)
    if input_width <= 0 or input_height <= 0:
        message = f"Invalid input size {input_width}x{input_height}"
        raise DataIntegrityError(message)

    scale = np.array(
        [
            image_width / input_width,
            image_height / input_height,
            image_width / input_width,
            image_height / input_height,
        ],
        dtype=np.float32,
    )
    corners = decode_boxes(box_rows, fmt) * scale
    indices, max_scores = best_classes(score_rows)

    candidates: list[DetectionResult] = []
    for anchor in np.flatnonzero(max_scores >= threshold):
        left, top, right, bottom = (float(v) for v in corners[anchor])
        candidates.append(
            DetectionResult(
                label=class_names.get(int(indices[anchor]), UNKNOWN_LABEL),
                confidence=float(max_scores[anchor]),
                bounding_box=BoundingBox(left, top, right, bottom),
            )
        )
    return non_max_suppression(candidates, iou_threshold)


class DetectionDecoder:
    """Decode named engine outputs for one catalog model."""

    def __init__(
        self,
        descriptor: ModelDescriptor,
        *,
        iou_threshold: float = DEFAULT_IOU_THRESHOLD,
        output_names: tuple[str, str] = OUTPUT_NAMES,
    ) -> None:
        """Bind the decoder to a model's box format and class table."""
        self.descriptor = descriptor
        self.rect_format = RectFormat.parse(descriptor.rect_format)
        self.class_names = class_names_for(descriptor)
        self.iou_threshold = iou_threshold
        self.output_names = output_names

    def decode(
        self,
        outputs: Mapping[str, np.ndarray],
        *,
        threshold: float,
        image_size: tuple[int, int],
        input_size: tuple[int, int],
    ) -> list[DetectionResult]:
        """Decode outputs; ``image_size`` and ``input_size`` are (width, height)."""
        boxes_name, classes_name = self.output_names
        boxes = outputs.get(boxes_name)
        classes = outputs.get(classes_name)
        if boxes is None or classes is None:
            logger.warning(
                "Missing output tensor(s): expected {}, got {}",
                self.output_names,
                sorted(outputs),
            )
            return []

        return decode_detections(
            boxes,
            classes,
            threshold=threshold,
            image_width=image_size[0],
            image_height=image_size[1],
            input_width=input_size[0],
            input_height=input_size[1],
            rect_format=self.rect_format,
            class_names=self.class_names,
            iou_threshold=self.iou_threshold,
        )
