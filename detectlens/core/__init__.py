"""Core detection utilities (catalog, conversion, preprocess, postprocess)."""

from __future__ import annotations

from detectlens.core.catalog import (
    DEFAULT_MODEL,
    MODEL_CATALOG,
    class_names_for,
    find_model,
    model_names,
    output_layers_for,
)
from detectlens.core.convert import pack_nv21, rotate, yuv_to_rgb
from detectlens.core.postprocess import (
    DetectionDecoder,
    decode_detections,
    iou,
    non_max_suppression,
)
from detectlens.core.preprocess import (
    PixelNormalizer,
    infer_input_size,
    resize_to_input,
)


__all__ = [
    "DEFAULT_MODEL",
    "MODEL_CATALOG",
    "DetectionDecoder",
    "PixelNormalizer",
    "class_names_for",
    "decode_detections",
    "find_model",
    "infer_input_size",
    "iou",
    "model_names",
    "non_max_suppression",
    "output_layers_for",
    "pack_nv21",
    "resize_to_input",
    "rotate",
    "yuv_to_rgb",
]
