"""Static catalog of packaged detection models and lookup helpers."""

from __future__ import annotations

from detectlens.core.constants import CLASS_NAME_TABLES, OUTPUT_LAYERS
from detectlens.errors import ConfigurationError
from detectlens.types import ModelDescriptor, RectFormat


MODEL_CATALOG: tuple[ModelDescriptor, ...] = (
    ModelDescriptor("YOLO-NAS S (FP32)", "yolo_nas_s_fp32.onnx", RectFormat.CORNER, 0),
    ModelDescriptor("YOLO-NAS S (INT8)", "yolo_nas_s_int8.onnx", RectFormat.CORNER, 0),
    ModelDescriptor(
        "YOLO-NAS S (INT8+HTP)", "yolo_nas_s_int8_htp.onnx", RectFormat.CORNER, 0
    ),
    ModelDescriptor(
        "YOLO HaGRID (FP32)", "yolo_hagrid_fp32.onnx", RectFormat.CENTER, 1
    ),
    ModelDescriptor(
        "YOLO HaGRID (INT8)", "yolo_hagrid_int8.onnx", RectFormat.CENTER, 1
    ),
    ModelDescriptor(
        "YOLO HaGRID (INT8+HTP)", "yolo_hagrid_int8_htp.onnx", RectFormat.CENTER, 1
    ),
)

DEFAULT_MODEL = MODEL_CATALOG[2]


def model_names() -> list[str]:
    """Return display names in catalog order."""
    return [descriptor.display_name for descriptor in MODEL_CATALOG]


def find_model(display_name: str) -> ModelDescriptor | None:
    """Return the descriptor whose display name matches, ignoring case."""
    wanted = display_name.strip().casefold()
    for descriptor in MODEL_CATALOG:
        if descriptor.display_name.casefold() == wanted:
            return descriptor
    return None


def output_layers_for(descriptor: ModelDescriptor) -> tuple[str, str]:
    """Return the (boxes, classes) output layer names for a descriptor."""
    index = descriptor.output_group_index
    if not 0 <= index < len(OUTPUT_LAYERS):
        message = f"No output layer mapping for group {index}"
        raise ConfigurationError(message)
    return OUTPUT_LAYERS[index]


def class_names_for(descriptor: ModelDescriptor) -> dict[int, str]:
    """Return the class-index to label table for a descriptor."""
    index = descriptor.output_group_index
    if not 0 <= index < len(CLASS_NAME_TABLES):
        message = f"No class name table for group {index}"
        raise ConfigurationError(message)
    return CLASS_NAME_TABLES[index]
