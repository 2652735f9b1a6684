"""Application configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from detectlens.core.catalog import DEFAULT_MODEL, find_model
from detectlens.errors import ConfigurationError
from detectlens.pipeline.engine import Runtime
from detectlens.types import CameraConfig, ScaleMode


if TYPE_CHECKING:
    import argparse

    from detectlens.types import ModelDescriptor


@dataclass
class AppConfig:
    """Settings for one run of the detection app."""

    model_name: str = DEFAULT_MODEL.display_name
    runtime_code: str = "D"
    confidence_threshold: float = 0.5
    iou_threshold: float = 0.2
    models_dir: str = "models"
    window_size_ms: float = 1000.0
    unsigned_pd: bool = True
    jpeg_quality: int | None = None
    scale_mode: ScaleMode = ScaleMode.FIT
    no_display: bool = False
    log_level: str = "INFO"
    log_dir: str | None = "logs"
    json_logs: bool = False
    log_lines: int = 3
    camera: CameraConfig = field(default_factory=CameraConfig)

    @property
    def runtime(self) -> Runtime:
        return Runtime.from_code(self.runtime_code)

    @property
    def model(self) -> ModelDescriptor:
        """Return the selected catalog entry."""
        descriptor = find_model(self.model_name)
        if descriptor is None:
            message = f"Unknown model: {self.model_name!r}"
            raise ConfigurationError(message)
        return descriptor


def config_from_args(args: argparse.Namespace) -> AppConfig:
    """Build an AppConfig from parsed arguments and environment overrides."""
    if not 0.0 <= args.conf <= 1.0:
        message = f"Confidence threshold must be in [0, 1], got {args.conf}"
        raise ConfigurationError(message)
    return AppConfig(
        model_name=args.model,
        runtime_code=args.runtime,
        confidence_threshold=args.conf,
        iou_threshold=args.iou,
        models_dir=os.getenv("DETECTLENS_MODELS_DIR", args.models_dir),
        window_size_ms=args.fps_window_ms,
        unsigned_pd=not args.signed_pd,
        jpeg_quality=args.jpeg_quality,
        scale_mode=ScaleMode(args.scale_mode),
        no_display=args.no_display,
        log_level=args.log_level,
        log_dir=args.log_dir or None,
        json_logs=args.json_logs,
        log_lines=max(0, args.log_lines),
        camera=CameraConfig(
            device_index=args.camera,
            width=args.width,
            height=args.height,
            fps=args.fps,
            rotation_degrees=args.rotation,
            front_facing=args.front,
        ),
    )
