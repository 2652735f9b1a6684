from __future__ import annotations

import argparse

from detectlens.core.catalog import DEFAULT_MODEL, model_names


def parse_args(argv: list | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="On-device object detection with a live overlay",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  detectlens --runtime C
  detectlens --model "YOLO HaGRID (FP32)" --front
  detectlens --runtime G --conf 0.35 --width 1280 --height 720

Keys while running:
  q quit | m next model | c/g/d runtime | +/- threshold | f toggle mirror
		""",
    )

    parser.add_argument(
        "--model",
        type=str,
        choices=model_names(),
        default=DEFAULT_MODEL.display_name,
    )
    parser.add_argument(
        "--runtime",
        type=str,
        default="D",
        help="C (CPU), G (GPU) or D (DSP/NPU); anything else means CPU",
    )
    parser.add_argument("--models-dir", type=str, default="models")
    parser.add_argument("--conf", type=float, default=0.5)
    parser.add_argument("--iou", type=float, default=0.2)
    parser.add_argument("--camera", type=int, default=0)
    parser.add_argument("--width", type=int, default=640)
    parser.add_argument("--height", type=int, default=480)
    parser.add_argument("--fps", type=int, default=30)
    parser.add_argument(
        "--rotation",
        type=int,
        choices=[0, 90, 180, 270],
        default=0,
        help="Clockwise rotation applied to camera frames",
    )
    parser.add_argument(
        "--front",
        action="store_true",
        help="Treat the camera as front-facing and mirror the overlay",
    )
    parser.add_argument(
        "--scale-mode",
        type=str,
        choices=["fit", "fill"],
        default="fit",
        help="Map boxes with letterboxing (fit) or center crop (fill)",
    )
    parser.add_argument(
        "--jpeg-quality",
        type=int,
        default=None,
        help="Round-trip frames through JPEG at this quality before inference",
    )
    parser.add_argument(
        "--fps-window-ms",
        type=float,
        default=1000.0,
        help="Sliding window used for the FPS counter",
    )
    parser.add_argument(
        "--signed-pd",
        action="store_true",
        help="Request a signed protection domain from the accelerator runtime",
    )
    parser.add_argument("--no-display", action="store_true")
    parser.add_argument("--log-dir", type=str, default="logs")
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Also write structured JSONL logs into the log directory",
    )
    parser.add_argument(
        "--log-lines",
        type=int,
        default=3,
        help="Recent log lines shown at the bottom of the preview (0 hides them)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )

    return parser.parse_args(argv)
