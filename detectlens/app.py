"""Main entry point for the live detection app."""

from __future__ import annotations

import platform
import time
from collections import deque
from dataclasses import dataclass
from functools import partial

import cv2
from loguru import logger

from detectlens.cli import parse_args
from detectlens.config import AppConfig, config_from_args
from detectlens.core.catalog import MODEL_CATALOG
from detectlens.core.convert import yuv_to_rgb
from detectlens.errors import ConfigurationError
from detectlens.logging import (
    attach_log_buffer,
    configure_logging,
    create_log_buffer,
    recent_lines,
)
from detectlens.pipeline.analysis import AnalysisLoop, ModelLoader, UiDispatcher
from detectlens.pipeline.capture import CaptureProtocol, OpenCVCapture
from detectlens.pipeline.engine import Runtime
from detectlens.pipeline.metrics.rate import RateTracker
from detectlens.pipeline.onnx_engine import OnnxRuntimeEngine
from detectlens.pipeline.orchestrator import InferenceOrchestrator
from detectlens.types import (
    CameraFrame,
    LoadResult,
    ModelDescriptor,
    OverlayUpdate,
)
from detectlens.ui.overlay import OverlayView, draw_log_lines


WINDOW_TITLE = "DetectLens"
THRESHOLD_STEP = 0.05


class AppInitError(RuntimeError):
    """Raised when app initialization fails."""


@dataclass
class AppContext:
    """Long-lived objects wired together for one run."""

    config: AppConfig
    camera: CaptureProtocol
    orchestrator: InferenceOrchestrator
    overlay: OverlayView
    ui: UiDispatcher[OverlayUpdate]
    loader: ModelLoader
    analysis: AnalysisLoop
    model: ModelDescriptor
    runtime: Runtime
    log_buffer: deque[str]


def _on_model_loaded(
    ctx: AppContext, descriptor: ModelDescriptor, result: LoadResult
) -> None:
    if result.ok:
        ctx.ui.run(lambda: ctx.overlay.set_status("FPS: 0.0", model_ready=True))
        return
    logger.warning(
        "Model loading failed for '{}': {}", descriptor.display_name, result.cause
    )
    ctx.ui.run(
        lambda: ctx.overlay.set_status("Model loading failed", model_ready=False)
    )


def _select_model(
    ctx: AppContext, descriptor: ModelDescriptor, runtime: Runtime
) -> None:
    ctx.model = descriptor
    ctx.runtime = runtime
    ctx.ui.run(lambda: ctx.overlay.set_status("Loading model...", model_ready=False))
    ctx.loader.request(runtime, descriptor)


def _handle_key(ctx: AppContext, key: int) -> bool:
    if key == ord("q"):
        logger.info("Quit requested by user")
        return False
    if key == ord("m"):
        index = (MODEL_CATALOG.index(ctx.model) + 1) % len(MODEL_CATALOG)
        _select_model(ctx, MODEL_CATALOG[index], ctx.runtime)
    elif key in (ord("c"), ord("g"), ord("d")):
        _select_model(ctx, ctx.model, Runtime.from_code(chr(key)))
    elif key in (ord("+"), ord("=")):
        ctx.analysis.threshold = min(1.0, ctx.analysis.threshold + THRESHOLD_STEP)
        logger.info("Confidence threshold: {:.2f}", ctx.analysis.threshold)
    elif key == ord("-"):
        ctx.analysis.threshold = max(0.0, ctx.analysis.threshold - THRESHOLD_STEP)
        logger.info("Confidence threshold: {:.2f}", ctx.analysis.threshold)
    elif key == ord("f"):
        ctx.analysis.mirror = not ctx.analysis.mirror
        ctx.analysis.reset_rate()
        logger.info("Mirroring {}", "on" if ctx.analysis.mirror else "off")
    return True


def _render_preview(ctx: AppContext, frame: CameraFrame) -> bool:
    rgb = yuv_to_rgb(frame)
    preview = cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)
    if ctx.analysis.mirror:
        preview = cv2.flip(preview, 1)
    ctx.overlay.draw(preview)
    draw_log_lines(preview, recent_lines(ctx.log_buffer, ctx.config.log_lines))
    cv2.imshow(WINDOW_TITLE, preview)
    key = cv2.waitKey(1) & 0xFF
    if key == 0xFF:
        return True
    return _handle_key(ctx, key)


def _run_loop(ctx: AppContext) -> int:
    logger.info("-" * 60)
    logger.info("Starting analysis loop. Press 'q' to quit.")
    logger.info("-" * 60)

    last_log_time = time.perf_counter()
    try:
        while True:
            ok, frame = ctx.camera.read()
            if not ok or frame is None:
                if not ctx.camera.is_opened():
                    logger.error("Camera is no longer available")
                    break
                logger.warning("Failed to grab frame")
                time.sleep(0.01)
                continue

            keep_running = True
            if not ctx.config.no_display:
                try:
                    keep_running = _render_preview(ctx, frame)
                except Exception:
                    frame.close()
                    raise
            ctx.analysis.submit(frame)
            if not keep_running:
                break

            now = time.perf_counter()
            if now - last_log_time >= 2.0:
                overlay = ctx.overlay
                logger.info(
                    "{} | Detections: {} | Dropped: {} | Dark skipped: {}",
                    overlay.status_text,
                    len(overlay.detections),
                    ctx.analysis.dropped_frames,
                    ctx.orchestrator.skipped_frames,
                )
                last_log_time = now

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as exc:
        logger.exception("Error during detection: {}", exc)
    finally:
        logger.info("=" * 60)
        logger.info("Session Summary")
        logger.info("Frames analyzed: {}", ctx.analysis.processed_frames)
        logger.info("Frames dropped: {}", ctx.analysis.dropped_frames)
        logger.info("Near-black frames skipped: {}", ctx.orchestrator.skipped_frames)

        ctx.analysis.shutdown()
        ctx.loader.shutdown()
        ctx.ui.shutdown()
        ctx.camera.release()
        if not ctx.config.no_display:
            cv2.destroyAllWindows()
        logger.success("Cleanup complete. Goodbye!")

    return 0


def _build_context(config: AppConfig, log_buffer: deque[str]) -> AppContext:
    logger.info("=" * 60)
    logger.info("DetectLens live detection")
    logger.info("=" * 60)
    logger.info("Platform: {} {}", platform.system(), platform.release())
    logger.info("Python: {}", platform.python_version())
    logger.info("OpenCV: {}", cv2.__version__)

    try:
        model = config.model
    except ConfigurationError as exc:
        logger.error("{}", exc)
        raise AppInitError(str(exc)) from exc

    camera: CaptureProtocol = OpenCVCapture(config.camera)
    if not camera.open():
        message = "Failed to open camera"
        raise AppInitError(message)
    info = camera.get_info()
    logger.info(
        "Capture: {} {}x{} @ {:.1f} FPS, rotation {}",
        info["backend"],
        info["width"],
        info["height"],
        info["fps"],
        info["rotation"],
    )

    orchestrator = InferenceOrchestrator(
        OnnxRuntimeEngine(),
        models_dir=config.models_dir,
        unsigned_pd=config.unsigned_pd,
        iou_threshold=config.iou_threshold,
    )
    overlay = OverlayView(mode=config.scale_mode)
    ui: UiDispatcher[OverlayUpdate] = UiDispatcher(overlay)
    loader = ModelLoader(orchestrator)
    analysis = AnalysisLoop(
        orchestrator,
        ui,
        rate_tracker=RateTracker(window_size_ms=config.window_size_ms),
        threshold=config.confidence_threshold,
        mirror=config.camera.front_facing,
        jpeg_quality=config.jpeg_quality,
    )
    ctx = AppContext(
        config=config,
        camera=camera,
        orchestrator=orchestrator,
        overlay=overlay,
        ui=ui,
        loader=loader,
        analysis=analysis,
        model=model,
        runtime=config.runtime,
        log_buffer=log_buffer,
    )
    loader.on_result = partial(_on_model_loaded, ctx)
    _select_model(ctx, model, config.runtime)
    return ctx


def run_app(argv: list[str] | None = None) -> int:
    """Entry point for the live detection app."""
    args = parse_args(argv)
    try:
        config = config_from_args(args)
    except ConfigurationError as exc:
        configure_logging(args.log_level, None)
        logger.error("{}", exc)
        return 2

    configure_logging(config.log_level, config.log_dir, json_logs=config.json_logs)
    log_buffer = create_log_buffer(max_lines=max(config.log_lines, 1))
    sink_id = attach_log_buffer(log_buffer, level="INFO") if config.log_lines else None
    try:
        ctx = _build_context(config, log_buffer)
        return _run_loop(ctx)
    except AppInitError:
        return 1
    finally:
        if sink_id is not None:
            logger.remove(sink_id)


if __name__ == "__main__":
    raise SystemExit(run_app())
