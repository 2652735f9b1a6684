"""Threading model: serialized frame analysis, model loads and UI handoff."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Generic, Protocol, TypeVar

from loguru import logger

from detectlens.core.convert import yuv_to_rgb
from detectlens.pipeline.metrics.rate import RateTracker
from detectlens.types import LoadResult, OverlayUpdate


if TYPE_CHECKING:
    from collections.abc import Callable

    from detectlens.pipeline.engine import Runtime
    from detectlens.pipeline.orchestrator import InferenceOrchestrator
    from detectlens.types import CameraFrame, ModelDescriptor


T = TypeVar("T")


class UpdateSink(Protocol[T]):
    """Receiver of UI updates, called on the UI thread only."""

    def apply(self, update: T) -> None:
        """Apply one update."""
        ...


class LatestUpdateSink(Generic[T]):
    """Sink that remembers the most recently applied update."""

    def __init__(self) -> None:
        """Start with no applied update."""
        self.latest: T | None = None
        self.applied_count = 0

    def apply(self, update: T) -> None:
        """Store ``update`` as the latest one."""
        self.latest = update
        self.applied_count += 1


class UiDispatcher(Generic[T]):
    """Fire-and-forget handoff onto a single UI thread.

    Posts are coalesced: if several arrive before the UI thread runs, only the
    newest is applied.
    """

    def __init__(self, sink: UpdateSink[T], name: str = "detectlens-ui") -> None:
        """Create a dispatcher applying updates to ``sink``."""
        self.sink = sink
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._lock = threading.Lock()
        self._pending: T | None = None
        self._has_pending = False
        self._scheduled = False

    def post(self, update: T) -> None:
        """Queue ``update`` without waiting; a newer post replaces it."""
        with self._lock:
            self._pending = update
            self._has_pending = True
            if self._scheduled:
                return
            self._scheduled = True
        self._executor.submit(self._apply_pending)

    def _apply_pending(self) -> None:
        with self._lock:
            update = self._pending
            has_update = self._has_pending
            self._pending = None
            self._has_pending = False
            self._scheduled = False
        if not has_update:
            return
        try:
            self.sink.apply(update)
        except Exception as exc:
            logger.exception("UI update failed: {}", exc)

    def run(self, callback: Callable[[], None]) -> Future[None]:
        """Run an arbitrary callback on the UI thread."""
        return self._executor.submit(callback)

    def flush(self, timeout: float | None = None) -> None:
        """Block until every update posted so far has been applied."""
        self._executor.submit(lambda: None).result(timeout=timeout)

    def shutdown(self, *, wait: bool = True) -> None:
        """Stop the UI thread."""
        self._executor.shutdown(wait=wait)


class ModelLoader:
    """Serialize model loads on a background thread.

    Each request disposes the previous handle before building the next, so no
    two handles coexist.
    """

    def __init__(
        self,
        orchestrator: InferenceOrchestrator,
        on_result: Callable[[ModelDescriptor, LoadResult], None] | None = None,
    ) -> None:
        """Create a loader for ``orchestrator``."""
        self.orchestrator = orchestrator
        self.on_result = on_result
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="detectlens-loader"
        )

    def request(
        self, runtime: Runtime | str, descriptor: ModelDescriptor
    ) -> Future[LoadResult]:
        """Schedule a load and return a future with its result."""
        return self._executor.submit(self._load, runtime, descriptor)

    def _load(self, runtime: Runtime | str, descriptor: ModelDescriptor) -> LoadResult:
        result = self.orchestrator.load_model(runtime, descriptor)
        if self.on_result is not None:
            try:
                self.on_result(descriptor, result)
            except Exception as exc:
                logger.exception("Load callback failed: {}", exc)
        return result

    def shutdown(self, *, wait: bool = True) -> None:
        """Wait for pending loads and release the current handle."""
        self._executor.shutdown(wait=wait)
        self.orchestrator.dispose()


class AnalysisLoop:
    """Drain camera frames one at a time on a dedicated thread.

    Only the newest undelivered frame is kept: a frame submitted while another
    is waiting replaces it, and the replaced frame is closed immediately. Every
    submitted frame is closed exactly once.
    """

    def __init__(
        self,
        orchestrator: InferenceOrchestrator,
        ui: UiDispatcher[OverlayUpdate],
        *,
        rate_tracker: RateTracker | None = None,
        threshold: float = 0.5,
        mirror: bool = False,
        jpeg_quality: int | None = None,
        converter: Callable[..., object] = yuv_to_rgb,
    ) -> None:
        """Create the loop; frames are processed once ``submit`` is called."""
        self.orchestrator = orchestrator
        self.ui = ui
        self.rate_tracker = rate_tracker or RateTracker()
        self.threshold = threshold
        self.mirror = mirror
        self.jpeg_quality = jpeg_quality
        self._converter = converter
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="detectlens-analysis"
        )
        self._lock = threading.Lock()
        self._pending: CameraFrame | None = None
        self._scheduled = False
        self._closed = False
        self.processed_frames = 0
        self.dropped_frames = 0

    def submit(self, frame: CameraFrame) -> None:
        """Offer a frame; an older frame still waiting is dropped."""
        dropped: CameraFrame | None = None
        with self._lock:
            if self._closed:
                dropped = frame
                schedule = False
            else:
                if self._pending is not None:
                    dropped = self._pending
                    self.dropped_frames += 1
                self._pending = frame
                schedule = not self._scheduled
                self._scheduled = True
        if dropped is not None:
            dropped.close()
        if schedule:
            self._executor.submit(self._drain)

    def _drain(self) -> None:
        while True:
            with self._lock:
                frame = self._pending
                self._pending = None
                if frame is None:
                    self._scheduled = False
                    return
            self._process(frame)

    def _process(self, frame: CameraFrame) -> None:
        try:
            if self.orchestrator.is_ready:
                image = self._converter(frame, jpeg_quality=self.jpeg_quality)
                fps = self.rate_tracker.record_event()
                results = self.orchestrator.infer(image, self.threshold)
                height, width = image.shape[:2]
                self.ui.post(
                    OverlayUpdate(tuple(results), width, height, self.mirror, fps)
                )
            else:
                self.rate_tracker.reset()
                width, height = _upright_size(frame)
                self.ui.post(OverlayUpdate((), width, height, self.mirror, None))
        except Exception as exc:
            logger.exception("Frame analysis failed: {}", exc)
        finally:
            frame.close()
            self.processed_frames += 1

    def reset_rate(self) -> Future[None]:
        """Reset the rate tracker on the analysis thread."""
        return self._executor.submit(self.rate_tracker.reset)

    def flush(self, timeout: float | None = None) -> None:
        """Block until frames submitted so far have been handled."""
        self._executor.submit(lambda: None).result(timeout=timeout)

    def shutdown(self, *, wait: bool = True) -> None:
        """Stop accepting frames, close any waiting frame and stop the thread."""
        with self._lock:
            self._closed = True
            pending = self._pending
            self._pending = None
        if pending is not None:
            pending.close()
        self._executor.shutdown(wait=wait)


def _upright_size(frame: CameraFrame) -> tuple[int, int]:
    if frame.rotation_degrees % 180 == 90:
        return frame.height, frame.width
    return frame.width, frame.height
