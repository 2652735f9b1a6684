from __future__ import annotations

import numpy as np
import pytest

from detectlens.core.constants import OUTPUT_LAYERS
from detectlens.errors import DataIntegrityError, InferenceError, ModelLoadError
from detectlens.pipeline.engine import Runtime
from detectlens.pipeline.orchestrator import (
    InferenceOrchestrator,
    ModelState,
    file_model_loader,
)
from tests.fakes import ScriptedEngine, ScriptedHandle, coco_scores, make_outputs


def _orchestrator(*handles: ScriptedHandle, **kwargs) -> InferenceOrchestrator:
    engine = ScriptedEngine(handles=list(handles))
    return InferenceOrchestrator(
        engine, model_loader=lambda path: path.encode(), **kwargs
    )


class TestLoadModel:
    """Test model lifecycle."""

    def test_success(self, orchestrator, coco_model):
        """A successful load reaches the ready state."""
        result = orchestrator.load_model(Runtime.DSP, coco_model)

        assert result.ok
        assert orchestrator.state is ModelState.READY
        assert orchestrator.input_size == (32, 32)
        build = orchestrator.engine.builds[0]
        assert build["model_bytes"] == coco_model.storage_path.encode()
        assert build["output_layers"] == list(OUTPUT_LAYERS[0])
        assert build["runtime"] is Runtime.DSP
        assert build["unsigned_pd"] is True

    def test_runtime_code_string(self, orchestrator, hagrid_model):
        """Runtime codes are accepted and unknown ones map to CPU."""
        orchestrator.load_model("z", hagrid_model)
        build = orchestrator.engine.builds[0]
        assert build["runtime"] is Runtime.CPU
        assert build["output_layers"] == list(OUTPUT_LAYERS[1])

    def test_engine_failure(self, coco_model):
        """A failing build leaves the orchestrator unloaded."""
        orchestrator = _orchestrator()
        orchestrator.engine.fail_with = ModelLoadError("no accelerator")

        result = orchestrator.load_model(Runtime.GPU, coco_model)

        assert not result
        assert isinstance(result.cause, ModelLoadError)
        assert orchestrator.state is ModelState.UNLOADED
        assert not orchestrator.is_ready

    def test_missing_model_file(self, tmp_path, coco_model):
        """An unreadable model file is reported, not raised."""
        orchestrator = InferenceOrchestrator(ScriptedEngine(), models_dir=tmp_path)
        result = orchestrator.load_model(Runtime.CPU, coco_model)
        assert isinstance(result.cause, FileNotFoundError)
        assert orchestrator.state is ModelState.UNLOADED

    @pytest.mark.parametrize("shape", [None, [1, 32, 32, 1], [32, 32]])
    def test_unusable_input_shape(self, coco_model, shape):
        """A handle without a usable input shape is released and rejected."""
        handle = ScriptedHandle(shape=shape)
        orchestrator = _orchestrator(handle)

        result = orchestrator.load_model(Runtime.CPU, coco_model)

        assert not result.ok
        assert handle.released == 1
        assert orchestrator.state is ModelState.UNLOADED

    def test_reload_releases_previous_handle(self, coco_model, hagrid_model):
        """At most one handle is alive: the old one goes before the new build."""
        first, second = ScriptedHandle(), ScriptedHandle()
        orchestrator = _orchestrator(first, second)

        orchestrator.load_model(Runtime.CPU, coco_model)
        orchestrator.load_model(Runtime.CPU, hagrid_model)

        assert first.released == 1
        assert second.released == 0
        assert orchestrator.descriptor is hagrid_model

    def test_failed_reload_drops_old_handle(self, coco_model):
        """A failed reload does not keep serving the previous model."""
        first = ScriptedHandle()
        orchestrator = _orchestrator(first)
        orchestrator.load_model(Runtime.CPU, coco_model)

        result = orchestrator.load_model(Runtime.CPU, coco_model)

        assert not result.ok
        assert first.released == 1
        assert orchestrator.state is ModelState.UNLOADED

    def test_dispose(self, orchestrator, scripted_handle, coco_model):
        """Dispose releases the handle once."""
        orchestrator.load_model(Runtime.CPU, coco_model)
        orchestrator.dispose()
        orchestrator.dispose()
        assert scripted_handle.released == 1
        assert orchestrator.input_size is None

    def test_file_model_loader(self, tmp_path):
        """Model files are read relative to the models directory."""
        (tmp_path / "m.onnx").write_bytes(b"onnx")
        assert file_model_loader(tmp_path)("m.onnx") == b"onnx"


class TestInfer:
    """Test per-frame inference."""

    def test_not_ready(self, orchestrator, bright_image):
        """Without a model there are no detections."""
        assert orchestrator.infer(bright_image) == []

    def test_decodes_in_image_space(
        self, orchestrator, scripted_handle, coco_model, bright_image
    ):
        """Boxes come back scaled to the source raster."""
        orchestrator.load_model(Runtime.CPU, coco_model)

        results = orchestrator.infer(bright_image, threshold=0.5)

        assert [r.label for r in results] == ["person"]
        assert results[0].bounding_box.as_tuple() == pytest.approx((4, 4, 24, 24))
        executed = scripted_handle.executed[0]
        assert executed.shape == (32 * 32 * 3,)
        assert executed.max() == pytest.approx(200 / 255, rel=1e-5)

    def test_threshold_passed_through(self, orchestrator, coco_model, bright_image):
        """Low thresholds include weaker detections."""
        orchestrator.load_model(Runtime.CPU, coco_model)
        labels = [r.label for r in orchestrator.infer(bright_image, threshold=0.05)]
        assert sorted(labels) == ["car", "person"]

    def test_black_frame_skipped(self, orchestrator, scripted_handle, coco_model):
        """Near-black frames never reach the engine."""
        orchestrator.load_model(Runtime.CPU, coco_model)

        results = orchestrator.infer(np.zeros((64, 64, 3), dtype=np.uint8))

        assert results == []
        assert scripted_handle.executed == []
        assert orchestrator.skipped_frames == 1

    @pytest.mark.parametrize(
        "error", [RuntimeError("boom"), InferenceError("handle released")]
    )
    def test_engine_error(self, coco_model, bright_image, error):
        """Execution failures are logged and produce no detections."""
        orchestrator = _orchestrator(ScriptedHandle(error=error))
        orchestrator.load_model(Runtime.CPU, coco_model)
        assert orchestrator.infer(bright_image) == []
        assert orchestrator.is_ready

    def test_invalid_raster(self, orchestrator, coco_model):
        """Rasters the normalizer cannot read produce no detections."""
        orchestrator.load_model(Runtime.CPU, coco_model)
        assert orchestrator.infer(np.ones((64, 64, 3), dtype=np.float32)) == []

    def test_malformed_outputs(self, coco_model, bright_image):
        """Inconsistent tensors surface as data integrity errors."""
        handle = ScriptedHandle(
            outputs=make_outputs(
                [[0, 0, 1, 1], [0, 0, 2, 2]], [coco_scores(person=0.9)]
            )
        )
        orchestrator = _orchestrator(handle)
        orchestrator.load_model(Runtime.CPU, coco_model)
        with pytest.raises(DataIntegrityError):
            orchestrator.infer(bright_image)

    def test_missing_outputs(self, coco_model, bright_image):
        """An engine returning unnamed tensors yields nothing."""
        orchestrator = _orchestrator(ScriptedHandle(outputs={"other": np.zeros(1)}))
        orchestrator.load_model(Runtime.CPU, coco_model)
        assert orchestrator.infer(bright_image) == []

    def test_iou_threshold_applied(self, coco_model, bright_image):
        """The configured IoU threshold controls suppression."""
        outputs = make_outputs(
            [[2, 2, 12, 12], [3, 3, 13, 13]],
            [coco_scores(person=0.9), coco_scores(person=0.8)],
        )
        strict = _orchestrator(ScriptedHandle(outputs=outputs), iou_threshold=0.2)
        loose = _orchestrator(ScriptedHandle(outputs=outputs), iou_threshold=0.9)
        strict.load_model(Runtime.CPU, coco_model)
        loose.load_model(Runtime.CPU, coco_model)

        assert len(strict.infer(bright_image)) == 1
        assert len(loose.infer(bright_image)) == 2
