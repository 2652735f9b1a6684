from __future__ import annotations

import numpy as np
import pytest

from detectlens.types import BoundingBox, DetectionResult, OverlayUpdate, ScaleMode
from detectlens.ui.overlay import (
    LABEL_PADDING,
    OverlayView,
    compute_view_transform,
    draw_detections,
    draw_log_lines,
    flip_horizontally,
    label_background,
    map_box,
    map_detections,
)


def _det(*box: float, label: str = "person", confidence: float = 0.87):
    return DetectionResult(label, confidence, BoundingBox(*box))


class TestTransforms:
    """Test image-to-view placement."""

    def test_flip_is_involution(self):
        """Mirroring twice restores the box."""
        box = BoundingBox(10, 20, 50, 60)
        assert flip_horizontally(flip_horizontally(box, 200), 200) == box

    def test_flip(self):
        """Edges are reflected and swapped."""
        flipped = flip_horizontally(BoundingBox(10, 20, 50, 60), 200)
        assert flipped == BoundingBox(150, 20, 190, 60)

    def test_fit_letterboxes_tall_view(self):
        """A wide image in a tall view is centered vertically."""
        transform = compute_view_transform(640, 480, 320, 480, ScaleMode.FIT)
        assert transform.scale == pytest.approx(0.5)
        assert transform.dx == pytest.approx(0.0)
        assert transform.dy == pytest.approx(120.0)

    def test_fill_crops(self):
        """Fill covers the view and centers the overflow."""
        transform = compute_view_transform(640, 480, 320, 480, ScaleMode.FILL)
        assert transform.scale == pytest.approx(1.0)
        assert transform.dx == pytest.approx(-160.0)
        assert transform.dy == pytest.approx(0.0)

    def test_map_box(self):
        """Each edge is scaled then offset."""
        transform = compute_view_transform(100, 100, 200, 300)
        mapped = map_box(BoundingBox(0, 0, 100, 100), transform)
        assert mapped.as_tuple() == pytest.approx((0, 50, 200, 250))

    def test_full_image_box_inside_view(self):
        """With fit, a box covering the image stays within the view."""
        mapped = map_detections([_det(0, 0, 640, 480)], (640, 480), (300, 700))
        box = mapped[0]
        assert box.left >= 0 and box.top >= 0
        assert box.right <= 300 + 1e-6 and box.bottom <= 700 + 1e-6


class TestMapDetections:
    """Test detection mapping into view space."""

    def test_zero_view_size(self):
        """A view without area gets no boxes."""
        assert map_detections([_det(0, 0, 10, 10)], (640, 480), (0, 480)) == []

    def test_zero_image_size(self):
        """An image without area gets no boxes."""
        assert map_detections([_det(0, 0, 10, 10)], (0, 0), (640, 480)) == []

    def test_mirror_before_scaling(self):
        """Mirroring happens in image space."""
        mapped = map_detections(
            [_det(0, 0, 100, 100)], (400, 400), (200, 200), mirror=True
        )
        assert mapped[0].as_tuple() == pytest.approx((150, 0, 200, 50))

    def test_preserves_order(self):
        """Output boxes align with input detections."""
        dets = [_det(0, 0, 10, 10), _det(20, 20, 40, 40)]
        mapped = map_detections(dets, (100, 100), (100, 100))
        assert [b.as_tuple() for b in mapped] == [
            d.bounding_box.as_tuple() for d in dets
        ]


class TestLabels:
    """Test caption layout."""

    @pytest.mark.parametrize(
        ("confidence", "caption"),
        [(0.879, "person 88%"), (0.874, "person 87%"), (0.999, "person 100%")],
    )
    def test_caption_text(self, confidence, caption):
        """Confidence is rounded to the nearest whole percent."""
        assert _det(0, 0, 1, 1, confidence=confidence).format_label() == caption

    def test_label_background(self):
        """The caption sits above the box with padding on every side."""
        origin, background = label_background(
            BoundingBox(50, 100, 150, 200), (40, 10), 4
        )
        assert origin == (50, 100 - LABEL_PADDING)
        assert background.as_tuple() == (
            50 - LABEL_PADDING,
            100 - LABEL_PADDING - 10 - LABEL_PADDING,
            50 + 40 + LABEL_PADDING,
            100 - LABEL_PADDING + 4 + LABEL_PADDING,
        )


class TestDrawing:
    """Test rendering onto numpy canvases."""

    def test_draws_box_pixels(self):
        """A detection changes pixels on the canvas."""
        canvas = np.zeros((240, 320, 3), dtype=np.uint8)
        count = draw_detections(canvas, [_det(100, 100, 200, 200)], (320, 240))
        assert count == 1
        assert canvas.any()

    def test_zero_canvas_skipped(self):
        """Drawing into an empty view is a no-op."""
        view = OverlayView()
        view.apply(OverlayUpdate((_det(0, 0, 10, 10),), 64, 64))
        canvas = np.zeros((0, 0, 3), dtype=np.uint8)
        assert view.draw(canvas) is canvas

    def test_draw_without_detections_only_status(self):
        """The status line is always drawn."""
        canvas = np.zeros((120, 320, 3), dtype=np.uint8)
        OverlayView().draw(canvas)
        assert canvas[:40].any()
        assert not canvas[60:].any()


class TestLogLines:
    """Test the log tail along the bottom edge."""

    def test_draws_along_bottom(self):
        """Lines stack upward from the bottom and leave the top untouched."""
        canvas = np.full((240, 320, 3), 255, dtype=np.uint8)
        assert draw_log_lines(canvas, ["first", "second", "third"]) == 3
        assert (canvas[-10:] != 255).any()
        assert (canvas[:120] == 255).all()

    def test_short_canvas_limits_lines(self):
        """Only the newest lines that fit are drawn."""
        canvas = np.zeros((30, 320, 3), dtype=np.uint8)
        drawn = draw_log_lines(canvas, ["old", "older", "newest"])
        assert 1 <= drawn < 3
        assert canvas.any()

    @pytest.mark.parametrize(
        ("shape", "lines"),
        [((120, 320, 3), []), ((0, 0, 3), ["line"]), ((5, 320, 3), ["line"])],
    )
    def test_nothing_drawn(self, shape, lines):
        """Empty input, an empty canvas or no room for a line draws nothing."""
        canvas = np.zeros(shape, dtype=np.uint8)
        assert draw_log_lines(canvas, lines) == 0
        assert not canvas.any()


class TestOverlayView:
    """Test UI-side state."""

    def test_defaults(self):
        """A fresh view assumes a 480x640 portrait source."""
        view = OverlayView()
        assert (view.image_width, view.image_height) == (480, 640)
        assert view.detections == ()

    def test_apply_replaces_state(self):
        """An update replaces detections, size and mirroring."""
        view = OverlayView()
        dets = (_det(0, 0, 10, 10),)
        view.apply(OverlayUpdate(dets, 320, 240, mirror=True))
        assert view.detections == dets
        assert (view.image_width, view.image_height) == (320, 240)
        assert view.is_front_camera

    def test_fps_shown_only_when_ready(self):
        """Rate updates do not overwrite a loading message."""
        view = OverlayView()
        view.set_status("Loading model...", model_ready=False)
        view.apply(OverlayUpdate((), 320, 240, fps=12.0))
        assert view.status_text == "Loading model..."

        view.set_status("FPS: 0.0", model_ready=True)
        view.apply(OverlayUpdate((), 320, 240, fps=12.34))
        assert view.status_text == "FPS: 12.3"
