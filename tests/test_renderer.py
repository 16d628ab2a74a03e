"""Tests for scene rasterization."""

import numpy as np
import pytest

from motion_display.core.element import image_element, shape_element, text_element
from motion_display.core.motion import MotionConfig, MotionLaw
from motion_display.core.scene import Scene, SceneSnapshot
from motion_display.rendering.images import ImageLoader, load_rgba
from motion_display.rendering.renderer.pygame_renderer import PygameRenderer
from motion_display.rendering.scene_renderer import ERROR_FRAME_COLOR, SceneRenderer
from motion_display.rendering.trail import TrailStyle, _interpolate_color, trail_points

from conftest import Recorder


@pytest.fixture
def renderer():
    r = SceneRenderer(background_color=(0, 0, 0, 255))
    yield r
    r.close()


def _snapshot(*elements, width=100, height=80, selected_id=None):
    return SceneSnapshot(list(elements), selected_id, width, height)


class BrokenCanvas(PygameRenderer):
    """Canvas whose clear() always fails."""

    def clear(self, color):
        raise RuntimeError("canvas lost")


class TestBasicRendering:
    """Tests for frame output."""

    def test_background_fill(self, renderer):
        """An empty scene is the background color."""
        renderer.background_color = (10, 20, 30, 255)
        frame = renderer.render(_snapshot(), 0.0)
        assert frame.pixels.shape == (80, 100, 4)
        assert tuple(frame.pixels[40, 50]) == (10, 20, 30, 255)
        assert not frame.is_error

    def test_rectangle_pixels(self, renderer):
        """A filled rectangle colors its interior."""
        rect = shape_element("rectangle", (10, 10), (30, 20), fill_color="red",
                             stroke_width=0)
        frame = renderer.render(_snapshot(rect), 1.5)
        assert tuple(frame.pixels[20, 20][:3]) == (255, 0, 0)
        assert tuple(frame.pixels[5, 5][:3]) == (0, 0, 0)
        assert frame.timestamp == 1.5

    def test_opacity_blends(self, renderer):
        """Half-opaque red over black comes out as a mid red."""
        rect = shape_element("rectangle", (10, 10), (30, 20), fill_color="red",
                             stroke_width=0, opacity=0.5)
        frame = renderer.render(_snapshot(rect), 0.0)
        red = int(frame.pixels[20, 20][0])
        assert 100 <= red <= 160

    def test_hidden_elements_not_drawn(self, renderer):
        """Invisible elements leave the background untouched."""
        rect = shape_element("rectangle", (10, 10), (30, 20), fill_color="red",
                             visible=False)
        frame = renderer.render(_snapshot(rect), 0.0)
        assert tuple(frame.pixels[20, 20][:3]) == (0, 0, 0)

    def test_z_order(self, renderer):
        """Later elements in the snapshot are drawn on top."""
        below = shape_element("rectangle", (0, 0), (50, 50), fill_color="red", stroke_width=0)
        above = shape_element("rectangle", (0, 0), (50, 50), fill_color="green", stroke_width=0)
        frame = renderer.render(_snapshot(below, above), 0.0)
        assert tuple(frame.pixels[25, 25][:3]) == (0, 255, 0)

    def test_text_draws_something(self, renderer):
        """Text leaves non-background pixels."""
        text = text_element("Hello", (5, 5), font_size=24, color="white")
        frame = renderer.render(_snapshot(text), 0.0)
        assert frame.pixels[:, :, :3].max() > 0

    def test_frame_is_read_only(self, renderer):
        """Frame pixels cannot be modified in place."""
        frame = renderer.render(_snapshot(), 0.0)
        with pytest.raises(ValueError):
            frame.pixels[0, 0] = (1, 2, 3, 4)

    def test_canvas_follows_snapshot_size(self, renderer):
        """The canvas is reallocated when the scene is resized."""
        assert renderer.render(_snapshot(width=40, height=30), 0.0).pixels.shape == (30, 40, 4)
        assert renderer.render(_snapshot(width=64, height=48), 0.0).pixels.shape == (48, 64, 4)


class TestSelectionAndTrails:
    """Tests for overlays."""

    def test_selection_outline(self, renderer):
        """The selected element is outlined in gold outside its bounds."""
        rect = shape_element("rectangle", (50, 50), (20, 20))
        frame = renderer.render(_snapshot(rect, width=120, height=120,
                                          selected_id=rect.id), 0.0)
        assert tuple(frame.pixels[60, 47][:3]) == (255, 215, 0)

    def test_selection_outline_disabled(self):
        """show_selection=False skips the outline."""
        renderer = SceneRenderer(show_selection=False)
        rect = shape_element("rectangle", (50, 50), (20, 20))
        frame = renderer.render(_snapshot(rect, width=120, height=120,
                                          selected_id=rect.id), 0.0)
        renderer.close()
        assert tuple(frame.pixels[60, 47][:3]) == (0, 0, 0)

    def test_trail_drawn(self, renderer, engine):
        """An element with a trail leaves pixels along its path."""
        dot = shape_element("circle", (10, 40), (4, 4), fill_color="blue")
        engine.set_bounds(100, 80)
        engine.attach(dot, MotionConfig(law=MotionLaw.LINEAR, speed=60, direction=(1, 0),
                                        show_trail=True, trail_length=30), 0.0)
        for i in range(1, 21):
            engine.advance(dot, i * 0.05)

        renderer.trail_style = TrailStyle(head_color=(255, 255, 255, 255),
                                          tail_color=(255, 255, 255, 255))
        frame = renderer.render(_snapshot(dot.render_snapshot()), 1.0)
        # Between the start and the current position, on the center line
        assert frame.pixels[42, 40, :3].max() > 200

    def test_trail_points_are_centers(self):
        """Trail points are offset to the element center."""
        assert trail_points([(0.0, 0.0), (10.4, 5.0)], (4, 6)) == [(2, 3), (12, 8)]

    def test_interpolate_color(self):
        """Interpolation hits both ends and the midpoint."""
        a, b = (0, 0, 0, 0), (200, 100, 50, 255)
        assert _interpolate_color(a, b, 0.0) == a
        assert _interpolate_color(a, b, 1.0) == b
        assert _interpolate_color(a, b, 0.5) == (100, 50, 25, 127)

    def test_unknown_trail_style(self):
        """Only solid and dotted trails exist."""
        with pytest.raises(ValueError):
            TrailStyle(style="dashed")


class TestErrorHandling:
    """Tests for degraded rendering."""

    def test_failing_element_gets_placeholder(self):
        """A broken element is replaced by a red box and reported."""
        errors = Recorder()
        renderer = SceneRenderer(on_error=errors)
        bad = shape_element("rectangle", (20, 20), (30, 30))
        bad.payload.fill_color = None
        good = shape_element("rectangle", (60, 20), (20, 20), fill_color="green",
                             stroke_width=0)

        frame = renderer.render(_snapshot(bad, good), 0.0)
        renderer.close()

        assert not frame.is_error
        assert tuple(frame.pixels[20, 20][:3]) == (255, 0, 0)
        assert tuple(frame.pixels[30, 70][:3]) == (0, 255, 0)
        assert renderer.element_errors == 1
        assert len(errors) == 1
        assert errors.items[0].element_id == bad.id

    def test_frame_failure_gives_error_frame(self):
        """A canvas failure yields an error frame instead of raising."""
        errors = Recorder()
        renderer = SceneRenderer(canvas=BrokenCanvas(), on_error=errors)
        frame = renderer.render(_snapshot(width=40, height=30), 2.0)

        assert frame.is_error
        assert frame.pixels.shape == (30, 40, 4)
        assert tuple(frame.pixels[0, 20]) == ERROR_FRAME_COLOR
        assert renderer.frame_errors == 1
        assert errors.items[0].element_id is None

    def test_failing_error_callback_is_contained(self):
        """An on_error callback that raises does not break rendering."""
        def explode(error):
            raise RuntimeError("callback")

        renderer = SceneRenderer(on_error=explode)
        bad = shape_element("rectangle", (20, 20), (30, 30))
        bad.payload.fill_color = None
        frame = renderer.render(_snapshot(bad), 0.0)
        renderer.close()
        assert frame.pixels.shape == (80, 100, 4)


class TestImages:
    """Tests for image elements."""

    def test_image_pixels_drawn(self, renderer):
        """Decoded image pixels appear at the element position."""
        pixels = np.zeros((10, 10, 4), dtype=np.uint8)
        pixels[:, :] = (0, 255, 0, 255)
        image = image_element((30, 30), (10, 10), handle=pixels)
        frame = renderer.render(_snapshot(image), 0.0)
        assert tuple(frame.pixels[35, 35][:3]) == (0, 255, 0)

    def test_pending_image_outline(self, renderer):
        """An image without pixels shows a gray outline."""
        image = image_element((30, 30), (20, 20))
        frame = renderer.render(_snapshot(image), 0.0)
        assert tuple(frame.pixels[30, 35][:3]) == (128, 128, 128)
        assert tuple(frame.pixels[40, 40][:3]) == (0, 0, 0)

    def test_load_rgba_missing_file(self, tmp_path):
        """Unreadable files raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_rgba(str(tmp_path / "nope.png"))

    def test_loader_attaches_pixels(self, tmp_path, clock):
        """The loader decodes a file and sizes the element from it."""
        import cv2

        path = tmp_path / "square.png"
        bgr = np.zeros((12, 16, 3), dtype=np.uint8)
        bgr[:, :] = (255, 0, 0)  # blue in BGR
        cv2.imwrite(str(path), bgr)

        scene = Scene(100, 80, clock=clock)
        element = scene.add(image_element((0, 0), (0, 0), path=str(path)))
        loader = ImageLoader(scene)
        try:
            rgba = loader.load(element.id).result(timeout=10)
        finally:
            loader.shutdown()

        assert rgba.shape == (12, 16, 4)
        assert tuple(rgba[0, 0]) == (0, 0, 255, 255)
        assert element.payload.handle is rgba
        assert element.size == (16.0, 12.0)

    def test_loader_rejects_non_image(self, clock):
        """Only image elements can be loaded into."""
        scene = Scene(100, 80, clock=clock)
        element = scene.add(shape_element("circle", (0, 0)))
        loader = ImageLoader(scene)
        try:
            with pytest.raises(ValueError):
                loader.load(element.id, "x.png")
        finally:
            loader.shutdown()
