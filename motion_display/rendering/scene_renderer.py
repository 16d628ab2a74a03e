"""
Scene rasterization: scene snapshot -> RGBA Frame.

Draw order per frame:
    1. Background fill
    2. Per element, back to front: trail, then the element itself
    3. Selection outline (topmost)

A failure while drawing one element is replaced by a red crossed box and
reported; a failure of the frame as a whole yields an error frame. Neither
propagates to the caller.
"""

import logging
from typing import Callable, Dict, Optional, Tuple

import numpy as np

from motion_display.core.element import Element, ElementKind
from motion_display.core.scene import SceneSnapshot
from motion_display.exceptions import RenderError
from motion_display.rendering.primitives import (
    draw_error_cross,
    draw_error_placeholder,
    draw_image_element,
    draw_selection_outline,
    draw_shape,
    draw_text_element,
)
from motion_display.rendering.renderer.base import Frame, Renderer
from motion_display.rendering.renderer.pygame_renderer import PygameRenderer
from motion_display.rendering.trail import TrailStyle, draw_trail, trail_points

logger = logging.getLogger(__name__)

ERROR_FRAME_COLOR = (64, 0, 0, 255)
PENDING_IMAGE_COLOR = (128, 128, 128, 255)


class SceneRenderer:
    """
    Renders scene snapshots on an offscreen canvas.

    Args:
        canvas: Drawing backend (default: PygameRenderer)
        background_color: RGBA fill for every frame
        show_selection: Draw a highlight around the selected element
        trail_style: How motion trails are drawn
        on_error: Called with a RenderError for every failure that was degraded
    """

    def __init__(self, canvas: Optional[Renderer] = None,
                 background_color: Tuple[int, int, int, int] = (0, 0, 0, 255),
                 show_selection: bool = True,
                 trail_style: Optional[TrailStyle] = None,
                 on_error: Optional[Callable[[RenderError], None]] = None):
        self.canvas = canvas or PygameRenderer()
        self.background_color = background_color
        self.show_selection = show_selection
        self.trail_style = trail_style or TrailStyle()
        self.on_error = on_error
        self._canvas_size: Tuple[int, int] = (0, 0)

        # element id -> (source array, renderer image handle)
        self._image_cache: Dict[str, Tuple[np.ndarray, object]] = {}

        # Stats
        self.frames_rendered = 0
        self.element_errors = 0
        self.frame_errors = 0

    def render(self, snapshot: SceneSnapshot, timestamp: float) -> Frame:
        """Rasterize a snapshot. Never raises."""
        try:
            self._ensure_canvas(snapshot.width, snapshot.height)
            self.canvas.clear(self.background_color)

            selected: Optional[Element] = None
            for element in snapshot.elements:
                if not element.visible:
                    continue
                self._draw_element(element)
                if element.id == snapshot.selected_id:
                    selected = element

            if self.show_selection and selected is not None:
                draw_selection_outline(self.canvas, selected.get_bounds())

            self._prune_image_cache(snapshot)
            frame = Frame.from_array(self.canvas.get_pixels(), timestamp)
            self.frames_rendered += 1
            return frame

        except Exception as e:
            self.frame_errors += 1
            logger.error(f"Frame render failed: {e}")
            self._report(RenderError(f"Frame render failed: {e}"))
            return self._error_frame(snapshot.width, snapshot.height, timestamp)

    def _ensure_canvas(self, width: int, height: int) -> None:
        if self._canvas_size != (width, height):
            self.canvas.init(width, height)
            self._canvas_size = (width, height)
            self._image_cache.clear()

    def _draw_element(self, element: Element) -> None:
        try:
            motion = element.motion
            if motion is not None and motion.config.show_trail and len(motion.trail) >= 2:
                draw_trail(self.canvas, trail_points(motion.trail, element.size),
                           self.trail_style, element.opacity)

            if element.kind == ElementKind.SHAPE:
                draw_shape(self.canvas, element)
            elif element.kind == ElementKind.TEXT:
                draw_text_element(self.canvas, element)
            elif element.kind == ElementKind.IMAGE:
                self._draw_image(element)

        except Exception as e:
            self.element_errors += 1
            logger.warning(f"Failed to draw '{element.name}': {e}")
            draw_error_placeholder(self.canvas, element.get_bounds())
            self._report(RenderError(f"Failed to draw '{element.name}': {e}", element.id))

    def _draw_image(self, element: Element) -> None:
        pixels = element.payload.handle
        if pixels is None:
            # Not decoded yet: outline where it will appear
            x, y, w, h = element.get_bounds()
            self.canvas.draw_rect((int(x), int(y), int(w), int(h)), PENDING_IMAGE_COLOR, border=1)
            return

        cached = self._image_cache.get(element.id)
        if cached is None or cached[0] is not pixels:
            cached = (pixels, self.canvas.create_image(pixels))
            self._image_cache[element.id] = cached
        draw_image_element(self.canvas, element, cached[1])

    def _prune_image_cache(self, snapshot: SceneSnapshot) -> None:
        live = {e.id for e in snapshot.elements}
        for element_id in list(self._image_cache):
            if element_id not in live:
                del self._image_cache[element_id]

    def _error_frame(self, width: int, height: int, timestamp: float) -> Frame:
        width, height = max(1, int(width)), max(1, int(height))
        try:
            self._ensure_canvas(width, height)
            self.canvas.clear(ERROR_FRAME_COLOR)
            draw_error_cross(self.canvas, width, height)
            return Frame.from_array(self.canvas.get_pixels(), timestamp, is_error=True)
        except Exception as e:
            logger.debug(f"Canvas unavailable for error frame: {e}")
            return Frame.solid(width, height, ERROR_FRAME_COLOR, timestamp, is_error=True)

    def _report(self, error: RenderError) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(error)
        except Exception:
            logger.exception("Render error callback raised")

    def close(self) -> None:
        self._image_cache.clear()
        self.canvas.quit()
        self._canvas_size = (0, 0)
