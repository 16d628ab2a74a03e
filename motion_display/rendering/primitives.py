"""
Drawing primitives for scene elements.

Each function draws one element kind onto a Renderer canvas. Colors are
RGBA tuples; element opacity is folded into the alpha channel before
drawing.
"""

import math
from typing import List, Tuple

from motion_display.core.element import Bounds, Element, ShapeKind
from motion_display.rendering.renderer.base import Renderer
from motion_display.utils.color import apply_opacity

# Error placeholder settings
ERROR_COLOR = (255, 0, 0, 255)  # Red
ERROR_THICKNESS = 2
ERROR_MIN_SIZE = 8

# Selection outline settings
SELECTION_COLOR = (255, 215, 0, 255)  # Gold
SELECTION_THICKNESS = 2
SELECTION_PADDING = 3


def _pixel_rect(bounds: Bounds) -> Tuple[int, int, int, int]:
    return (int(round(bounds.x)), int(round(bounds.y)),
            int(round(bounds.width)), int(round(bounds.height)))


def triangle_points(bounds: Bounds) -> List[Tuple[int, int]]:
    """Isosceles triangle inscribed in bounds, apex at top-center."""
    x, y, w, h = _pixel_rect(bounds)
    return [(x + w // 2, y), (x + w, y + h), (x, y + h)]


def draw_shape(renderer: Renderer, element: Element) -> None:
    """
    Draw a shape element: fill first, then stroke on top.

    Circles use the inscribed circle of the bounds.
    """
    payload = element.payload
    bounds = element.get_bounds()
    if bounds.width <= 0 or bounds.height <= 0:
        return

    fill = apply_opacity(payload.fill_color, element.opacity)
    stroke = apply_opacity(payload.stroke_color, element.opacity)
    stroke_width = payload.stroke_width

    if payload.shape == ShapeKind.CIRCLE:
        cx, cy = bounds.center
        center = (int(round(cx)), int(round(cy)))
        radius = int(min(bounds.width, bounds.height) // 2)
        if fill[3] > 0:
            renderer.draw_circle(center, radius, fill[:3], fill[3])
        if stroke_width > 0 and stroke[3] > 0:
            renderer.draw_circle(center, radius, stroke[:3], stroke[3], stroke_width)

    elif payload.shape == ShapeKind.RECTANGLE:
        rect = _pixel_rect(bounds)
        if fill[3] > 0:
            renderer.draw_rect(rect, fill[:3], fill[3])
        if stroke_width > 0 and stroke[3] > 0:
            renderer.draw_rect(rect, stroke[:3], stroke[3], stroke_width)

    elif payload.shape == ShapeKind.TRIANGLE:
        points = triangle_points(bounds)
        if fill[3] > 0:
            renderer.draw_polygon(points, fill[:3], fill[3])
        if stroke_width > 0 and stroke[3] > 0:
            renderer.draw_polygon(points, stroke[:3], stroke[3], stroke_width)


def draw_text_element(renderer: Renderer, element: Element) -> None:
    """Draw a text element with its top-left corner at the element position."""
    payload = element.payload
    color = apply_opacity(payload.color, element.opacity)
    if color[3] == 0:
        return
    position = (int(round(element.position[0])), int(round(element.position[1])))
    renderer.draw_text(payload.text, position, color[:3], payload.font_size,
                       payload.font_family, color[3])


def draw_image_element(renderer: Renderer, element: Element, handle) -> None:
    """Draw an image element from a renderer image handle."""
    bounds = element.get_bounds()
    x, y, w, h = _pixel_rect(bounds)
    alpha = int(round(255 * element.opacity))
    renderer.draw_image(handle, (x, y), (w, h), element.payload.rotation, alpha)


def draw_error_placeholder(renderer: Renderer, bounds: Bounds) -> None:
    """Red crossed box marking an element that failed to draw."""
    x, y, w, h = _pixel_rect(bounds)
    w = max(w, ERROR_MIN_SIZE)
    h = max(h, ERROR_MIN_SIZE)
    renderer.draw_rect((x, y, w, h), ERROR_COLOR, border=ERROR_THICKNESS)
    renderer.draw_line_batch([
        ((x, y), (x + w - 1, y + h - 1), ERROR_COLOR, ERROR_THICKNESS),
        ((x + w - 1, y), (x, y + h - 1), ERROR_COLOR, ERROR_THICKNESS),
    ])


def draw_selection_outline(renderer: Renderer, bounds: Bounds) -> None:
    """Highlight rectangle around the selected element."""
    x, y, w, h = _pixel_rect(bounds)
    pad = SELECTION_PADDING
    renderer.draw_rect((x - pad, y - pad, w + 2 * pad, h + 2 * pad),
                       SELECTION_COLOR, border=SELECTION_THICKNESS)


def draw_error_cross(renderer: Renderer, width: int, height: int) -> None:
    """Full-canvas cross used for error frames."""
    diag = max(2, int(math.hypot(width, height) // 100))
    renderer.draw_line_batch([
        ((0, 0), (width - 1, height - 1), ERROR_COLOR, diag),
        ((width - 1, 0), (0, height - 1), ERROR_COLOR, diag),
    ])
