"""
Trail rendering for moving elements.

Supports solid and dotted styles. Trails fade from transparent (oldest
point) to the head color (newest point) using RGBA gradient interpolation.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from motion_display.rendering.renderer.base import Renderer
from motion_display.utils.color import Color, parse_color

TRAIL_STYLES = ("solid", "dotted")


@dataclass
class TrailStyle:
    """How trails are drawn."""
    style: str = "solid"
    head_color: Color = (255, 255, 255, 200)
    tail_color: Color = (255, 255, 255, 0)
    thickness: int = 2
    dot_radius: int = 2

    def __post_init__(self):
        if self.style not in TRAIL_STYLES:
            raise ValueError(f"Unknown trail style '{self.style}'. Valid: {', '.join(TRAIL_STYLES)}")
        self.head_color = parse_color(self.head_color)
        self.tail_color = parse_color(self.tail_color)

    @classmethod
    def from_dict(cls, data: dict) -> "TrailStyle":
        return cls(
            style=data.get('style', 'solid'),
            head_color=data.get('head_color', (255, 255, 255, 200)),
            tail_color=data.get('tail_color', (255, 255, 255, 0)),
            thickness=int(data.get('thickness', 2)),
            dot_radius=int(data.get('dot_radius', 2)),
        )


def draw_trail(renderer: Renderer, points: Sequence[Tuple[int, int]],
               style: TrailStyle, opacity: float = 1.0) -> None:
    """
    Draw a fading trail, oldest point first.

    Args:
        renderer: Canvas to draw on
        points: Trail points in canvas pixels, oldest first
        style: Trail style configuration
        opacity: Extra opacity factor from the owning element (0-1)
    """
    if len(points) < 2:
        return

    if style.style == "dotted":
        _draw_dotted_trail(renderer, points, style, opacity)
    else:
        _draw_solid_trail(renderer, points, style, opacity)


def _draw_solid_trail(renderer: Renderer, points: Sequence[Tuple[int, int]],
                      style: TrailStyle, opacity: float) -> None:
    """Gradient polyline, batched into one blit."""
    lines = []
    last = len(points) - 1
    for i in range(last):
        color = _fade(_interpolate_color(style.tail_color, style.head_color, (i + 1) / last),
                      opacity)
        if color[3] > 0:
            lines.append((points[i], points[i + 1], color, style.thickness))
    renderer.draw_line_batch(lines)


def _draw_dotted_trail(renderer: Renderer, points: Sequence[Tuple[int, int]],
                       style: TrailStyle, opacity: float) -> None:
    """One dot per recorded position."""
    last = len(points) - 1
    for i, point in enumerate(points):
        color = _fade(_interpolate_color(style.tail_color, style.head_color, i / last), opacity)
        if color[3] > 0:
            renderer.draw_circle(point, max(1, style.dot_radius), color[:3], color[3])


def _fade(color: Color, opacity: float) -> Color:
    return (color[0], color[1], color[2], int(color[3] * max(0.0, min(1.0, opacity))))


def _interpolate_color(color1: Color, color2: Color, t: float) -> Color:
    """
    Interpolate between two RGBA colors.

    Args:
        color1: Start color RGBA (at t=0)
        color2: End color RGBA (at t=1)
        t: Interpolation factor (0-1)
    """
    t = max(0.0, min(1.0, t))
    return tuple(int(a + (b - a) * t) for a, b in zip(color1, color2))


def trail_points(trail, size: Tuple[float, float]) -> List[Tuple[int, int]]:
    """Convert recorded top-left positions into element-center pixel points."""
    half_w, half_h = size[0] / 2.0, size[1] / 2.0
    return [(int(round(x + half_w)), int(round(y + half_h))) for x, y in trail]
