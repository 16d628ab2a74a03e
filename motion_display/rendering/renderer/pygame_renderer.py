"""
Pygame software renderer implementation (offscreen).
"""

import logging
from typing import Any, Tuple, List, Optional

import numpy as np
import pygame

logger = logging.getLogger(__name__)


class PygameRenderer:
    """Default renderer: draws into an offscreen SRCALPHA pygame Surface."""

    def __init__(self):
        self.screen: Optional[pygame.Surface] = None
        self.width: int = 0
        self.height: int = 0
        self._fonts: dict = {}  # Cache for fonts, keyed by (family, size)

    # ── Lifecycle ──────────────────────────────────────────────

    def init(self, width: int, height: int) -> None:
        """
        Allocate the offscreen canvas.

        Only the font module is initialized; no display or window is opened.
        """
        if not pygame.font.get_init():
            pygame.font.init()

        self.width, self.height = max(1, int(width)), max(1, int(height))
        self.screen = pygame.Surface((self.width, self.height), pygame.SRCALPHA)
        logger.debug(f"Offscreen canvas initialized: {self.width}x{self.height}")

    def get_size(self) -> Tuple[int, int]:
        """Get canvas dimensions."""
        return (self.width, self.height)

    def clear(self, color: Tuple[int, ...]) -> None:
        """Fill canvas with specified color."""
        if self.screen:
            self.screen.fill(_rgba(color))

    def get_pixels(self) -> np.ndarray:
        """Copy of the canvas as an (h, w, 4) uint8 RGBA array."""
        if not self.screen:
            raise RuntimeError("Renderer not initialized")
        raw = pygame.image.tobytes(self.screen, 'RGBA')
        return np.frombuffer(raw, dtype=np.uint8).reshape(self.height, self.width, 4).copy()

    def quit(self) -> None:
        """Drop the canvas and font cache."""
        self.screen = None
        self._fonts.clear()

    # ── Shape primitives ───────────────────────────────────────

    def draw_circle(self, center: Tuple[int, int], radius: int,
                    color: Tuple[int, ...], alpha: int = 255,
                    border: int = 0) -> None:
        """Draw a circle. alpha < 255 uses a temp surface for transparency."""
        if not self.screen or alpha <= 0 or radius <= 0:
            return

        if alpha >= 255 and _alpha_of(color) >= 255:
            pygame.draw.circle(self.screen, color[:3], center, radius, border)
            return

        # Create surface for the circle
        size = radius * 2 + 4
        temp_surface = pygame.Surface((size, size), pygame.SRCALPHA)
        local_center = (radius + 2, radius + 2)

        pygame.draw.circle(temp_surface, _with_alpha(color, alpha), local_center, radius, border)

        self.screen.blit(temp_surface, (center[0] - radius - 2, center[1] - radius - 2))

    def draw_rect(self, rect: Tuple[int, int, int, int],
                  color: Tuple[int, ...], alpha: int = 255,
                  border: int = 0) -> None:
        """Draw a rectangle. alpha < 255 uses a temp surface for transparency."""
        x, y, w, h = rect
        if not self.screen or alpha <= 0 or w <= 0 or h <= 0:
            return

        if alpha >= 255 and _alpha_of(color) >= 255:
            pygame.draw.rect(self.screen, color[:3], pygame.Rect(x, y, w, h), border)
            return

        temp_surface = pygame.Surface((w, h), pygame.SRCALPHA)
        pygame.draw.rect(temp_surface, _with_alpha(color, alpha), pygame.Rect(0, 0, w, h), border)
        self.screen.blit(temp_surface, (x, y))

    def draw_polygon(self, points: List[Tuple[int, int]],
                     color: Tuple[int, ...], alpha: int = 255,
                     border: int = 0) -> None:
        """Draw a polygon. alpha < 255 uses a temp surface for transparency."""
        if not self.screen or len(points) < 3 or alpha <= 0:
            return

        if alpha >= 255 and _alpha_of(color) >= 255:
            pygame.draw.polygon(self.screen, color[:3], points, border)
            return

        # Calculate bounding box
        min_x = min(p[0] for p in points)
        max_x = max(p[0] for p in points)
        min_y = min(p[1] for p in points)
        max_y = max(p[1] for p in points)
        width = max_x - min_x + 4
        height = max_y - min_y + 4

        # Create transparent surface
        temp_surface = pygame.Surface((width, height), pygame.SRCALPHA)
        local_points = [(p[0] - min_x + 2, p[1] - min_y + 2) for p in points]

        pygame.draw.polygon(temp_surface, _with_alpha(color, alpha), local_points, border)

        self.screen.blit(temp_surface, (min_x - 2, min_y - 2))

    def draw_line(self, start: Tuple[int, int], end: Tuple[int, int],
                  color: Tuple[int, ...], alpha: int = 255,
                  width: int = 1) -> None:
        """Draw a line. alpha < 255 uses a temp surface for transparency."""
        if not self.screen or alpha <= 0:
            return
        self.draw_line_batch([(start, end, _with_alpha(color, alpha), width)])

    def draw_line_batch(self, lines: List[Tuple[Tuple[int, int], Tuple[int, int],
                                                Tuple[int, ...], int]]) -> None:
        """
        Draw many lines in a single blit. Supports RGBA colors.

        Each line is (start, end, color, width) where color is RGB or RGBA.
        When any color has alpha < 255, all lines are drawn onto one temporary
        SRCALPHA surface and blitted once. Fully opaque batches use direct draws.
        """
        if not self.screen or not lines:
            return

        needs_alpha = any(_alpha_of(c) < 255 for _, _, c, _ in lines)

        if not needs_alpha:
            for start, end, color, width in lines:
                pygame.draw.line(self.screen, color[:3], start, end, width)
            return

        # Compute bounding box of all lines
        all_x = []
        all_y = []
        max_width = 0
        for start, end, _, width in lines:
            all_x.extend([start[0], end[0]])
            all_y.extend([start[1], end[1]])
            max_width = max(max_width, width)

        min_x = min(all_x) - max_width
        max_x = max(all_x) + max_width
        min_y = min(all_y) - max_width
        max_y = max(all_y) + max_width
        surf_w = max(1, max_x - min_x + 2)
        surf_h = max(1, max_y - min_y + 2)

        temp_surface = pygame.Surface((surf_w, surf_h), pygame.SRCALPHA)

        for start, end, color, width in lines:
            local_start = (start[0] - min_x + 1, start[1] - min_y + 1)
            local_end = (end[0] - min_x + 1, end[1] - min_y + 1)
            pygame.draw.line(temp_surface, _rgba(color), local_start, local_end, width)

        self.screen.blit(temp_surface, (min_x - 1, min_y - 1))

    # ── Text / Image ──────────────────────────────────────────

    def _get_font(self, font_size: int, font_family: Optional[str]) -> pygame.font.Font:
        key = (font_family, font_size)
        if key not in self._fonts:
            if font_family:
                self._fonts[key] = pygame.font.SysFont(font_family, font_size)
            else:
                self._fonts[key] = pygame.font.Font(None, font_size)
        return self._fonts[key]

    def draw_text(self, text: str, position: Tuple[int, int],
                  color: Tuple[int, ...], font_size: int = 24,
                  font_family: Optional[str] = None, alpha: int = 255) -> None:
        """Draw text with its top-left corner at position."""
        if not self.screen or not text or alpha <= 0:
            return

        font = self._get_font(max(1, int(font_size)), font_family)
        text_surface = font.render(text, True, color[:3])

        combined = alpha * _alpha_of(color) // 255
        if combined < 255:
            text_surface.set_alpha(combined)

        self.screen.blit(text_surface, position)

    def create_image(self, rgba: np.ndarray) -> pygame.Surface:
        """Create a pygame Surface from an (h, w, 4) RGBA array."""
        height, width = rgba.shape[:2]
        data = np.ascontiguousarray(rgba, dtype=np.uint8).tobytes()
        return pygame.image.frombuffer(data, (width, height), 'RGBA').copy()

    def draw_image(self, handle: pygame.Surface, position: Tuple[int, int],
                   size: Tuple[int, int], rotation: float = 0.0,
                   alpha: int = 255) -> None:
        """Draw a previously created image scaled to size, rotated about its center."""
        if not self.screen or alpha <= 0 or size[0] <= 0 or size[1] <= 0:
            return

        surface = handle
        if surface.get_size() != tuple(size):
            surface = pygame.transform.smoothscale(surface, size)
        if rotation:
            center = (position[0] + size[0] // 2, position[1] + size[1] // 2)
            surface = pygame.transform.rotate(surface, rotation)
            position = surface.get_rect(center=center).topleft
        if alpha < 255:
            surface = surface.copy()
            surface.set_alpha(alpha)
        self.screen.blit(surface, position)


def _alpha_of(color: Tuple[int, ...]) -> int:
    return color[3] if len(color) >= 4 else 255


def _rgba(color: Tuple[int, ...]) -> Tuple[int, int, int, int]:
    return (color[0], color[1], color[2], _alpha_of(color))


def _with_alpha(color: Tuple[int, ...], alpha: int) -> Tuple[int, int, int, int]:
    """Combine the color's own alpha with an extra opacity factor."""
    return (color[0], color[1], color[2], _alpha_of(color) * max(0, min(255, alpha)) // 255)
