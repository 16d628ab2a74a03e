"""
Renderer protocols and the Frame type.

Two seams live here:
    RendererAdapter: scene snapshot -> Frame, consumed by the render loop
    Renderer: offscreen drawing canvas, consumed by SceneRenderer

Isolating the canvas behind Renderer leaves room for other rasterizers.
"""

import time
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, Tuple

import numpy as np

logger = logging.getLogger(__name__)

PIXEL_FORMAT_RGBA = "RGBA"


@dataclass(frozen=True)
class Frame:
    """
    Immutable RGBA pixel buffer handed between pipeline stages.

    `pixels` has shape (height, width, 4), dtype uint8, and is flagged
    read-only so every stage can share the same reference.
    """
    pixels: np.ndarray
    width: int
    height: int
    pixel_format: str = PIXEL_FORMAT_RGBA
    timestamp: float = field(default_factory=time.monotonic)
    is_error: bool = False

    def __post_init__(self):
        if self.pixels.shape != (self.height, self.width, 4):
            raise ValueError(
                f"Pixel buffer shape {self.pixels.shape} does not match "
                f"{self.width}x{self.height} RGBA"
            )
        if self.pixels.flags.writeable:
            self.pixels.flags.writeable = False

    @classmethod
    def from_array(cls, pixels: np.ndarray, timestamp: Optional[float] = None,
                   is_error: bool = False) -> "Frame":
        """Wrap an (h, w, 4) uint8 array, copying it if it is not contiguous uint8."""
        pixels = np.ascontiguousarray(pixels, dtype=np.uint8)
        height, width = pixels.shape[:2]
        if timestamp is None:
            timestamp = time.monotonic()
        return cls(pixels=pixels, width=width, height=height,
                   timestamp=timestamp, is_error=is_error)

    @classmethod
    def solid(cls, width: int, height: int, color: Tuple[int, int, int, int],
              timestamp: Optional[float] = None, is_error: bool = False) -> "Frame":
        """Frame filled with one RGBA color."""
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :] = color
        return cls.from_array(pixels, timestamp, is_error)


class RendererAdapter(Protocol):
    """Turns a scene snapshot into a Frame. Must not raise for a well-formed scene."""

    def render(self, snapshot: Any, timestamp: float) -> Frame:
        ...


class Renderer(Protocol):
    """Protocol for offscreen drawing canvases. Colors are RGBA tuples."""

    # ── Lifecycle ──────────────────────────────────────────────

    def init(self, width: int, height: int) -> None:
        """Allocate the canvas."""
        ...

    def get_size(self) -> Tuple[int, int]:
        """Get canvas dimensions (width, height)."""
        ...

    def clear(self, color: Tuple[int, ...]) -> None:
        """Fill the canvas with specified color."""
        ...

    def get_pixels(self) -> np.ndarray:
        """Copy of the canvas as an (h, w, 4) uint8 RGBA array."""
        ...

    def quit(self) -> None:
        """Release the canvas."""
        ...

    # ── Shape primitives (alpha=255 default -> opaque) ─────────

    def draw_circle(self, center: Tuple[int, int], radius: int,
                    color: Tuple[int, ...], alpha: int = 255,
                    border: int = 0) -> None:
        """Draw a circle. border=0 means filled."""
        ...

    def draw_rect(self, rect: Tuple[int, int, int, int],
                  color: Tuple[int, ...], alpha: int = 255,
                  border: int = 0) -> None:
        """Draw an axis-aligned rectangle (x, y, w, h). border=0 means filled."""
        ...

    def draw_polygon(self, points: List[Tuple[int, int]],
                     color: Tuple[int, ...], alpha: int = 255,
                     border: int = 0) -> None:
        """Draw a polygon. border=0 means filled."""
        ...

    def draw_line(self, start: Tuple[int, int], end: Tuple[int, int],
                  color: Tuple[int, ...], alpha: int = 255,
                  width: int = 1) -> None:
        """Draw a line."""
        ...

    def draw_line_batch(self, lines: List[Tuple[Tuple[int, int], Tuple[int, int],
                                                Tuple[int, ...], int]]) -> None:
        """Draw many lines in a single blit. Each line is (start, end, color_rgba, width)."""
        ...

    # ── Text / Image ──────────────────────────────────────────

    def draw_text(self, text: str, position: Tuple[int, int],
                  color: Tuple[int, ...], font_size: int = 24,
                  font_family: Optional[str] = None, alpha: int = 255) -> None:
        """Draw text with its top-left corner at position."""
        ...

    def create_image(self, rgba: np.ndarray) -> Any:
        """Create a renderer-specific image handle from an (h, w, 4) RGBA array."""
        ...

    def draw_image(self, handle: Any, position: Tuple[int, int],
                   size: Tuple[int, int], rotation: float = 0.0,
                   alpha: int = 255) -> None:
        """Draw a previously created image scaled to size, rotated in degrees."""
        ...
