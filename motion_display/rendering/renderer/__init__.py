"""Renderer protocols and implementations."""

from motion_display.rendering.renderer.base import Frame, Renderer, RendererAdapter
from motion_display.rendering.renderer.pygame_renderer import PygameRenderer

__all__ = [
    "Frame",
    "Renderer",
    "RendererAdapter",
    "PygameRenderer",
]
