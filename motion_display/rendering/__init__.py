"""Rendering components for motion display."""

from motion_display.rendering.renderer import Frame, Renderer, RendererAdapter, PygameRenderer
from motion_display.rendering.trail import TrailStyle, draw_trail
from motion_display.rendering.scene_renderer import SceneRenderer
from motion_display.rendering.images import ImageLoader, load_rgba

__all__ = [
    "Frame",
    "Renderer",
    "RendererAdapter",
    "PygameRenderer",
    "TrailStyle",
    "draw_trail",
    "SceneRenderer",
    "ImageLoader",
    "load_rgba",
]
