"""
Motion Display - animated 2D scenes streamed as JPEG frames to display devices.

This package provides a scene-based render pipeline where:
- Elements (text, shapes, images) carry an optional motion law
- A render loop advances motion and rasterizes the scene offscreen
- Frames are JPEG-encoded and dispatched to every attached device
- Devices are driven at a coarser rate than the render loop
"""

from motion_display.core.element import Element, ElementKind, ShapeKind
from motion_display.core.motion import MotionConfig, MotionLaw
from motion_display.core.scene import Scene
from motion_display.events import EventBus

__version__ = "1.0.0"
__all__ = [
    "Element",
    "ElementKind",
    "ShapeKind",
    "MotionConfig",
    "MotionLaw",
    "Scene",
    "EventBus",
]
