"""Core components for motion display."""

from motion_display.core.motion import (
    MotionConfig,
    MotionLaw,
    MotionState,
    normalize,
)
from motion_display.core.element import (
    Bounds,
    Element,
    ElementKind,
    ImagePayload,
    ShapeKind,
    ShapePayload,
    TextPayload,
    image_element,
    shape_element,
    text_element,
)
from motion_display.core.motion_engine import MotionEngine
from motion_display.core.scene import Scene, SceneSnapshot

__all__ = [
    "MotionConfig",
    "MotionLaw",
    "MotionState",
    "normalize",
    "Bounds",
    "Element",
    "ElementKind",
    "ImagePayload",
    "ShapeKind",
    "ShapePayload",
    "TextPayload",
    "image_element",
    "shape_element",
    "text_element",
    "MotionEngine",
    "Scene",
    "SceneSnapshot",
]
