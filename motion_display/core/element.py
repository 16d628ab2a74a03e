"""
Scene element definitions for motion display.

An Element is a tagged variant: `kind` selects which payload is meaningful
(text, shape or image) and any element may carry an optional MotionState
component. There is no per-kind subclass hierarchy.
"""

import copy
import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple, Optional, Tuple, Union

from motion_display.core.motion import MotionState, Vec2
from motion_display.utils.color import Color, parse_color


class ElementKind(Enum):
    """Available element kinds"""
    TEXT = "text"
    SHAPE = "shape"
    IMAGE = "image"


class ShapeKind(Enum):
    """Available shape outlines"""
    CIRCLE = "circle"
    RECTANGLE = "rectangle"
    TRIANGLE = "triangle"


class Bounds(NamedTuple):
    """Axis-aligned rectangle (x, y is the top-left corner)."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Vec2:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    def contains(self, point: Vec2) -> bool:
        return (self.x <= point[0] <= self.right and
                self.y <= point[1] <= self.bottom)


@dataclass
class TextPayload:
    """Text content and font"""
    text: str = ""
    font_size: int = 24
    font_family: Optional[str] = None  # None = pygame default font
    color: Color = (255, 255, 255, 255)


@dataclass
class ShapePayload:
    """Shape outline, fill and stroke (RGBA colors)"""
    shape: ShapeKind = ShapeKind.RECTANGLE
    fill_color: Color = (0, 0, 255, 255)
    stroke_color: Color = (255, 255, 255, 255)
    stroke_width: int = 2


@dataclass
class ImagePayload:
    """Image source and its decoded RGBA pixels (None until loaded)"""
    path: Optional[str] = None
    handle: Any = field(default=None, repr=False)  # numpy (h, w, 4) uint8
    scale: float = 1.0
    rotation: float = 0.0  # degrees, counter-clockwise


Payload = Union[TextPayload, ShapePayload, ImagePayload]

_PAYLOAD_TYPES = {
    ElementKind.TEXT: TextPayload,
    ElementKind.SHAPE: ShapePayload,
    ElementKind.IMAGE: ImagePayload,
}


@dataclass
class Element:
    """
    A displayable scene node.

    Only `kind` and `position` are required. Negative sizes are clamped to
    zero so bounds are always well formed.
    """
    kind: ElementKind
    position: Vec2
    size: Tuple[float, float] = (0.0, 0.0)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    name: str = ""
    z_index: float = 0.0
    visible: bool = True
    draggable: bool = False
    opacity: float = 1.0
    payload: Optional[Payload] = None
    motion: Optional[MotionState] = field(default=None, repr=False)
    _z_seq: int = field(default=0, repr=False, compare=False)  # insertion order tie-break

    def __post_init__(self):
        if isinstance(self.kind, str):
            self.kind = ElementKind(self.kind)
        self.position = (float(self.position[0]), float(self.position[1]))
        self.size = (max(0.0, float(self.size[0])), max(0.0, float(self.size[1])))
        self.opacity = max(0.0, min(1.0, float(self.opacity)))
        if self.payload is None:
            self.payload = _PAYLOAD_TYPES[self.kind]()
        elif not isinstance(self.payload, _PAYLOAD_TYPES[self.kind]):
            raise TypeError(
                f"{self.kind.value} element needs {_PAYLOAD_TYPES[self.kind].__name__}, "
                f"got {type(self.payload).__name__}"
            )
        if not self.name:
            self.name = f"{self.kind.value}_{self.id[:8]}"

    def get_bounds(self) -> Bounds:
        """Bounds used for hit-testing and the selection outline."""
        width, height = self.size
        if self.kind == ElementKind.IMAGE:
            scale = max(0.0, self.payload.scale)
            width, height = width * scale, height * scale
        return Bounds(self.position[0], self.position[1], width, height)

    def hit_test(self, point: Vec2) -> bool:
        """True if point lies on the element (circles use the inscribed circle)."""
        bounds = self.get_bounds()
        if self.kind == ElementKind.SHAPE and self.payload.shape == ShapeKind.CIRCLE:
            cx, cy = bounds.center
            radius = min(bounds.width, bounds.height) / 2.0
            return math.hypot(point[0] - cx, point[1] - cy) <= radius
        return bounds.contains(point)

    @property
    def has_motion(self) -> bool:
        return self.motion is not None

    def render_snapshot(self) -> "Element":
        """Copy safe to read while the scene keeps mutating the original.

        Payloads are copied shallowly; the image handle array is shared and
        never written in place.
        """
        snap = copy.copy(self)
        snap.payload = copy.copy(self.payload)
        snap.motion = self.motion.copy() if self.motion is not None else None
        return snap

    def to_dict(self) -> dict:
        """Convert to dictionary for command responses."""
        data = {
            'id': self.id,
            'name': self.name,
            'kind': self.kind.value,
            'position': list(self.position),
            'size': list(self.size),
            'z_index': self.z_index,
            'visible': self.visible,
            'draggable': self.draggable,
            'opacity': self.opacity,
            'motion': self.motion.config.to_dict() if self.motion else None,
        }
        if self.kind == ElementKind.TEXT:
            data['text'] = self.payload.text
            data['font_size'] = self.payload.font_size
            data['color'] = list(self.payload.color)
        elif self.kind == ElementKind.SHAPE:
            data['shape'] = self.payload.shape.value
            data['fill_color'] = list(self.payload.fill_color)
            data['stroke_color'] = list(self.payload.stroke_color)
            data['stroke_width'] = self.payload.stroke_width
        else:
            data['path'] = self.payload.path
            data['loaded'] = self.payload.handle is not None
            data['scale'] = self.payload.scale
            data['rotation'] = self.payload.rotation
        return data


def text_element(text: str, position: Vec2, size: Tuple[float, float] = (200, 50),
                 font_size: int = 24, color=(255, 255, 255, 255),
                 font_family: Optional[str] = None, **kwargs) -> Element:
    """Create a text element."""
    payload = TextPayload(text=text, font_size=int(font_size),
                          font_family=font_family, color=parse_color(color))
    return Element(kind=ElementKind.TEXT, position=position, size=size,
                   payload=payload, **kwargs)


def shape_element(shape: Union[ShapeKind, str], position: Vec2,
                  size: Tuple[float, float] = (50, 50),
                  fill_color=(0, 0, 255, 255), stroke_color=(255, 255, 255, 255),
                  stroke_width: int = 2, **kwargs) -> Element:
    """Create a shape element."""
    if isinstance(shape, str):
        shape = ShapeKind(shape.lower())
    payload = ShapePayload(shape=shape, fill_color=parse_color(fill_color),
                           stroke_color=parse_color(stroke_color),
                           stroke_width=max(0, int(stroke_width)))
    return Element(kind=ElementKind.SHAPE, position=position, size=size,
                   payload=payload, **kwargs)


def image_element(position: Vec2, size: Tuple[float, float] = (100, 100),
                  path: Optional[str] = None, handle: Any = None,
                  scale: float = 1.0, rotation: float = 0.0, **kwargs) -> Element:
    """Create an image element. Pixels may be attached later by ImageLoader."""
    payload = ImagePayload(path=path, handle=handle, scale=float(scale),
                           rotation=float(rotation))
    return Element(kind=ElementKind.IMAGE, position=position, size=size,
                   payload=payload, **kwargs)
