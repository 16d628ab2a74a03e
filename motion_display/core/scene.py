"""
Scene management for motion display.

A Scene holds the canvas size, an ordered collection of Elements, the
current selection and the drag state. Single scene per app instance; to
switch content, callers clear and rebuild it through the command API.
"""

import threading
import time
import logging
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from motion_display.core.element import Element, ElementKind
from motion_display.core.motion import MotionConfig, MotionLaw, Vec2
from motion_display.core.motion_engine import MotionEngine
from motion_display.events import EventBus, SELECTION_CHANGED
from motion_display.exceptions import ElementNotFoundError

logger = logging.getLogger(__name__)


class SceneSnapshot(NamedTuple):
    """Render-safe view of the scene at one instant."""
    elements: List[Element]  # sorted back-to-front
    selected_id: Optional[str]
    width: int
    height: int


class Scene:
    """
    Scene management for the render loop.

    Architecture:
        Scene (one per app instance)
        ├── MotionEngine (canvas bounds + random source)
        ├── Elements: Dict[id, Element]
        ├── Draw order: List[id] sorted by (z_index, insertion sequence)
        └── Selection / drag state

    Every public method takes the scene lock, so the tick thread and
    command handlers can share one instance.
    """

    def __init__(self, width: int = 320, height: int = 240,
                 engine: Optional[MotionEngine] = None,
                 events: Optional[EventBus] = None,
                 clock: Callable[[], float] = time.monotonic):
        self._lock = threading.RLock()
        self._width = int(width)
        self._height = int(height)
        self.engine = engine or MotionEngine(self._width, self._height)
        self.engine.set_bounds(self._width, self._height)
        self.events = events
        self.clock = clock

        self._elements: Dict[str, Element] = {}
        self._order: List[str] = []
        self._z_counter: int = 0  # Monotonic counter for z-order tie-breaking

        self._selected_id: Optional[str] = None
        self._dragged_id: Optional[str] = None
        self._drag_offset: Vec2 = (0.0, 0.0)

    # --- Canvas ---

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def set_size(self, width: int, height: int) -> None:
        """Resize the canvas; motion bounds follow."""
        with self._lock:
            self._width = max(1, int(width))
            self._height = max(1, int(height))
            self.engine.set_bounds(self._width, self._height)

    # --- Ordering ---

    def _next_z_seq(self) -> int:
        """Return next monotonic sequence number for z-order tie-breaking.

        Must be called while self._lock is held.
        """
        self._z_counter += 1
        return self._z_counter

    def _resort(self) -> None:
        """Must be called while self._lock is held."""
        self._order.sort(key=lambda eid: (self._elements[eid].z_index,
                                          self._elements[eid]._z_seq))

    def _require(self, element_id: str) -> Element:
        element = self._elements.get(element_id)
        if element is None:
            raise ElementNotFoundError(element_id)
        return element

    # --- Element Management ---

    def add(self, element: Element) -> Element:
        """
        Add an element to the scene.

        Raises:
            ValueError: If an element with the same id already exists
        """
        with self._lock:
            if element.id in self._elements:
                raise ValueError(f"Element '{element.id}' already exists")
            element._z_seq = self._next_z_seq()
            self._elements[element.id] = element
            self._order.append(element.id)
            self._resort()
        logger.debug(f"Added {element.kind.value} element '{element.name}'")
        return element

    def remove(self, element_id: str) -> bool:
        """
        Remove an element from the scene.

        Returns:
            True if removed, False if not found
        """
        deselected = False
        with self._lock:
            if element_id not in self._elements:
                return False
            del self._elements[element_id]
            self._order.remove(element_id)
            if self._dragged_id == element_id:
                self._dragged_id = None
                self._drag_offset = (0.0, 0.0)
            if self._selected_id == element_id:
                self._selected_id = None
                deselected = True
        if deselected:
            self._notify_selection(None)
        return True

    def clear(self) -> None:
        """Remove all elements and reset selection and drag state."""
        with self._lock:
            had_selection = self._selected_id is not None
            self._elements.clear()
            self._order.clear()
            self._selected_id = None
            self._dragged_id = None
            self._drag_offset = (0.0, 0.0)
        if had_selection:
            self._notify_selection(None)

    def get(self, element_id: str) -> Element:
        """
        Get an element by id.

        Raises:
            ElementNotFoundError: If the id is unknown
        """
        with self._lock:
            return self._require(element_id)

    def find(self, element_id: str) -> Optional[Element]:
        """Get an element by id, or None."""
        with self._lock:
            return self._elements.get(element_id)

    def list_elements(self) -> List[Element]:
        """Elements in draw order (back to front)."""
        with self._lock:
            return [self._elements[eid] for eid in self._order]

    def __len__(self) -> int:
        with self._lock:
            return len(self._elements)

    def __contains__(self, element_id: str) -> bool:
        with self._lock:
            return element_id in self._elements

    def update(self, element_id: str, **changes) -> Element:
        """
        Apply attribute changes to an element.

        Only plain element fields may be changed here; motion goes through
        set_motion()/clear_motion(). Re-sorts when z_index changes.

        Raises:
            ElementNotFoundError: If the id is unknown
            ValueError: If a field name is not updatable
        """
        allowed = {'name', 'position', 'size', 'z_index', 'visible',
                   'draggable', 'opacity'}
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        with self._lock:
            element = self._require(element_id)
            if 'position' in changes:
                new_position = (float(changes['position'][0]), float(changes['position'][1]))
                self._shift_to(element, new_position)
            if 'size' in changes:
                element.size = (max(0.0, float(changes['size'][0])),
                                max(0.0, float(changes['size'][1])))
            if 'opacity' in changes:
                element.opacity = max(0.0, min(1.0, float(changes['opacity'])))
            for key in ('name', 'visible', 'draggable'):
                if key in changes:
                    setattr(element, key, changes[key])
            if 'z_index' in changes and changes['z_index'] != element.z_index:
                element.z_index = changes['z_index']
                self._resort()
            return element

    def set_visible(self, element_id: str, visible: bool) -> None:
        with self._lock:
            self._require(element_id).visible = bool(visible)

    def set_image(self, element_id: str, rgba, path: Optional[str] = None) -> bool:
        """
        Attach decoded RGBA pixels to an image element.

        An element with zero size takes the image's own dimensions.

        Returns:
            False if the element no longer exists
        """
        with self._lock:
            element = self._elements.get(element_id)
            if element is None:
                return False
            if element.kind != ElementKind.IMAGE:
                raise ValueError(f"Element '{element.name}' is not an image")
            element.payload.handle = rgba
            if path is not None:
                element.payload.path = path
            if element.size == (0.0, 0.0):
                element.size = (float(rgba.shape[1]), float(rgba.shape[0]))
            return True

    # --- Selection & hit-testing ---

    def hit_test(self, point: Vec2) -> Optional[Element]:
        """Topmost visible element under point, or None."""
        with self._lock:
            for eid in reversed(self._order):
                element = self._elements[eid]
                if element.visible and element.hit_test(point):
                    return element
            return None

    @property
    def selected_id(self) -> Optional[str]:
        with self._lock:
            return self._selected_id

    def selected(self) -> Optional[Element]:
        with self._lock:
            if self._selected_id is None:
                return None
            return self._elements.get(self._selected_id)

    def select(self, element_id: Optional[str]) -> Optional[Element]:
        """
        Select an element (None deselects). Replaces any prior selection.

        Raises:
            ElementNotFoundError: If the id is unknown
        """
        with self._lock:
            element = self._require(element_id) if element_id is not None else None
            changed = element_id != self._selected_id
            self._selected_id = element_id
        if changed:
            self._notify_selection(element_id)
        return element

    def _notify_selection(self, element_id: Optional[str]) -> None:
        if self.events is not None:
            self.events.publish(SELECTION_CHANGED, element_id)

    # --- Moving & dragging ---

    def _shift_to(self, element: Element, position: Vec2) -> None:
        """Must be called while self._lock is held."""
        dx = position[0] - element.position[0]
        dy = position[1] - element.position[1]
        element.position = position
        if element.motion is not None:
            element.motion.shift_anchor(dx, dy)

    def move(self, element_id: str, position: Vec2) -> bool:
        """
        Move a draggable element, shifting its motion anchor with it.

        Returns:
            True if moved, False if the element is not draggable

        Raises:
            ElementNotFoundError: If the id is unknown
        """
        with self._lock:
            element = self._require(element_id)
            if not element.draggable:
                return False
            self._shift_to(element, (float(position[0]), float(position[1])))
            return True

    def begin_drag(self, point: Vec2) -> Optional[Element]:
        """
        Start dragging the topmost element under point.

        The hit element becomes the selection whether or not it can be
        dragged; only draggable elements enter the drag state.
        """
        element = self.hit_test(point)
        self.select(element.id if element is not None else None)
        if element is None or not element.draggable:
            return None
        with self._lock:
            self._dragged_id = element.id
            self._drag_offset = (point[0] - element.position[0],
                                 point[1] - element.position[1])
        return element

    def drag_to(self, point: Vec2) -> bool:
        """Move the dragged element so the grab point follows `point`."""
        with self._lock:
            if self._dragged_id is None:
                return False
            element = self._elements.get(self._dragged_id)
            if element is None:
                self._dragged_id = None
                return False
            ox, oy = self._drag_offset
            self._shift_to(element, (point[0] - ox, point[1] - oy))
            return True

    def end_drag(self) -> Optional[str]:
        """Finish the current drag. Returns the id that was dragged."""
        with self._lock:
            dragged = self._dragged_id
            self._dragged_id = None
            self._drag_offset = (0.0, 0.0)
            return dragged

    @property
    def dragged_id(self) -> Optional[str]:
        with self._lock:
            return self._dragged_id

    @property
    def drag_offset(self) -> Tuple[float, float]:
        with self._lock:
            return self._drag_offset

    # --- Motion ---

    def set_motion(self, element_id: str, config: MotionConfig,
                   now: Optional[float] = None) -> Element:
        """Attach (or replace) motion on an element. Law NONE detaches."""
        if now is None:
            now = self.clock()
        with self._lock:
            element = self._require(element_id)
            if config.law == MotionLaw.NONE:
                element.motion = None
            else:
                self.engine.attach(element, config, now)
            return element

    def clear_motion(self, element_id: str) -> bool:
        """Detach motion. Returns False if the element had none."""
        with self._lock:
            element = self._require(element_id)
            had_motion = element.motion is not None
            element.motion = None
            return had_motion

    def _set_paused(self, element_id: str, paused: bool) -> bool:
        with self._lock:
            element = self._require(element_id)
            if element.motion is None:
                return False
            element.motion.config.paused = paused
            return True

    def pause_motion(self, element_id: str) -> bool:
        return self._set_paused(element_id, True)

    def resume_motion(self, element_id: str) -> bool:
        return self._set_paused(element_id, False)

    def step_motion(self, now: Optional[float] = None) -> int:
        """
        Advance every motion-bearing element to time `now`.

        An element whose law fails keeps its last position; the rest of the
        scene still advances.

        Returns:
            Number of elements advanced
        """
        if now is None:
            now = self.clock()
        advanced = 0
        with self._lock:
            for eid in self._order:
                element = self._elements[eid]
                if element.motion is None:
                    continue
                try:
                    self.engine.advance(element, now)
                    advanced += 1
                except Exception as e:
                    logger.warning(f"Motion step failed for '{element.name}': {e}")
        return advanced

    # --- Snapshots ---

    def snapshot(self) -> SceneSnapshot:
        """Copy of the scene safe to render while the original keeps changing."""
        with self._lock:
            return SceneSnapshot(
                elements=[self._elements[eid].render_snapshot() for eid in self._order],
                selected_id=self._selected_id,
                width=self._width,
                height=self._height,
            )
