"""
Scene commands for motion display.

Commands for adding, inspecting and arranging elements.
"""

import logging
from typing import Optional

from motion_display.commands.base import register_command
from motion_display.core.element import image_element, shape_element, text_element

logger = logging.getLogger(__name__)


def _common(name: Optional[str], z_index: float, visible: bool,
            draggable: bool, opacity: float) -> dict:
    kwargs = {
        'z_index': float(z_index),
        'visible': bool(visible),
        'draggable': bool(draggable),
        'opacity': float(opacity),
    }
    if name:
        kwargs['name'] = str(name)
    return kwargs


@register_command
def add_text(app, text: str, x: float = 0, y: float = 0,
             width: float = 200, height: float = 50,
             font_size: int = 24, color="white", font_family: Optional[str] = None,
             name: Optional[str] = None, z_index: float = 0, visible: bool = True,
             draggable: bool = False, opacity: float = 1.0) -> dict:
    """
    Add a text element.

    Args:
        text: Text to display
        x, y: Top-left corner in canvas pixels
        color: Named color, hex string or RGB(A) list

    Returns:
        Response with the new element
    """
    element = text_element(str(text), (x, y), (width, height), font_size=font_size,
                           color=color, font_family=font_family,
                           **_common(name, z_index, visible, draggable, opacity))
    app.scene.add(element)
    return {"status": "success", "id": element.id, "element": element.to_dict()}


@register_command
def add_shape(app, shape: str = "rectangle", x: float = 0, y: float = 0,
              width: float = 50, height: float = 50,
              fill_color="blue", stroke_color="white", stroke_width: int = 2,
              name: Optional[str] = None, z_index: float = 0, visible: bool = True,
              draggable: bool = False, opacity: float = 1.0) -> dict:
    """
    Add a shape element.

    Args:
        shape: "circle", "rectangle" or "triangle"

    Returns:
        Response with the new element
    """
    element = shape_element(shape, (x, y), (width, height), fill_color=fill_color,
                            stroke_color=stroke_color, stroke_width=stroke_width,
                            **_common(name, z_index, visible, draggable, opacity))
    app.scene.add(element)
    return {"status": "success", "id": element.id, "element": element.to_dict()}


@register_command
def add_image(app, path: Optional[str] = None, x: float = 0, y: float = 0,
              width: float = 0, height: float = 0, scale: float = 1.0,
              rotation: float = 0.0, name: Optional[str] = None, z_index: float = 0,
              visible: bool = True, draggable: bool = False, opacity: float = 1.0) -> dict:
    """
    Add an image element. The file is decoded in the background.

    Zero width/height take the decoded image size.

    Returns:
        Response with the new element
    """
    element = image_element((x, y), (width, height), path=path, scale=scale,
                            rotation=rotation,
                            **_common(name, z_index, visible, draggable, opacity))
    app.scene.add(element)
    if path:
        app.image_loader.load(element.id)
    return {"status": "success", "id": element.id, "element": element.to_dict(),
            "loading": bool(path)}


@register_command
def remove_element(app, element_id: str) -> dict:
    """Remove an element by id."""
    if not app.scene.remove(element_id):
        return {"status": "error", "message": f"Element '{element_id}' not found"}
    return {"status": "success", "message": f"Element '{element_id}' removed"}


@register_command
def clear_scene(app) -> dict:
    """Remove all elements."""
    app.scene.clear()
    return {"status": "success", "message": "Scene cleared"}


@register_command
def get_element(app, element_id: str) -> dict:
    """Get one element's state."""
    return {"status": "success", "element": app.scene.get(element_id).to_dict()}


@register_command
def list_elements(app) -> dict:
    """List elements in draw order (back to front)."""
    return {"status": "success",
            "elements": [e.to_dict() for e in app.scene.list_elements()]}


@register_command
def get_scene(app) -> dict:
    """Get full scene state for inspection."""
    scene = app.scene
    return {
        "status": "success",
        "width": scene.width,
        "height": scene.height,
        "selected": scene.selected_id,
        "elements": [e.to_dict() for e in scene.list_elements()],
    }


@register_command
def update_element(app, element_id: str, **changes) -> dict:
    """
    Update plain element fields (name, position, size, z_index, visible,
    draggable, opacity).
    """
    element = app.scene.update(element_id, **changes)
    return {"status": "success", "element": element.to_dict()}


@register_command
def set_visible(app, element_id: str, visible: bool = True) -> dict:
    """Show or hide an element."""
    app.scene.set_visible(element_id, visible)
    return {"status": "success", "visible": bool(visible)}


@register_command
def select_element(app, element_id: Optional[str] = None) -> dict:
    """Select an element; omit element_id to clear the selection."""
    app.scene.select(element_id)
    return {"status": "success", "selected": element_id}


@register_command
def move_element(app, element_id: str, x: float, y: float) -> dict:
    """Move a draggable element; its motion path moves with it."""
    if not app.scene.move(element_id, (x, y)):
        return {"status": "error", "message": f"Element '{element_id}' is not draggable"}
    return {"status": "success", "position": [float(x), float(y)]}


@register_command
def hit_test(app, x: float, y: float) -> dict:
    """Topmost visible element at a point."""
    element = app.scene.hit_test((float(x), float(y)))
    return {"status": "success", "id": element.id if element else None}


@register_command
def resize_canvas(app, width: int, height: int) -> dict:
    """Change the canvas size used for rendering and motion bounds."""
    app.scene.set_size(width, height)
    return {"status": "success", "width": app.scene.width, "height": app.scene.height}
