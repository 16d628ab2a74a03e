"""
Motion commands for motion display.
"""

from typing import Optional

from motion_display.commands.base import register_command
from motion_display.core.motion import MotionConfig, MotionLaw


@register_command
def set_motion(app, element_id: str, law: str, speed: Optional[float] = None,
               direction: Optional[list] = None, center: Optional[list] = None,
               radius: Optional[float] = None, respect_boundaries: bool = False,
               show_trail: bool = False, trail_length: Optional[int] = None) -> dict:
    """
    Attach a motion law to an element.

    Args:
        law: none, linear, circular, bounce, oscillate, spiral, random, wave, orbit
        speed: Units/sec (linear-like laws) or rad/sec (rotational laws)
        direction: [dx, dy]; zero picks a default for the law
        center: [x, y]; zero uses the element position
        radius: Zero uses the default radius

    Returns:
        Response with the element's motion config
    """
    try:
        MotionLaw(str(law).lower())
    except ValueError:
        valid = ", ".join(m.value for m in MotionLaw)
        raise ValueError(f"Unknown motion law '{law}'. Valid laws: {valid}")

    data = {'law': law, 'respect_boundaries': bool(respect_boundaries),
            'show_trail': bool(show_trail)}
    for key, value in (('speed', speed), ('direction', direction), ('center', center),
                       ('radius', radius), ('trail_length', trail_length)):
        if value is not None:
            data[key] = value

    element = app.scene.set_motion(element_id, MotionConfig.from_dict(data))
    motion = element.motion.config.to_dict() if element.motion else None
    return {"status": "success", "id": element_id, "motion": motion}


@register_command
def clear_motion(app, element_id: str) -> dict:
    """Detach motion from an element."""
    had_motion = app.scene.clear_motion(element_id)
    return {"status": "success", "had_motion": had_motion}


@register_command
def pause_motion(app, element_id: str) -> dict:
    """Freeze an element's motion in place."""
    if not app.scene.pause_motion(element_id):
        return {"status": "error", "message": f"Element '{element_id}' has no motion"}
    return {"status": "success", "paused": True}


@register_command
def resume_motion(app, element_id: str) -> dict:
    """Continue a paused motion from where it stopped."""
    if not app.scene.resume_motion(element_id):
        return {"status": "error", "message": f"Element '{element_id}' has no motion"}
    return {"status": "success", "paused": False}
