"""
Prebuilt commands for motion display.

JSON-dict access to the scene, motion and device controls.
"""

# Import all command modules to trigger registration
from motion_display.commands.prebuilt import scene_commands
from motion_display.commands.prebuilt import motion_commands
from motion_display.commands.prebuilt import device_commands

__all__ = [
    "scene_commands",
    "motion_commands",
    "device_commands",
]
