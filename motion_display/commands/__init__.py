"""
Command system for motion display.

Commands are registered using the @register_command decorator and
auto-discovered from the prebuilt/ submodule on import.
"""

from motion_display.commands.base import (
    CommandRegistry,
    register_command,
    get_registry,
)

# Auto-import prebuilt commands to register them
from motion_display.commands import prebuilt

__all__ = [
    "CommandRegistry",
    "register_command",
    "get_registry",
]
