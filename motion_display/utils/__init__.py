"""Utility components for motion display."""

from motion_display.utils.logging import setup_logging, get_logger
from motion_display.utils.color import parse_color, normalize_color, apply_opacity
from motion_display.utils.profiler import FrameProfiler

__all__ = [
    "setup_logging",
    "get_logger",
    "parse_color",
    "normalize_color",
    "apply_opacity",
    "FrameProfiler",
]
