"""
Color parsing and normalization utilities.

Element payloads store colors as RGBA tuples (0-255). Inputs coming from
config files and commands may use:
- HEX: "#RRGGBB" or "#RRGGBBAA"
- Named colors: "white", "red", ... (see NAMED_COLORS)
- RGB/RGBA list or tuple with 0-255 values
- RGB/RGBA list or tuple with 0.0-1.0 float values
"""

import re
from typing import Tuple, Union, List, Optional

# Type aliases
Color = Tuple[int, int, int, int]  # RGBA
ColorInput = Union[str, List, Tuple]

HEX_COLOR_PATTERN = re.compile(r'^#?([0-9a-fA-F]{6}|[0-9a-fA-F]{8})$')

NAMED_COLORS = {
    "black": (0, 0, 0, 255),
    "white": (255, 255, 255, 255),
    "red": (255, 0, 0, 255),
    "green": (0, 255, 0, 255),
    "blue": (0, 0, 255, 255),
    "yellow": (255, 255, 0, 255),
    "cyan": (0, 255, 255, 255),
    "magenta": (255, 0, 255, 255),
    "orange": (255, 165, 0, 255),
    "purple": (128, 0, 128, 255),
    "gray": (128, 128, 128, 255),
    "transparent": (0, 0, 0, 0),
}


def normalize_color(color: Tuple[Union[int, float], ...]) -> Color:
    """
    Normalize color tuple to RGBA format with clamping.

    A tuple made only of floats within 0.0-1.0 is treated as a float color.

    Examples:
        >>> normalize_color((255, 0, 0))
        (255, 0, 0, 255)
        >>> normalize_color((1.0, 0.0, 0.0))
        (255, 0, 0, 255)
    """
    if len(color) < 3:
        raise ValueError(f"Color must have at least 3 components, got {len(color)}")

    is_float_color = (
        all(isinstance(c, float) for c in color) and
        all(0.0 <= c <= 1.0 for c in color)
    )

    if is_float_color:
        values = [int(round(c * 255)) for c in color]
    else:
        values = [int(c) for c in color]

    clamped = [max(0, min(255, v)) for v in values]

    if len(clamped) == 3:
        return (clamped[0], clamped[1], clamped[2], 255)
    return (clamped[0], clamped[1], clamped[2], clamped[3])


def parse_hex_color(hex_str: str) -> Optional[Color]:
    """Parse "#RRGGBB" / "#RRGGBBAA" (# optional). Returns None if invalid."""
    match = HEX_COLOR_PATTERN.match(hex_str.strip())
    if not match:
        return None

    hex_value = match.group(1)
    channels = [int(hex_value[i:i + 2], 16) for i in range(0, len(hex_value), 2)]
    if len(channels) == 3:
        channels.append(255)
    return tuple(channels)


def parse_color(color: ColorInput) -> Color:
    """
    Parse color from any supported format to an RGBA tuple.

    Raises:
        ValueError: If color format is invalid or unrecognized

    Examples:
        >>> parse_color("#FF000080")
        (255, 0, 0, 128)
        >>> parse_color("white")
        (255, 255, 255, 255)
        >>> parse_color([1.0, 0.5, 0.0])
        (255, 128, 0, 255)
    """
    if isinstance(color, str):
        named = NAMED_COLORS.get(color.strip().lower())
        if named is not None:
            return named

        result = parse_hex_color(color)
        if result is not None:
            return result

        raise ValueError(f"Invalid color format: {color}")

    if isinstance(color, (list, tuple)):
        return normalize_color(tuple(color))

    raise ValueError(f"Unsupported color type: {type(color).__name__}")


def apply_opacity(color: Color, opacity: float) -> Color:
    """Scale the alpha channel of an RGBA color by an element opacity (0-1)."""
    opacity = max(0.0, min(1.0, opacity))
    return (color[0], color[1], color[2], int(round(color[3] * opacity)))
