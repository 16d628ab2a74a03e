"""
Runtime configuration for the motion display app.

Example YAML:

    display:
      width: 320
      height: 240
      background_color: "#000000"
      show_selection: true
    pipeline:
      fps: 30
      device_interval: 0.1
      quality: 85
      real_time: true
      keep_alive_interval: 4.0
      dispatch_workers: 2
      max_pending: 5
      profile_interval: 5.0
    trail:
      style: dotted
      head_color: "#FFD700"
      dot_radius: 3
    devices:
      - type: directory
        path: /tmp/motion_display_frames
      - type: memory
        id: preview
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from motion_display.devices.dispatcher import DEFAULT_MAX_PENDING
from motion_display.encoding import clamp_quality, DEFAULT_QUALITY
from motion_display.exceptions import ConfigError
from motion_display.pipeline import (
    clamp_fps,
    DEFAULT_DEVICE_INTERVAL,
    DEFAULT_FPS,
    DEFAULT_KEEP_ALIVE_INTERVAL,
)
from motion_display.rendering.trail import TrailStyle
from motion_display.utils.color import parse_color

logger = logging.getLogger(__name__)

DEVICE_TYPES = ("memory", "directory")


@dataclass
class DisplayConfig:
    """All tunable settings. Out-of-range values are clamped, not rejected."""
    width: int = 320
    height: int = 240
    fps: int = DEFAULT_FPS
    device_interval: float = DEFAULT_DEVICE_INTERVAL
    quality: int = DEFAULT_QUALITY
    real_time: bool = False
    background_color: Tuple[int, int, int, int] = (0, 0, 0, 255)
    keep_alive_interval: float = DEFAULT_KEEP_ALIVE_INTERVAL
    show_selection: bool = True
    dispatch_workers: int = 2
    max_pending: int = DEFAULT_MAX_PENDING
    profile_interval: Optional[float] = None
    trail: Dict[str, Any] = field(default_factory=dict)
    devices: List[Dict[str, Any]] = field(default_factory=list)

    def __post_init__(self):
        self.width = max(1, int(self.width))
        self.height = max(1, int(self.height))
        self.fps = clamp_fps(self.fps)
        self.quality = clamp_quality(self.quality)
        self.device_interval = max(0.0, float(self.device_interval))
        self.keep_alive_interval = max(0.0, float(self.keep_alive_interval))
        self.dispatch_workers = max(1, int(self.dispatch_workers))
        self.max_pending = max(1, int(self.max_pending))
        self.background_color = parse_color(self.background_color)
        try:
            self.trail_style()
        except ValueError as e:
            raise ConfigError(f"Invalid trail style: {e}") from e
        for device in self.devices:
            device_type = device.get('type')
            if device_type not in DEVICE_TYPES:
                raise ConfigError(f"Unknown device type '{device_type}'. "
                                  f"Valid types: {', '.join(DEVICE_TYPES)}")
            if device_type == 'directory' and not device.get('path'):
                raise ConfigError("Directory device requires a 'path'")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DisplayConfig":
        """Build from a parsed YAML document (sections display/pipeline/devices)."""
        if not isinstance(data, dict):
            raise ConfigError(f"Config root must be a mapping, got {type(data).__name__}")

        display = data.get('display') or {}
        pipeline = data.get('pipeline') or {}
        trail = data.get('trail') or {}
        devices = data.get('devices') or []
        for name, section in (('display', display), ('pipeline', pipeline), ('trail', trail)):
            if not isinstance(section, dict):
                raise ConfigError(f"'{name}' must be a mapping")
        if not isinstance(devices, list):
            raise ConfigError("'devices' must be a list")

        defaults = cls()
        try:
            return cls(
                width=display.get('width', defaults.width),
                height=display.get('height', defaults.height),
                background_color=display.get('background_color', defaults.background_color),
                show_selection=bool(display.get('show_selection', defaults.show_selection)),
                fps=pipeline.get('fps', defaults.fps),
                device_interval=pipeline.get('device_interval', defaults.device_interval),
                quality=pipeline.get('quality', defaults.quality),
                real_time=bool(pipeline.get('real_time', defaults.real_time)),
                keep_alive_interval=pipeline.get('keep_alive_interval',
                                                 defaults.keep_alive_interval),
                dispatch_workers=pipeline.get('dispatch_workers', defaults.dispatch_workers),
                max_pending=pipeline.get('max_pending', defaults.max_pending),
                profile_interval=pipeline.get('profile_interval', defaults.profile_interval),
                trail=dict(trail),
                devices=[dict(d) for d in devices],
            )
        except (TypeError, ValueError) as e:
            if isinstance(e, ConfigError):
                raise
            raise ConfigError(f"Invalid config value: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            'display': {
                'width': self.width,
                'height': self.height,
                'background_color': list(self.background_color),
                'show_selection': self.show_selection,
            },
            'pipeline': {
                'fps': self.fps,
                'device_interval': self.device_interval,
                'quality': self.quality,
                'real_time': self.real_time,
                'keep_alive_interval': self.keep_alive_interval,
                'dispatch_workers': self.dispatch_workers,
                'max_pending': self.max_pending,
                'profile_interval': self.profile_interval,
            },
            'trail': dict(self.trail),
            'devices': [dict(d) for d in self.devices],
        }

    def trail_style(self) -> TrailStyle:
        """The trail section as a TrailStyle (defaults for missing keys)."""
        return TrailStyle.from_dict(self.trail)


def load_config(path: str) -> DisplayConfig:
    """
    Load configuration from a YAML file.

    Raises:
        ConfigError: If the file is missing, unreadable or malformed
    """
    config_file = Path(path)
    if not config_file.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(config_file, 'r') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    config = DisplayConfig.from_dict(data)
    logger.info(f"Config loaded from {path}: {config.width}x{config.height} "
                f"@ {config.fps} FPS, quality={config.quality}, "
                f"{len(config.devices)} device(s)")
    return config
