"""
Motion configuration and per-element motion state.

Any element may carry a MotionState component; the motion law, speed and
shape of the path come from its MotionConfig. The engine that advances the
state lives in motion_engine.py.
"""

import math
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

Vec2 = Tuple[float, float]

DEFAULT_SPEED = 100.0
DEFAULT_RADIUS = 50.0
DEFAULT_TRAIL_LENGTH = 20


class MotionLaw(Enum):
    """Available motion laws"""
    NONE = "none"
    LINEAR = "linear"          # Straight line, optional edge reflection
    CIRCULAR = "circular"      # Fixed-radius circle around center
    BOUNCE = "bounce"          # Linear with perturbed reflections, always in bounds
    OSCILLATE = "oscillate"    # Back-and-forth along direction
    SPIRAL = "spiral"          # Circle with growing radius
    RANDOM = "random"          # Periodic random direction changes
    WAVE = "wave"              # Horizontal drift with vertical sine
    ORBIT = "orbit"            # Circle with breathing radius


# Laws that revolve around a center point
ROTATIONAL_LAWS = frozenset({MotionLaw.CIRCULAR, MotionLaw.SPIRAL, MotionLaw.ORBIT})

# Laws that need a center reference (auto-initialized at attach time)
CENTERED_LAWS = ROTATIONAL_LAWS | {MotionLaw.OSCILLATE}

# Laws integrated from a velocity each tick
VELOCITY_LAWS = frozenset({MotionLaw.LINEAR, MotionLaw.BOUNCE, MotionLaw.RANDOM})


def normalize(vector: Vec2) -> Optional[Vec2]:
    """Return the unit vector of `vector`, or None if it has zero length."""
    length = math.hypot(vector[0], vector[1])
    if length <= 1e-12 or not math.isfinite(length):
        return None
    return (vector[0] / length, vector[1] / length)


@dataclass
class MotionConfig:
    """User-facing description of how an element moves."""
    law: MotionLaw = MotionLaw.NONE
    speed: float = DEFAULT_SPEED  # units/sec for velocity laws, rad/sec for rotational
    direction: Vec2 = (0.0, 0.0)
    center: Vec2 = (0.0, 0.0)
    radius: float = DEFAULT_RADIUS
    respect_boundaries: bool = False
    show_trail: bool = False
    trail_length: int = DEFAULT_TRAIL_LENGTH
    paused: bool = False

    def __post_init__(self):
        if isinstance(self.law, str):
            self.law = MotionLaw(self.law.lower())
        self.direction = (float(self.direction[0]), float(self.direction[1]))
        self.center = (float(self.center[0]), float(self.center[1]))
        self.radius = max(0.0, float(self.radius))
        self.speed = float(self.speed)
        if self.show_trail and self.trail_length <= 0:
            self.trail_length = DEFAULT_TRAIL_LENGTH

    def to_dict(self) -> dict:
        """Convert to dictionary for command responses."""
        return {
            'law': self.law.value,
            'speed': self.speed,
            'direction': list(self.direction),
            'center': list(self.center),
            'radius': self.radius,
            'respect_boundaries': self.respect_boundaries,
            'show_trail': self.show_trail,
            'trail_length': self.trail_length,
            'paused': self.paused,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MotionConfig":
        """Create from a command/config dictionary. Unknown keys are ignored."""
        return cls(
            law=MotionLaw(str(data.get('law', 'none')).lower()),
            speed=data.get('speed', DEFAULT_SPEED),
            direction=tuple(data.get('direction', (0.0, 0.0))),
            center=tuple(data.get('center', (0.0, 0.0))),
            radius=data.get('radius', DEFAULT_RADIUS),
            respect_boundaries=data.get('respect_boundaries', False),
            show_trail=data.get('show_trail', False),
            trail_length=data.get('trail_length', DEFAULT_TRAIL_LENGTH),
            paused=data.get('paused', False),
        )


@dataclass
class MotionState:
    """
    Runtime motion bookkeeping for one element.

    `center`, `radius` and `direction` hold the values resolved at attach
    time; the config keeps what the caller asked for.
    """
    config: MotionConfig
    original_position: Vec2
    start_time: float
    last_update_time: float
    last_direction_change: float
    direction: Vec2 = (1.0, 0.0)
    center: Vec2 = (0.0, 0.0)
    radius: float = DEFAULT_RADIUS
    current_angle: float = 0.0
    trail: deque = field(default_factory=deque, repr=False)

    def __post_init__(self):
        maxlen = self.config.trail_length if self.config.show_trail else None
        if maxlen is not None and maxlen <= 0:
            maxlen = DEFAULT_TRAIL_LENGTH
        self.trail = deque(self.trail, maxlen=maxlen)

    @property
    def paused(self) -> bool:
        return self.config.paused

    def record_trail(self, position: Vec2) -> None:
        """Append a position to the trail FIFO (oldest entries evicted)."""
        if self.config.show_trail:
            self.trail.append(position)

    def shift_anchor(self, dx: float, dy: float) -> None:
        """Translate every anchor point, so motion continues from a new location."""
        self.original_position = (self.original_position[0] + dx,
                                  self.original_position[1] + dy)
        self.center = (self.center[0] + dx, self.center[1] + dy)
        self.trail.clear()

    def copy(self) -> "MotionState":
        """Copy for render snapshots; the trail deque is copied, points are tuples."""
        return MotionState(
            config=self.config,
            original_position=self.original_position,
            start_time=self.start_time,
            last_update_time=self.last_update_time,
            last_direction_change=self.last_direction_change,
            direction=self.direction,
            center=self.center,
            radius=self.radius,
            current_angle=self.current_angle,
            trail=deque(self.trail),
        )
