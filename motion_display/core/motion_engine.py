"""
Motion engine: advances element positions according to their motion law.

Each law maps (motion state, elapsed time since start, delta time since
last update, config) to a new position, and for rotational laws a new
angle. The engine owns the canvas bounds and the random source, so a
seeded engine is fully deterministic.
"""

import math
import random
import logging
import dataclasses
from typing import Optional, Tuple

from motion_display.core.element import Element
from motion_display.core.motion import (
    CENTERED_LAWS,
    DEFAULT_RADIUS,
    MotionConfig,
    MotionLaw,
    MotionState,
    Vec2,
    normalize,
)

logger = logging.getLogger(__name__)

# Tunable law constants
RANDOM_DIRECTION_INTERVAL = 2.0   # seconds between Random re-rolls
RANDOM_SPEED_FACTOR = 0.5         # Random integrates at half speed
BOUNCE_PERTURBATION = 0.1         # total span of the per-axis jitter on reflection
SPIRAL_GROWTH = 5.0               # radius units per second
ORBIT_VARIATION = 10.0            # +/- radius units
ORBIT_BREATH_RATE = 2.0           # rad/sec of the radius modulation
WAVE_ADVANCE_RATE = 20.0          # horizontal units per second per unit of speed
WAVE_FREQUENCY_FACTOR = 3.0       # vertical frequency relative to speed

FALLBACK_DIRECTION: Vec2 = (1.0, 0.0)


def circle_point(center: Vec2, radius: float, angle: float) -> Vec2:
    """Point on a circle of `radius` around `center` at `angle` radians."""
    return (center[0] + math.cos(angle) * radius,
            center[1] + math.sin(angle) * radius)


def reflect_into_bounds(position: Vec2, direction: Vec2,
                        width: float, height: float) -> Tuple[Vec2, Vec2, Tuple[bool, bool]]:
    """
    Reflect a direction off the canvas edges and clamp the position.

    The reflected component always points back into the canvas, so an
    element resting on an edge can never be pushed further out.

    Returns:
        (clamped position, reflected direction, (hit_x, hit_y))
    """
    x, y = position
    dx, dy = direction
    hit_x = hit_y = False

    if x <= 0:
        dx, hit_x = abs(dx), True
    elif x >= width:
        dx, hit_x = -abs(dx), True

    if y <= 0:
        dy, hit_y = abs(dy), True
    elif y >= height:
        dy, hit_y = -abs(dy), True

    clamped = (min(max(x, 0.0), width), min(max(y, 0.0), height))
    return clamped, (dx, dy), (hit_x, hit_y)


def _point_inward(direction: Vec2, position: Vec2, hits: Tuple[bool, bool]) -> Vec2:
    """Force the components on the hit axes to point away from the edge."""
    dx, dy = direction
    if hits[0]:
        dx = abs(dx) if position[0] <= 0 else -abs(dx)
    if hits[1]:
        dy = abs(dy) if position[1] <= 0 else -abs(dy)
    return (dx, dy)


class MotionEngine:
    """
    Advances MotionState components on scene elements.

    Args:
        width: Canvas width used for boundary checks
        height: Canvas height used for boundary checks
        rng: Random source for Bounce/Random laws (seed it for repeatable runs)
        random_interval: Seconds between Random direction re-rolls
        bounce_perturbation: Jitter span applied to Bounce reflections
        spiral_growth: Spiral radius growth per second
        orbit_variation: Orbit radius amplitude
    """

    def __init__(self, width: float, height: float,
                 rng: Optional[random.Random] = None,
                 random_interval: float = RANDOM_DIRECTION_INTERVAL,
                 bounce_perturbation: float = BOUNCE_PERTURBATION,
                 spiral_growth: float = SPIRAL_GROWTH,
                 orbit_variation: float = ORBIT_VARIATION):
        self.width = float(width)
        self.height = float(height)
        self.rng = rng or random.Random()
        self.random_interval = random_interval
        self.bounce_perturbation = bounce_perturbation
        self.spiral_growth = spiral_growth
        self.orbit_variation = orbit_variation

    def set_bounds(self, width: float, height: float) -> None:
        """Update the canvas size used for boundary checks."""
        self.width = float(width)
        self.height = float(height)

    def random_direction(self) -> Vec2:
        """Uniformly random unit vector."""
        angle = self.rng.random() * math.pi * 2
        return (math.cos(angle), math.sin(angle))

    # --- Attach ---

    def attach(self, element: Element, config: MotionConfig, now: float) -> MotionState:
        """
        Create the motion state for an element.

        Zero-valued center/radius/direction are resolved here, once, from the
        element's current position and the law defaults.
        """
        # Own copy: paused is per-element state
        config = dataclasses.replace(config)
        law = config.law

        center = config.center
        if law in CENTERED_LAWS and center == (0.0, 0.0):
            center = element.position

        radius = config.radius
        if law in CENTERED_LAWS and radius == 0.0:
            radius = DEFAULT_RADIUS

        direction = normalize(config.direction)
        if law == MotionLaw.RANDOM:
            direction = self.random_direction()
        elif direction is None:
            if law == MotionLaw.BOUNCE:
                direction = self.random_direction()
            else:
                direction = FALLBACK_DIRECTION

        state = MotionState(
            config=config,
            original_position=element.position,
            start_time=now,
            last_update_time=now,
            last_direction_change=now,
            direction=direction,
            center=center,
            radius=radius,
        )
        element.motion = state
        logger.debug(f"Motion {law.value} attached to {element.name}")
        return state

    # --- Tick ---

    def advance(self, element: Element, now: float) -> Vec2:
        """
        Advance one element to time `now` and return its new position.

        Paused motion is a no-op for position, but the clock bookkeeping
        moves forward so that resuming does not jump ahead.
        """
        state = element.motion
        if state is None:
            return element.position

        dt = max(0.0, now - state.last_update_time)
        state.last_update_time = now

        if state.config.paused:
            state.start_time += dt
            state.last_direction_change += dt
            return element.position

        elapsed = max(0.0, now - state.start_time)
        position = self.step(state, element.position, elapsed, dt, now)

        element.position = position
        state.record_trail(position)
        return position

    def step(self, state: MotionState, position: Vec2,
             elapsed: float, dt: float, now: float) -> Vec2:
        """Compute the next position for one law. Mutates angle/direction on state."""
        law = state.config.law

        if law == MotionLaw.LINEAR:
            return self._step_linear(state, position, dt)
        if law == MotionLaw.CIRCULAR:
            return self._step_rotational(state, elapsed, state.radius)
        if law == MotionLaw.BOUNCE:
            return self._step_bounce(state, position, dt)
        if law == MotionLaw.OSCILLATE:
            return self._step_oscillate(state, elapsed)
        if law == MotionLaw.SPIRAL:
            return self._step_rotational(
                state, elapsed, state.radius + self.spiral_growth * elapsed)
        if law == MotionLaw.RANDOM:
            return self._step_random(state, position, dt, now)
        if law == MotionLaw.WAVE:
            return self._step_wave(state, elapsed)
        if law == MotionLaw.ORBIT:
            variation = math.sin(elapsed * ORBIT_BREATH_RATE) * self.orbit_variation
            return self._step_rotational(state, elapsed, max(0.0, state.radius + variation))
        return position

    # --- Laws ---

    def _unit_direction(self, state: MotionState) -> Vec2:
        """Re-normalized working direction; zero vectors fall back to +X."""
        unit = normalize(state.direction)
        if unit is None:
            logger.warning("Zero-length motion direction, substituting (1, 0)")
            unit = FALLBACK_DIRECTION
        state.direction = unit
        return unit

    def _integrate(self, position: Vec2, direction: Vec2, speed: float, dt: float) -> Vec2:
        return (position[0] + direction[0] * speed * dt,
                position[1] + direction[1] * speed * dt)

    def _step_linear(self, state: MotionState, position: Vec2, dt: float) -> Vec2:
        direction = self._unit_direction(state)
        new_position = self._integrate(position, direction, state.config.speed, dt)

        if state.config.respect_boundaries:
            new_position, state.direction, _ = reflect_into_bounds(
                new_position, direction, self.width, self.height)
        return new_position

    def _step_bounce(self, state: MotionState, position: Vec2, dt: float) -> Vec2:
        direction = self._unit_direction(state)
        new_position = self._integrate(position, direction, state.config.speed, dt)

        clamped, reflected, hits = reflect_into_bounds(
            new_position, direction, self.width, self.height)

        if hits[0] or hits[1]:
            span = self.bounce_perturbation
            jittered = (reflected[0] + (self.rng.random() - 0.5) * span,
                        reflected[1] + (self.rng.random() - 0.5) * span)
            jittered = normalize(jittered) or reflected
            reflected = _point_inward(jittered, new_position, hits)

        state.direction = reflected
        return clamped

    def _step_rotational(self, state: MotionState, elapsed: float, radius: float) -> Vec2:
        angle = elapsed * state.config.speed
        state.current_angle = angle
        return circle_point(state.center, radius, angle)

    def _step_oscillate(self, state: MotionState, elapsed: float) -> Vec2:
        direction = self._unit_direction(state)
        offset = math.sin(elapsed * state.config.speed) * state.radius
        return (state.center[0] + direction[0] * offset,
                state.center[1] + direction[1] * offset)

    def _step_random(self, state: MotionState, position: Vec2, dt: float, now: float) -> Vec2:
        if now - state.last_direction_change >= self.random_interval:
            state.direction = self.random_direction()
            state.last_direction_change = now

        direction = self._unit_direction(state)
        speed = state.config.speed * RANDOM_SPEED_FACTOR
        new_position = self._integrate(position, direction, speed, dt)

        if state.config.respect_boundaries:
            clamped, _, hits = reflect_into_bounds(
                new_position, direction, self.width, self.height)
            if hits[0] or hits[1]:
                state.direction = _point_inward(
                    self.random_direction(), new_position, hits)
                state.last_direction_change = now
            new_position = clamped
        return new_position

    def _step_wave(self, state: MotionState, elapsed: float) -> Vec2:
        speed = state.config.speed
        anchor_x, anchor_y = state.original_position

        x = anchor_x + speed * WAVE_ADVANCE_RATE * elapsed
        y = anchor_y + math.sin(elapsed * speed * WAVE_FREQUENCY_FACTOR) * state.radius

        if x > self.width:
            # Restart from the left edge: move the anchor so x == 0 right now
            anchor_x = -speed * WAVE_ADVANCE_RATE * elapsed
            state.original_position = (anchor_x, anchor_y)
            x = 0.0
        return (x, y)
