"""Shared fixtures for motion display tests."""

import os

# Headless pygame: must be set before pygame is first imported
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import random
import threading

import numpy as np
import pytest

from motion_display.core.motion_engine import MotionEngine
from motion_display.core.scene import Scene
from motion_display.devices.transport import MemoryTarget
from motion_display.events import EventBus
from motion_display.rendering.renderer.base import Frame


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class FailingTarget:
    """Device that never acknowledges; raises when `raises` is set."""

    def __init__(self, device_id: str = "failing", raises: bool = True):
        self.device_id = device_id
        self.raises = raises
        self.calls = 0

    def _fail(self) -> bool:
        self.calls += 1
        if self.raises:
            raise IOError(f"{self.device_id} unplugged")
        return False

    def send_frame(self, data: bytes, transfer_id: int) -> bool:
        return self._fail()

    def set_real_time_mode(self, enable: bool) -> bool:
        return self._fail()

    def keep_alive(self, timestamp: int) -> bool:
        return self._fail()


class StalledTarget:
    """Device whose send_frame blocks until `release` is set."""

    def __init__(self, device_id: str = "stalled"):
        self.device_id = device_id
        self.entered = threading.Event()
        self.release = threading.Event()
        self._lock = threading.Lock()
        self.transfer_ids = []

    def send_frame(self, data: bytes, transfer_id: int) -> bool:
        self.entered.set()
        self.release.wait(timeout=10)
        with self._lock:
            self.transfer_ids.append(transfer_id)
        return True

    def set_real_time_mode(self, enable: bool) -> bool:
        return True

    def keep_alive(self, timestamp: int) -> bool:
        return True


class Recorder:
    """Thread-safe event collector for EventBus subscriptions."""

    def __init__(self):
        self._lock = threading.Lock()
        self.items = []

    def __call__(self, payload):
        with self._lock:
            self.items.append(payload)

    def __len__(self):
        with self._lock:
            return len(self.items)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def engine(rng):
    return MotionEngine(320, 240, rng=rng)


@pytest.fixture
def scene(engine, events, clock):
    return Scene(320, 240, engine=engine, events=events, clock=clock)


@pytest.fixture
def memory_targets():
    return [MemoryTarget(device_id=f"mem-{i}") for i in range(2)]


@pytest.fixture
def gradient_frame():
    """Small RGBA frame with some structure for the JPEG codec."""
    height, width = 48, 64
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[:, :, 0] = np.linspace(0, 255, width, dtype=np.uint8)[None, :]
    pixels[:, :, 1] = np.linspace(0, 255, height, dtype=np.uint8)[:, None]
    pixels[:, :, 2] = 128
    pixels[:, :, 3] = 255
    return Frame.from_array(pixels, timestamp=0.0)
