"""
Render loop: dual-rate scheduling of simulation, rendering and device output.

Every tick, on one thread and strictly in order:
    1. Advance motion on all elements
    2. Render the scene to a Frame
    3. Publish frame_ready
    4. If real-time mode is on and device_interval has elapsed since the last
       device send, hand the frame to the dispatcher (background)

Steps 1-3 run at the loop fps (1-120); step 4 runs at the coarser device
rate. A keep-alive goes to the devices every keep_alive_interval while
real-time mode is on. Nothing a stage raises stops the loop; only stop() does.
"""

import time
import threading
import logging
from enum import Enum
from typing import Callable, Optional

from motion_display.core.scene import Scene
from motion_display.devices.dispatcher import DeviceDispatcher
from motion_display.events import EventBus, FRAME_READY, RENDER_ERROR
from motion_display.rendering.renderer.base import Frame, RendererAdapter
from motion_display.utils.profiler import FrameProfiler

logger = logging.getLogger(__name__)

MIN_FPS = 1
MAX_FPS = 120
DEFAULT_FPS = 30
DEFAULT_DEVICE_INTERVAL = 0.1      # seconds between device sends
DEFAULT_KEEP_ALIVE_INTERVAL = 4.0  # seconds between keep-alives


def clamp_fps(fps) -> int:
    """Clamp a frame rate into [1, 120]."""
    return max(MIN_FPS, min(MAX_FPS, int(fps)))


class LoopState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class RenderLoop:
    """
    Drives the motion -> render -> notify -> dispatch pipeline.

    Args:
        scene: Scene to animate
        renderer: Snapshot -> Frame adapter
        dispatcher: Device output (None renders without sending)
        events: Notification bus
        fps: Target tick rate (clamped to 1-120)
        device_interval: Minimum seconds between device sends
        keep_alive_interval: Seconds between keep-alives in real-time mode
        profiler: Optional per-section tick profiler
        clock: Monotonic time source used for tick timestamps
    """

    def __init__(self, scene: Scene, renderer: RendererAdapter,
                 dispatcher: Optional[DeviceDispatcher] = None,
                 events: Optional[EventBus] = None,
                 fps: int = DEFAULT_FPS,
                 device_interval: float = DEFAULT_DEVICE_INTERVAL,
                 keep_alive_interval: float = DEFAULT_KEEP_ALIVE_INTERVAL,
                 profiler: Optional[FrameProfiler] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.scene = scene
        self.renderer = renderer
        self.dispatcher = dispatcher
        self.events = events or EventBus()
        self.profiler = profiler
        self.clock = clock

        self._lock = threading.Lock()
        # Serializes steps 1-3 across the loop thread and direct tick() callers
        self._tick_lock = threading.RLock()
        self._fps = clamp_fps(fps)
        self._device_interval = max(0.0, float(device_interval))
        self.keep_alive_interval = max(0.0, float(keep_alive_interval))

        self._state = LoopState.STOPPED
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

        self._last_device_send: Optional[float] = None
        self._last_keep_alive: Optional[float] = None
        self.last_frame: Optional[Frame] = None

        # Stats
        self.ticks = 0
        self.frames_rendered = 0
        self.frames_skipped = 0
        self.error_frames = 0
        self.frames_submitted = 0

    # --- Rate control ---

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state == LoopState.RUNNING

    @property
    def fps(self) -> int:
        with self._lock:
            return self._fps

    @property
    def interval(self) -> float:
        """Seconds between ticks."""
        with self._lock:
            return 1.0 / self._fps

    def set_fps(self, fps) -> int:
        """Change the tick rate (clamped). Takes effect from the next tick."""
        clamped = clamp_fps(fps)
        if clamped != fps:
            logger.info(f"FPS {fps} clamped to {clamped}")
        with self._lock:
            self._fps = clamped
        return clamped

    @property
    def device_interval(self) -> float:
        with self._lock:
            return self._device_interval

    def set_device_interval(self, seconds: float) -> float:
        with self._lock:
            self._device_interval = max(0.0, float(seconds))
            return self._device_interval

    # --- Lifecycle ---

    def start(self, fps: Optional[int] = None) -> int:
        """
        Start ticking on a background thread.

        Each run gets its own stop event, so a thread that outlived stop()
        still exits after its current tick.

        Returns:
            The effective fps
        """
        if fps is not None:
            self.set_fps(fps)

        if self._state == LoopState.RUNNING:
            return self.fps

        self._stop_event = threading.Event()
        self._state = LoopState.RUNNING
        self._thread = threading.Thread(target=self._run, args=(self._stop_event,),
                                        name="render-loop", daemon=True)
        self._thread.start()
        logger.info(f"Render loop started at {self.fps} FPS")
        return self.fps

    def stop(self, timeout: float = 2.0) -> None:
        """Stop future ticks. Dispatches already submitted finish on their own."""
        if self._state == LoopState.STOPPED:
            return
        self._state = LoopState.STOPPED
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Render loop thread did not stop in time")
        self._thread = None
        logger.info(f"Render loop stopped after {self.ticks} ticks")

    def _run(self, stop_event: threading.Event) -> None:
        next_tick = time.monotonic()
        while not stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("Tick failed")

            next_tick += self.interval
            delay = next_tick - time.monotonic()
            if delay < 0:
                # Fell behind: skip the backlog instead of bursting
                next_tick = time.monotonic()
                delay = 0.0
            stop_event.wait(delay)

    # --- Tick ---

    def tick(self, now: Optional[float] = None) -> Optional[Frame]:
        """Run one pipeline iteration. Returns the rendered frame, or None if skipped."""
        with self._tick_lock:
            return self._tick(now)

    def _tick(self, now: Optional[float]) -> Optional[Frame]:
        if now is None:
            now = self.clock()
        profiler = self.profiler
        if profiler:
            profiler.begin_frame()
        self.ticks += 1

        try:
            self.scene.step_motion(now)
        except Exception as e:
            logger.warning(f"Motion step failed: {e}")
        if profiler:
            profiler.mark("motion")

        try:
            frame = self.renderer.render(self.scene.snapshot(), now)
        except Exception as e:
            self.frames_skipped += 1
            self.report_render_error(e)
            if profiler:
                profiler.mark("render")
                profiler.end_frame()
            return None
        if profiler:
            profiler.mark("render")

        self.frames_rendered += 1
        if frame.is_error:
            self.error_frames += 1
        self.last_frame = frame
        self.events.publish(FRAME_READY, frame)
        if profiler:
            profiler.mark("notify")

        self._service_devices(frame, now)
        if profiler:
            profiler.mark("dispatch")
            profiler.end_frame()
        return frame

    def _service_devices(self, frame: Frame, now: float) -> None:
        dispatcher = self.dispatcher
        if dispatcher is None or not dispatcher.real_time_enabled:
            self._last_keep_alive = None
            return

        try:
            if (self._last_device_send is None or
                    now - self._last_device_send >= self.device_interval):
                self._last_device_send = now
                dispatcher.submit(frame)
                self.frames_submitted += 1

            if self._last_keep_alive is None:
                self._last_keep_alive = now
            elif now - self._last_keep_alive >= self.keep_alive_interval:
                self._last_keep_alive = now
                dispatcher.submit_keep_alive()
        except RuntimeError as e:
            # Executor already shut down
            self.events.status(f"Device dispatch unavailable: {e}", logging.WARNING)

    def report_render_error(self, error: Exception) -> None:
        """Publish a render failure (used as the renderer's error callback)."""
        self.events.publish(RENDER_ERROR, error)
        self.events.status(f"Render error: {error}", logging.WARNING)

    # --- Status ---

    def status(self) -> dict:
        data = {
            'state': self._state.value,
            'fps': self.fps,
            'device_interval': self.device_interval,
            'keep_alive_interval': self.keep_alive_interval,
            'ticks': self.ticks,
            'frames_rendered': self.frames_rendered,
            'frames_skipped': self.frames_skipped,
            'error_frames': self.error_frames,
            'frames_submitted': self.frames_submitted,
            'elements': len(self.scene),
        }
        if self.dispatcher is not None:
            data['dispatch'] = self.dispatcher.stats()
        if self.profiler is not None:
            data['profile'] = self.profiler.summary()
        return data
