"""
Motion display app: composition root and CLI.

Builds the pipeline before the loop starts and tears it down after it
stops:

    DisplayApp
    ├── EventBus
    ├── Scene (+ MotionEngine)
    ├── SceneRenderer (offscreen pygame canvas)
    ├── FrameEncoder (JPEG)
    ├── Transport (+ device targets) -> DeviceDispatcher
    ├── RenderLoop
    └── ImageLoader
"""

import sys
import time
import dataclasses
import signal
import random
import argparse
import threading
import logging
from typing import Any, Callable, Dict, List, Optional

from motion_display.commands import get_registry
from motion_display.config import DisplayConfig, load_config
from motion_display.core.element import shape_element, text_element
from motion_display.core.motion import MotionConfig, MotionLaw
from motion_display.core.motion_engine import MotionEngine
from motion_display.core.scene import Scene
from motion_display.devices.dispatcher import DeviceDispatcher
from motion_display.devices.transport import DeviceTarget, DirectoryTarget, MemoryTarget, Transport
from motion_display.encoding import FrameEncoder
from motion_display.events import EventBus
from motion_display.exceptions import ConfigError
from motion_display.pipeline import RenderLoop
from motion_display.rendering.images import ImageLoader
from motion_display.rendering.scene_renderer import SceneRenderer
from motion_display.utils.logging import setup_logging, get_logger
from motion_display.utils.profiler import FrameProfiler

logger = logging.getLogger(__name__)


def build_target(entry: Dict[str, Any]) -> DeviceTarget:
    """Create a device target from a config entry ({'type': ..., ...})."""
    device_type = entry.get('type')
    if device_type == 'memory':
        return MemoryTarget(device_id=entry.get('id', 'memory'),
                            history=int(entry.get('history', 8)))
    if device_type == 'directory':
        return DirectoryTarget(entry['path'], device_id=entry.get('id'))
    raise ConfigError(f"Unknown device type '{device_type}'")


class DisplayApp:
    """
    Owns every pipeline component for one scene.

    Args:
        config: Settings (defaults if None)
        targets: Extra device targets, added after those in the config
        rng: Random source for motion laws (seed for repeatable runs)
        clock: Monotonic time source for motion and ticks
    """

    def __init__(self, config: Optional[DisplayConfig] = None,
                 targets: Optional[List[DeviceTarget]] = None,
                 rng: Optional[random.Random] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.config = config or DisplayConfig()
        cfg = self.config
        self._running = threading.Event()

        self.events = EventBus()
        self.profiler: Optional[FrameProfiler] = None
        if cfg.profile_interval:
            self.enable_profiling(cfg.profile_interval)

        self.engine = MotionEngine(cfg.width, cfg.height, rng=rng)
        self.scene = Scene(cfg.width, cfg.height, engine=self.engine,
                           events=self.events, clock=clock)

        self.encoder = FrameEncoder(cfg.quality)
        self.transport = Transport(max_workers=max(4, cfg.dispatch_workers * 2))
        for device in cfg.devices:
            self.transport.add_target(build_target(device))
        for target in targets or []:
            self.transport.add_target(target)
        self.dispatcher = DeviceDispatcher(self.transport, self.encoder, self.events,
                                           max_workers=cfg.dispatch_workers,
                                           max_pending=cfg.max_pending,
                                           profiler=self.profiler)

        self.renderer = SceneRenderer(background_color=cfg.background_color,
                                      show_selection=cfg.show_selection,
                                      trail_style=cfg.trail_style(),
                                      on_error=self._on_render_error)
        self.loop = RenderLoop(self.scene, self.renderer, self.dispatcher, self.events,
                               fps=cfg.fps, device_interval=cfg.device_interval,
                               keep_alive_interval=cfg.keep_alive_interval,
                               profiler=self.profiler, clock=clock)

        self.image_loader = ImageLoader(self.scene)

    @property
    def running(self) -> bool:
        return self._running.is_set()

    def enable_profiling(self, interval: float = 5.0):
        """Enable tick profiling with periodic log output."""
        self.profiler = FrameProfiler(interval=interval)
        logger.info(f"Profiling enabled (report every {interval}s)")

    def _on_render_error(self, error: Exception) -> None:
        self.loop.report_render_error(error)

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals."""
        signal_names = {signal.SIGTERM: "SIGTERM", signal.SIGINT: "SIGINT (Ctrl+C)"}
        signal_name = signal_names.get(signum, f"signal {signum}")
        logger.info(f"Shutdown initiated: Received {signal_name}")
        self._running.clear()

    # --- Commands ---

    def process_command(self, cmd: Dict[str, Any]) -> Dict[str, Any]:
        """
        Process a command and return response.

        Command format: {"action": "command_name", "param1": value1, ...}

        Never crashes on bad commands - returns error response instead.
        """
        action = cmd.get("action", cmd.get("cmd", ""))
        if not action:
            return {"status": "error", "message": "Missing 'action' field"}

        params = {k: v for k, v in cmd.items() if k not in ("action", "cmd")}
        result = get_registry().execute(action, self, **params)
        logger.debug(f"Command: {action}, Result: {result.get('status')}")
        return result

    # --- Lifecycle ---

    def start(self) -> None:
        """Start ticking; enables device real-time mode if configured."""
        if self.config.real_time and len(self.transport) > 0:
            self.dispatcher.set_real_time_mode(True)
        self._running.set()
        self.loop.start(self.config.fps)

    def run(self, duration: Optional[float] = None) -> None:
        """Start and block until duration elapses or a signal arrives."""
        if threading.current_thread() is threading.main_thread():
            signal.signal(signal.SIGTERM, self._signal_handler)
            signal.signal(signal.SIGINT, self._signal_handler)

        self.start()
        deadline = time.monotonic() + duration if duration is not None else None
        try:
            while self._running.is_set():
                if deadline is not None and time.monotonic() >= deadline:
                    break
                time.sleep(0.05)
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        """Stop the loop, let in-flight dispatches finish, release resources."""
        logger.info("Shutting down...")
        self._running.clear()
        self.loop.stop()
        if self.dispatcher.real_time_enabled:
            self.dispatcher.set_real_time_mode(False)
        self.dispatcher.shutdown(wait=True)
        self.image_loader.shutdown(wait=False)
        self.transport.shutdown(wait=True)
        self.renderer.close()
        logger.info("Shutdown complete")


def build_demo_scene(scene: Scene) -> None:
    """One element per motion law, plus a title."""
    w, h = scene.width, scene.height
    cx, cy = w / 2.0, h / 2.0

    scene.add(text_element("motion display", (8, 8), (200, 24), font_size=20,
                           color="white", z_index=10, name="title"))

    demos = [
        ("linear", "rectangle", "red", (20, 40),
         MotionConfig(law=MotionLaw.LINEAR, speed=60, direction=(1, 0.4),
                      respect_boundaries=True, show_trail=True)),
        ("circular", "circle", "green", (cx, cy),
         MotionConfig(law=MotionLaw.CIRCULAR, speed=1.5, radius=60, show_trail=True)),
        ("bounce", "circle", "yellow", (10, 10),
         MotionConfig(law=MotionLaw.BOUNCE, speed=120, direction=(-1, -1))),
        ("oscillate", "rectangle", "cyan", (cx, h - 40),
         MotionConfig(law=MotionLaw.OSCILLATE, speed=2.0, direction=(1, 0), radius=80)),
        ("spiral", "triangle", "magenta", (cx, cy),
         MotionConfig(law=MotionLaw.SPIRAL, speed=2.0, radius=5, show_trail=True,
                      trail_length=40)),
        ("random", "circle", "orange", (cx / 2, cy),
         MotionConfig(law=MotionLaw.RANDOM, speed=80, respect_boundaries=True)),
        ("wave", "rectangle", "purple", (0, cy),
         MotionConfig(law=MotionLaw.WAVE, speed=1.0, radius=30, show_trail=True)),
        ("orbit", "circle", "blue", (cx, cy),
         MotionConfig(law=MotionLaw.ORBIT, speed=1.0, radius=90)),
    ]
    for name, shape, color, position, motion in demos:
        element = scene.add(shape_element(shape, position, (20, 20), fill_color=color,
                                          name=name, draggable=True))
        scene.set_motion(element.id, motion)


def main(argv: Optional[List[str]] = None):
    """Entry point: run the demo scene and stream it to device targets."""
    parser = argparse.ArgumentParser(
        description="Motion Display - animated scene renderer streaming JPEG frames to devices"
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to configuration YAML"
    )
    parser.add_argument(
        "--fps",
        type=int,
        help="Render rate, clamped to 1-120 (default: 30)"
    )
    parser.add_argument(
        "--quality", "-q",
        type=int,
        help="JPEG quality, clamped to 1-100 (default: 85)"
    )
    parser.add_argument(
        "--devices", "-n",
        type=int,
        default=0,
        help="Number of in-memory preview devices to attach"
    )
    parser.add_argument(
        "--output-dir", "-o",
        help="Write every sent frame into this directory"
    )
    parser.add_argument(
        "--duration", "-d",
        type=float,
        help="Seconds to run (default: until Ctrl+C)"
    )
    parser.add_argument(
        "--real-time",
        action="store_true",
        help="Enable device real-time mode on start"
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for random motion laws"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )
    parser.add_argument(
        "--profile",
        nargs="?",
        const=5.0,
        type=float,
        metavar="INTERVAL",
        help="Enable performance profiling (optional: report interval in seconds, default 5)"
    )

    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose)
    log = get_logger(__name__)

    try:
        config = load_config(args.config) if args.config else DisplayConfig()
    except ConfigError as e:
        log.error(str(e))
        sys.exit(1)

    # Override with command line args (replace() re-runs clamping)
    overrides = {}
    if args.fps is not None:
        overrides["fps"] = args.fps
    if args.quality is not None:
        overrides["quality"] = args.quality
    if args.real_time:
        overrides["real_time"] = True
    if args.profile is not None:
        overrides["profile_interval"] = args.profile
    config = dataclasses.replace(config, **overrides)

    targets: List[DeviceTarget] = [MemoryTarget(device_id=f"memory-{i}") for i in range(args.devices)]
    if args.output_dir:
        targets.append(DirectoryTarget(args.output_dir))

    rng = random.Random(args.seed) if args.seed is not None else None
    app = DisplayApp(config, targets=targets, rng=rng)
    build_demo_scene(app.scene)

    log.info(f"Demo scene: {len(app.scene)} elements, {len(app.transport)} device(s)")
    app.run(args.duration)

    status = app.loop.status()
    log.info(f"Ticks: {status['ticks']}, frames rendered: {status['frames_rendered']}, "
             f"frames sent: {status['dispatch']['frames_sent']}")


if __name__ == "__main__":
    main()
