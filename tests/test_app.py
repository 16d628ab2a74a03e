"""Tests for the app composition root and CLI."""

import signal

import pytest

from motion_display import app as app_module
from motion_display.app import DisplayApp, build_demo_scene, build_target, main
from motion_display.config import DisplayConfig
from motion_display.core.motion import MotionLaw
from motion_display.devices.transport import DirectoryTarget, MemoryTarget
from motion_display.exceptions import ConfigError


class TestBuildTarget:
    """Tests for device construction from config entries."""

    def test_memory(self):
        """Memory entries build MemoryTargets."""
        target = build_target({"type": "memory", "id": "p", "history": 2})
        assert isinstance(target, MemoryTarget)
        assert target.device_id == "p"

    def test_directory(self, tmp_path):
        """Directory entries build DirectoryTargets."""
        target = build_target({"type": "directory", "path": str(tmp_path / "d")})
        assert isinstance(target, DirectoryTarget)

    def test_unknown(self):
        """Unknown entries raise ConfigError."""
        with pytest.raises(ConfigError):
            build_target({"type": "usb"})


class TestDisplayApp:
    """Tests for app wiring and lifecycle."""

    def test_config_devices_attached(self, clock):
        """Devices listed in the config are connected."""
        config = DisplayConfig(devices=[{"type": "memory", "id": "cfg"}])
        app = DisplayApp(config, targets=[MemoryTarget("extra")], clock=clock)
        try:
            assert app.transport.list_targets() == ["cfg", "extra"]
        finally:
            app.shutdown()

    def test_config_reaches_renderer_and_dispatcher(self, clock):
        """Trail style and backlog size come from the config."""
        config = DisplayConfig(max_pending=2, trail={"style": "dotted", "dot_radius": 4})
        app = DisplayApp(config, clock=clock)
        try:
            assert app.renderer.trail_style.style == "dotted"
            assert app.renderer.trail_style.dot_radius == 4
            assert app.dispatcher.max_pending == 2
        finally:
            app.shutdown()

    def test_demo_scene_has_every_law(self, clock):
        """The demo scene exercises each motion law once."""
        app = DisplayApp(clock=clock)
        try:
            build_demo_scene(app.scene)
            laws = {e.motion.config.law for e in app.scene.list_elements() if e.motion}
        finally:
            app.shutdown()
        assert laws == set(MotionLaw) - {MotionLaw.NONE}

    def test_run_streams_to_devices(self, monkeypatch):
        """A short real-time run delivers frames and then shuts down."""
        monkeypatch.setattr(app_module.signal, "signal", lambda *args: None)
        preview = MemoryTarget("preview")
        config = DisplayConfig(fps=60, device_interval=0.0, real_time=True)
        app = DisplayApp(config, targets=[preview])
        build_demo_scene(app.scene)

        app.run(duration=0.5)

        assert not app.running
        assert not app.loop.running
        assert preview.frames_received > 0
        assert preview.real_time is False

    def test_render_errors_reach_status(self, clock):
        """Renderer error callbacks are routed through the loop."""
        app = DisplayApp(clock=clock)
        messages = []
        app.events.subscribe("status", messages.append)
        try:
            app.renderer.on_error(RuntimeError("bad pixel"))
        finally:
            app.shutdown()
        assert messages == ["Render error: bad pixel"]

    def test_signal_stops_run(self, clock):
        """The signal handler clears the running flag."""
        app = DisplayApp(clock=clock)
        try:
            app._running.set()
            app._signal_handler(signal.SIGTERM, None)
            assert not app.running
        finally:
            app.shutdown()


class TestMain:
    """Tests for the command-line entry point."""

    @pytest.fixture(autouse=True)
    def _no_signal_handlers(self, monkeypatch):
        monkeypatch.setattr(app_module.signal, "signal", lambda *args: None)
        monkeypatch.setattr(app_module, "setup_logging", lambda **kwargs: None)

    def test_main_writes_frames(self, tmp_path):
        """--output-dir with --real-time leaves JPEG files behind."""
        out = tmp_path / "frames"
        main(["--duration", "0.5", "--real-time", "--output-dir", str(out),
              "--fps", "30", "--seed", "1"])
        frames = list(out.glob("frame_*.jpg"))
        assert frames
        assert frames[0].read_bytes().startswith(b"\xff\xd8")

    def test_main_bad_config_exits(self, tmp_path):
        """A missing config file exits with status 1."""
        with pytest.raises(SystemExit) as excinfo:
            main(["--config", str(tmp_path / "missing.yaml")])
        assert excinfo.value.code == 1
