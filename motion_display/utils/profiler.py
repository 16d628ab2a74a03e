"""
Tick profiler for the render loop.

Frame-level timing instrumentation for diagnosing where a tick spends its
budget (motion, render, notify, dispatch) and how long background device
dispatches take to complete.

Usage:
    profiler = FrameProfiler(interval=5.0)

    # In the tick:
    profiler.begin_frame()
    scene.step_motion(now)
    profiler.mark("motion")
    frame = renderer.render(snapshot, now)
    profiler.mark("render")
    ...
    profiler.end_frame()

    # From the dispatch done-callback:
    profiler.record_dispatch(duration_s)
"""

import time
import threading
import collections
from typing import Dict, List

from motion_display.utils.logging import get_logger

logger = get_logger(__name__)


class _Stats:
    """Rolling statistics tracker using a fixed-size deque."""

    __slots__ = ("_values",)

    def __init__(self, window: int = 300):
        self._values = collections.deque(maxlen=window)

    def add(self, value: float):
        self._values.append(value)

    @property
    def count(self) -> int:
        return len(self._values)

    @property
    def max(self) -> float:
        return max(self._values) if self._values else 0.0

    @property
    def avg(self) -> float:
        return sum(self._values) / len(self._values) if self._values else 0.0

    @property
    def p95(self) -> float:
        if not self._values:
            return 0.0
        sorted_vals = sorted(self._values)
        idx = int(len(sorted_vals) * 0.95)
        return sorted_vals[min(idx, len(sorted_vals) - 1)]


def _fmt_ms(seconds: float) -> str:
    """Format seconds as milliseconds string."""
    return f"{seconds * 1000:.2f}ms"


class FrameProfiler:
    """Collects per-tick section timings and logs periodic summaries.

    Sections are defined dynamically by calls to mark(name) between
    begin_frame() and end_frame(). Dispatch durations arrive from worker
    threads and are recorded under their own lock.

    Args:
        interval: Seconds between summary log outputs.
        window: Number of recent samples to keep for statistics.
    """

    def __init__(self, interval: float = 5.0, window: int = 300):
        self._interval = interval
        self._window = window

        self._sections: Dict[str, _Stats] = {}
        self._section_order: List[str] = []
        self._frame_stats = _Stats(window)

        self._dispatch_lock = threading.Lock()
        self._dispatch_stats = _Stats(window)

        self._frame_start: float = 0.0
        self._last_mark: float = 0.0

        self._last_report: float = time.monotonic()
        self._frame_count: int = 0

    def begin_frame(self):
        """Call at the start of each tick."""
        now = time.perf_counter()
        self._frame_start = now
        self._last_mark = now

    def mark(self, section: str):
        """Record time elapsed since last mark (or begin_frame) as a named section."""
        now = time.perf_counter()
        elapsed = now - self._last_mark
        self._last_mark = now

        if section not in self._sections:
            self._sections[section] = _Stats(self._window)
            self._section_order.append(section)
        self._sections[section].add(elapsed)

    def end_frame(self):
        """Call at the end of each tick. Triggers periodic reporting."""
        total = time.perf_counter() - self._frame_start
        self._frame_stats.add(total)
        self._frame_count += 1

        mono_now = time.monotonic()
        if mono_now - self._last_report >= self._interval:
            self._report()
            self._last_report = mono_now

    def record_dispatch(self, duration: float):
        """Record how long one background encode+dispatch took (seconds)."""
        with self._dispatch_lock:
            self._dispatch_stats.add(duration)

    def summary(self) -> Dict[str, Dict[str, float]]:
        """Return avg/p95/max per section, in seconds."""
        result = {
            name: {"avg": s.avg, "p95": s.p95, "max": s.max, "count": s.count}
            for name, s in self._sections.items()
        }
        result["total"] = {
            "avg": self._frame_stats.avg,
            "p95": self._frame_stats.p95,
            "max": self._frame_stats.max,
            "count": self._frame_stats.count,
        }
        with self._dispatch_lock:
            result["dispatch_async"] = {
                "avg": self._dispatch_stats.avg,
                "p95": self._dispatch_stats.p95,
                "max": self._dispatch_stats.max,
                "count": self._dispatch_stats.count,
            }
        return result

    def _report(self):
        """Log a profiling summary."""
        if self._frame_stats.count == 0:
            return

        fps = self._frame_count / self._interval if self._interval > 0 else 0
        lines = [
            f"=== PROFILE ({self._frame_stats.count} ticks, {fps:.1f} FPS) ===",
            f"  {'Section':<20s} {'avg':>8s} {'p95':>8s} {'max':>8s}",
        ]

        for name in self._section_order:
            s = self._sections[name]
            if s.count > 0:
                lines.append(
                    f"  {name:<20s} {_fmt_ms(s.avg):>8s} {_fmt_ms(s.p95):>8s} {_fmt_ms(s.max):>8s}"
                )

        s = self._frame_stats
        lines.append(
            f"  {'TOTAL':<20s} {_fmt_ms(s.avg):>8s} {_fmt_ms(s.p95):>8s} {_fmt_ms(s.max):>8s}"
        )

        with self._dispatch_lock:
            ds = self._dispatch_stats
            if ds.count:
                lines.append("  --- Device dispatch (background) ---")
                lines.append(
                    f"  {'encode+send':<20s} {_fmt_ms(ds.avg):>8s} "
                    f"{_fmt_ms(ds.p95):>8s} {_fmt_ms(ds.max):>8s}"
                )

        logger.info("\n".join(lines))

        self._frame_count = 0
