"""
Device dispatcher: encodes frames and pushes them to every device.

Dispatch runs on a background executor so a slow device never stalls the
render loop. Frames waiting for a worker sit in a small bounded backlog;
when it overflows the oldest waiting frame is dropped. Each sent frame
takes the next transfer id from a rotating session counter (1..59; 0 is
reserved by the device protocol). Results are aggregated per device: a
frame counts as sent when at least one device acknowledged it.
"""

import time
import threading
import logging
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Deque, Dict, Optional, Tuple

from motion_display.devices.transport import Transport
from motion_display.encoding import FrameEncoder
from motion_display.events import (
    EventBus,
    FRAME_ENCODED,
    FRAME_SENT,
    REAL_TIME_MODE_CHANGED,
)
from motion_display.rendering.renderer.base import Frame
from motion_display.utils.profiler import FrameProfiler

logger = logging.getLogger(__name__)

FIRST_TRANSFER_ID = 1
LAST_TRANSFER_ID = 59
DEFAULT_MAX_PENDING = 5


class TransferSession:
    """Rotating transfer id in [1, 59], advanced once per dispatch."""

    def __init__(self, start: int = FIRST_TRANSFER_ID):
        if not FIRST_TRANSFER_ID <= start <= LAST_TRANSFER_ID:
            raise ValueError(f"Transfer id must be in [{FIRST_TRANSFER_ID}, {LAST_TRANSFER_ID}]")
        self._lock = threading.Lock()
        self._current = start

    @property
    def current(self) -> int:
        """The id the next dispatch will use."""
        with self._lock:
            return self._current

    def next_id(self) -> int:
        """Take the current id and advance, wrapping 59 -> 1."""
        with self._lock:
            transfer_id = self._current
            self._current = FIRST_TRANSFER_ID if transfer_id >= LAST_TRANSFER_ID else transfer_id + 1
            return transfer_id

    def reset(self) -> None:
        with self._lock:
            self._current = FIRST_TRANSFER_ID


@dataclass(frozen=True)
class DispatchResult:
    """Aggregated outcome of sending one frame to all devices."""
    transfer_id: int
    size: int
    succeeded: int
    total: int
    quality: int
    results: Dict[str, bool] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.succeeded > 0

    @property
    def failed_devices(self):
        return [device_id for device_id, ok in self.results.items() if not ok]


class DeviceDispatcher:
    """
    Background encode + send of frames to all devices.

    Frames wait in a bounded backlog until a dispatch worker picks them up.
    When devices fall behind and the backlog is full, the oldest waiting
    frame is dropped so devices always catch up on recent frames.

    Args:
        transport: Device fan-out
        encoder: JPEG encoder (its quality is read once per dispatch)
        events: Bus for frame_encoded/frame_sent/status notifications
        max_workers: Concurrent dispatches
        max_pending: Frames allowed to wait for a worker
        profiler: Optional profiler receiving dispatch durations
    """

    def __init__(self, transport: Transport, encoder: FrameEncoder,
                 events: Optional[EventBus] = None, max_workers: int = 2,
                 max_pending: int = DEFAULT_MAX_PENDING,
                 profiler: Optional[FrameProfiler] = None):
        self.transport = transport
        self.encoder = encoder
        self.events = events or EventBus()
        self.profiler = profiler
        self.session = TransferSession()
        self.max_workers = max(1, max_workers)
        self.max_pending = max(1, max_pending)

        self._executor = ThreadPoolExecutor(max_workers=self.max_workers,
                                            thread_name_prefix="dispatch")
        self._lock = threading.Lock()
        self._real_time_enabled = False
        self._closed = False

        # Backlog (guarded by _lock): (frame, quality, future) waiting for a worker
        self._pending: Deque[Tuple[Frame, Optional[int], Future]] = deque()
        self._workers = 0
        self._keep_alive_future: Optional[Future] = None

        # Stats (guarded by _lock)
        self._frames_submitted = 0
        self._frames_sent = 0
        self._frames_failed = 0
        self._frames_dropped = 0
        self._backlog_dropped = 0
        self._keep_alives_sent = 0
        self._in_flight = 0

    # --- Real-time mode ---

    @property
    def real_time_enabled(self) -> bool:
        with self._lock:
            return self._real_time_enabled

    def set_real_time_mode(self, enable: bool) -> Dict[str, bool]:
        """
        Ask every device to switch real-time mode.

        The local flag follows only when at least one device acknowledged.

        Returns:
            Per-device acknowledge map
        """
        enable = bool(enable)
        results = self.transport.set_real_time_mode(enable)
        succeeded = sum(1 for ok in results.values() if ok)

        if succeeded == 0:
            self.events.status(
                f"Failed to {'enable' if enable else 'disable'} real-time display on any devices",
                logging.WARNING)
            return results

        with self._lock:
            changed = self._real_time_enabled != enable
            self._real_time_enabled = enable

        self.events.status(
            f"Real-time display {'enabled' if enable else 'disabled'} "
            f"on {succeeded}/{len(results)} devices")
        if changed:
            self.events.publish(REAL_TIME_MODE_CHANGED, enable)
        return results

    # --- Frame dispatch ---

    def submit(self, frame: Frame, quality: Optional[int] = None) -> Future:
        """
        Queue a frame for background encode and send.

        The future resolves to a DispatchResult, or None when the frame was
        dropped (encode failure or backlog overflow). Failures are reported
        by the done-callback.

        Raises:
            RuntimeError: After shutdown()
        """
        started = time.perf_counter()
        future: Future = Future()
        future.add_done_callback(lambda f: self._on_dispatch_done(f, started))

        with self._lock:
            if self._closed:
                raise RuntimeError("Dispatcher is shut down")
            self._frames_submitted += 1
            self._in_flight += 1
            overflow = None
            if len(self._pending) >= self.max_pending:
                overflow = self._pending.popleft()
                self._backlog_dropped += 1
                dropped_total = self._backlog_dropped
            self._pending.append((frame, quality, future))
            start_worker = self._workers < self.max_workers
            if start_worker:
                self._workers += 1

        if start_worker:
            self._executor.submit(self._drain)
        if overflow is not None:
            stale = overflow[2]
            if stale.set_running_or_notify_cancel():
                stale.set_result(None)
            self.events.status(f"Devices falling behind, dropped oldest pending frame "
                               f"({dropped_total} dropped)", logging.WARNING)
        return future

    def _drain(self) -> None:
        """Worker body: dispatch backlog frames until none are left."""
        while True:
            with self._lock:
                if not self._pending:
                    self._workers -= 1
                    return
                frame, quality, future = self._pending.popleft()

            if not future.set_running_or_notify_cancel():
                continue
            try:
                future.set_result(self._encode_and_send(frame, quality))
            except Exception as e:
                future.set_exception(e)

    def _encode_and_send(self, frame: Frame, quality: Optional[int]) -> Optional[DispatchResult]:
        encoded = self.encoder.encode(frame, quality)
        if not encoded.ok:
            with self._lock:
                self._frames_dropped += 1
            self.events.status(f"Frame dropped, encode failed: {encoded.error}", logging.WARNING)
            return None

        self.events.publish(FRAME_ENCODED, encoded)
        return self.send_encoded(encoded.data, encoded.quality)

    def send_encoded(self, data: bytes, quality: Optional[int] = None) -> DispatchResult:
        """
        Send already-encoded JPEG bytes to all devices (synchronous).

        quality is only reported in the result; None reports the encoder's
        current default.
        """
        if quality is None:
            quality = self.encoder.quality
        transfer_id = self.session.next_id()
        results = self.transport.send(data, transfer_id)
        succeeded = sum(1 for ok in results.values() if ok)

        result = DispatchResult(
            transfer_id=transfer_id,
            size=len(data),
            succeeded=succeeded,
            total=len(results),
            quality=quality,
            results=results,
        )

        if result.ok:
            with self._lock:
                self._frames_sent += 1
                frame_number = self._frames_sent
            if result.failed_devices:
                logger.warning(f"Frame #{frame_number} not acknowledged by: "
                               f"{', '.join(result.failed_devices)}")
            self.events.publish(FRAME_SENT, result)
            self.events.status(
                f"Frame #{frame_number} sent to {succeeded}/{result.total} devices "
                f"(ID: {transfer_id}, Size: {len(data):,} bytes)", logging.DEBUG)
        else:
            with self._lock:
                self._frames_failed += 1
            self.events.status("Failed to send frame to any devices", logging.WARNING)

        return result

    def _on_dispatch_done(self, future: Future, started: float) -> None:
        with self._lock:
            self._in_flight -= 1
        if self.profiler is not None:
            self.profiler.record_dispatch(time.perf_counter() - started)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            with self._lock:
                self._frames_failed += 1
            logger.error(f"Background dispatch failed: {error}")
            self.events.status(f"Frame dispatch error: {error}", logging.ERROR)

    # --- Keep-alive ---

    def keep_alive(self, timestamp: Optional[int] = None) -> Dict[str, bool]:
        """Ping every device with a unix timestamp (synchronous)."""
        if timestamp is None:
            timestamp = int(time.time())
        results = self.transport.keep_alive(timestamp)
        succeeded = sum(1 for ok in results.values() if ok)
        with self._lock:
            self._keep_alives_sent += 1
        logger.debug(f"Keep-alive {timestamp} acknowledged by {succeeded}/{len(results)} devices")
        return results

    def submit_keep_alive(self, timestamp: Optional[int] = None) -> Future:
        """Send keep-alive in the background; a still-pending one is reused."""
        with self._lock:
            pending = self._keep_alive_future
            if pending is not None and not pending.done():
                return pending
            future = self._executor.submit(self.keep_alive, timestamp)
            self._keep_alive_future = future
        future.add_done_callback(self._on_keep_alive_done)
        return future

    def _on_keep_alive_done(self, future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self.events.status(f"Keep-alive error: {error}", logging.ERROR)

    # --- Lifecycle ---

    def stats(self) -> dict:
        with self._lock:
            return {
                'frames_submitted': self._frames_submitted,
                'frames_sent': self._frames_sent,
                'frames_failed': self._frames_failed,
                'frames_dropped': self._frames_dropped,
                'backlog_dropped': self._backlog_dropped,
                'pending': len(self._pending),
                'keep_alives_sent': self._keep_alives_sent,
                'in_flight': self._in_flight,
                'real_time': self._real_time_enabled,
                'next_transfer_id': self.session.current,
            }

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; queued frames are still sent when wait is True."""
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)
