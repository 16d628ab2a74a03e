"""
Device transport: fan-out of requests to every connected display device.

A DeviceTarget is one physical (or virtual) display. The Transport sends
each request to all targets concurrently and reports per-device success;
an exception from one device counts as a failure for that device only.
"""

import os
import threading
import logging
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Deque, Dict, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class DeviceTarget(Protocol):
    """One display device reachable through the transport."""

    device_id: str

    def send_frame(self, data: bytes, transfer_id: int) -> bool:
        """Deliver one JPEG frame tagged with a transfer id. True on acknowledge."""
        ...

    def set_real_time_mode(self, enable: bool) -> bool:
        """Switch the device's live-stream mode. True on acknowledge."""
        ...

    def keep_alive(self, timestamp: int) -> bool:
        """Ping the device with a unix timestamp. True on acknowledge."""
        ...


class Transport:
    """
    Concurrent fan-out over a set of DeviceTargets.

    Args:
        targets: Initial targets
        max_workers: Threads used to talk to devices in parallel
    """

    def __init__(self, targets: Optional[List[DeviceTarget]] = None, max_workers: int = 4):
        self._lock = threading.Lock()
        self._targets: Dict[str, DeviceTarget] = {}
        self._executor = ThreadPoolExecutor(max_workers=max(1, max_workers),
                                            thread_name_prefix="device-io")
        for target in targets or []:
            self.add_target(target)

    # --- Target management ---

    def add_target(self, target: DeviceTarget) -> None:
        """Add or replace a target (keyed by device_id)."""
        with self._lock:
            self._targets[target.device_id] = target
        logger.info(f"Device target connected: {target.device_id}")

    def remove_target(self, device_id: str) -> bool:
        with self._lock:
            removed = self._targets.pop(device_id, None) is not None
        if removed:
            logger.info(f"Device target disconnected: {device_id}")
        return removed

    def list_targets(self) -> List[str]:
        with self._lock:
            return list(self._targets.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._targets)

    # --- Fan-out ---

    def _fan_out(self, operation: str,
                 call: Callable[[DeviceTarget], bool]) -> Dict[str, bool]:
        """Run `call` against every target concurrently; exceptions become False."""
        with self._lock:
            targets = list(self._targets.values())
        if not targets:
            return {}

        futures = [(t.device_id, self._executor.submit(call, t)) for t in targets]
        results: Dict[str, bool] = {}
        for device_id, future in futures:
            try:
                results[device_id] = bool(future.result())
            except Exception as e:
                logger.warning(f"{operation} failed on device {device_id}: {e}")
                results[device_id] = False
        return results

    def send(self, data: bytes, transfer_id: int) -> Dict[str, bool]:
        """Send a frame to all targets."""
        return self._fan_out("send_frame", lambda t: t.send_frame(data, transfer_id))

    def set_real_time_mode(self, enable: bool) -> Dict[str, bool]:
        """Request real-time mode on all targets."""
        return self._fan_out("set_real_time_mode", lambda t: t.set_real_time_mode(enable))

    def keep_alive(self, timestamp: int) -> Dict[str, bool]:
        """Send keep-alive to all targets."""
        return self._fan_out("keep_alive", lambda t: t.keep_alive(timestamp))

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


class MemoryTarget:
    """
    In-process device that keeps the most recent frames.

    Useful as a loopback preview and for tests.

    Args:
        device_id: Identifier reported to the transport
        history: Number of frames kept
    """

    def __init__(self, device_id: str = "memory", history: int = 8):
        self.device_id = device_id
        self._lock = threading.Lock()
        self.frames: Deque[Tuple[int, bytes]] = deque(maxlen=max(1, history))
        self.real_time = False
        self.last_keep_alive: Optional[int] = None
        self.frames_received = 0

    def send_frame(self, data: bytes, transfer_id: int) -> bool:
        with self._lock:
            self.frames.append((transfer_id, bytes(data)))
            self.frames_received += 1
        return True

    def set_real_time_mode(self, enable: bool) -> bool:
        self.real_time = bool(enable)
        return True

    def keep_alive(self, timestamp: int) -> bool:
        self.last_keep_alive = timestamp
        return True

    @property
    def last_frame(self) -> Optional[Tuple[int, bytes]]:
        with self._lock:
            return self.frames[-1] if self.frames else None


class DirectoryTarget:
    """
    Device that writes each received JPEG into a directory.

    Files are named by transfer id (frame_01.jpg ... frame_59.jpg), so the
    directory holds at most 59 frames and always the newest per slot.
    """

    def __init__(self, directory: str, device_id: Optional[str] = None):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.device_id = device_id or f"dir:{self.directory}"
        self.real_time = False
        self.frames_written = 0

    def send_frame(self, data: bytes, transfer_id: int) -> bool:
        path = self.directory / f"frame_{transfer_id:02d}.jpg"
        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, 'wb') as f:
            f.write(data)
        os.replace(tmp_path, path)
        self.frames_written += 1
        return True

    def set_real_time_mode(self, enable: bool) -> bool:
        self.real_time = bool(enable)
        logger.debug(f"{self.device_id}: real-time mode {'on' if enable else 'off'}")
        return True

    def keep_alive(self, timestamp: int) -> bool:
        (self.directory / "keepalive").write_text(str(timestamp))
        return True
