"""Device transport and frame dispatch."""

from motion_display.devices.transport import (
    DeviceTarget,
    DirectoryTarget,
    MemoryTarget,
    Transport,
)
from motion_display.devices.dispatcher import (
    DeviceDispatcher,
    DispatchResult,
    TransferSession,
)

__all__ = [
    "DeviceTarget",
    "DirectoryTarget",
    "MemoryTarget",
    "Transport",
    "DeviceDispatcher",
    "DispatchResult",
    "TransferSession",
]
