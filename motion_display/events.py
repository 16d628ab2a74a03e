"""
Push-based notifications for the motion display pipeline.

Subscribers register a callback per event name. Callbacks run on the
publishing thread: frame_ready/status from the tick thread, frame_sent from
a dispatch worker. Within one tick, events arrive in the order they were
published; nothing is guaranteed across the background dispatch path.
"""

import threading
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

# Event names
FRAME_READY = "frame_ready"              # payload: Frame
FRAME_ENCODED = "frame_encoded"          # payload: EncodeResult
FRAME_SENT = "frame_sent"                # payload: DispatchResult
STATUS = "status"                        # payload: str
RENDER_ERROR = "render_error"            # payload: Exception
SELECTION_CHANGED = "selection_changed"  # payload: Optional[str] element id
REAL_TIME_MODE_CHANGED = "real_time_mode_changed"  # payload: bool

EVENT_NAMES = (
    FRAME_READY,
    FRAME_ENCODED,
    FRAME_SENT,
    STATUS,
    RENDER_ERROR,
    SELECTION_CHANGED,
    REAL_TIME_MODE_CHANGED,
)


@dataclass(frozen=True)
class Subscription:
    """Handle returned by subscribe(); pass it to unsubscribe()."""
    event: str
    callback: Callable[[Any], None]


class EventBus:
    """
    Thread-safe publish/subscribe hub.

    A failing subscriber is logged and skipped; it never breaks the
    publisher or the other subscribers.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List[Callable[[Any], None]]] = {}

    def subscribe(self, event: str, callback: Callable[[Any], None]) -> Subscription:
        """Register a callback for an event name."""
        if event not in EVENT_NAMES:
            raise ValueError(f"Unknown event '{event}'. Known events: {', '.join(EVENT_NAMES)}")
        with self._lock:
            self._subscribers.setdefault(event, []).append(callback)
        return Subscription(event, callback)

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Remove a subscription. Returns False if it was not registered."""
        with self._lock:
            callbacks = self._subscribers.get(subscription.event, [])
            if subscription.callback in callbacks:
                callbacks.remove(subscription.callback)
                return True
            return False

    def subscriber_count(self, event: Optional[str] = None) -> int:
        """Number of callbacks for one event, or for all events."""
        with self._lock:
            if event is not None:
                return len(self._subscribers.get(event, []))
            return sum(len(cbs) for cbs in self._subscribers.values())

    def has_subscribers(self, event: str) -> bool:
        return self.subscriber_count(event) > 0

    def publish(self, event: str, payload: Any = None) -> None:
        """Deliver payload to every subscriber of event, in subscription order."""
        with self._lock:
            callbacks = list(self._subscribers.get(event, ()))

        for callback in callbacks:
            try:
                callback(payload)
            except Exception:
                logger.exception(f"Subscriber for '{event}' raised")

    def status(self, message: str, level: int = logging.INFO) -> None:
        """Publish a status message and mirror it to the log."""
        logger.log(level, message)
        self.publish(STATUS, message)
