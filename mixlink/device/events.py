"""Subscriber registry for device events."""
from __future__ import annotations

import logging
import threading
from typing import Callable, List

from ..models import DeviceEvent

logger = logging.getLogger(__name__)

EventCallback = Callable[[DeviceEvent], None]


class EventDispatcher:
    """Delivers events to every subscriber on the emitting thread.

    Subscribers that need a specific thread (e.g. a UI loop) marshal the
    event themselves. A failing subscriber is logged and skipped.
    """

    def __init__(self):
        self._callbacks: List[EventCallback] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        """Subscribe to events.

        Args:
            callback: Function called with each DeviceEvent

        Returns:
            Unsubscribe function (call to remove subscription)
        """
        with self._lock:
            self._callbacks.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return unsubscribe

    def emit(self, event: DeviceEvent) -> None:
        with self._lock:
            callbacks = list(self._callbacks)

        for callback in callbacks:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Error in event callback for {type(event).__name__}: {e}")

    def emit_all(self, events: List[DeviceEvent]) -> None:
        for event in events:
            self.emit(event)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._callbacks)
