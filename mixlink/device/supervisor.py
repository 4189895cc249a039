"""Automatic reconnection after involuntary disconnects.

The supervisor is driven by the scheduler tick rather than owning a thread:
each tick it decides whether an attempt is due and which port to try.
Attempt n (1-based) comes min(step * n, max) after the previous one, or
after arming, for the first `initial_attempts` attempts. Later attempts are
`periodic_retry_interval` apart.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Optional

from ..config import EngineConfig
from ..models import DisconnectReason
from ..protocol import EndpointBlacklist
from .port_finder import available_port_names

logger = logging.getLogger(__name__)


class ReconnectionSupervisor:
    """Restores connectivity unless the user disconnected on purpose.

    Port preference: user-selected port, last connected port, saved port,
    then the first available port. Blacklisted ports are never tried
    automatically.
    """

    def __init__(self,
                 connector: Callable[[str, int], bool],
                 is_connected: Callable[[], bool],
                 blacklist: EndpointBlacklist,
                 config: Optional[EngineConfig] = None,
                 list_ports: Callable[[], List[str]] = available_port_names,
                 clock: Callable[[], float] = time.monotonic):
        """Initialize supervisor.

        Args:
            connector: Opens a port, returns True on success
            is_connected: Reports whether a port is currently open
            blacklist: Ports excluded after failing validation
            config: Delay and attempt tunables
            list_ports: Returns names of currently available ports
            clock: Monotonic time source in seconds
        """
        self._connector = connector
        self._is_connected = is_connected
        self._blacklist = blacklist
        self._config = config or EngineConfig()
        self._list_ports = list_ports
        self._clock = clock

        self._lock = threading.RLock()
        self._manual_disconnect = False
        self._armed = False
        self._attempts = 0
        self._next_attempt_at: Optional[float] = None

        self._saved_port: Optional[str] = None
        self._user_selected_port: Optional[str] = None
        self._last_connected_port: Optional[str] = None

    # Event hooks

    def on_connected(self, port: str) -> None:
        with self._lock:
            self._last_connected_port = port

    def on_validated(self) -> None:
        """A validated connection cancels every pending retry."""
        with self._lock:
            if self._armed:
                logger.info(f"Connection validated after {self._attempts} attempt(s), "
                            f"stopping reconnection")
            self._user_selected_port = None
            self._disarm()

    def on_disconnected(self, reason: DisconnectReason) -> None:
        with self._lock:
            if reason == DisconnectReason.MANUAL:
                self._manual_disconnect = True
                self._disarm()
                return
            if self._manual_disconnect:
                return
            self._arm(self._clock())

    # Consumer requests

    def manual_disconnect(self) -> None:
        with self._lock:
            self._manual_disconnect = True
            self._disarm()

    def set_user_selected_port(self, port: str) -> None:
        """Explicit user choice overrides the manual flag and the blacklist."""
        with self._lock:
            self._user_selected_port = port
            if self._manual_disconnect:
                logger.info("User selected a port after manual disconnect, "
                            "clearing manual disconnect flag")
            self._manual_disconnect = False
        self._blacklist.remove(port)
        logger.info(f"User selected port: {port}")

    def prepare_user_connect(self, port: str) -> None:
        """Called before a user-initiated connect: stop retrying and trust the port."""
        self.set_user_selected_port(port)
        with self._lock:
            self._disarm()

    def try_connect_to_saved(self, port: Optional[str]) -> bool:
        """Connect to the saved (or user-selected) port now.

        Starts the retry schedule when the attempt fails.

        Returns:
            True if connected
        """
        with self._lock:
            if self._is_connected():
                return True
            if port:
                self._saved_port = port
            self._manual_disconnect = False
            target = self._user_selected_port or self._saved_port

        if not target:
            logger.info("No saved port to connect to")
            connected = False
        else:
            connected = self._attempt(target, self._clock())

        if not connected:
            with self._lock:
                self._arm(self._clock())
        return connected

    def clear_invalid_ports(self) -> None:
        self._blacklist.clear()
        logger.info("Cleared blacklisted ports")

    # Tick

    def tick(self, now: Optional[float] = None) -> bool:
        """Run one reconnection attempt if one is due.

        Returns:
            True if this tick established a connection
        """
        now = self._clock() if now is None else now

        with self._lock:
            if not self._armed or self._manual_disconnect:
                return False
            if self._is_connected():
                return False
            if self._next_attempt_at is not None and now < self._next_attempt_at:
                return False

            self._attempts += 1
            attempt = self._attempts
            self._next_attempt_at = now + self._delay_after(attempt)

        port = self._choose_port(now)
        if port is None:
            logger.info("No usable serial ports available, waiting for device")
            return False

        logger.info(f"Reconnection attempt {attempt} on {port}")
        return self._attempt(port, now)

    # Internal methods

    def _attempt(self, port: str, now: float) -> bool:
        if self._blacklist.is_blacklisted(port, now):
            logger.info(f"Skipping blacklisted port {port}")
            return False
        if not self._connector(port, self._config.baudrate):
            return False
        with self._lock:
            self._user_selected_port = None
        return True

    def _choose_port(self, now: float) -> Optional[str]:
        available = self._list_ports()
        if not available:
            return None

        with self._lock:
            preferred = [self._user_selected_port, self._last_connected_port, self._saved_port]

        for port in preferred:
            if port and port in available and not self._blacklist.is_blacklisted(port, now):
                return port

        for port in available:
            if not self._blacklist.is_blacklisted(port, now):
                return port
        return None

    def _delay_after(self, attempt: int) -> float:
        if attempt < self._config.initial_attempts:
            return min(self._config.reconnect_delay_step * (attempt + 1),
                       self._config.max_reconnect_delay)
        return self._config.periodic_retry_interval

    def _arm(self, now: float) -> None:
        if self._armed:
            return
        self._armed = True
        self._attempts = 0
        self._next_attempt_at = now + min(self._config.reconnect_delay_step,
                                          self._config.max_reconnect_delay)
        logger.info("Automatic reconnection armed")

    def _disarm(self) -> None:
        self._armed = False
        self._attempts = 0
        self._next_attempt_at = None

    # Introspection

    @property
    def is_armed(self) -> bool:
        return self._armed

    @property
    def manual_disconnect_requested(self) -> bool:
        return self._manual_disconnect

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def next_attempt_at(self) -> Optional[float]:
        return self._next_attempt_at

    @property
    def saved_port(self) -> Optional[str]:
        return self._saved_port
