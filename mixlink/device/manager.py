"""Slider device abstraction layer.

Wires the serial connection, reconnection supervisor and the periodic
scheduler together behind the interface the application uses.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Optional

from ..config import EngineConfig
from ..models import (
    Connected,
    ConnectionState,
    DeviceEvent,
    Disconnected,
    LayoutConfig,
    ProtocolValidated,
)
from ..protocol import EndpointBlacklist
from .connection import SerialConnection
from .port_finder import available_port_names
from .supervisor import ReconnectionSupervisor

logger = logging.getLogger(__name__)


class SliderDevice:
    """High-level interface to a slider/button controller.

    This class acts as a facade, managing:
    1. The physical connection and decoding (SerialConnection)
    2. Automatic reconnection (ReconnectionSupervisor)
    3. A scheduler thread running watchdog and reconnect checks

    Events are pushed to subscribers (see subscribe()); the application is
    responsible for moving them onto its own thread if needed.
    """

    def __init__(self,
                 config: Optional[EngineConfig] = None,
                 clock: Callable[[], float] = time.monotonic,
                 list_ports: Callable[[], List[str]] = available_port_names):
        """Initialize SliderDevice.

        Args:
            config: Engine tunables (defaults if None)
            clock: Monotonic time source in seconds
            list_ports: Returns names of currently available ports
        """
        self._config = config or EngineConfig()
        self._clock = clock

        # Components
        self._blacklist = EndpointBlacklist(self._config.blacklist_interval)
        self._connection = SerialConnection(
            config=self._config,
            clock=clock,
            blacklist=self._blacklist,
        )
        self._supervisor = ReconnectionSupervisor(
            connector=self._connection.connect,
            is_connected=self._connection.is_connected,
            blacklist=self._blacklist,
            config=self._config,
            list_ports=list_ports,
            clock=clock,
        )

        # Supervisor sees every event before application subscribers
        self._connection.subscribe(self._on_event)

        # Scheduler
        self._scheduler_thread: Optional[threading.Thread] = None
        self._stop_scheduler = threading.Event()

    def _on_event(self, event: DeviceEvent) -> None:
        if isinstance(event, ProtocolValidated):
            self._supervisor.on_validated()
        elif isinstance(event, Connected):
            self._supervisor.on_connected(event.port)
        elif isinstance(event, Disconnected):
            self._supervisor.on_disconnected(event.reason)

    # --- Consumer interface ---

    def connect(self, port: str, baudrate: Optional[int] = None) -> bool:
        """Connect to a port chosen by the user.

        Clears the manual-disconnect flag and the port's blacklist entry.
        """
        if self._connection.is_connected() and self._connection.current_port != port:
            self._connection.manual_disconnect()
        self._supervisor.prepare_user_connect(port)
        return self._connection.connect(port, baudrate)

    def manual_disconnect(self) -> None:
        """Disconnect and stay disconnected until the user acts again."""
        self._supervisor.manual_disconnect()
        self._connection.manual_disconnect()

    def set_user_selected_port(self, port: str) -> None:
        self._supervisor.set_user_selected_port(port)

    def configure_layout(self, slider_count: int, button_count: int) -> None:
        """Set how many slider and button fields each line carries."""
        layout = LayoutConfig(slider_count=slider_count, button_count=button_count)
        self._connection.configure_layout(layout)
        logger.info(f"Layout set to {slider_count} sliders, {button_count} buttons")

    def try_connect_to_saved(self, port: Optional[str]) -> bool:
        """Connect to the port remembered by the settings layer.

        Failure starts automatic reconnection.
        """
        return self._supervisor.try_connect_to_saved(port)

    def check_connection(self) -> None:
        """One scheduler tick: validation/liveness checks, then reconnection."""
        now = self._clock()
        self._connection.check(now)
        self._supervisor.tick(now)

    def clear_invalid_ports(self) -> None:
        self._supervisor.clear_invalid_ports()

    def write(self, data: bytes) -> bool:
        return self._connection.write(data)

    def subscribe(self, callback: Callable[[DeviceEvent], None]) -> Callable[[], None]:
        """Subscribe to device events.

        Returns:
            Unsubscribe function
        """
        return self._connection.subscribe(callback)

    # --- Scheduler ---

    def start(self, interval: Optional[float] = None) -> None:
        """Start the periodic check thread."""
        if self._scheduler_thread and self._scheduler_thread.is_alive():
            return

        interval = interval or self._config.tick_interval
        self._stop_scheduler.clear()
        self._scheduler_thread = threading.Thread(
            target=self._scheduler_loop,
            args=(interval,),
            daemon=True,
            name="SliderScheduler",
        )
        self._scheduler_thread.start()
        logger.debug(f"Scheduler started (interval={interval}s)")

    def stop(self) -> None:
        """Stop the periodic check thread."""
        self._stop_scheduler.set()
        if self._scheduler_thread and self._scheduler_thread.is_alive():
            if self._scheduler_thread is not threading.current_thread():
                self._scheduler_thread.join(timeout=2.0)
        self._scheduler_thread = None
        logger.debug("Scheduler stopped")

    def _scheduler_loop(self, interval: float) -> None:
        while not self._stop_scheduler.wait(interval):
            try:
                self.check_connection()
            except Exception as e:
                logger.error(f"Error in scheduler tick: {e}")

    def close(self) -> None:
        """Stop everything and release the port."""
        self.stop()
        self._supervisor.manual_disconnect()
        self._connection.manual_disconnect()

    def __enter__(self) -> SliderDevice:
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # --- Status ---

    @property
    def is_connected(self) -> bool:
        return self._connection.is_connected()

    @property
    def is_validated(self) -> bool:
        return self._connection.is_validated

    @property
    def is_reconnecting(self) -> bool:
        return self._supervisor.is_armed

    @property
    def state(self) -> ConnectionState:
        return self._connection.state

    @property
    def current_port(self) -> Optional[str]:
        return self._connection.current_port

    @property
    def last_connected_port(self) -> Optional[str]:
        return self._connection.last_connected_port

    @property
    def blacklisted_ports(self) -> List[str]:
        return self._blacklist.ports(self._clock())
