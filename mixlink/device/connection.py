"""Serial connection to a slider/button controller.

The controller is a microcontroller board (typically an Arduino clone) that
streams one ASCII line per sample over a USB serial port. This module
handles:
- Opening/closing the port with bounded read/write timeouts
- A reader thread feeding a guarded drain into the ProtocolEngine
- Liveness and validation checks on the scheduler tick
- Emitting connection lifecycle and data events to subscribers
"""
from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable, Optional

import serial

from ..config import EngineConfig
from ..models import (
    Connected,
    ConnectionState,
    DeviceEvent,
    DisconnectReason,
    Disconnected,
    LayoutConfig,
    ValidationFailed,
)
from ..protocol import EndpointBlacklist, ProtocolEngine
from .events import EventDispatcher
from .port_finder import is_port_available
from .watchdog import ConnectionWatchdog, WatchdogAction

logger = logging.getLogger(__name__)

MAX_PENDING_CHUNKS = 1000


class SerialConnection:
    """One serial port at a time, plus the engine decoding it.

    A fresh ProtocolEngine is built for every successful connect(), so the
    frame buffer, validation flag and button states never outlive the port
    they came from.

    Example:
        >>> conn = SerialConnection()
        >>> unsubscribe = conn.subscribe(print)
        >>> conn.configure_layout(LayoutConfig(slider_count=5, button_count=2))
        >>> conn.connect("/dev/ttyACM0", 9600)
        True
        >>> conn.close(DisconnectReason.MANUAL)
    """

    def __init__(self,
                 config: Optional[EngineConfig] = None,
                 clock: Callable[[], float] = time.monotonic,
                 blacklist: Optional[EndpointBlacklist] = None):
        """Initialize connection.

        Args:
            config: Engine tunables (defaults if None)
            clock: Monotonic time source in seconds
            blacklist: Shared blacklist of ports that failed validation
        """
        self._config = config or EngineConfig()
        self._clock = clock
        self._blacklist = blacklist or EndpointBlacklist(self._config.blacklist_interval)

        # Serial connection
        self._serial: Optional[serial.Serial] = None
        self._port: Optional[str] = None
        self._baudrate = self._config.baudrate
        self._last_connected_port: Optional[str] = None
        self._connected = False
        self._manual_disconnect = False

        # Decoding
        self._engine: Optional[ProtocolEngine] = None
        self._layout = LayoutConfig()
        self._pending_layout: Optional[LayoutConfig] = None
        self._watchdog = ConnectionWatchdog(
            quiet_threshold=self._config.quiet_threshold,
            expect_data_after=self._config.expect_data_after,
            max_quiet_intervals=self._config.max_quiet_intervals,
        )

        # Threading
        self._active = False
        self._reader_thread: Optional[threading.Thread] = None
        self._data_queue: queue.Queue[bytes] = queue.Queue(maxsize=MAX_PENDING_CHUNKS)
        self._reading = threading.Lock()  # held while draining
        self._lifecycle_lock = threading.RLock()
        self._connect_lock = threading.RLock()  # one connect() at a time
        self._layout_lock = threading.Lock()

        self._events = EventDispatcher()

    # Lifecycle

    def connect(self, port: str, baudrate: Optional[int] = None) -> bool:
        """Open a serial port and start decoding it.

        Any open port is closed first (reported as a manual disconnect).

        Returns:
            True if the port was opened, False otherwise
        """
        if not port or not port.strip():
            logger.warning("Invalid port name provided")
            return False

        baudrate = baudrate or self._config.baudrate

        # User and supervisor attempts may race: check, close and open as one step
        with self._connect_lock:
            return self._connect(port, baudrate)

    def _connect(self, port: str, baudrate: int) -> bool:
        if self.is_connected():
            if port == self._port:
                logger.warning(f"Already connected to {port}")
                return True
            self.close(DisconnectReason.MANUAL)

        if not is_port_available(port):
            logger.warning(f"Port {port} not in available ports")
            return False

        with self._lifecycle_lock:
            try:
                ser = serial.Serial(
                    port=port,
                    baudrate=baudrate,
                    timeout=self._config.read_timeout,
                    write_timeout=self._config.write_timeout,
                )
                ser.reset_input_buffer()
            except (serial.SerialException, OSError, ValueError) as e:
                logger.error(f"Failed to open {port}: {e}")
                return False

            self._clear_pending()
            self._serial = ser
            self._port = port
            self._baudrate = baudrate
            self._last_connected_port = port
            self._manual_disconnect = False
            with self._layout_lock:
                self._pending_layout = None

            self._engine = ProtocolEngine(
                port=port,
                config=self._config,
                layout=self._layout,
                clock=self._clock,
            )
            self._watchdog.reset(self._engine.connected_at)

            self._active = True
            self._connected = True

        logger.info(f"Connected to {port} @ {baudrate} baud, waiting for data")
        # Subscribers see Connected before any event decoded from this port
        self._events.emit(Connected(port=port))

        with self._lifecycle_lock:
            if self._serial is ser:
                self._start_reader_thread(ser)
        return True

    def close(self, reason: DisconnectReason) -> bool:
        """Close the port and report why.

        Safe to call repeatedly and from the reader thread; Disconnected is
        emitted once per connection.

        Returns:
            True if an open connection was closed by this call
        """
        with self._lifecycle_lock:
            if reason == DisconnectReason.MANUAL:
                self._manual_disconnect = True
            if not self._connected:
                return False

            self._connected = False
            self._active = False
            port = self._port
            ser, self._serial = self._serial, None
            engine, self._engine = self._engine, None
            reader = self._reader_thread

        if engine is not None:
            engine.close()

        if ser is not None:
            try:
                if ser.is_open:
                    ser.reset_input_buffer()
                    ser.reset_output_buffer()
                ser.close()
            except (serial.SerialException, OSError) as e:
                logger.error(f"Error closing serial port: {e}")

        if reader is not None and reader.is_alive() and reader is not threading.current_thread():
            reader.join(timeout=self._config.read_timeout + 1.0)

        self._clear_pending()

        logger.info(f"Disconnected from {port} ({reason.value})")
        self._events.emit(Disconnected(port=port, reason=reason))
        return True

    def manual_disconnect(self) -> None:
        """User-initiated disconnect. Blocks automatic reconnection."""
        logger.info("User initiated manual disconnect")
        self.close(DisconnectReason.MANUAL)

    def is_connected(self) -> bool:
        """Check if a port is open and not flagged as disconnected."""
        return self._connected and self._serial is not None

    # Periodic checks

    def check(self, now: Optional[float] = None) -> None:
        """Run validation and liveness checks. Called from the scheduler tick."""
        now = self._clock() if now is None else now

        with self._lifecycle_lock:
            if not self._connected:
                return
            ser = self._serial
            engine = self._engine
            port = self._port

        if ser is None or engine is None or not ser.is_open:
            logger.warning("Serial port closed unexpectedly")
            self.close(DisconnectReason.PORT_CLOSED)
            return

        if engine.validation_expired(now):
            logger.warning(f"No valid protocol data from {port} within "
                           f"{self._config.validation_window:.0f}s")
            self._blacklist.add(port, now)
            self._events.emit(ValidationFailed(port=port))
            self.close(DisconnectReason.VALIDATION_TIMEOUT)
            return

        action = self._watchdog.check(now, engine.last_data_time)
        if action == WatchdogAction.PROBE and self._config.probe_enabled:
            self.write(self._config.probe_bytes)
        elif action == WatchdogAction.DISCONNECT:
            self.close(DisconnectReason.WATCHDOG)

    # Data path

    def write(self, data: bytes) -> bool:
        """Send raw bytes to the controller.

        Returns:
            True if sent successfully, False otherwise
        """
        ser = self._serial
        if not self._connected or ser is None:
            logger.warning("Cannot send, not connected")
            return False

        try:
            ser.write(data)
            ser.flush()
            return True
        except (serial.SerialException, OSError) as e:
            logger.error(f"Send error: {e}")
            self._handle_error(e)
            return False

    def on_data(self, chunk: bytes) -> None:
        """Receive a chunk from the port and drain everything pending.

        May be called from any thread. If a drain is already running the
        chunk is queued and picked up by that drain.
        """
        if not chunk:
            return
        try:
            self._data_queue.put(chunk, block=False)
        except queue.Full:
            # Drop oldest to make room
            try:
                self._data_queue.get_nowait()
                self._data_queue.put(chunk, block=False)
                logger.warning("Pending data queue full, dropped oldest chunk")
            except (queue.Empty, queue.Full):
                pass
        self._drain()

    def _drain(self) -> None:
        while True:
            if not self._reading.acquire(blocking=False):
                return
            try:
                self._drain_pending()
            finally:
                self._reading.release()
            # A chunk queued between the last get() and release() needs a new owner
            if self._data_queue.empty():
                return

    def _drain_pending(self) -> None:
        while True:
            try:
                chunk = self._data_queue.get_nowait()
            except queue.Empty:
                return

            engine = self._engine
            if engine is None:
                continue

            with self._layout_lock:
                layout, self._pending_layout = self._pending_layout, None
            if layout is not None:
                engine.configure_layout(layout)

            self._events.emit_all(engine.feed(chunk))

    def _clear_pending(self) -> None:
        while True:
            try:
                self._data_queue.get_nowait()
            except queue.Empty:
                return

    # Configuration and subscriptions

    def configure_layout(self, layout: LayoutConfig) -> None:
        """Set the slider/button layout for this and future connections.

        Applied by the drain before the next chunk, so engine state is only
        ever mutated inside the guarded region.
        """
        with self._layout_lock:
            self._layout = layout
            self._pending_layout = layout

    def subscribe(self, callback: Callable[[DeviceEvent], None]) -> Callable[[], None]:
        """Subscribe to connection and data events.

        Returns:
            Unsubscribe function
        """
        return self._events.subscribe(callback)

    # Introspection

    @property
    def state(self) -> ConnectionState:
        engine = self._engine
        return ConnectionState(
            port=self._port,
            baudrate=self._baudrate,
            is_open=self.is_connected(),
            fully_initialized=engine.fully_initialized if engine else False,
            protocol_validated=engine.is_validated if engine else False,
            manual_disconnect=self._manual_disconnect,
        )

    @property
    def is_validated(self) -> bool:
        engine = self._engine
        return engine.is_validated if engine else False

    @property
    def current_port(self) -> Optional[str]:
        return self._port if self.is_connected() else None

    @property
    def last_connected_port(self) -> Optional[str]:
        return self._last_connected_port

    @property
    def last_data_time(self) -> Optional[float]:
        engine = self._engine
        return engine.last_data_time if engine else None

    @property
    def layout(self) -> LayoutConfig:
        return self._layout

    @property
    def blacklist(self) -> EndpointBlacklist:
        return self._blacklist

    @property
    def watchdog(self) -> ConnectionWatchdog:
        return self._watchdog

    # Internal methods

    def _start_reader_thread(self, ser: serial.Serial) -> None:
        """Start background thread for reading from the port."""
        self._reader_thread = threading.Thread(
            target=self._reader_loop,
            args=(ser,),
            daemon=True,
            name="SliderReader",
        )
        self._reader_thread.start()

    def _reader_loop(self, ser: serial.Serial) -> None:
        """Read bytes as they arrive and hand them to the drain."""
        logger.debug("Reader thread started")

        while self._active and self._serial is ser:
            try:
                # Blocks until at least one byte or the read timeout
                chunk = ser.read(min(ser.in_waiting or 1, self._config.chunk_size))
                if chunk:
                    self.on_data(chunk)
            except (serial.SerialException, OSError) as e:
                if self._active and self._serial is ser:
                    logger.error(f"Serial read error: {e}")
                    self._handle_error(e)
                break
            except Exception as e:
                if self._active and self._serial is ser:
                    logger.error(f"Reader error: {e}")
                    self._handle_error(e)
                break

        logger.debug("Reader thread exiting")

    def _handle_error(self, error: Exception) -> None:
        """Treat any transport error as a lost connection."""
        logger.warning(f"Handling connection error: {error}")
        self.close(DisconnectReason.IO_ERROR)
