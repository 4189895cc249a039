"""Protocol engine: bytes in, device events out.

One engine instance belongs to exactly one connection. It owns the frame
buffer, validation state and button edge state; a new connection gets a new
engine, so nothing leaks from a previous device.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional, Union

from ..config import EngineConfig
from ..models import (
    DataReceived,
    DeviceEvent,
    LayoutConfig,
    ProtocolValidated,
)
from .demux import FieldDemultiplexer
from .framer import LineFramer
from .validator import ProtocolValidator

logger = logging.getLogger(__name__)


class ProtocolEngine:
    """Frames, validates and demultiplexes the byte stream of one port.

    Not thread-safe by itself: SerialConnection only calls feed() from inside
    its drain guard. `last_data_time` is a plain float that the scheduler
    thread reads for staleness checks.
    """

    def __init__(self,
                 port: str,
                 config: Optional[EngineConfig] = None,
                 layout: Optional[LayoutConfig] = None,
                 clock: Callable[[], float] = time.monotonic):
        """Initialize engine for a freshly opened port.

        Args:
            port: Port name, reported in ProtocolValidated
            config: Engine tunables (defaults if None)
            layout: Slider/button layout requested by the consumer
            clock: Monotonic time source in seconds
        """
        self._port = port
        self._config = config or EngineConfig()
        self._clock = clock

        self._framer = LineFramer(
            max_line_length=self._config.max_line_length,
            max_buffer_size=self._config.max_buffer_size,
        )
        self._validator = ProtocolValidator(
            window=self._config.validation_window,
            inspected_fields=self._config.validation_fields,
        )
        self._demux = FieldDemultiplexer(layout)

        now = self._clock()
        self._validator.start(now)
        self.connected_at = now
        self.last_data_time = now
        self.fully_initialized = False
        self._closed = False

    def feed(self, chunk: Union[bytes, str]) -> List[DeviceEvent]:
        """Process one chunk from the port.

        Returns:
            Events in the order the lines were received
        """
        if self._closed:
            return []

        lines = self._framer.feed(chunk)
        if not lines:
            return []

        self.last_data_time = self._clock()
        if not self.fully_initialized:
            self.fully_initialized = True
            logger.info(f"Port {self._port} fully initialized and receiving data")

        events: List[DeviceEvent] = []
        for line in lines:
            events.extend(self._process_line(line))
        return events

    def _process_line(self, line: str) -> List[DeviceEvent]:
        events: List[DeviceEvent] = []

        if not self._validator.is_validated:
            if not self._validator.accept(line):
                return events
            logger.info(f"Protocol validated on {self._port}")
            events.append(ProtocolValidated(port=self._port))

        slider_line, button_events = self._demux.process(line)
        if slider_line:
            events.append(DataReceived(slider_line=slider_line))
        events.extend(button_events)
        return events

    def configure_layout(self, layout: LayoutConfig) -> None:
        self._demux.configure(layout)

    def validation_expired(self, now: float) -> bool:
        return self._validator.expired(now)

    def close(self) -> None:
        """Discard any partial line; later feeds are ignored."""
        self._closed = True
        self._framer.reset()

    @property
    def port(self) -> str:
        return self._port

    @property
    def is_validated(self) -> bool:
        return self._validator.is_validated

    @property
    def layout(self) -> LayoutConfig:
        return self._demux.layout

    @property
    def button_states(self):
        return self._demux.button_states

    @property
    def framer(self) -> LineFramer:
        return self._framer
