"""Tunables for the protocol engine, watchdog and reconnection supervisor."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 9600
DEFAULT_IO_TIMEOUT = 1.0  # seconds
MAX_FRAME_BUFFER_SIZE = 4096  # characters
MAX_LINE_LENGTH = 200  # characters


@dataclass
class EngineConfig:
    """Configuration for one SliderDevice.

    Serial:
        baudrate, read_timeout, write_timeout, chunk_size
    Framing:
        max_buffer_size: Upper bound of the undelimited remainder
        max_line_length: Lines this long or longer are discarded
    Validation:
        validation_window: Seconds a new connection has to send a plausible line
        validation_fields: Leading fields inspected per line
        blacklist_interval: Seconds a port stays excluded after failing validation
    Watchdog:
        quiet_threshold: Seconds of silence counted as one quiet interval
        expect_data_after: Seconds after connect before silence is monitored
        max_quiet_intervals: Quiet intervals before declaring the link dead
        probe_enabled / probe_bytes: Write issued on each quiet interval
    Reconnection:
        initial_attempts: Attempts using the increasing delay
        reconnect_delay_step: Delay increment per attempt
        max_reconnect_delay: Cap of the increasing delay
        periodic_retry_interval: Delay once initial attempts are used up
        tick_interval: Scheduler period for watchdog/reconnect checks
    """
    baudrate: int = DEFAULT_BAUDRATE
    read_timeout: float = DEFAULT_IO_TIMEOUT
    write_timeout: float = DEFAULT_IO_TIMEOUT
    chunk_size: int = 4096

    max_buffer_size: int = MAX_FRAME_BUFFER_SIZE
    max_line_length: int = MAX_LINE_LENGTH

    validation_window: float = 5.0
    validation_fields: int = 3
    blacklist_interval: float = 120.0

    quiet_threshold: float = 5.0
    expect_data_after: float = 10.0
    max_quiet_intervals: int = 3
    probe_enabled: bool = True
    probe_bytes: bytes = b"\n"

    initial_attempts: int = 5
    reconnect_delay_step: float = 2.0
    max_reconnect_delay: float = 10.0
    periodic_retry_interval: float = 10.0
    tick_interval: float = 1.0

    def __post_init__(self):
        positive = (
            "baudrate", "read_timeout", "write_timeout", "chunk_size",
            "max_buffer_size", "max_line_length", "validation_window",
            "validation_fields", "quiet_threshold", "max_quiet_intervals",
            "reconnect_delay_step", "max_reconnect_delay",
            "periodic_retry_interval", "tick_interval",
        )
        for name in positive:
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be > 0, got {value!r}")
        if self.initial_attempts < 0:
            raise ValueError(f"initial_attempts must be >= 0, got {self.initial_attempts!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dict (probe_bytes as latin-1 text)."""
        data = asdict(self)
        data["probe_bytes"] = self.probe_bytes.decode("latin-1")
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EngineConfig:
        """Load from a dict produced by to_dict(). Unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            if key not in known:
                logger.debug(f"Ignoring unknown config key: {key}")
                continue
            kwargs[key] = value
        if isinstance(kwargs.get("probe_bytes"), str):
            kwargs["probe_bytes"] = kwargs["probe_bytes"].encode("latin-1")
        return cls(**kwargs)
