"""Immutable data models for the slider/button controller protocol.

All models are frozen dataclasses so they can be handed to subscribers on any
thread. These models are the contract between the protocol engine, the
serial connection and the consuming application.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

# Wire-level constants
FIELD_DELIMITER = "|"
MUTE_SENTINEL = 9999
BUTTON_RELEASED = 10000
BUTTON_PRESSED = 10001


class FieldKind(Enum):
    """Classification of a single `|`-separated field."""
    ANALOG = "analog"
    MUTE = "mute"
    BUTTON_RELEASED = "button_released"
    BUTTON_PRESSED = "button_pressed"
    INVALID = "invalid"


SENTINEL_KINDS = frozenset({
    FieldKind.MUTE,
    FieldKind.BUTTON_RELEASED,
    FieldKind.BUTTON_PRESSED,
})


@dataclass(frozen=True)
class Field:
    """One classified field from a device line.

    Attributes:
        text: Trimmed token as received
        kind: ANALOG, one of the sentinel kinds, or INVALID
        value: Parsed numeric value (None if INVALID)
        is_decimal: Whether the token was written with a decimal point
    """
    text: str
    kind: FieldKind
    value: Optional[float] = None
    is_decimal: bool = False

    @property
    def is_sentinel(self) -> bool:
        return self.kind in SENTINEL_KINDS


@dataclass(frozen=True)
class LayoutConfig:
    """Number of slider and button fields the device sends per line.

    Attributes:
        slider_count: Leading fields carrying analog levels
        button_count: Trailing fields carrying button sentinels
    """
    slider_count: int = 0
    button_count: int = 0

    def __post_init__(self):
        if self.slider_count < 0 or self.button_count < 0:
            raise ValueError(
                f"Layout counts must be >= 0 "
                f"(sliders={self.slider_count}, buttons={self.button_count})"
            )


class DisconnectReason(Enum):
    """Why a connection was closed."""
    MANUAL = "manual"
    IO_ERROR = "io_error"
    PORT_CLOSED = "port_closed"
    WATCHDOG = "watchdog"
    VALIDATION_TIMEOUT = "validation_timeout"


# Events delivered to subscribers

@dataclass(frozen=True)
class Connected:
    """Serial port opened."""
    port: str


@dataclass(frozen=True)
class Disconnected:
    """Link lost or closed."""
    port: str
    reason: DisconnectReason


@dataclass(frozen=True)
class ProtocolValidated:
    """First line matching the expected protocol was observed."""
    port: str


@dataclass(frozen=True)
class ValidationFailed:
    """No acceptable line arrived within the validation window."""
    port: str


@dataclass(frozen=True)
class DataReceived:
    """Slider sub-line ready for interpretation (e.g. "512|768|400")."""
    slider_line: str


@dataclass(frozen=True)
class ButtonStateChanged:
    """A button went from released to pressed."""
    index: int
    is_pressed: bool = True


DeviceEvent = Union[
    Connected,
    Disconnected,
    ProtocolValidated,
    ValidationFailed,
    DataReceived,
    ButtonStateChanged,
]


@dataclass(frozen=True)
class ConnectionState:
    """Snapshot of the serial connection lifecycle flags.

    Attributes:
        port: Port name of the current (or last) connection
        baudrate: Baud rate the port was opened with
        is_open: Port is open and not flagged as disconnected
        fully_initialized: At least one line was framed on this connection
        protocol_validated: The device was recognised as speaking the protocol
        manual_disconnect: The user disconnected; no automatic reconnection
    """
    port: Optional[str] = None
    baudrate: int = 0
    is_open: bool = False
    fully_initialized: bool = False
    protocol_validated: bool = False
    manual_disconnect: bool = False


@dataclass(frozen=True)
class SliderReading:
    """Normalized level of one slider channel.

    Attributes:
        index: Channel index within the slider sub-line
        level: Normalized level 0.0 (bottom) to 1.0 (top)
        muted: Device sent the inline mute sentinel for this channel
    """
    index: int
    level: float = 0.0
    muted: bool = False
