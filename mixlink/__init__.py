"""mixlink - serial protocol engine for slider/button mixer controllers."""

from .config import EngineConfig
from .models import (
    FIELD_DELIMITER,
    MUTE_SENTINEL,
    BUTTON_RELEASED,
    BUTTON_PRESSED,
    FieldKind,
    Field,
    LayoutConfig,
    DisconnectReason,
    Connected,
    Disconnected,
    ProtocolValidated,
    ValidationFailed,
    DataReceived,
    ButtonStateChanged,
    DeviceEvent,
    ConnectionState,
    SliderReading,
)
from .protocol import parse_slider_levels
from .device import SliderDevice

__all__ = [
    "EngineConfig",
    "FIELD_DELIMITER",
    "MUTE_SENTINEL",
    "BUTTON_RELEASED",
    "BUTTON_PRESSED",
    "FieldKind",
    "Field",
    "LayoutConfig",
    "DisconnectReason",
    "Connected",
    "Disconnected",
    "ProtocolValidated",
    "ValidationFailed",
    "DataReceived",
    "ButtonStateChanged",
    "DeviceEvent",
    "ConnectionState",
    "SliderReading",
    "parse_slider_levels",
    "SliderDevice",
]
