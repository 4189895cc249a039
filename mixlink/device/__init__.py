"""Device layer for serial slider/button controllers.

This module provides:
- Serial connection management and decoding (SerialConnection)
- Liveness monitoring (ConnectionWatchdog)
- Automatic reconnection (ReconnectionSupervisor)
- The application-facing facade (SliderDevice)
- Port discovery utilities (list_serial_ports, find_first_port)
"""

from .events import EventDispatcher
from .connection import SerialConnection
from .watchdog import ConnectionWatchdog, WatchdogAction, WatchdogState
from .supervisor import ReconnectionSupervisor
from .manager import SliderDevice
from .port_finder import (
    PortInfo,
    PortNotFoundError,
    available_port_names,
    find_first_port,
    find_ports,
    is_port_available,
    list_serial_ports,
)

__all__ = [
    # Connection
    'EventDispatcher',
    'SerialConnection',
    'SliderDevice',

    # Supervision
    'ConnectionWatchdog',
    'WatchdogAction',
    'WatchdogState',
    'ReconnectionSupervisor',

    # Finder
    'PortInfo',
    'PortNotFoundError',
    'available_port_names',
    'find_first_port',
    'find_ports',
    'is_port_available',
    'list_serial_ports',
]
