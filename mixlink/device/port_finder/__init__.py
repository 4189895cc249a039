from .core import (
    PortInfo,
    available_port_names,
    find_first_port,
    find_ports,
    is_matching_port,
    is_port_available,
    list_serial_ports,
)
from .errors import PortNotFoundError

__all__ = [
    "PortInfo",
    "available_port_names",
    "find_first_port",
    "find_ports",
    "is_matching_port",
    "is_port_available",
    "list_serial_ports",
    "PortNotFoundError",
]
