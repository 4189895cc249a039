from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from serial.tools import list_ports

from .errors import PortNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PortInfo:
    """
    Representation of one serial port as seen by pyserial.

    Attributes:
        port: Port name to open with pyserial (e.g. 'COM3', '/dev/ttyACM0').
        description: Human readable description from the OS.
        vid: USB Vendor ID (integer) or None if not a USB device.
        pid: USB Product ID (integer) or None if not a USB device.
        manufacturer: USB manufacturer string, if available.
        product: USB product string, if available.
        serial_number: USB serial string, if available.
        hwid: Raw hardware ID string from pyserial (for debugging).
    """
    port: str
    description: Optional[str]
    vid: Optional[int]
    pid: Optional[int]
    manufacturer: Optional[str]
    product: Optional[str]
    serial_number: Optional[str]
    hwid: str

    @property
    def is_usb(self) -> bool:
        return self.vid is not None and self.pid is not None


def _port_to_info(port) -> PortInfo:
    """Convert pyserial's ListPortInfo to PortInfo."""
    return PortInfo(
        port=port.device,
        description=port.description,
        vid=port.vid,
        pid=port.pid,
        manufacturer=port.manufacturer,
        product=port.product,
        serial_number=port.serial_number,
        hwid=port.hwid,
    )


def list_serial_ports() -> List[PortInfo]:
    """
    List every serial port currently known to the OS, sorted by name.

    Enumeration failures are logged and reported as "no ports" so that a
    periodic reconnect tick never raises.
    """
    try:
        ports = list_ports.comports()
    except OSError as e:
        logger.error(f"Failed to enumerate serial ports: {e}")
        return []
    return sorted((_port_to_info(p) for p in ports), key=lambda info: info.port)


def available_port_names() -> List[str]:
    """Names of all currently available ports."""
    return [info.port for info in list_serial_ports()]


def is_port_available(port: Optional[str]) -> bool:
    """Check if a port is physically present, without opening it."""
    if not port:
        return False
    return port in available_port_names()


def is_matching_port(
    info: PortInfo,
    *,
    expected_vid: Optional[int] = None,
    expected_pid: Optional[int] = None,
    description_substring: Optional[str] = None,
) -> bool:
    """
    Decide whether a given PortInfo could be our controller.

    All checks are AND-combined; if a criterion is None, it is ignored.
    """
    if expected_vid is not None and info.vid != expected_vid:
        return False

    if expected_pid is not None and info.pid != expected_pid:
        return False

    if description_substring is not None:
        text = " ".join(filter(None, (info.description, info.product))).lower()
        if description_substring.lower() not in text:
            return False

    return True


def find_ports(
    *,
    matcher: Optional[Callable[[PortInfo], bool]] = None,
    exclude: Iterable[str] = (),
    expected_vid: Optional[int] = None,
    expected_pid: Optional[int] = None,
    description_substring: Optional[str] = None,
) -> List[PortInfo]:
    """
    Find all ports matching either `matcher(info) -> bool` or the built-in
    criteria, skipping any port named in `exclude`.
    """
    excluded = set(exclude)
    results: List[PortInfo] = []

    for info in list_serial_ports():
        if info.port in excluded:
            continue
        if matcher is not None:
            if matcher(info):
                results.append(info)
        elif is_matching_port(
            info,
            expected_vid=expected_vid,
            expected_pid=expected_pid,
            description_substring=description_substring,
        ):
            results.append(info)

    return results


def find_first_port(
    *,
    matcher: Optional[Callable[[PortInfo], bool]] = None,
    exclude: Iterable[str] = (),
) -> PortInfo:
    """
    Find the first usable port.

    Behaviour:
        - 0 matches  -> PortNotFoundError
        - otherwise  -> the first match in port-name order
    """
    matches = find_ports(matcher=matcher, exclude=exclude)
    if not matches:
        raise PortNotFoundError("No usable serial port found")
    return matches[0]
