"""Protocol validation for freshly opened ports.

A port may host any serial device. Until a line that looks like controller
output arrives, the connection is on probation; ports that stay silent or
speak something else are blacklisted for a while.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from .fields import is_plausible, split_fields

logger = logging.getLogger(__name__)

DEFAULT_VALIDATION_WINDOW = 5.0  # seconds
DEFAULT_INSPECTED_FIELDS = 3
DEFAULT_BLACKLIST_INTERVAL = 120.0  # seconds


def is_plausible_line(line: str, inspected_fields: int = DEFAULT_INSPECTED_FIELDS) -> bool:
    """Check whether a line looks like controller output.

    Only the first `inspected_fields` fields are inspected. The line is
    accepted when at least half of them are plausible, with odd counts
    rounding up (2 of 3 accepts, 1 of 3 rejects, 1 of 2 accepts).

    Examples:
        >>> is_plausible_line("512|768|abc")
        True
        >>> is_plausible_line("9999|x|y")
        False
    """
    if not line or not line.strip():
        return False

    inspected = split_fields(line)[:inspected_fields]
    plausible = sum(1 for field in inspected if is_plausible(field))
    return plausible * 2 >= len(inspected)


class ProtocolValidator:
    """Tracks whether the current connection has proven itself.

    Once validated, every line is accepted for the rest of the connection.
    """

    def __init__(self,
                 window: float = DEFAULT_VALIDATION_WINDOW,
                 inspected_fields: int = DEFAULT_INSPECTED_FIELDS):
        self._window = window
        self._inspected_fields = inspected_fields
        self._validated = False
        self._started_at: Optional[float] = None

    def start(self, now: float) -> None:
        """Begin the validation window for a new connection."""
        self._validated = False
        self._started_at = now

    def accept(self, line: str) -> bool:
        """Return True if the line should be processed.

        The first plausible line flips the validator to validated.
        """
        if self._validated:
            return True
        if is_plausible_line(line, self._inspected_fields):
            self._validated = True
            return True
        logger.debug(f"Rejected unvalidated line: {line[:50]!r}")
        return False

    def expired(self, now: float) -> bool:
        """Check whether the window elapsed without an accepted line."""
        if self._validated or self._started_at is None:
            return False
        return (now - self._started_at) > self._window

    @property
    def is_validated(self) -> bool:
        return self._validated

    @property
    def started_at(self) -> Optional[float]:
        return self._started_at


class EndpointBlacklist:
    """Thread-safe set of ports excluded from automatic connection.

    Entries expire after `retry_interval` seconds.
    """

    def __init__(self, retry_interval: float = DEFAULT_BLACKLIST_INTERVAL):
        self._retry_interval = retry_interval
        self._entries: Dict[str, float] = {}  # port -> time it becomes eligible again
        self._lock = threading.Lock()

    def add(self, port: str, now: float) -> None:
        with self._lock:
            self._entries[port] = now + self._retry_interval
        logger.warning(f"Port {port} blacklisted for {self._retry_interval:.0f}s")

    def is_blacklisted(self, port: str, now: float) -> bool:
        with self._lock:
            self._purge(now)
            return port in self._entries

    def remove(self, port: str) -> None:
        with self._lock:
            if self._entries.pop(port, None) is not None:
                logger.info(f"Port {port} removed from blacklist")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def ports(self, now: float) -> List[str]:
        """Currently blacklisted ports."""
        with self._lock:
            self._purge(now)
            return sorted(self._entries)

    def _purge(self, now: float) -> None:
        expired = [port for port, until in self._entries.items() if now >= until]
        for port in expired:
            del self._entries[port]
            logger.debug(f"Blacklist entry for {port} expired")
