"""Liveness watchdog for an open controller connection.

The controller streams continuously while powered, so prolonged silence
means the link is dead even if the OS still reports the port as open.

States:
    IDLE -> EXPECTING_DATA -> QUIET(n) -> DISCONNECTED

IDLE lasts until data has arrived or `expect_data_after` seconds passed
since the connection opened. From then on, every `quiet_threshold` seconds
of continued silence counts one quiet interval and asks for a probe write;
reaching `max_quiet_intervals` asks for a disconnect exactly once. Data
arriving in between resets the count.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_QUIET_THRESHOLD = 5.0  # seconds
DEFAULT_EXPECT_DATA_AFTER = 10.0  # seconds
DEFAULT_MAX_QUIET_INTERVALS = 3


class WatchdogState(Enum):
    IDLE = "idle"
    EXPECTING_DATA = "expecting_data"
    QUIET = "quiet"
    DISCONNECTED = "disconnected"


class WatchdogAction(Enum):
    """What the owning connection should do after a check."""
    NONE = "none"
    PROBE = "probe"
    DISCONNECT = "disconnect"


class ConnectionWatchdog:
    """Elapsed-time liveness checks, driven by the scheduler tick."""

    def __init__(self,
                 quiet_threshold: float = DEFAULT_QUIET_THRESHOLD,
                 expect_data_after: float = DEFAULT_EXPECT_DATA_AFTER,
                 max_quiet_intervals: int = DEFAULT_MAX_QUIET_INTERVALS):
        self._quiet_threshold = quiet_threshold
        self._expect_data_after = expect_data_after
        self._max_quiet_intervals = max_quiet_intervals

        self._state = WatchdogState.IDLE
        self._connected_at = 0.0
        self._quiet_count = 0
        self._last_quiet_mark: Optional[float] = None

    def reset(self, now: float) -> None:
        """Start watching a fresh connection."""
        self._state = WatchdogState.IDLE
        self._connected_at = now
        self._quiet_count = 0
        self._last_quiet_mark = None

    def check(self, now: float, last_data_time: float) -> WatchdogAction:
        """Evaluate liveness.

        Args:
            now: Current monotonic time
            last_data_time: When the last line was framed on this connection

        Returns:
            NONE, PROBE (one per counted quiet interval) or DISCONNECT (once)
        """
        if self._state == WatchdogState.DISCONNECTED:
            return WatchdogAction.NONE

        if self._state == WatchdogState.IDLE:
            if last_data_time > self._connected_at:
                self._state = WatchdogState.EXPECTING_DATA
            elif now - self._connected_at > self._expect_data_after:
                logger.debug("No data since connect, watchdog now expecting data")
                self._state = WatchdogState.EXPECTING_DATA
            else:
                return WatchdogAction.NONE

        elapsed = now - last_data_time
        if elapsed <= self._quiet_threshold:
            if self._quiet_count:
                logger.debug("Data resumed, quiet counter reset")
            self._state = WatchdogState.EXPECTING_DATA
            self._quiet_count = 0
            self._last_quiet_mark = None
            return WatchdogAction.NONE

        if self._last_quiet_mark is not None and (now - self._last_quiet_mark) < self._quiet_threshold:
            return WatchdogAction.NONE

        self._quiet_count += 1
        self._last_quiet_mark = now
        self._state = WatchdogState.QUIET
        logger.warning(
            f"No data for {elapsed:.1f} seconds "
            f"(count: {self._quiet_count}/{self._max_quiet_intervals})"
        )

        if self._quiet_count >= self._max_quiet_intervals:
            logger.warning("Too many quiet intervals, considering disconnected")
            self._state = WatchdogState.DISCONNECTED
            return WatchdogAction.DISCONNECT

        return WatchdogAction.PROBE

    @property
    def state(self) -> WatchdogState:
        return self._state

    @property
    def quiet_count(self) -> int:
        return self._quiet_count
