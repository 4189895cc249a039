"""Unit tests for ConnectionWatchdog."""

import unittest

from mixlink.device.watchdog import (
    ConnectionWatchdog,
    WatchdogAction,
    WatchdogState,
)


class TestConnectionWatchdog(unittest.TestCase):
    """Test elapsed-time liveness detection."""

    def setUp(self):
        self.watchdog = ConnectionWatchdog(
            quiet_threshold=5.0,
            expect_data_after=10.0,
            max_quiet_intervals=3,
        )
        self.watchdog.reset(0.0)

    def _run(self, start, stop, last_data_time=0.0):
        """Tick once per second, returning {time: action} for non-NONE actions."""
        actions = {}
        for t in range(start, stop + 1):
            action = self.watchdog.check(float(t), last_data_time)
            if action != WatchdogAction.NONE:
                actions[t] = action
        return actions

    def test_silent_device_timeline(self):
        """Never sends anything: probe, probe, disconnect."""
        actions = self._run(1, 30)
        self.assertEqual(actions, {
            11: WatchdogAction.PROBE,
            16: WatchdogAction.PROBE,
            21: WatchdogAction.DISCONNECT,
        })
        self.assertEqual(self.watchdog.state, WatchdogState.DISCONNECTED)

    def test_idle_before_expect_window(self):
        for t in range(1, 11):
            self.assertEqual(self.watchdog.check(float(t), 0.0), WatchdogAction.NONE)
        self.assertEqual(self.watchdog.state, WatchdogState.IDLE)

    def test_data_arrival_leaves_idle(self):
        self.assertEqual(self.watchdog.check(2.0, 1.5), WatchdogAction.NONE)
        self.assertEqual(self.watchdog.state, WatchdogState.EXPECTING_DATA)

    def test_stream_stops_after_data(self):
        self.watchdog.check(2.0, 2.0)
        actions = self._run(3, 30, last_data_time=2.0)
        self.assertEqual(actions, {
            8: WatchdogAction.PROBE,
            13: WatchdogAction.PROBE,
            18: WatchdogAction.DISCONNECT,
        })

    def test_disconnect_reported_once(self):
        actions = self._run(1, 100)
        disconnects = [t for t, a in actions.items() if a == WatchdogAction.DISCONNECT]
        self.assertEqual(disconnects, [21])

    def test_no_resurrection_after_disconnect(self):
        self._run(1, 21)
        self.assertEqual(self.watchdog.check(22.0, 22.0), WatchdogAction.NONE)
        self.assertEqual(self.watchdog.state, WatchdogState.DISCONNECTED)

    def test_data_resets_quiet_count(self):
        self._run(1, 16)
        self.assertEqual(self.watchdog.quiet_count, 2)
        self.assertEqual(self.watchdog.check(17.0, 16.5), WatchdogAction.NONE)
        self.assertEqual(self.watchdog.quiet_count, 0)
        self.assertEqual(self.watchdog.state, WatchdogState.EXPECTING_DATA)

    def test_threshold_boundary(self):
        self.watchdog.check(1.0, 1.0)
        self.assertEqual(self.watchdog.check(6.0, 1.0), WatchdogAction.NONE)
        self.assertEqual(self.watchdog.check(6.5, 1.0), WatchdogAction.PROBE)

    def test_reset_rearms(self):
        self._run(1, 21)
        self.watchdog.reset(100.0)
        self.assertEqual(self.watchdog.state, WatchdogState.IDLE)
        self.assertEqual(self.watchdog.quiet_count, 0)
        self.assertEqual(self.watchdog.check(105.0, 100.0), WatchdogAction.NONE)


if __name__ == '__main__':
    unittest.main()
