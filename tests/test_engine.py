"""Unit tests for ProtocolEngine."""

import unittest

from mixlink.config import EngineConfig
from mixlink.models import (
    ButtonStateChanged,
    DataReceived,
    LayoutConfig,
    ProtocolValidated,
)
from mixlink.protocol.engine import ProtocolEngine


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestProtocolEngine(unittest.TestCase):
    """Test the bytes -> events pipeline."""

    def setUp(self):
        self.clock = FakeClock(10.0)
        self.engine = ProtocolEngine(
            port="/dev/ttyACM0",
            layout=LayoutConfig(slider_count=3, button_count=2),
            clock=self.clock,
        )

    def test_initial_state(self):
        self.assertFalse(self.engine.is_validated)
        self.assertFalse(self.engine.fully_initialized)
        self.assertEqual(self.engine.connected_at, 10.0)
        self.assertEqual(self.engine.last_data_time, 10.0)

    def test_first_plausible_line_validates(self):
        events = self.engine.feed(b"512|768|400|10000|10001\n")
        self.assertEqual(events, [
            ProtocolValidated(port="/dev/ttyACM0"),
            DataReceived(slider_line="512|768|400"),
            ButtonStateChanged(index=1, is_pressed=True),
        ])
        self.assertTrue(self.engine.is_validated)
        self.assertTrue(self.engine.fully_initialized)

    def test_validated_only_once(self):
        self.engine.feed(b"1|2|3\n")
        events = self.engine.feed(b"4|5|6\n")
        self.assertEqual(events, [DataReceived(slider_line="4|5|6")])

    def test_garbage_before_validation_dropped(self):
        events = self.engine.feed(b"Booting firmware v2\n512|768|400\n")
        self.assertEqual(events, [
            ProtocolValidated(port="/dev/ttyACM0"),
            DataReceived(slider_line="512|768|400"),
        ])

    def test_garbage_initializes_but_does_not_validate(self):
        events = self.engine.feed(b"AT+OK\n")
        self.assertEqual(events, [])
        self.assertTrue(self.engine.fully_initialized)
        self.assertFalse(self.engine.is_validated)

    def test_partial_chunk_no_events(self):
        self.assertEqual(self.engine.feed(b"512|76"), [])
        self.assertFalse(self.engine.fully_initialized)

    def test_last_data_time_updates_on_lines(self):
        self.clock.now = 12.0
        self.engine.feed(b"512|")
        self.assertEqual(self.engine.last_data_time, 10.0)
        self.clock.now = 13.0
        self.engine.feed(b"768\n")
        self.assertEqual(self.engine.last_data_time, 13.0)

    def test_validation_expiry(self):
        self.assertFalse(self.engine.validation_expired(15.0))
        self.assertTrue(self.engine.validation_expired(15.5))
        self.engine.feed(b"512\n")
        self.assertFalse(self.engine.validation_expired(100.0))

    def test_configure_layout(self):
        self.engine.feed(b"1|2|3\n")
        self.engine.configure_layout(LayoutConfig(slider_count=1, button_count=1))
        events = self.engine.feed(b"7|10001\n")
        self.assertEqual(events, [
            DataReceived(slider_line="7"),
            ButtonStateChanged(index=0, is_pressed=True),
        ])

    def test_close_discards_partial_and_ignores_feed(self):
        self.engine.feed(b"512|7")
        self.engine.close()
        self.assertEqual(self.engine.framer.pending_size, 0)
        self.assertEqual(self.engine.feed(b"68\n"), [])

    def test_custom_config(self):
        engine = ProtocolEngine(
            port="COM3",
            config=EngineConfig(max_line_length=8),
            clock=self.clock,
        )
        self.assertEqual(engine.feed(b"123456789\n1|2\n"), [
            ProtocolValidated(port="COM3"),
            DataReceived(slider_line="1|2"),
        ])

    def test_fresh_engine_has_fresh_button_state(self):
        self.engine.feed(b"1|2|3|10001|10001\n")
        engine = ProtocolEngine(
            port="/dev/ttyACM0",
            layout=LayoutConfig(slider_count=3, button_count=2),
            clock=self.clock,
        )
        self.assertEqual(engine.button_states, (False, False))


if __name__ == '__main__':
    unittest.main()
