"""Unit tests for button edge detection and field demultiplexing."""

import unittest

from mixlink.models import ButtonStateChanged, LayoutConfig
from mixlink.protocol.demux import ButtonStateTracker, FieldDemultiplexer


class TestButtonStateTracker(unittest.TestCase):
    """Test edge-only press reporting."""

    def setUp(self):
        self.tracker = ButtonStateTracker(button_count=2)

    def test_initial_state_released(self):
        self.assertEqual(self.tracker.states, (False, False))

    def test_press_fires_once(self):
        self.assertEqual(self.tracker.update(0, True), ButtonStateChanged(index=0, is_pressed=True))
        self.assertIsNone(self.tracker.update(0, True))
        self.assertEqual(self.tracker.states, (True, False))

    def test_release_is_silent(self):
        self.tracker.update(1, True)
        self.assertIsNone(self.tracker.update(1, False))
        self.assertEqual(self.tracker.states, (False, False))

    def test_press_release_press(self):
        events = [
            self.tracker.update(0, True),
            self.tracker.update(0, False),
            self.tracker.update(0, True),
        ]
        self.assertEqual(sum(1 for e in events if e is not None), 2)

    def test_out_of_range_index_ignored(self):
        self.assertIsNone(self.tracker.update(5, True))
        self.assertIsNone(self.tracker.update(-1, True))

    def test_reset_resizes(self):
        self.tracker.update(0, True)
        self.tracker.reset(3)
        self.assertEqual(self.tracker.states, (False, False, False))


class TestFieldDemultiplexer(unittest.TestCase):
    """Test slider/button separation."""

    def setUp(self):
        self.demux = FieldDemultiplexer(LayoutConfig(slider_count=3, button_count=2))

    def test_split_line(self):
        slider_line, events = self.demux.process("512|768|400|10000|10001")
        self.assertEqual(slider_line, "512|768|400")
        self.assertEqual(events, [ButtonStateChanged(index=1, is_pressed=True)])
        self.assertEqual(self.demux.button_states, (False, True))

    def test_repeated_press_single_event(self):
        _, first = self.demux.process("512|768|400|10001|10000")
        _, second = self.demux.process("512|768|400|10001|10000")
        self.assertEqual(len(first), 1)
        self.assertEqual(second, [])

    def test_release_then_press_again(self):
        self.demux.process("1|2|3|10001|10000")
        _, released = self.demux.process("1|2|3|10000|10000")
        _, pressed = self.demux.process("1|2|3|10001|10000")
        self.assertEqual(released, [])
        self.assertEqual(pressed, [ButtonStateChanged(index=0, is_pressed=True)])

    def test_line_without_buttons_passes_through(self):
        """Firmware that sends no button fields still works."""
        slider_line, events = self.demux.process("512|768|400")
        self.assertEqual(slider_line, "512|768|400")
        self.assertEqual(events, [])

    def test_fewer_fields_than_sliders(self):
        slider_line, events = self.demux.process("512|768")
        self.assertEqual(slider_line, "512|768")
        self.assertEqual(events, [])

    def test_partial_button_fields(self):
        slider_line, events = self.demux.process("1|2|3|10001")
        self.assertEqual(slider_line, "1|2|3")
        self.assertEqual(events, [ButtonStateChanged(index=0, is_pressed=True)])

    def test_extra_fields_ignored(self):
        _, events = self.demux.process("1|2|3|10000|10000|10001")
        self.assertEqual(events, [])

    def test_non_sentinel_button_is_released(self):
        self.demux.process("1|2|3|10001|10001")
        _, events = self.demux.process("1|2|3|garbage|1")
        self.assertEqual(events, [])
        self.assertEqual(self.demux.button_states, (False, False))

    def test_mute_sentinel_kept_in_slider_line(self):
        slider_line, _ = self.demux.process("512|9999|400|10000|10000")
        self.assertEqual(slider_line, "512|9999|400")

    def test_no_buttons_configured(self):
        demux = FieldDemultiplexer(LayoutConfig(slider_count=3, button_count=0))
        line = "512|768|400|10000|10001"
        self.assertEqual(demux.process(line), (line, []))

    def test_default_layout_passes_everything(self):
        demux = FieldDemultiplexer()
        self.assertEqual(demux.process("anything|at|all"), ("anything|at|all", []))

    def test_zero_sliders_all_buttons(self):
        demux = FieldDemultiplexer(LayoutConfig(slider_count=0, button_count=2))
        slider_line, events = demux.process("10001|10000")
        self.assertEqual(slider_line, "")
        self.assertEqual(events, [ButtonStateChanged(index=0, is_pressed=True)])

    def test_reconfigure_resets_states(self):
        self.demux.process("1|2|3|10001|10001")
        self.demux.configure(LayoutConfig(slider_count=2, button_count=1))
        self.assertEqual(self.demux.button_states, (False,))
        slider_line, events = self.demux.process("1|2|10001")
        self.assertEqual(slider_line, "1|2")
        self.assertEqual(events, [ButtonStateChanged(index=0, is_pressed=True)])

    def test_negative_layout_rejected(self):
        with self.assertRaises(ValueError):
            LayoutConfig(slider_count=-1, button_count=0)


if __name__ == '__main__':
    unittest.main()
