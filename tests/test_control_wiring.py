import unittest

from channel_router import RouterState
from control_wiring import (
    average_label,
    gain_steps_for_key,
    panel_descriptors,
    recording_status_text,
)


class TestControlWiring(unittest.TestCase):
    def test_gain_keys(self):
        self.assertEqual(gain_steps_for_key("+"), 1)
        self.assertEqual(gain_steps_for_key("="), 1)
        self.assertEqual(gain_steps_for_key("-"), -1)
        self.assertEqual(gain_steps_for_key("_"), -1)
        self.assertEqual(gain_steps_for_key("a"), 0)
        self.assertEqual(gain_steps_for_key(""), 0)

    def test_panel_grid(self):
        panels = panel_descriptors(4, columns=2)

        self.assertEqual([(p.row, p.column) for p in panels], [(0, 0), (0, 1), (1, 0), (1, 1)])
        self.assertEqual([p.title for p in panels], ["Mic # 1", "Mic # 2", "Mic # 3", "Mic # 4"])
        self.assertEqual(panels[2].channel, 2)

    def test_panel_grid_odd_count(self):
        panels = panel_descriptors(3, columns=0)
        self.assertEqual([(p.row, p.column) for p in panels], [(0, 0), (1, 0), (2, 0)])

    def test_status_text(self):
        text = recording_status_text(RouterState(active_channel=2, recording_enabled=True), 5.0)
        self.assertIn("Recording", text)
        self.assertIn("channel 3", text)
        self.assertIn("+5 dB", text)

        idle = recording_status_text(RouterState(), -10.0)
        self.assertIn("Idle", idle)
        self.assertIn("-10 dB", idle)

    def test_average_label(self):
        self.assertEqual(average_label(12.345), "12.35")
        self.assertEqual(average_label(0.0), "0.00")


if __name__ == "__main__":
    unittest.main()
