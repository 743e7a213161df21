import unittest

from board.Core import IllegalMoveError, Layout, Move
from screen.executor import MoveExecutor
from screen.geometry import ScreenGeometry

FULL_RUN = "TKDV09876"


def near_win():
    return Layout.from_columns([FULL_RUN, FULL_RUN, FULL_RUN, "TKDV0987", "6", ""], completed=(0, 1, 2))


class MoveExecutorTestCase(unittest.TestCase):
    def setUp(self):
        self.clicks = []
        self.sleeps = []
        self.geometry = ScreenGeometry()
        self.executor = MoveExecutor(
            click=lambda x, y: self.clicks.append((x, y)),
            geometry=self.geometry,
            sleep=self.sleeps.append,
        )

    def focus_point(self):
        g = self.geometry
        return (g.monitor_offset + g.offset_h - g.space_h, g.offset_v - g.space_v)

    def test_pick_and_drop_points(self):
        layout = near_win()
        final = self.executor.execute(layout, [Move(4, 3, 1)])
        self.assertEqual(
            [self.focus_point(), self.geometry.click_point(4, 0), self.geometry.click_point(3, 7)],
            self.clicks,
        )
        self.assertEqual([0.1, 0.05, 0.1], self.sleeps)
        self.assertTrue(final.is_win())
        self.assertEqual([Move(4, 3, 1)], final.history)
        self.assertEqual(1, len(layout.stacks[4]))

    def test_run_picked_at_its_lowest_card(self):
        layout = Layout.from_columns([FULL_RUN, FULL_RUN, "TKDV0", "9876", "", ""], completed=(0, 1))
        self.executor.execute(layout, [Move(3, 2, 4)])
        self.assertEqual(self.geometry.click_point(3, 0), self.clicks[1])
        self.assertEqual(self.geometry.click_point(2, 4), self.clicks[2])

    def test_empty_destination_drops_on_first_row(self):
        self.executor.execute(near_win(), [Move(4, 5, 1)])
        self.assertEqual(self.geometry.click_point(5, 0), self.clicks[2])

    def test_coordinates_follow_earlier_moves(self):
        layout = near_win()
        self.executor.execute(layout, [Move(4, 5, 1), Move(5, 3, 1)])
        self.assertEqual(self.geometry.click_point(5, 0), self.clicks[3])
        self.assertEqual(self.geometry.click_point(3, 7), self.clicks[4])

    def test_illegal_move_stops_before_clicking(self):
        with self.assertRaises(IllegalMoveError):
            self.executor.execute(near_win(), [Move(3, 0, 1)])
        self.assertEqual([self.focus_point()], self.clicks)

    def test_estimated_seconds(self):
        self.assertAlmostEqual(1.5, self.executor.estimated_seconds(10))


if __name__ == "__main__":
    unittest.main()
