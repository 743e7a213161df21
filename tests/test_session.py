import unittest

from board.Core import Layout, MoveValidity, UnreadableBoardError, apply_move, classify
from screen.executor import MoveExecutor
from solver.session import acquire_layout, play_games, solve_layout
from solver.settings_store import default_settings

FULL_RUN = "TKDV09876"


def three_move_deal():
    return Layout.from_columns([FULL_RUN, FULL_RUN, "TKDV0876", "TKDV099", "876", ""], completed=(0, 1))


def blocked():
    return Layout.from_columns(
        [FULL_RUN, FULL_RUN, FULL_RUN, "TKDV", "09", "876"],
        completed=(0, 1, 2),
        forced=(3, 4, 5),
    )


def no_cheat_settings(**solver):
    settings = default_settings()
    settings["solver"].update(no_cheat="true", past_limit="500000")
    settings["solver"].update(solver)
    return settings


class SolveLayoutTestCase(unittest.TestCase):
    def test_solved_report(self):
        start = three_move_deal()
        report = solve_layout(start, no_cheat_settings())
        self.assertTrue(report.solved)
        self.assertGreaterEqual(report.found_count, 1)
        self.assertLessEqual(report.optimized_len, report.original_len)
        self.assertEqual(report.optimized_len, len(report.solution))

        layout = start.clone()
        for move in report.solution:
            self.assertEqual(MoveValidity.LEGAL, classify(layout, move))
            apply_move(layout, move)
        self.assertTrue(layout.is_win())

    def test_without_optimizing(self):
        report = solve_layout(three_move_deal(), no_cheat_settings(), optimize_solution=False)
        self.assertEqual(report.original_len, report.optimized_len)

    def test_not_found_report(self):
        report = solve_layout(blocked(), no_cheat_settings())
        self.assertFalse(report.solved)
        self.assertEqual("not_found", report.status)
        self.assertEqual((), report.solution)
        self.assertIsNone(report.optimized_len)
        self.assertEqual("search_space_exhausted", report.stop_reason)

    def test_report_dict(self):
        data = solve_layout(three_move_deal(), no_cheat_settings()).to_dict()
        self.assertEqual("solved", data["status"])
        self.assertEqual(data["optimized_len"], len(data["solution"]))


class AcquireLayoutTestCase(unittest.TestCase):
    def test_retries_unreadable_board(self):
        layout = three_move_deal()
        calls = []
        sleeps = []

        def read():
            calls.append(1)
            if len(calls) < 3:
                raise UnreadableBoardError("cards still moving")
            return layout

        self.assertIs(layout, acquire_layout(read, retries=10, delay=0.25, sleep=sleeps.append))
        self.assertEqual(3, len(calls))
        self.assertEqual([0.25, 0.25], sleeps)

    def test_gives_up_after_retries(self):
        calls = []
        sleeps = []

        def read():
            calls.append(1)
            raise UnreadableBoardError("blank screen")

        with self.assertRaises(UnreadableBoardError):
            acquire_layout(read, retries=2, sleep=sleeps.append)
        self.assertEqual(3, len(calls))
        self.assertEqual(2, len(sleeps))


class PlayGamesTestCase(unittest.TestCase):
    def setUp(self):
        self.clicks = []
        self.new_games = []
        self.executor = MoveExecutor(click=lambda x, y: self.clicks.append((x, y)), sleep=lambda _: None)

    def test_executes_acceptable_solution(self):
        reports = play_games(
            three_move_deal,
            self.executor,
            no_cheat_settings(),
            games=2,
            new_game=lambda: self.new_games.append(1),
        )
        self.assertEqual(2, len(reports))
        self.assertTrue(all(report.solved for report in reports))
        # One focus click plus a pick and a drop per move, for each game.
        expected = sum(1 + 2 * len(report.solution) for report in reports)
        self.assertEqual(expected, len(self.clicks))
        self.assertEqual([], self.new_games)

    def test_long_solution_starts_new_game(self):
        reports = play_games(
            three_move_deal,
            self.executor,
            no_cheat_settings(acceptable_solution_len="1"),
            new_game=lambda: self.new_games.append(1),
        )
        self.assertTrue(reports[0].solved)
        self.assertEqual([], self.clicks)
        self.assertEqual([1], self.new_games)

    def test_unsolvable_deal_starts_new_game(self):
        reports = play_games(blocked, self.executor, no_cheat_settings(), new_game=lambda: self.new_games.append(1))
        self.assertFalse(reports[0].solved)
        self.assertEqual([], self.clicks)
        self.assertEqual([1], self.new_games)


if __name__ == "__main__":
    unittest.main()
