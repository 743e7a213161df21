from __future__ import annotations

import argparse
import json
import logging
import random
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from board.CommandLine import render_layout
from board.Core import Layout, Move, UnreadableBoardError
from screen.executor import MoveExecutor
from screen.reader import TemplateBoardReader
from solver.optimizer import optimize
from solver.search import collect_solutions
from solver.settings_store import (
    acceptable_solution_len,
    load_settings,
    to_collect_limits,
    to_geometry,
    to_optimize_limits,
    to_search_limits,
)

logger = logging.getLogger(__name__)

ReadLayout = Callable[[], Layout]


@dataclass(slots=True)
class SessionReport:
    status: str
    solution: tuple[Move, ...]
    found_count: int
    original_len: Optional[int]
    optimized_len: Optional[int]
    unique_states: int
    stop_reason: str
    elapsed_ms: float

    @property
    def solved(self) -> bool:
        return self.status == "solved"

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "found_count": self.found_count,
            "original_len": self.original_len,
            "optimized_len": self.optimized_len,
            "unique_states": self.unique_states,
            "stop_reason": self.stop_reason,
            "elapsed_ms": round(self.elapsed_ms, 3),
            "solution": [move.to_notation() for move in self.solution],
        }


def solve_layout(layout: Layout, settings: Optional[dict] = None, optimize_solution=True) -> SessionReport:
    """Collect winning sequences for ``layout`` and shorten the best one."""
    settings = settings or load_settings()
    started = time.perf_counter()
    max_attempts, max_seconds = to_collect_limits(settings)
    collected = collect_solutions(
        layout,
        limits=to_search_limits(settings),
        max_attempts=max_attempts,
        max_seconds=max_seconds,
    )
    if collected.best is None:
        logger.info("no solution within budget (%s, %d states)", collected.stop_reason, collected.unique_states)
        return SessionReport(
            status="not_found",
            solution=(),
            found_count=0,
            original_len=None,
            optimized_len=None,
            unique_states=collected.unique_states,
            stop_reason=collected.stop_reason,
            elapsed_ms=(time.perf_counter() - started) * 1000.0,
        )

    best = collected.best
    if optimize_solution:
        best = optimize(layout, collected.solutions, to_optimize_limits(settings)).solution
    logger.info("best of %d solutions: %d moves, optimized to %d",
                len(collected.solutions), len(collected.best), len(best))
    return SessionReport(
        status="solved",
        solution=best,
        found_count=len(collected.solutions),
        original_len=len(collected.best),
        optimized_len=len(best),
        unique_states=collected.unique_states,
        stop_reason=collected.stop_reason,
        elapsed_ms=(time.perf_counter() - started) * 1000.0,
    )


def acquire_layout(
    read: ReadLayout,
    retries: int = 10,
    delay: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
) -> Layout:
    """Call ``read`` until it returns a layout; unreadable boards are retried."""
    attempt = 0
    while True:
        attempt += 1
        try:
            return read()
        except UnreadableBoardError as e:
            if attempt > retries:
                raise
            logger.info("board unreadable (%s), retry %d/%d", e, attempt, retries)
            sleep(delay)


def play_games(
    read: ReadLayout,
    executor: MoveExecutor,
    settings: Optional[dict] = None,
    games: int = 1,
    new_game: Optional[Callable[[], None]] = None,
) -> list[SessionReport]:
    """
    Read, solve and replay ``games`` deals. Deals without a solution, or whose
    best solution is longer than ``acceptable_solution_len``, are skipped by
    calling ``new_game``.
    """
    settings = settings or load_settings()
    acceptable = acceptable_solution_len(settings)
    reports = []
    for game in range(games):
        layout = acquire_layout(read)
        report = solve_layout(layout, settings)
        reports.append(report)
        if report.solved and len(report.solution) <= acceptable:
            executor.execute(layout, report.solution)
        else:
            logger.info("game %d skipped: %s", game, report.status if not report.solved else "solution too long")
            if new_game is not None:
                new_game()
    return reports


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Find a winning move sequence for a layout.")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--seed", type=int, default=None, help="Solve a random deal with this seed.")
    source.add_argument("--rows", type=str, default="", help="File with six rows of six cards, top row first.")
    source.add_argument("--image", type=str, default="", help="Screenshot to read the layout from.")
    parser.add_argument("--settings", type=str, default="", help="Settings ini path.")
    parser.add_argument("--no-optimize", action="store_true", help="Skip shortening the best solution.")
    parser.add_argument("--dry-run-clicks", action="store_true", help="Print the clicks that would replay the solution.")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print json output.")
    parser.add_argument("--verbose", action="store_true", help="Log search progress.")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    settings = load_settings(Path(args.settings).expanduser()) if args.settings else load_settings()

    if args.image:
        reader = TemplateBoardReader.from_directory(settings["screen"]["template_dir"], to_geometry(settings))
        layout = acquire_layout(lambda: reader.read(args.image), retries=0)
    elif args.rows:
        layout = Layout.from_rows(Path(args.rows).expanduser().read_text(encoding="utf-8").splitlines())
    else:
        layout = Layout.deal(random.Random(args.seed))

    print(render_layout(layout, color=sys.stdout.isatty()), file=sys.stderr)
    report = solve_layout(layout, settings, optimize_solution=not args.no_optimize)

    if args.dry_run_clicks and report.solved:
        screen = settings["screen"]
        executor = MoveExecutor(
            click=lambda x, y: print(f"click {x} {y}", file=sys.stderr),
            geometry=to_geometry(settings),
            sleep=lambda _: None,
            click_delay_ms=int(screen["click_delay_ms"]),
            move_delay_ms=int(screen["move_delay_ms"]),
        )
        executor.execute(layout, report.solution)

    if args.pretty:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    else:
        print(json.dumps(report.to_dict(), ensure_ascii=False))


if __name__ == "__main__":
    main()
