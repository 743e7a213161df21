from __future__ import annotations

import logging
import time
from typing import Callable, Iterable

from board.Core import IllegalMoveError, Layout, Move, apply_move
from screen.geometry import ScreenGeometry

logger = logging.getLogger(__name__)

Click = Callable[[int, int], None]


class MoveExecutor:
    """
    Replays moves as pick and drop clicks.

    A private copy of the layout is moved along with the clicks so that card
    coordinates stay right for later moves.
    """

    def __init__(
        self,
        click: Click,
        geometry: ScreenGeometry = ScreenGeometry(),
        sleep: Callable[[float], None] = time.sleep,
        click_delay_ms: int = 50,
        move_delay_ms: int = 100,
    ):
        self.click = click
        self.geometry = geometry
        self.sleep = sleep
        self.click_delay_ms = click_delay_ms
        self.move_delay_ms = move_delay_ms

    def estimated_seconds(self, moves: int) -> float:
        return moves * (self.click_delay_ms + self.move_delay_ms) / 1000.0

    def focus(self):
        # Above and left of the first column: focuses the window without picking a card.
        g = self.geometry
        self.click(g.monitor_offset + g.offset_h - g.space_h, g.offset_v - g.space_v)
        self.sleep(self.move_delay_ms / 1000.0)

    def pick_point(self, layout: Layout, move: Move) -> tuple[int, int]:
        row = max(len(layout.stacks[move.source]) - move.count, 0)
        return self.geometry.click_point(move.source, row)

    def drop_point(self, layout: Layout, move: Move) -> tuple[int, int]:
        row = max(len(layout.stacks[move.to]) - 1, 0)
        return self.geometry.click_point(move.to, row)

    def execute(self, layout: Layout, moves: Iterable[Move]) -> Layout:
        tracked = layout.clone()
        moves = list(moves)
        logger.info("executing %d moves, about %.1f s", len(moves), self.estimated_seconds(len(moves)))
        self.focus()
        for move in moves:
            pick = self.pick_point(tracked, move)
            drop = self.drop_point(tracked, move)
            if not apply_move(tracked, move):
                raise IllegalMoveError(f"{move.to_notation()} does not apply to {tracked.canonical()}")
            tracked.history.append(move)
            self.click(*pick)
            self.sleep(self.click_delay_ms / 1000.0)
            self.click(*drop)
            self.sleep(self.move_delay_ms / 1000.0)
        return tracked
