from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from board.Core import Layout, Move, MoveValidity, classify, valid_moves

logger = logging.getLogger(__name__)

OPTIMIZE_BUDGET = 6


@dataclass(frozen=True, slots=True)
class OptimizeLimits:
    # Largest remaining-move budget worth an exhaustive re-search.
    max_budget: int = OPTIMIZE_BUDGET
    # Positions at the end of a solution that are never re-searched.
    skip_tail: int = 1
    max_passes: int = 3
    # Node cap for one bounded re-search.
    max_nodes: int = 200_000


@dataclass(slots=True)
class OptimizeResult:
    solution: tuple[Move, ...]
    original_len: int
    improvements: int
    passes: int
    elapsed_ms: float

    @property
    def improved(self) -> bool:
        return len(self.solution) < self.original_len

    def to_dict(self) -> dict:
        return {
            "original_len": self.original_len,
            "optimized_len": len(self.solution),
            "improvements": self.improvements,
            "passes": self.passes,
            "elapsed_ms": round(self.elapsed_ms, 3),
        }


def replay(start: Layout, moves: Iterable[Move]) -> list[Layout]:
    """Layouts along a move sequence; index i is the layout after i moves."""
    chain = [start.clone()]
    for move in moves:
        chain.append(chain[-1].after_move(move))
    return chain


class _NodeBudget:
    __slots__ = ("left",)

    def __init__(self, nodes: int):
        self.left = nodes


def _bounded(
    layout: Layout,
    remaining: int,
    table: dict,
    budget: _NodeBudget,
) -> Optional[list[Move]]:
    if layout.is_win():
        return []
    if remaining <= 0 or budget.left <= 0:
        return None
    key = layout.key()
    # A layout that failed with at least this many moves left fails again.
    if table.get(key, -1) >= remaining:
        return None
    budget.left -= 1

    for move in valid_moves(layout):
        if classify(layout, move) == MoveValidity.FORCED:
            continue
        suffix = _bounded(layout.after_move(move), remaining - 1, table, budget)
        if suffix is not None:
            return [move] + suffix
    if budget.left > 0:
        table[key] = remaining
    return None


def shortest_suffix(layout: Layout, max_depth: int, max_nodes: int = 200_000) -> Optional[list[Move]]:
    """
    Shortest no-cheat move list from ``layout`` to a win using at most
    ``max_depth`` moves, or None when there is none within the bound.
    """
    if layout.is_win():
        return []
    table: dict = {}
    budget = _NodeBudget(max_nodes)
    for depth in range(1, max_depth + 1):
        suffix = _bounded(layout, depth, table, budget)
        if suffix is not None:
            return suffix
        if budget.left <= 0:
            logger.debug("bounded re-search ran out of nodes at depth %d", depth)
            break
    return None


def _improve_once(
    start: Layout,
    solution: tuple[Move, ...],
    best_len: int,
    limits: OptimizeLimits,
) -> Optional[tuple[Move, ...]]:
    chain = replay(start, solution)
    improved: Optional[tuple[Move, ...]] = None
    for i in range(len(solution) - limits.skip_tail - 1, -1, -1):
        budget = best_len - i
        if budget <= 0:
            continue
        if budget > limits.max_budget:
            break
        suffix = shortest_suffix(chain[i], budget - 1, limits.max_nodes)
        if suffix is None or i + len(suffix) >= best_len:
            continue
        improved = solution[:i] + tuple(suffix)
        logger.info("shortened solution from %d to %d moves at position %d", best_len, len(improved), i)
        best_len = len(improved)
    return improved


def optimize(
    start: Layout,
    solutions: Sequence[Sequence[Move]],
    limits: OptimizeLimits = OptimizeLimits(),
) -> OptimizeResult:
    """Re-search short tails of every solution and keep the shortest result."""
    if not solutions:
        raise ValueError("optimize needs at least one winning solution")
    started = time.perf_counter()
    candidates = [tuple(solution) for solution in solutions]
    best = min(candidates, key=len)
    original_len = len(best)
    improvements = 0
    passes = 0

    while candidates and passes < limits.max_passes:
        passes += 1
        improved = False
        for solution in candidates:
            shorter = _improve_once(start, solution, len(best), limits)
            if shorter is not None and len(shorter) < len(best):
                best = shorter
                improvements += 1
                improved = True
        # Only a new best has a chain that was never scanned.
        candidates = [best] if improved else []

    return OptimizeResult(
        solution=best,
        original_len=original_len,
        improvements=improvements,
        passes=passes,
        elapsed_ms=(time.perf_counter() - started) * 1000.0,
    )
