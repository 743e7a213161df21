from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

from board.Core import Layout, Move, MoveValidity, classify, valid_moves

logger = logging.getLogger(__name__)

LayoutKey = tuple

STEP_LIMIT = 2000
PAST_LIMIT = 20000

STATUS_FOUND = "found"
STATUS_EXHAUSTED = "exhausted"
STATUS_BUDGET_EXCEEDED = "budget_exceeded"


class Heuristic(Enum):
    NONE = "none"
    AVAILABLE_MOVES = "moves"
    PROGRESS = "progress"


def score_layout(layout: Layout, heuristic: Heuristic) -> int:
    """Lower scores are explored first."""
    if heuristic == Heuristic.AVAILABLE_MOVES:
        return len(valid_moves(layout))
    if heuristic == Heuristic.PROGRESS:
        total = 0
        for stack in layout.stacks:
            total += 10 if stack.completed else stack.run_length()
        return 40 - total
    return 0


@dataclass(frozen=True, slots=True)
class SearchLimits:
    max_steps: int = STEP_LIMIT
    max_visited: int = PAST_LIMIT
    # Drop forced placements entirely.
    no_cheat: bool = False
    heuristic: Heuristic = Heuristic.AVAILABLE_MOVES


@dataclass(slots=True)
class SearchResult:
    status: str
    solution: tuple[Move, ...] = ()
    final_layout: Optional[Layout] = None
    expanded_nodes: int = 0
    duplicate_states_skipped: int = 0
    dead_end_nodes: int = 0
    unique_states: int = 0
    max_depth: int = 0
    elapsed_ms: float = 0.0

    @property
    def found(self) -> bool:
        return self.status == STATUS_FOUND

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "solution_len": len(self.solution),
            "solution": [move.to_notation() for move in self.solution],
            "expanded_nodes": self.expanded_nodes,
            "duplicate_states_skipped": self.duplicate_states_skipped,
            "dead_end_nodes": self.dead_end_nodes,
            "unique_states": self.unique_states,
            "max_depth": self.max_depth,
            "elapsed_ms": round(self.elapsed_ms, 3),
        }


@dataclass(slots=True)
class CollectResult:
    solutions: list[tuple[Move, ...]] = field(default_factory=list)
    attempts: int = 0
    unique_states: int = 0
    stop_reason: str = ""
    elapsed_ms: float = 0.0

    @property
    def best(self) -> Optional[tuple[Move, ...]]:
        if not self.solutions:
            return None
        return self.solutions[0]


def candidate_layouts(layout: Layout, limits: SearchLimits) -> list[Layout]:
    """Children of ``layout`` in exploration order."""
    children = []
    for move in valid_moves(layout):
        if limits.no_cheat and classify(layout, move) == MoveValidity.FORCED:
            continue
        children.append(layout.after_move(move))
    if limits.heuristic != Heuristic.NONE:
        children.sort(key=lambda child: score_layout(child, limits.heuristic))
    return children


class _Counters:
    __slots__ = ("expanded", "duplicates", "dead_ends", "max_depth")

    def __init__(self):
        self.expanded = 0
        self.duplicates = 0
        self.dead_ends = 0
        self.max_depth = 0


_WIN = "win"
_DEAD = "dead"
_BUDGET = "budget"


def _enter(layout: Layout, visited: set[LayoutKey], limits: SearchLimits, counters: _Counters):
    visited.add(layout.key())
    if len(visited) > limits.max_visited:
        return _BUDGET
    counters.expanded += 1
    depth = len(layout.history)
    if depth > counters.max_depth:
        counters.max_depth = depth

    children = []
    for child in candidate_layouts(layout, limits):
        if child.key() in visited:
            counters.duplicates += 1
            continue
        children.append(child)

    if not children:
        if layout.is_win():
            return _WIN
        counters.dead_ends += 1
        return _DEAD
    if depth > limits.max_steps:
        return _DEAD
    return children


def find_win(start: Layout, visited: set[LayoutKey], limits: SearchLimits = SearchLimits()) -> SearchResult:
    """
    Depth-first search from ``start`` for a layout with four completed stacks.

    ``visited`` is owned by the caller and keeps every explored layout key, so
    calling again with the same set explores only paths not tried before.
    The first winning branch is returned, not the shortest.
    """
    started = time.perf_counter()
    counters = _Counters()

    def result(status: str, final: Optional[Layout] = None) -> SearchResult:
        return SearchResult(
            status=status,
            solution=tuple(final.history[len(start.history):]) if final is not None else (),
            final_layout=final,
            expanded_nodes=counters.expanded,
            duplicate_states_skipped=counters.duplicates,
            dead_end_nodes=counters.dead_ends,
            unique_states=len(visited),
            max_depth=counters.max_depth,
            elapsed_ms=(time.perf_counter() - started) * 1000.0,
        )

    outcome = _enter(start, visited, limits, counters)
    if outcome is _WIN:
        return result(STATUS_FOUND, start)
    if outcome is _BUDGET:
        return result(STATUS_BUDGET_EXCEEDED)
    if outcome is _DEAD:
        return result(STATUS_EXHAUSTED)

    frames: list[Iterator[Layout]] = [iter(outcome)]
    while frames:
        child = next(frames[-1], None)
        if child is None:
            frames.pop()
            continue
        if child.key() in visited:
            counters.duplicates += 1
            continue
        outcome = _enter(child, visited, limits, counters)
        if outcome is _WIN:
            return result(STATUS_FOUND, child)
        if outcome is _BUDGET:
            return result(STATUS_BUDGET_EXCEEDED)
        if outcome is _DEAD:
            continue
        frames.append(iter(outcome))

    return result(STATUS_EXHAUSTED)


def collect_solutions(
    start: Layout,
    limits: SearchLimits = SearchLimits(),
    max_attempts: Optional[int] = None,
    max_seconds: Optional[float] = None,
    visited: Optional[set[LayoutKey]] = None,
) -> CollectResult:
    """
    Run ``find_win`` repeatedly over one shared visited set.

    Each run is pushed down paths earlier runs did not take, which yields
    distinct winning sequences until the visited budget is spent. Solutions
    are returned shortest first.
    """
    started = time.perf_counter()
    if visited is None:
        visited = set()
    collected = CollectResult()

    while True:
        if len(visited) >= limits.max_visited:
            collected.stop_reason = "visited_limit"
            break
        if max_attempts is not None and collected.attempts >= max_attempts:
            collected.stop_reason = "attempt_limit"
            break
        if max_seconds is not None and time.perf_counter() - started >= max_seconds:
            collected.stop_reason = "time_limit"
            break

        found = find_win(start, visited, limits)
        collected.attempts += 1
        logger.debug("attempt %d: %s (%d states)", collected.attempts, found.status, len(visited))
        if found.found:
            logger.info("solution of %d moves found on attempt %d", len(found.solution), collected.attempts)
            collected.solutions.append(found.solution)
            if not found.solution:
                collected.stop_reason = "already_won"
                break
        elif found.status == STATUS_EXHAUSTED:
            collected.stop_reason = "search_space_exhausted"
            break

    collected.solutions.sort(key=len)
    collected.unique_states = len(visited)
    collected.elapsed_ms = (time.perf_counter() - started) * 1000.0
    return collected
