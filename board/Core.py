from __future__ import annotations

import random
from collections import Counter
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Iterable, Optional

STACK_COUNT = 6
RANK_COUNT = 9
COPIES_PER_RANK = 4
COMPLETED_TO_WIN = 4
DEALT_PER_STACK = 6

DUMMY_PLAYER = "Dummy"


class BoardError(Exception):
    pass


class MoveContractError(BoardError, ValueError):
    """A move was built with indices or a count the layout cannot satisfy."""


class IllegalMoveError(BoardError):
    pass


class LayoutParseError(BoardError, ValueError):
    pass


class MoveParseError(BoardError, ValueError):
    pass


class UnreadableBoardError(BoardError):
    """The board could not be read; acquisition may be retried."""


class Card(IntEnum):
    SIX = 0
    SEVEN = 1
    EIGHT = 2
    NINE = 3
    TEN = 4
    VALET = 5
    DAME = 6
    KING = 7
    ACE = 8

    def to_char(self) -> str:
        return _CARD_CHARS[self]

    @staticmethod
    def from_char(value: str) -> Optional["Card"]:
        return _CHAR_TO_CARD.get(value.upper())

    def __str__(self):
        return self.to_char()


# T(uz) is the ace; the ten is written 0 so every rank fits one column.
_CARD_CHARS = "67890VDKT"
_CHAR_TO_CARD = {char: Card(rank) for rank, char in enumerate(_CARD_CHARS)}
_CHAR_TO_CARD["1"] = Card.TEN


class Stack:
    def __init__(self, cards: Iterable[Card] = (), completed=False, forced=False):
        self.cards: list[Card] = list(cards)
        self.completed = completed
        self.forced = forced

    def __len__(self):
        return len(self.cards)

    def __repr__(self):
        flags = ""
        if self.completed:
            flags += " completed"
        if self.forced:
            flags += " forced"
        return f"Stack({''.join(c.to_char() for c in self.cards)!r}{flags})"

    def top(self) -> Optional[Card]:
        if not self.cards:
            return None
        return self.cards[-1]

    def run_length(self) -> int:
        """Length of the descending-by-one run counted from the top card."""
        cards = self.cards
        n = len(cards)
        if n < 2:
            return n
        run = 1
        while run < n and cards[n - run] + 1 == cards[n - run - 1]:
            run += 1
        return run

    def accepts(self, card: Card) -> bool:
        if not self.cards:
            return True
        return card + 1 == self.cards[-1]

    def is_complete_run(self) -> bool:
        return len(self.cards) == RANK_COUNT and self.run_length() == RANK_COUNT

    def copy(self) -> "Stack":
        return Stack(self.cards, self.completed, self.forced)


@dataclass(frozen=True, slots=True)
class Move:
    source: int
    to: int
    count: int

    def to_notation(self) -> str:
        return f"S{self.source}->S{self.to} x{self.count}"

    @staticmethod
    def from_text(text: str) -> "Move":
        tokens = text.split()
        if len(tokens) != 3:
            raise MoveParseError(f"expected 'source to count', got {text.strip()!r}")
        try:
            source, to, count = (int(token) for token in tokens)
        except ValueError:
            raise MoveParseError(f"move values must be integers, got {text.strip()!r}") from None
        return Move(source, to, count)


class MoveValidity(Enum):
    LEGAL = "legal"
    FORCED = "forced"
    ILLEGAL = "illegal"


class Layout:
    """Six stacks plus the moves that produced them from the deal."""

    def __init__(self, stacks: Optional[Iterable[Stack]] = None, history: Iterable[Move] = ()):
        if stacks is None:
            stacks = [Stack() for _ in range(STACK_COUNT)]
        self.stacks: list[Stack] = list(stacks)
        if len(self.stacks) != STACK_COUNT:
            raise LayoutParseError(f"a layout has {STACK_COUNT} stacks, got {len(self.stacks)}")
        self.history: list[Move] = list(history)

    def key(self) -> tuple[tuple[tuple[Card, ...], bool], ...]:
        return tuple((tuple(stack.cards), stack.forced) for stack in self.stacks)

    def canonical(self) -> str:
        parts = []
        for stack in self.stacks:
            parts.append("S")
            parts.extend(card.to_char() for card in stack.cards)
            if stack.forced:
                parts.append("_")
        return "".join(parts)

    def __eq__(self, other):
        if not isinstance(other, Layout):
            return NotImplemented
        return self.key() == other.key()

    def __hash__(self):
        return hash(self.key())

    def __repr__(self):
        return f"Layout({self.canonical()!r}, moves={len(self.history)})"

    def clone(self) -> "Layout":
        return Layout((stack.copy() for stack in self.stacks), self.history)

    def after_move(self, move: Move) -> "Layout":
        layout = self.clone()
        if not apply_move(layout, move):
            raise IllegalMoveError(f"{move.to_notation()} is illegal from {self.canonical()}")
        layout.history.append(move)
        return layout

    def completed_count(self) -> int:
        return sum(1 for stack in self.stacks if stack.completed)

    def is_win(self) -> bool:
        return self.completed_count() == COMPLETED_TO_WIN

    def is_finished(self) -> bool:
        return not valid_moves(self)

    def card_counts(self) -> Counter:
        counts: Counter = Counter()
        for stack in self.stacks:
            counts.update(stack.cards)
        return counts

    @staticmethod
    def deal(rng: Optional[random.Random] = None) -> "Layout":
        """Deal four shuffled passes of the nine ranks round robin across the stacks."""
        rng = rng or random.Random()
        layout = Layout()
        dest = 0
        for _ in range(COPIES_PER_RANK):
            ranks = list(Card)
            rng.shuffle(ranks)
            for card in ranks:
                layout.stacks[dest].cards.append(card)
                dest = (dest + 1) % STACK_COUNT
        return layout

    @staticmethod
    def from_rows(lines: Iterable[str]) -> "Layout":
        """Parse six rows of six rank characters, top row first."""
        rows = [line.strip() for line in lines if line.strip() and not line.lstrip().startswith("#")]
        if len(rows) != DEALT_PER_STACK:
            raise LayoutParseError(f"expected {DEALT_PER_STACK} rows, got {len(rows)}")
        layout = Layout()
        for row in rows:
            if len(row) != STACK_COUNT:
                raise LayoutParseError(f"row {row!r} must have {STACK_COUNT} cards")
            for idx, char in enumerate(row):
                card = Card.from_char(char)
                if card is None:
                    raise LayoutParseError(f"unknown card {char!r} in row {row!r}")
                layout.stacks[idx].cards.append(card)
        counts = layout.card_counts()
        wrong = [card.to_char() for card in Card if counts[card] != COPIES_PER_RANK]
        if wrong:
            raise LayoutParseError(f"each rank must appear {COPIES_PER_RANK} times, check {''.join(wrong)}")
        return layout

    @staticmethod
    def from_columns(
        columns: Iterable[str],
        forced: Iterable[int] = (),
        completed: Iterable[int] = (),
    ) -> "Layout":
        """Build a layout from per-stack strings written bottom card first."""
        stacks = []
        for column in columns:
            cards = []
            for char in column.replace(" ", ""):
                card = Card.from_char(char)
                if card is None:
                    raise LayoutParseError(f"unknown card {char!r} in column {column!r}")
                cards.append(card)
            stacks.append(Stack(cards))
        layout = Layout(stacks)
        for idx in forced:
            layout.stacks[idx].forced = True
        for idx in completed:
            layout.stacks[idx].completed = True
        return layout


def _check_contract(layout: Layout, move: Move):
    if not 0 <= move.source < STACK_COUNT or not 0 <= move.to < STACK_COUNT:
        raise MoveContractError(f"stack index out of range in {move}")
    if move.count < 1:
        raise MoveContractError(f"count must be positive in {move}")
    if move.count > len(layout.stacks[move.source]):
        raise MoveContractError(
            f"{move} takes {move.count} cards from a stack of {len(layout.stacks[move.source])}"
        )


def classify(layout: Layout, move: Move) -> MoveValidity:
    _check_contract(layout, move)
    src = layout.stacks[move.source]
    dest = layout.stacks[move.to]
    if move.source == move.to or src.completed or dest.completed or dest.forced:
        return MoveValidity.ILLEGAL

    lowest = src.cards[len(src.cards) - move.count]
    if move.count == 1:
        if dest.accepts(lowest):
            return MoveValidity.LEGAL
        # A card resting on a forced placement cannot be forced again elsewhere.
        if src.forced:
            return MoveValidity.ILLEGAL
        return MoveValidity.FORCED

    if move.count != src.run_length():
        return MoveValidity.ILLEGAL
    if dest.accepts(lowest):
        return MoveValidity.LEGAL
    return MoveValidity.ILLEGAL


def apply_move(layout: Layout, move: Move) -> bool:
    validity = classify(layout, move)
    if validity == MoveValidity.ILLEGAL:
        return False

    src = layout.stacks[move.source]
    dest = layout.stacks[move.to]
    src.forced = False
    if validity == MoveValidity.FORCED:
        dest.forced = True

    split = len(src.cards) - move.count
    moving = src.cards[split:]
    del src.cards[split:]
    dest.cards.extend(moving)

    if dest.is_complete_run():
        dest.completed = True
    return True


def valid_moves(layout: Layout) -> list[Move]:
    moves = []
    for source in range(STACK_COUNT):
        run = layout.stacks[source].run_length()
        for count in range(1, run + 1):
            for to in range(STACK_COUNT):
                move = Move(source, to, count)
                if classify(layout, move) != MoveValidity.ILLEGAL:
                    moves.append(move)
    return moves


class Core:
    """
    ask*** : called by the player, validated and reported through the interface
    do*** : the actual operation
    """

    def __init__(self):
        self.interface = None
        self.player = None
        self.layout: Optional[Layout] = None
        self.gameEnded = None

    def registerInterface(self, interface):
        self.interface = interface
        interface.core = self

    def registerPlayer(self, player):
        self.player = player

    def startGame(self, layout: Optional[Layout] = None, seed: Optional[int] = None):
        if self.interface is None or self.player is None:
            raise Exception("interface or player is null")
        if layout is None:
            layout = Layout.deal(random.Random(seed))
        self.layout = layout
        self.gameEnded = False
        self.interface.onStart()
        self.interface.notifyRedraw()

    def canMove(self, move: Move) -> bool:
        layout = self.layout
        if not 0 <= move.source < STACK_COUNT or not 0 <= move.to < STACK_COUNT:
            return False
        if move.count < 1 or move.count > len(layout.stacks[move.source]):
            return False
        return classify(layout, move) != MoveValidity.ILLEGAL

    def askMove(self, move: Move) -> bool:
        if self.gameEnded or not self.canMove(move):
            return False
        self.doMove(move)
        self.checkFinished()
        return True

    def doMove(self, move: Move):
        apply_move(self.layout, move)
        self.layout.history.append(move)
        self.interface.onEvent(move)

    def checkFinished(self) -> bool:
        if not self.layout.is_finished():
            return False
        self.gameEnded = True
        if self.layout.is_win():
            self.interface.onWin()
        else:
            self.interface.onLose()
        return True
