"""Core rules for tic-tac-toe: the board, players and the session scoreboard."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

Symbol = str  # "X" or "O"
Cell = Optional[Symbol]

SYMBOLS: Tuple[Symbol, Symbol] = ("X", "O")

WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


def other_symbol(symbol: Symbol) -> Symbol:
    return "O" if symbol == "X" else "X"


# ---------- Board ----------


@dataclass
class Board:
    # None for empty, otherwise the symbol that owns the cell
    cells: List[Cell] = field(default_factory=lambda: [None] * 9)

    def reset(self) -> None:
        self.cells = [None] * 9

    def place_mark(self, index: int, symbol: Symbol) -> bool:
        """Occupy ``index`` with ``symbol``; False if the cell is taken."""
        if self.cells[index] is not None:
            return False
        self.cells[index] = symbol
        return True

    def reset_mark(self, index: int) -> bool:
        """Clear an occupied cell; only the search undoes moves this way."""
        if self.cells[index] is None:
            return False
        self.cells[index] = None
        return True

    @contextmanager
    def hypothetical(self, index: int, symbol: Symbol) -> Iterator["Board"]:
        """Place a mark for the duration of the block, then take it back."""
        placed = self.place_mark(index, symbol)
        try:
            yield self
        finally:
            if placed:
                self.reset_mark(index)

    def get_empty_cells(self) -> List[int]:
        return [i for i, c in enumerate(self.cells) if c is None]

    def get_winning_combo(self, symbol: Symbol) -> Optional[Tuple[int, int, int]]:
        # Table order decides which line is reported when several are complete
        for line in WINNING_LINES:
            if all(self.cells[i] == symbol for i in line):
                return line
        return None

    def has_winner(self, symbol: Symbol) -> bool:
        return self.get_winning_combo(symbol) is not None

    def is_draw(self) -> bool:
        # Full board; a full board can still hold a win, check winners first
        return all(c is not None for c in self.cells)


# ---------- Players & scores ----------


@dataclass
class Player:
    name: str
    symbol: Symbol

    def set_symbol(self, symbol: Symbol) -> None:
        self.symbol = symbol


@dataclass
class ScoreTracker:
    """Win/loss counters kept for the lifetime of a session."""

    human_wins: int = 0
    human_losses: int = 0
    computer_wins: int = 0
    computer_losses: int = 0

    def record_human_win(self) -> None:
        self.human_wins += 1
        self.computer_losses += 1

    def record_computer_win(self) -> None:
        self.computer_wins += 1
        self.human_losses += 1
