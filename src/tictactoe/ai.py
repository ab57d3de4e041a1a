"""Exhaustive minimax opponent, plus the random mover used on easy mode."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
import math
import random

from .game import Board, Symbol, other_symbol


WIN_SCORE = 10


@dataclass
class Intelligence:
    """Perfect-play engine searching every continuation of the live board.

    Built fresh for each computer decision:
      - Intelligence(board, symbol="O")
      - get_best_move() -> cell index, or -1 when the board is full

    The search places and takes back hypothetical marks on the borrowed
    board; every placement is scoped, so the board is left exactly as it
    was found.
    """

    board: Board
    symbol: Symbol
    opponent: Symbol = field(init=False)

    def __post_init__(self) -> None:
        self.opponent = other_symbol(self.symbol)

    # ---- public API ----

    def get_best_move(self, board: Optional[Board] = None) -> int:
        board = board if board is not None else self.board
        best_move = -1
        best_score = -math.inf

        for index in board.get_empty_cells():
            with board.hypothetical(index, self.symbol):
                score = self.evaluate(board, 1, False)
            # Strict comparison: the lowest index wins ties
            if score > best_score:
                best_score, best_move = score, index
        return best_move

    # ---- core search ----

    def evaluate(self, board: Board, depth: int, maximizing: bool) -> float:
        # Sooner wins and later losses score higher
        if board.has_winner(self.symbol):
            return WIN_SCORE - depth
        if board.has_winner(self.opponent):
            return depth - WIN_SCORE
        if board.is_draw():
            return 0

        mover = self.symbol if maximizing else self.opponent
        best = -math.inf if maximizing else math.inf
        for index in board.get_empty_cells():
            with board.hypothetical(index, mover):
                score = self.evaluate(board, depth + 1, not maximizing)
            best = max(best, score) if maximizing else min(best, score)
        return best


def choose_random_move(board: Board, rng: Optional[random.Random] = None) -> int:
    """Pick any empty cell uniformly; -1 when there is none."""
    empty = board.get_empty_cells()
    if not empty:
        return -1
    return (rng or random).choice(empty)
