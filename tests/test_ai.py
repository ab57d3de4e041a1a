"""Tests for the minimax engine and the random mover."""

import random

from tictactoe.ai import Intelligence, choose_random_move
from tictactoe.game import Board


_ = None


def _reply_cache():
    cache = {}

    def reply(board: Board) -> int:
        key = tuple(board.cells)
        if key not in cache:
            cache[key] = Intelligence(board, "O").get_best_move()
        return cache[key]

    return reply


def test_ai_takes_immediate_win():
    board = Board(cells=["X", "X", _, "O", "O", _, _, _, _])
    ai = Intelligence(board, "X")
    assert ai.get_best_move() == 2


def test_ai_blocks_opponent_win():
    board = Board(cells=["O", "O", _, "X", _, _, _, _, _])
    ai = Intelligence(board, "X")
    assert ai.get_best_move() == 2


def test_search_leaves_board_untouched():
    cells = ["X", _, _, _, "O", _, _, _, "X"]
    board = Board(cells=list(cells))
    Intelligence(board, "O").get_best_move()
    assert board.cells == cells


def test_full_board_has_no_move():
    board = Board(cells=["X", "O", "X", "X", "O", "O", "O", "X", "X"])
    assert Intelligence(board, "X").get_best_move() == -1
    assert choose_random_move(board) == -1


def test_explicit_board_argument_is_searched():
    live = Board()
    other = Board(cells=["O", "O", _, "X", "X", _, _, _, _])
    ai = Intelligence(live, "O")
    assert ai.get_best_move(other) == 2
    assert live.cells == [None] * 9


def test_evaluate_prefers_faster_wins():
    board = Board(cells=["X", "X", "X", "O", "O", _, _, _, _])
    ai = Intelligence(board, "X")
    assert ai.evaluate(board, 1, False) == 9
    assert ai.evaluate(board, 3, False) == 7

    ai_o = Intelligence(board, "O")
    assert ai_o.evaluate(board, 2, True) == -8


def test_evaluate_scores_draw_as_zero():
    board = Board(cells=["X", "O", "X", "X", "O", "O", "O", "X", "X"])
    assert Intelligence(board, "O").evaluate(board, 4, True) == 0


def test_opponent_symbol_is_derived():
    assert Intelligence(Board(), "X").opponent == "O"
    assert Intelligence(Board(), "O").opponent == "X"


def test_ai_playing_second_never_loses():
    reply = _reply_cache()
    outcomes = set()

    def explore(board: Board) -> None:
        for index in board.get_empty_cells():
            child = Board(cells=list(board.cells))
            child.place_mark(index, "X")
            assert not child.has_winner("X"), child.cells
            if child.is_draw():
                outcomes.add("draw")
                continue
            move = reply(child)
            assert child.place_mark(move, "O")
            if child.has_winner("O"):
                outcomes.add("win")
                continue
            if child.is_draw():
                outcomes.add("draw")
                continue
            explore(child)

    explore(Board())
    assert outcomes <= {"win", "draw"}
    assert "draw" in outcomes


def test_ai_beats_or_draws_random_play():
    reply = _reply_cache()
    rng = random.Random(1234)
    for _game in range(25):
        board = Board()
        while True:
            board.place_mark(choose_random_move(board, rng), "X")
            assert not board.has_winner("X")
            if board.is_draw():
                break
            board.place_mark(reply(board), "O")
            if board.has_winner("O") or board.is_draw():
                break


def test_random_move_picks_an_empty_cell():
    board = Board(cells=["X", "O", _, "X", "O", _, "O", "X", "X"])
    rng = random.Random(7)
    for _attempt in range(20):
        assert choose_random_move(board, rng) in (2, 5)
