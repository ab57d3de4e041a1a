"""Turn sequencing, scoring and difficulty locking for a human-vs-computer game."""

from __future__ import annotations

import enum
import logging
import random
import threading
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

from .ai import Intelligence, choose_random_move
from .game import SYMBOLS, Board, Cell, Player, ScoreTracker, Symbol, other_symbol
from .scheduling import ScheduledCall, Scheduler, ThreadingScheduler

logger = logging.getLogger(__name__)


COMPUTER_THINK_DELAY = 0.4  # seconds

STATUS_HUMAN_TURN = "Your turn"
STATUS_COMPUTER_TURN = "Computer thinking..."
STATUS_HUMAN_WIN = "You win!"
STATUS_COMPUTER_WIN = "Computer wins!"
STATUS_DRAW = "It's a draw!"

TIP_LOCKED = "Mode is locked while a game is in progress."
TIP_UNLOCKED = "You can change mode before starting a round."
TIP_REJECTED = "You cannot change mode while a game is in progress."


class Phase(str, enum.Enum):
    AWAITING_HUMAN = "awaiting_human"
    AWAITING_COMPUTER = "awaiting_computer"
    GAME_OVER = "game_over"


class Outcome(str, enum.Enum):
    HUMAN_WIN = "human_win"
    COMPUTER_WIN = "computer_win"
    DRAW = "draw"


@dataclass(frozen=True)
class GameView:
    """Everything a rendering surface needs to draw one frame."""

    cells: Tuple[Cell, ...]
    current_symbol: Symbol
    phase: Phase
    outcome: Optional[Outcome]
    win_combo: Optional[Tuple[int, int, int]]
    status: str
    mode_tip: str
    mode_tip_visible: bool
    mode_locked: bool
    impossible_mode: bool
    computer_pending: bool
    human: Player
    computer: Player
    scores: ScoreTracker


class Surface(Protocol):
    def refresh(self, view: GameView) -> None: ...


class NullSurface:
    def refresh(self, view: GameView) -> None:
        pass


class GameController:
    """State machine driving one human-vs-computer session.

    The controller owns the board and the scoreboard. The rendering surface
    and the scheduler for the delayed computer move are handed in, so a
    headless harness can stand in for the browser and the clock.

    All entry points, timer callbacks included, run under one re-entrant
    lock: only a single step ever mutates the board at a time.
    """

    def __init__(
        self,
        surface: Optional[Surface] = None,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[random.Random] = None,
        think_delay: float = COMPUTER_THINK_DELAY,
        impossible_mode: bool = False,
    ) -> None:
        self.surface: Surface = surface or NullSurface()
        self.scheduler: Scheduler = scheduler or ThreadingScheduler()
        self.rng = rng or random.Random()
        self.think_delay = think_delay

        self.board = Board()
        self.scores = ScoreTracker()
        self.human = Player("You", "X")
        self.computer = Player("Computer", "O")
        self.current_symbol: Symbol = self.human.symbol
        self.game_over = False
        self.outcome: Optional[Outcome] = None
        self.win_combo: Optional[Tuple[int, int, int]] = None
        self.impossible_mode = impossible_mode
        self.mode_locked = False
        self.status = STATUS_HUMAN_TURN
        self.mode_tip = TIP_UNLOCKED
        self.mode_tip_visible = False

        self._pending: Optional[ScheduledCall] = None
        self._round = 0
        self._lock = threading.RLock()

        self._publish()

    # ---- state inspection ----

    @property
    def phase(self) -> Phase:
        with self._lock:
            if self.game_over:
                return Phase.GAME_OVER
            if self.current_symbol == self.computer.symbol:
                return Phase.AWAITING_COMPUTER
            return Phase.AWAITING_HUMAN

    @property
    def computer_pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def snapshot(self) -> GameView:
        with self._lock:
            return GameView(
                cells=tuple(self.board.cells),
                current_symbol=self.current_symbol,
                phase=self.phase,
                outcome=self.outcome,
                win_combo=self.win_combo,
                status=self.status,
                mode_tip=self.mode_tip,
                mode_tip_visible=self.mode_tip_visible,
                mode_locked=self.mode_locked,
                impossible_mode=self.impossible_mode,
                computer_pending=self.computer_pending,
                human=Player(self.human.name, self.human.symbol),
                computer=Player(self.computer.name, self.computer.symbol),
                scores=ScoreTracker(
                    human_wins=self.scores.human_wins,
                    human_losses=self.scores.human_losses,
                    computer_wins=self.scores.computer_wins,
                    computer_losses=self.scores.computer_losses,
                ),
            )

    # ---- moves ----

    def handle_human_move(self, index: int) -> bool:
        if not 0 <= index < 9:
            raise ValueError(f"Cell index {index} is outside the board")
        with self._lock:
            if self.game_over or self.current_symbol != self.human.symbol:
                return False
            if not self.board.place_mark(index, self.human.symbol):
                return False
            logger.debug("Human placed %s at %d", self.human.symbol, index)

            self._lock_mode()
            self._after_move(self.human)
            if self.game_over:
                return True

            self.current_symbol = self.computer.symbol
            self._update_status()
            self.queue_computer_move()
            self._publish()
            return True

    def handle_computer_move(self) -> bool:
        return self._take_computer_turn()

    def _take_computer_turn(self, handle: Optional[ScheduledCall] = None) -> bool:
        with self._lock:
            if handle is not None and self._pending is not handle:
                return False
            if (
                self.game_over
                or self.current_symbol != self.computer.symbol
                or not self.board.get_empty_cells()
            ):
                self._release(handle)
                return False
            turn = self._round
            symbol = self.computer.symbol
            position: Optional[Board] = None
            if self.impossible_mode:
                position = Board(cells=list(self.board.cells))
            else:
                index = choose_random_move(self.board, self.rng)

        if position is not None:
            # Searched unlocked on a copy so restarts stay responsive meanwhile
            index = Intelligence(position, symbol).get_best_move()

        with self._lock:
            if self._round != turn:
                logger.debug("Discarding computer move from a finished round")
                return False
            if handle is not None and self._pending is not handle:
                return False
            self._release(handle)
            if not self.board.place_mark(index, self.computer.symbol):
                return False
            logger.debug("Computer placed %s at %d", self.computer.symbol, index)

            self._lock_mode()
            self._after_move(self.computer)
            if self.game_over:
                return True

            self.current_symbol = self.human.symbol
            self._update_status()
            self._publish()
            return True

    def _after_move(self, player: Player) -> None:
        self.win_combo = self.board.get_winning_combo(player.symbol)
        if self.win_combo:
            if player is self.human:
                self.scores.record_human_win()
                self._end_game(Outcome.HUMAN_WIN, STATUS_HUMAN_WIN)
            else:
                self.scores.record_computer_win()
                self._end_game(Outcome.COMPUTER_WIN, STATUS_COMPUTER_WIN)
            return

        if self.board.is_draw():
            self._end_game(Outcome.DRAW, STATUS_DRAW)

    def _end_game(self, outcome: Outcome, message: str) -> None:
        self.game_over = True
        self.outcome = outcome
        self.mode_locked = False
        self.status = message
        self._sync_mode_tip()
        logger.info("Game over: %s (line %s)", outcome.value, self.win_combo)
        self._publish()

    # ---- controls ----

    def set_impossible_mode(self, enabled: bool) -> bool:
        with self._lock:
            if self.mode_locked:
                self.mode_tip = TIP_REJECTED
                self.mode_tip_visible = True
                self._publish()
                return False
            self.impossible_mode = bool(enabled)
            self._sync_mode_tip()
            self._publish()
            return True

    def set_player_symbol(self, symbol: Symbol) -> None:
        if symbol not in SYMBOLS:
            raise ValueError(f"Unknown symbol {symbol!r}; choose X or O")
        with self._lock:
            self.human.set_symbol(symbol)
            self.computer.set_symbol(other_symbol(symbol))
            self.reset(randomize_starter=True)

    def restart(self) -> None:
        self.reset(randomize_starter=False)

    def new_game(self) -> None:
        self.reset(randomize_starter=True)

    def reset(self, randomize_starter: bool) -> None:
        with self._lock:
            self._clear_pending()
            self._round += 1
            self.board.reset()
            self.game_over = False
            self.outcome = None
            self.win_combo = None
            self.mode_locked = False

            if randomize_starter:
                self.current_symbol = (
                    self.human.symbol if self.rng.random() < 0.5 else self.computer.symbol
                )

            self._update_status()
            self._sync_mode_tip()
            if self.current_symbol == self.computer.symbol:
                self.queue_computer_move()
            self._publish()

    def close(self) -> None:
        with self._lock:
            self._clear_pending()

    # ---- computer timer ----

    def queue_computer_move(self) -> None:
        with self._lock:
            self._clear_pending()
            handle: Optional[ScheduledCall] = None

            def fire() -> None:
                self._take_computer_turn(handle)

            handle = self.scheduler.call_later(self.think_delay, fire)
            self._pending = handle
            logger.debug("Computer move queued in %.2fs", self.think_delay)

    def _release(self, handle: Optional[ScheduledCall]) -> None:
        if handle is not None and self._pending is handle:
            self._pending = None

    def _clear_pending(self) -> None:
        if self._pending is None:
            return
        self._pending.cancel()
        self._pending = None
        logger.debug("Pending computer move cancelled")

    # ---- presentation ----

    def _lock_mode(self) -> None:
        self.mode_locked = True
        self._sync_mode_tip()

    def _sync_mode_tip(self) -> None:
        if self.mode_locked:
            self.mode_tip = TIP_LOCKED
            return
        self.mode_tip = TIP_UNLOCKED
        self.mode_tip_visible = False

    def _update_status(self) -> None:
        self.status = (
            STATUS_HUMAN_TURN
            if self.current_symbol == self.human.symbol
            else STATUS_COMPUTER_TURN
        )

    def _publish(self) -> None:
        self.surface.refresh(self.snapshot())
