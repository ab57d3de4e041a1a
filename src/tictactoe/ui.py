"""FastAPI-powered web UI for playing tic-tac-toe against the computer."""

from __future__ import annotations

import logging
import re
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .controller import COMPUTER_THINK_DELAY, GameController, GameView
from .game import SYMBOLS, Player
from .scheduling import Scheduler, ThreadingScheduler

logger = logging.getLogger(__name__)


AI_THINK_DELAY: float = COMPUTER_THINK_DELAY
SESSION_TTL_SECONDS = 60 * 30  # 30 minutes

REQUIRED_ELEMENT_IDS: Tuple[str, ...] = (
    "board",
    "status",
    "restartBtn",
    "newGameBtn",
    "chooseX",
    "chooseO",
    "humanSymbol",
    "humanWins",
    "humanLosses",
    "computerSymbol",
    "computerWins",
    "computerLosses",
    "impossibleModeSwitch",
    "modeTip",
)


class MissingElementError(RuntimeError):
    """The page lacks an element the game needs to render itself."""


@dataclass
class BrowserSurface:
    """Rendering surface backing the browser: the last published frame.

    The page polls the JSON state; ``revision`` lets it skip redraws when
    nothing changed since its last fetch.
    """

    view: Optional[GameView] = None
    revision: int = 0

    def refresh(self, view: GameView) -> None:
        self.view = view
        self.revision += 1


@dataclass
class GameSession:
    """Container for an active game and the surface it draws on."""

    controller: GameController
    surface: BrowserSurface
    last_seen: float = field(default_factory=lambda: time.time())


SESSIONS: Dict[str, GameSession] = {}
SESSIONS_LOCK = threading.Lock()
app = FastAPI(title="Tic-Tac-Toe", description="Play tic-tac-toe against the computer")


def make_scheduler() -> Scheduler:
    return ThreadingScheduler()


def _cleanup_sessions() -> None:
    """Drop sessions nobody has touched for a while, cancelling their timers."""

    now = time.time()
    expired = [
        game_id
        for game_id, session in list(SESSIONS.items())
        if now - session.last_seen >= SESSION_TTL_SECONDS
    ]
    for game_id in expired:
        session = SESSIONS.pop(game_id, None)
        if session:
            session.controller.close()
            logger.info("Evicted idle game %s", game_id)


def _normalize_symbol(value: str) -> str:
    value = value.strip().upper()
    if value not in SYMBOLS:
        raise ValueError(f"Unsupported symbol {value!r}. Choose X or O.")
    return value


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    symbol: str = Field(default="X", description="Mark the human plays with")
    impossible: bool = Field(
        default=False, description="Perfect-play computer instead of random moves"
    )

    @field_validator("symbol")
    @classmethod
    def ensure_known_symbol(cls, value: str) -> str:
        return _normalize_symbol(value)


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    model_config = ConfigDict(populate_by_name=True)

    cell_index: int = Field(alias="cellIndex", ge=0, le=8)


class SymbolRequest(BaseModel):
    """Request payload for switching the human's mark."""

    symbol: str

    @field_validator("symbol")
    @classmethod
    def ensure_known_symbol(cls, value: str) -> str:
        return _normalize_symbol(value)


class ModeRequest(BaseModel):
    """Request payload for the difficulty toggle."""

    impossible: bool


def _create_session(symbol: str, impossible: bool) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    surface = BrowserSurface()
    controller = GameController(
        surface=surface,
        scheduler=make_scheduler(),
        think_delay=AI_THINK_DELAY,
        impossible_mode=impossible,
    )
    if symbol != controller.human.symbol:
        controller.set_player_symbol(symbol)
    session = GameSession(controller=controller, surface=surface)
    game_id = uuid.uuid4().hex
    with SESSIONS_LOCK:
        _cleanup_sessions()
        SESSIONS[game_id] = session
    logger.info(
        "Created game %s (human %s, %s mode)",
        game_id,
        symbol,
        "impossible" if impossible else "easy",
    )
    return game_id, session


def _get_session(game_id: str) -> GameSession:
    with SESSIONS_LOCK:
        _cleanup_sessions()
        try:
            session = SESSIONS[game_id]
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Game not found") from exc
        session.last_seen = time.time()
        return session


def _player_state(player: Player, wins: int, losses: int) -> Dict[str, object]:
    return {
        "name": player.name,
        "symbol": player.symbol,
        "wins": wins,
        "losses": losses,
        "winsLabel": f"W {wins}",
        "lossesLabel": f"L {losses}",
    }


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    surface = session.surface
    view = surface.view
    if view is None:
        view = session.controller.snapshot()
    scores = view.scores
    return {
        "id": game_id,
        "revision": surface.revision,
        "cells": [c or "" for c in view.cells],
        "currentPlayer": view.current_symbol,
        "phase": view.phase.value,
        "outcome": view.outcome.value if view.outcome else None,
        "gameOver": view.outcome is not None,
        "winCombo": list(view.win_combo) if view.win_combo else None,
        "status": view.status,
        "modeTip": view.mode_tip,
        "modeTipVisible": view.mode_tip_visible,
        "modeLocked": view.mode_locked,
        "impossibleMode": view.impossible_mode,
        "computerPending": view.computer_pending,
        "human": _player_state(view.human, scores.human_wins, scores.human_losses),
        "computer": _player_state(
            view.computer, scores.computer_wins, scores.computer_losses
        ),
    }


@app.post("/api/game")
def create_game(request: Optional[NewGameRequest] = None) -> Dict[str, object]:
    request = request or NewGameRequest()
    game_id, session = _create_session(request.symbol, request.impossible)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/move")
def make_move(game_id: str, request: MoveRequest) -> Dict[str, object]:
    session = _get_session(game_id)
    # Occupied cells and out-of-turn clicks are ignored, not reported
    session.controller.handle_human_move(request.cell_index)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/restart")
def restart_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    session.controller.restart()
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/new")
def new_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    session.controller.new_game()
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/symbol")
def choose_symbol(game_id: str, request: SymbolRequest) -> Dict[str, object]:
    session = _get_session(game_id)
    session.controller.set_player_symbol(request.symbol)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/mode")
def set_mode(game_id: str, request: ModeRequest) -> Dict[str, object]:
    session = _get_session(game_id)
    accepted = session.controller.set_impossible_mode(request.impossible)
    state = _serialize_session(game_id, session)
    state["modeAccepted"] = accepted
    return state


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


def _require_elements(page: str, element_ids: Iterable[str]) -> None:
    """Abort start-up when the page is missing an element the script needs."""

    present = set(re.findall(r'\bid="([^"]+)"', page))
    for element_id in element_ids:
        if element_id not in present:
            raise MissingElementError(f"Missing required element: #{element_id}")


HTML_PAGE = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>Tic-Tac-Toe</title>
    <style>
      :root {
        --bg: #13203a;
        --panel: #1d2d4f;
        --accent: #f2b84b;
        --x: #5ec2ff;
        --o: #ff7a8a;
        --text: #eef2fb;
      }
      * { box-sizing: border-box; }
      body {
        margin: 0;
        min-height: 100vh;
        display: flex;
        align-items: center;
        justify-content: center;
        background: var(--bg);
        color: var(--text);
        font-family: system-ui, -apple-system, "Segoe UI", sans-serif;
      }
      main {
        width: min(420px, 94vw);
        display: flex;
        flex-direction: column;
        gap: 16px;
      }
      h1 { margin: 0; text-align: center; letter-spacing: 0.04em; }
      .scores {
        display: grid;
        grid-template-columns: 1fr 1fr;
        gap: 12px;
      }
      .score {
        background: var(--panel);
        border-radius: 12px;
        padding: 10px 14px;
        display: flex;
        justify-content: space-between;
      }
      .score .symbol { font-weight: 700; color: var(--accent); }
      #board {
        display: grid;
        grid-template-columns: repeat(3, 1fr);
        gap: 8px;
      }
      .cell {
        aspect-ratio: 1;
        background: var(--panel);
        border-radius: 12px;
        display: flex;
        align-items: center;
        justify-content: center;
        font-size: 3rem;
        font-weight: 800;
        cursor: pointer;
        user-select: none;
      }
      .cell.x { color: var(--x); }
      .cell.o { color: var(--o); }
      .cell.disabled { cursor: default; }
      .cell.win { outline: 3px solid var(--accent); }
      #status { text-align: center; min-height: 1.4em; font-size: 1.2rem; }
      .controls, .symbols {
        display: flex;
        gap: 8px;
        justify-content: center;
      }
      button {
        background: var(--panel);
        color: var(--text);
        border: 1px solid #34487a;
        border-radius: 999px;
        padding: 8px 16px;
        cursor: pointer;
      }
      button.active { background: var(--accent); color: var(--bg); }
      .mode-toggle {
        display: flex;
        align-items: center;
        justify-content: center;
        gap: 8px;
      }
      .mode-toggle.locked { opacity: 0.6; }
      #modeTip { text-align: center; font-size: 0.9rem; opacity: 0.7; }
      #modeTip.visible { color: var(--accent); opacity: 1; }
    </style>
  </head>
  <body>
    <main>
      <h1>Tic-Tac-Toe</h1>
      <section class="scores">
        <div class="score">
          <span>You (<span class="symbol" id="humanSymbol">X</span>)</span>
          <span><span id="humanWins">W 0</span> / <span id="humanLosses">L 0</span></span>
        </div>
        <div class="score">
          <span>Computer (<span class="symbol" id="computerSymbol">O</span>)</span>
          <span><span id="computerWins">W 0</span> / <span id="computerLosses">L 0</span></span>
        </div>
      </section>
      <div class="symbols">
        <button id="chooseX" class="active" type="button">Play X</button>
        <button id="chooseO" type="button">Play O</button>
      </div>
      <label class="mode-toggle">
        <input id="impossibleModeSwitch" type="checkbox" />
        Impossible mode
      </label>
      <div id="modeTip">You can change mode before starting a round.</div>
      <div id="board"></div>
      <div id="status">Your turn</div>
      <div class="controls">
        <button id="restartBtn" type="button">Restart</button>
        <button id="newGameBtn" type="button">New game</button>
      </div>
    </main>
    <script>
      const boardEl = document.getElementById('board');
      const statusEl = document.getElementById('status');
      const restartBtn = document.getElementById('restartBtn');
      const newGameBtn = document.getElementById('newGameBtn');
      const chooseXBtn = document.getElementById('chooseX');
      const chooseOBtn = document.getElementById('chooseO');
      const modeSwitch = document.getElementById('impossibleModeSwitch');
      const modeToggleEl = document.querySelector('.mode-toggle');
      const modeTipEl = document.getElementById('modeTip');

      let gameId = null;
      let state = null;
      let pollTimer = null;

      async function api(path, body) {
        const options = body === undefined
          ? { method: 'GET' }
          : {
              method: 'POST',
              headers: { 'Content-Type': 'application/json' },
              body: JSON.stringify(body),
            };
        const response = await fetch(path, options);
        if (!response.ok) {
          throw new Error(`Request failed: ${response.status}`);
        }
        return response.json();
      }

      function render(next) {
        if (state && next.revision === state.revision && next.id === state.id) {
          schedulePoll();
          return;
        }
        state = next;
        const fragment = document.createDocumentFragment();
        state.cells.forEach((value, index) => {
          const cell = document.createElement('div');
          cell.className = 'cell';
          if (value) {
            cell.textContent = value;
            cell.classList.add(value.toLowerCase(), 'disabled');
          }
          if (state.winCombo && state.winCombo.includes(index)) {
            cell.classList.add('win');
          }
          cell.addEventListener('click', () => play(index));
          fragment.appendChild(cell);
        });
        boardEl.replaceChildren(fragment);

        statusEl.textContent = state.status;
        document.getElementById('humanSymbol').textContent = state.human.symbol;
        document.getElementById('humanWins').textContent = state.human.winsLabel;
        document.getElementById('humanLosses').textContent = state.human.lossesLabel;
        document.getElementById('computerSymbol').textContent = state.computer.symbol;
        document.getElementById('computerWins').textContent = state.computer.winsLabel;
        document.getElementById('computerLosses').textContent = state.computer.lossesLabel;
        chooseXBtn.classList.toggle('active', state.human.symbol === 'X');
        chooseOBtn.classList.toggle('active', state.human.symbol === 'O');

        modeSwitch.checked = state.impossibleMode;
        modeSwitch.disabled = state.modeLocked;
        modeToggleEl.classList.toggle('locked', state.modeLocked);
        modeTipEl.textContent = state.modeTip;
        modeTipEl.classList.toggle('visible', state.modeTipVisible);

        schedulePoll();
      }

      function schedulePoll() {
        if (pollTimer) {
          clearTimeout(pollTimer);
          pollTimer = null;
        }
        if (state && state.computerPending) {
          pollTimer = setTimeout(async () => {
            pollTimer = null;
            render(await api(`/api/game/${gameId}`));
          }, 150);
        }
      }

      async function play(index) {
        if (!state || state.gameOver || state.cells[index]) return;
        render(await api(`/api/game/${gameId}/move`, { cellIndex: index }));
      }

      async function start() {
        const created = await api('/api/game', {
          symbol: 'X',
          impossible: modeSwitch.checked,
        });
        gameId = created.id;
        render(created);
      }

      restartBtn.addEventListener('click', async () => {
        render(await api(`/api/game/${gameId}/restart`, {}));
      });
      newGameBtn.addEventListener('click', async () => {
        render(await api(`/api/game/${gameId}/new`, {}));
      });
      chooseXBtn.addEventListener('click', async () => {
        render(await api(`/api/game/${gameId}/symbol`, { symbol: 'X' }));
      });
      chooseOBtn.addEventListener('click', async () => {
        render(await api(`/api/game/${gameId}/symbol`, { symbol: 'O' }));
      });
      modeSwitch.addEventListener('change', async () => {
        const next = await api(`/api/game/${gameId}/mode`, {
          impossible: modeSwitch.checked,
        });
        render(next);
        modeSwitch.checked = next.impossibleMode;
      });
      modeToggleEl.addEventListener('click', async (event) => {
        if (!state || !state.modeLocked) return;
        event.preventDefault();
        event.stopPropagation();
        render(await api(`/api/game/${gameId}/mode`, {
          impossible: !state.impossibleMode,
        }));
      });

      start().catch((error) => {
        statusEl.textContent = error.message || 'Unable to start a game.';
      });
    </script>
  </body>
</html>
"""

_require_elements(HTML_PAGE, REQUIRED_ELEMENT_IDS)
