"""Tic-tac-toe against the computer: game rules, minimax AI, and the web application."""

from .ai import Intelligence
from .controller import GameController
from .game import Board, ScoreTracker
from .ui import app

__all__ = ["Board", "GameController", "Intelligence", "ScoreTracker", "app"]
