"""Decides whether clicks are currently accepted from the human."""
from __future__ import annotations

from . import rules
from .models import GameMode, GameSettings, GameStatus


def is_input_accepted(settings: GameSettings, fen: str) -> bool:
    """Human-vs-human always accepts; otherwise only on the human's own turn."""
    if settings.mode is GameMode.HUMAN_VS_HUMAN:
        return True
    return rules.side_to_move(fen) is settings.human_side


def human_may_act(settings: GameSettings, fen: str, status: GameStatus, requesting: bool) -> bool:
    """Full click admission check: turn gate, terminal status and in-flight opponent request."""
    if status.is_terminal or requesting:
        return False
    return is_input_accepted(settings, fen)


def opponent_to_move(settings: GameSettings, fen: str, status: GameStatus) -> bool:
    if settings.mode is not GameMode.HUMAN_VS_OPPONENT or status.is_terminal:
        return False
    return not is_input_accepted(settings, fen)
