"""
PositionStore: owner of the current position and the move history.

- Holds a python-chess Board privately (move stack kept for repetition draws) and exposes
  only immutable FEN strings and MoveHistoryEntry values.
- submit() applies a Move if the rules accept it; history is append-only until reset().
- pgn() serializes the in-memory game; nothing is written to disk.

"""
from __future__ import annotations

import datetime
import logging
from typing import Optional

import chess
import chess.pgn

from . import rules
from .models import GameStatus, Move, MoveHistoryEntry, Side

log = logging.getLogger("position_store")


class PositionStore:
    def __init__(self, starting_fen: str | None = None):
        self._starting_fen = starting_fen or rules.STARTING_FEN
        self._board = chess.Board(self._starting_fen)
        self._history: list[MoveHistoryEntry] = []

    @property
    def fen(self) -> str:
        return self._board.fen()

    @property
    def starting_fen(self) -> str:
        return self._starting_fen

    @property
    def side_to_move(self) -> Side:
        return Side.WHITE if self._board.turn == chess.WHITE else Side.BLACK

    @property
    def history(self) -> tuple[MoveHistoryEntry, ...]:
        return tuple(self._history)

    @property
    def last_entry(self) -> Optional[MoveHistoryEntry]:
        return self._history[-1] if self._history else None

    def status(self) -> GameStatus:
        return rules.board_status(self._board)

    def is_terminal(self) -> bool:
        return self.status().is_terminal

    # ---------------- Move Application -----------------
    def submit(self, move: Move) -> bool:
        """Apply move to the current position. Returns False (no change) when rejected."""
        fen_before = self.fen
        if not rules.is_legal(fen_before, move):
            log.debug("Rejected %s in %s", move.uci(), fen_before)
            return False
        san = rules.san(fen_before, move)
        self._board.push(chess.Move.from_uci(move.uci()))
        entry = MoveHistoryEntry(move=move, san=san, fen=self._board.fen(), ply=len(self._history) + 1)
        self._history.append(entry)
        log.debug("Ply %d %s (%s)", entry.ply, san, move.uci())
        return True

    def reset(self) -> None:
        self._board = chess.Board(self._starting_fen)
        self._history.clear()

    # ---------------- PGN / Export -----------------
    def pgn(self, white: str = "?", black: str = "?") -> str:
        game = chess.pgn.Game()
        game.headers["Event"] = "clickchess"
        game.headers["Date"] = datetime.date.today().strftime("%Y.%m.%d")
        game.headers["White"] = white
        game.headers["Black"] = black
        if self._starting_fen != rules.STARTING_FEN:
            game.setup(chess.Board(self._starting_fen))
        game.headers["Result"] = self._board.result(claim_draw=True) if self.is_terminal() else "*"
        node = game
        for mv in self._board.move_stack:
            node = node.add_variation(mv)
        exporter = chess.pgn.StringExporter(headers=True, variations=False, comments=False)
        return game.accept(exporter)

    def history_text(self) -> str:
        """Numbered move list in the '1. e4 1... e5' form used for narration."""
        first_black = self._board_at_start_is_black()
        parts = []
        for entry in self._history:
            idx = entry.ply - 1 + (1 if first_black else 0)
            number = idx // 2 + 1
            parts.append(f"{number}{'.' if idx % 2 == 0 else '...'} {entry.san}")
        return " ".join(parts)

    def _board_at_start_is_black(self) -> bool:
        return chess.Board(self._starting_fen).turn == chess.BLACK
