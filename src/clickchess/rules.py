"""
Rules engine adapter over python-chess.

Every query takes a FEN string and never mutates shared state; boards are rebuilt
per call (legal move sets are cached per FEN, as move_validator does for replies).
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

import chess

from .models import GameStatus, Move, Side

STARTING_FEN = chess.STARTING_FEN


@lru_cache(maxsize=4096)
def _legal_uci(fen: str) -> frozenset[str]:
    board = chess.Board(fen)
    return frozenset(m.uci() for m in board.legal_moves)


def _to_chess_move(move: Move) -> chess.Move:
    return chess.Move.from_uci(move.uci())


def side_to_move(fen: str) -> Side:
    return Side.WHITE if chess.Board(fen).turn == chess.WHITE else Side.BLACK


def piece_at(fen: str, square: str) -> Optional[tuple[Side, str]]:
    """Return (side, piece letter) for the occupant of square, or None if empty."""
    piece = chess.Board(fen).piece_at(chess.parse_square(square))
    if piece is None:
        return None
    side = Side.WHITE if piece.color == chess.WHITE else Side.BLACK
    return side, chess.piece_symbol(piece.piece_type)


def legal_destinations(fen: str, square: str) -> frozenset[str]:
    # promotion variants collapse onto the same destination square
    return frozenset(u[2:4] for u in _legal_uci(fen) if u[:2] == square)


def is_promotion(fen: str, origin: str, destination: str) -> bool:
    """True when a pawn on origin reaches the last rank for its color on destination."""
    occupant = piece_at(fen, origin)
    if occupant is None or occupant[1] != "p":
        return False
    last_rank = "8" if occupant[0] is Side.WHITE else "1"
    return destination[1] == last_rank


def is_legal(fen: str, move: Move) -> bool:
    return move.uci() in _legal_uci(fen)


def apply(fen: str, move: Move) -> Optional[str]:
    """Return the FEN after move, or None when the move is rejected."""
    if not is_legal(fen, move):
        return None
    board = chess.Board(fen)
    board.push(_to_chess_move(move))
    return board.fen()


def san(fen: str, move: Move) -> str:
    return chess.Board(fen).san(_to_chess_move(move))


def board_status(board: chess.Board) -> GameStatus:
    """Status from a board carrying its move stack (needed for repetition draws)."""
    if board.is_checkmate():
        return GameStatus.CHECKMATE
    if board.is_stalemate():
        return GameStatus.STALEMATE
    if board.is_insufficient_material() or board.is_fifty_moves() or board.is_repetition(3):
        return GameStatus.DRAW
    if board.is_check():
        return GameStatus.CHECK
    return GameStatus.ONGOING


def status(fen: str) -> GameStatus:
    return board_status(chess.Board(fen))
