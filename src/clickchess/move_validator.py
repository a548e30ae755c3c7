"""
Parsing/validation of opponent engine replies.

Replies are long algebraic (UCI) encodings: origin, destination, optional promotion letter
(e2e4, e7e8q). A pawn reaching its last rank without a letter is promoted to a queen, since the
move is not well formed otherwise. Castling written as 0-0 / O-O-O is tolerated.
"""
from __future__ import annotations

from typing import Optional, TypedDict

from . import rules
from .models import UCI_RE, Move, Side

CASTLE_ZERO = {"0-0": "O-O", "0-0-0": "O-O-O", "o-o": "O-O", "o-o-o": "O-O-O"}
DEFAULT_PROMOTION = "q"


class ParsedMove(TypedDict, total=False):
    ok: bool
    move: Move
    uci: str
    reason: str


def _primary_token(text: str) -> str:
    tokens = (text or "").strip().replace("\n", " ").split()
    return tokens[0] if tokens else ""


def _expand_castle(token: str, fen: str) -> str:
    rank = "1" if rules.side_to_move(fen) is Side.WHITE else "8"
    short = CASTLE_ZERO[token] == "O-O"
    return f"e{rank}g{rank}" if short else f"e{rank}c{rank}"


def parse_move_encoding(raw: Optional[str], fen: str) -> ParsedMove:
    """Parse raw into a Move without checking legality (promotion default applied)."""
    token = _primary_token(raw or "").lower()
    if not token or token == "(none)" or token == "0000":
        return {"ok": False, "reason": "empty_reply"}
    if token in CASTLE_ZERO:
        token = _expand_castle(token, fen)
    if not UCI_RE.fullmatch(token):
        return {"ok": False, "reason": "bad_uci_format"}
    move = Move.from_uci(token)
    if move.promotion is None and rules.is_promotion(fen, move.origin, move.destination):
        move = Move(move.origin, move.destination, DEFAULT_PROMOTION)
    return {"ok": True, "move": move, "uci": move.uci()}


def parse_engine_reply(raw: Optional[str], fen: str) -> ParsedMove:
    """Parse raw and require the move to be legal in fen."""
    parsed = parse_move_encoding(raw, fen)
    if not parsed.get("ok"):
        return parsed
    if not rules.is_legal(fen, parsed["move"]):
        return {"ok": False, "reason": "illegal_move", "uci": parsed["uci"]}
    return parsed


__all__ = ["parse_engine_reply", "parse_move_encoding", "ParsedMove", "DEFAULT_PROMOTION"]
