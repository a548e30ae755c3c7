"""
Core value types shared by the selection, orchestration and store layers.

All types are immutable: a new value is produced on every transition.
"""
from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Optional, Union

SQUARE_RE = re.compile(r"^[a-h][1-8]$")
UCI_RE = re.compile(r"^([a-h][1-8])([a-h][1-8])([qrbn])?$", re.I)

PROMOTION_KINDS = ("q", "r", "b", "n")
_PROMOTION_NAMES = {
    "queen": "q",
    "rook": "r",
    "bishop": "b",
    "knight": "n",
}


class Side(str, enum.Enum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Side":
        return Side.BLACK if self is Side.WHITE else Side.WHITE

    @property
    def label(self) -> str:
        return self.value.capitalize()


class GameMode(str, enum.Enum):
    HUMAN_VS_HUMAN = "human-vs-human"
    HUMAN_VS_OPPONENT = "human-vs-opponent"

    @property
    def label(self) -> str:
        return "Human vs Human" if self is GameMode.HUMAN_VS_HUMAN else "Human vs CPU"


class GameStatus(str, enum.Enum):
    ONGOING = "ongoing"
    CHECK = "check"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    DRAW = "draw"

    @property
    def is_terminal(self) -> bool:
        return self in (GameStatus.CHECKMATE, GameStatus.STALEMATE, GameStatus.DRAW)

    @property
    def label(self) -> str:
        return "Playing" if self is GameStatus.ONGOING else self.value.capitalize()


class HighlightKind(str, enum.Enum):
    ORIGIN = "origin"
    QUIET = "quiet"
    CAPTURE = "capture"


def normalize_square(square: str) -> Optional[str]:
    """Return the lowercase square name, or None when it is not a board square."""
    if not isinstance(square, str):
        return None
    sq = square.strip().lower()
    return sq if SQUARE_RE.match(sq) else None


def normalize_promotion(piece: Optional[str]) -> Optional[str]:
    """Map 'q', 'Queen' or a renderer piece code like 'wR' to a promotion letter.

    Returns None for anything that is not one of the four promotion kinds.
    """
    if not piece or not isinstance(piece, str):
        return None
    token = piece.strip().lower()
    if len(token) == 2 and token[0] in "wb":
        token = token[1]
    token = _PROMOTION_NAMES.get(token, token)
    return token if token in PROMOTION_KINDS else None


@dataclass(frozen=True)
class GameSettings:
    mode: GameMode = GameMode.HUMAN_VS_HUMAN
    human_side: Side = Side.WHITE  # only meaningful against the opponent

    @property
    def opponent_side(self) -> Optional[Side]:
        if self.mode is GameMode.HUMAN_VS_HUMAN:
            return None
        return self.human_side.opponent

    @classmethod
    def from_payload(cls, data: dict) -> "GameSettings":
        mode_raw = str(data.get("mode") or GameMode.HUMAN_VS_HUMAN.value).lower()
        # front ends may still send the older "cpu" naming
        if mode_raw in ("human-vs-cpu", "cpu", "opponent", "engine"):
            mode_raw = GameMode.HUMAN_VS_OPPONENT.value
        mode = GameMode(mode_raw)
        side = Side(str(data.get("human_side") or Side.WHITE.value).lower())
        return cls(mode=mode, human_side=side)


@dataclass(frozen=True)
class Move:
    origin: str
    destination: str
    promotion: Optional[str] = None

    def uci(self) -> str:
        return f"{self.origin}{self.destination}{self.promotion or ''}"

    @classmethod
    def from_uci(cls, text: str) -> "Move":
        m = UCI_RE.match((text or "").strip())
        if not m:
            raise ValueError(f"not a UCI move: {text!r}")
        promo = m.group(3).lower() if m.group(3) else None
        return cls(m.group(1).lower(), m.group(2).lower(), promo)


@dataclass(frozen=True)
class MoveHistoryEntry:
    move: Move
    san: str
    fen: str  # position after the move
    ply: int

    def to_dict(self) -> dict:
        return {"ply": self.ply, "uci": self.move.uci(), "san": self.san, "fen": self.fen}


# ---------------- Selection states -----------------
@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class OriginSelected:
    origin: str


@dataclass(frozen=True)
class AwaitingPromotion:
    origin: str
    destination: str


SelectionState = Union[Idle, OriginSelected, AwaitingPromotion]
