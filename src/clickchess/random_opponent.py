"""
RandomOpponent: picks a uniformly random legal move.

- Useful as a fast, engine-free opponent and for exercising the orchestration path.
- No engine resources; choose() samples from the legal moves of the FEN; close() is a no-op.

"""
from __future__ import annotations
import random
import chess


class RandomOpponent:
    """Simple opponent that replies with a uniformly random legal move in UCI form."""
    name: str = "Random"

    def __init__(self, seed: int | None = None):
        self._rng = random.Random(seed)

    def choose(self, fen: str) -> str:
        legal = list(chess.Board(fen).legal_moves)
        return self._rng.choice(legal).uci() if legal else ""

    def close(self):
        # No engine resources to release
        pass
