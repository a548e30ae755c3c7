"""
Stockfish-backed opponent.

- Resolves engine binary path from: explicit parameter, SETTINGS.stockfish_path/env, or system PATH.
- choose(): queries the engine with either fixed depth or movetime_ms and returns the UCI encoding.
- analyse(): evaluation, white's winning percentage and the top candidate moves for a position.
- close(): terminates the engine process.

"""
from __future__ import annotations
import os, shutil, chess, chess.engine
from .config import SETTINGS


class EngineOpponent:
    name = "Stockfish"

    def __init__(self, depth: int | None = None, movetime_ms: int | None = None, engine_path: str | None = None,
                 analysis_depth: int | None = None):
        """Initialize engine opponent.

        engine_path precedence:
          1. explicit parameter
          2. STOCKFISH_PATH env / settings
          3. auto-detect via shutil.which('stockfish')
        Raises RuntimeError with guidance if not found.
        """
        candidate = engine_path or SETTINGS.stockfish_path or "stockfish"
        resolved = shutil.which(candidate) or (candidate if os.path.isfile(candidate) else None)
        if not resolved:
            auto = shutil.which("stockfish")
            if auto:
                resolved = auto
            else:
                raise RuntimeError(
                    f"Stockfish engine not found (candidate='{candidate}'). Install it (e.g. 'apt install stockfish'), "
                    "set STOCKFISH_PATH to the binary path, or choose CLICKCHESS_OPPONENT=random."
                )
        self.engine_path = resolved
        try:
            self.engine = chess.engine.SimpleEngine.popen_uci(self.engine_path)
        except (FileNotFoundError, PermissionError) as e:
            raise RuntimeError(f"Failed launching engine at '{self.engine_path}': {e}") from e
        self.depth = depth if depth is not None else SETTINGS.engine_depth
        self.movetime_ms = movetime_ms if movetime_ms is not None else SETTINGS.engine_movetime_ms
        self.analysis_depth = analysis_depth or SETTINGS.analysis_depth

    def _limit(self) -> chess.engine.Limit:
        if self.movetime_ms:
            return chess.engine.Limit(time=self.movetime_ms / 1000)
        return chess.engine.Limit(depth=self.depth)

    def choose(self, fen: str) -> str:
        res = self.engine.play(chess.Board(fen), self._limit())
        return res.move.uci() if res.move else ""

    def analyse(self, fen: str, multipv: int = 3) -> dict:
        board = chess.Board(fen)
        infos = self.engine.analyse(board, chess.engine.Limit(depth=self.analysis_depth), multipv=multipv)
        if isinstance(infos, dict):
            infos = [infos]
        suggested = []
        for info in infos:
            pv = info.get("pv") or []
            if pv:
                suggested.append({"move": board.san(pv[0]), "uci": pv[0].uci()})
        top = infos[0].get("score") if infos else None
        if top is None:
            return {"evaluation": None, "mate_in": None, "winning_percentage": None, "suggested_moves": suggested}
        white = top.white()
        wdl = white.wdl(model="sf", ply=board.ply())
        return {
            "evaluation": white.score(),  # centipawns from white's view, None when mating
            "mate_in": white.mate(),
            "winning_percentage": round(wdl.expectation() * 100, 1),
            "suggested_moves": suggested,
        }

    def close(self):
        self.engine.quit()
