"""
Console front end: play one game by typing square names as clicks.

Input lines:
  e2          select / move to a square
  q|r|b|n     answer the promotion chooser (empty line dismisses it)
  reset       start over with the same settings
  retry       re-request the opponent move after a dropped engine reply
  pgn         print the game so far
  quit        leave the session
"""
import argparse
import asyncio
import logging

import chess

from clickchess.config import SETTINGS
from clickchess.engine_session import create_opponent
from clickchess.game import GameController
from clickchess.models import GameMode, GameSettings, HighlightKind, Side


def render(ctrl: GameController) -> str:
    board = chess.Board(ctrl.fen)
    marks = ctrl.selection.highlights
    rows = []
    for rank in range(7, -1, -1):
        cells = []
        for file in range(8):
            sq = chess.square(file, rank)
            name = chess.square_name(sq)
            piece = board.piece_at(sq)
            symbol = piece.symbol() if piece else "."
            kind = marks.get(name)
            if kind is HighlightKind.ORIGIN:
                symbol = f"[{symbol}]"
            elif kind is HighlightKind.CAPTURE:
                symbol = f"({symbol})"
            elif kind is HighlightKind.QUIET:
                symbol = " * "
            else:
                symbol = f" {symbol} "
            cells.append(symbol)
        rows.append(f"{rank + 1} " + "".join(cells))
    rows.append("   " + "  ".join("abcdefgh"))
    snap = ctrl.snapshot()
    rows.append(f"Turn: {snap['side_to_move'].capitalize()}  Status: {snap['status_label']}"
                + ("  (thinking...)" if snap["thinking"] else ""))
    return "\n".join(rows)


async def main_async(args) -> None:
    log = logging.getLogger("play_one")
    mode = GameMode.HUMAN_VS_OPPONENT if args.opponent != "none" else GameMode.HUMAN_VS_HUMAN
    settings = GameSettings(mode=mode, human_side=Side(args.color))
    factory = (lambda: create_opponent(args.opponent, depth=args.depth, movetime_ms=args.movetime)) \
        if mode is GameMode.HUMAN_VS_OPPONENT else None
    ctrl = GameController(settings, opponent_factory=factory)
    log.info("Starting game: mode=%s human=%s opponent=%s", mode.value, args.color, args.opponent)
    ctrl.start()
    try:
        while True:
            await ctrl.wait_for_opponent()
            print(render(ctrl))
            if ctrl.status.is_terminal:
                print("Game over:", ctrl.status_label)
                print(ctrl.store.pgn())
                break
            prompt = "promote to (q/r/b/n): " if ctrl.selection.promotion_pending else "click> "
            raw = (await asyncio.to_thread(input, prompt)).strip().lower()
            if raw in ("quit", "exit"):
                break
            if ctrl.selection.promotion_pending:
                if not ctrl.choose_promotion(raw or None) and raw:
                    print("Promotion cancelled.")
                continue
            if raw == "reset":
                ctrl.reset()
            elif raw == "retry":
                if not ctrl.request_opponent_move():
                    print("Nothing to request.")
            elif raw == "pgn":
                print(ctrl.store.pgn())
            elif raw and not ctrl.click(raw):
                print("Not your turn.")
    finally:
        ctrl.close()


if __name__ == "__main__":
    ap = argparse.ArgumentParser()
    ap.add_argument("--opponent", choices=["engine", "random", "none"], default=SETTINGS.opponent,
                    help="Automated opponent; 'none' for human vs human on one console")
    ap.add_argument("--color", choices=["white", "black"], default="white", help="Which side the human plays")
    ap.add_argument("--depth", type=int, default=None, help="Engine search depth (ignored if --movetime provided)")
    ap.add_argument("--movetime", type=int, default=None, help="Engine movetime in ms (overrides depth if set)")
    ap.add_argument("--log-level", default=SETTINGS.log_level, help="Python logging level (e.g., INFO, DEBUG)")
    args = ap.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(main_async(args))
