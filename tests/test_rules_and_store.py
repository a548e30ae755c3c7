import unittest

import chess

from clickchess import rules
from clickchess.highlights import HIGHLIGHT_STYLES, compute_highlights, resolve_styles
from clickchess.models import GameStatus, HighlightKind, Move, Side
from clickchess.position_store import PositionStore

FOOLS_MATE = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"
STALEMATE = "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"
BARE_KINGS = "8/8/4k3/8/8/4K3/8/8 w - - 0 1"
CHECK = "rnbqkbnr/ppp2ppp/3p4/1B2p3/4P3/8/PPPP1PPP/RNBQK1NR b KQkq - 1 3"


class RulesAdapterTests(unittest.TestCase):
    def test_status_classification(self):
        self.assertEqual(rules.status(chess.STARTING_FEN), GameStatus.ONGOING)
        self.assertEqual(rules.status(FOOLS_MATE), GameStatus.CHECKMATE)
        self.assertEqual(rules.status(STALEMATE), GameStatus.STALEMATE)
        self.assertEqual(rules.status(BARE_KINGS), GameStatus.DRAW)
        self.assertEqual(rules.status(CHECK), GameStatus.CHECK)
        self.assertTrue(GameStatus.DRAW.is_terminal)
        self.assertFalse(GameStatus.CHECK.is_terminal)

    def test_apply_rejects_illegal_moves(self):
        self.assertIsNone(rules.apply(chess.STARTING_FEN, Move("e2", "e5")))
        self.assertIsNotNone(rules.apply(chess.STARTING_FEN, Move("g1", "f3")))

    def test_promotion_detection_depends_on_color(self):
        self.assertTrue(rules.is_promotion("7k/4P3/8/8/8/8/8/4K3 w - - 0 1", "e7", "e8"))
        self.assertTrue(rules.is_promotion("4k3/8/8/8/8/8/3p4/K7 b - - 0 1", "d2", "d1"))
        self.assertFalse(rules.is_promotion(chess.STARTING_FEN, "e2", "e4"))
        self.assertFalse(rules.is_promotion(chess.STARTING_FEN, "g1", "f3"))

    def test_piece_at_and_side_to_move(self):
        self.assertEqual(rules.piece_at(chess.STARTING_FEN, "d8"), (Side.BLACK, "q"))
        self.assertIsNone(rules.piece_at(chess.STARTING_FEN, "d4"))
        self.assertIs(rules.side_to_move(STALEMATE), Side.BLACK)


class HighlightTests(unittest.TestCase):
    def test_nothing_selected_is_empty(self):
        self.assertEqual(compute_highlights(chess.STARTING_FEN, None), {})

    def test_piece_without_moves_is_empty(self):
        self.assertEqual(compute_highlights(chess.STARTING_FEN, "a1"), {})

    def test_styles_resolved_at_boundary(self):
        marks = {"e2": HighlightKind.ORIGIN, "e4": HighlightKind.QUIET, "d5": HighlightKind.CAPTURE}
        styles = resolve_styles(marks)
        self.assertEqual(styles["e2"], HIGHLIGHT_STYLES[HighlightKind.ORIGIN])
        self.assertIn("25%", styles["e4"]["background"])
        self.assertIn("85%", styles["d5"]["background"])


class PositionStoreTests(unittest.TestCase):
    def test_submit_appends_history(self):
        store = PositionStore()
        self.assertTrue(store.submit(Move("e2", "e4")))
        self.assertTrue(store.submit(Move("e7", "e5")))
        self.assertEqual([e.ply for e in store.history], [1, 2])
        self.assertEqual(store.history[-1].fen, store.fen)
        self.assertEqual(store.history_text(), "1. e4 1... e5")
        self.assertIs(store.side_to_move, Side.WHITE)

    def test_rejected_submit_leaves_store_untouched(self):
        store = PositionStore()
        self.assertFalse(store.submit(Move("e2", "e5")))
        self.assertEqual(store.fen, chess.STARTING_FEN)
        self.assertEqual(store.history, ())

    def test_reset_clears_history(self):
        store = PositionStore()
        store.submit(Move("d2", "d4"))
        store.reset()
        self.assertEqual(store.fen, chess.STARTING_FEN)
        self.assertEqual(store.history, ())

    def test_threefold_repetition_is_a_draw(self):
        store = PositionStore()
        for _ in range(2):
            for uci in ("g1f3", "g8f6", "f3g1", "f6g8"):
                self.assertTrue(store.submit(Move.from_uci(uci)))
        self.assertEqual(store.status(), GameStatus.DRAW)

    def test_pgn_export(self):
        store = PositionStore()
        store.submit(Move("f2", "f3"))
        store.submit(Move("e7", "e5"))
        store.submit(Move("g2", "g4"))
        store.submit(Move("d8", "h4"))
        pgn = store.pgn(white="Alice", black="Bob")
        self.assertIn('[White "Alice"]', pgn)
        self.assertIn('[Result "0-1"]', pgn)
        self.assertIn("2. g4 Qh4#", pgn)


if __name__ == "__main__":
    unittest.main()
