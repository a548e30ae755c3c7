import unittest
from unittest.mock import patch

import chess

from clickchess import rules
from clickchess.models import AwaitingPromotion, HighlightKind, Idle, Move, OriginSelected
from clickchess.position_store import PositionStore
from clickchess.selection import SelectionStateMachine

PROMOTION_FEN = "7k/4P3/8/8/8/8/8/4K3 w - - 0 1"
AFTER_E4_D5 = "rnbqkbnr/ppp1pppp/8/3p4/4P3/8/PPPP1PPP/RNBQKBNR w KQkq - 0 2"


class SelectionStateMachineTests(unittest.TestCase):
    def setUp(self):
        self.store = PositionStore()
        self.sm = SelectionStateMachine(self.store)

    def test_idle_click_on_own_piece_selects_it(self):
        state = self.sm.click("e2")
        self.assertEqual(state, OriginSelected("e2"))
        self.assertEqual(self.sm.highlights, {
            "e2": HighlightKind.ORIGIN,
            "e3": HighlightKind.QUIET,
            "e4": HighlightKind.QUIET,
        })

    def test_idle_click_on_empty_or_enemy_square_stays_idle(self):
        for sq in ("e4", "e7", "z9"):
            self.assertEqual(self.sm.click(sq), Idle())
            self.assertEqual(self.sm.highlights, {})
        self.assertEqual(self.store.fen, chess.STARTING_FEN)

    def test_click_on_destination_commits_and_returns_to_idle(self):
        self.sm.click("e2")
        self.sm.click("e4")
        self.assertTrue(self.sm.is_idle)
        self.assertEqual(self.sm.highlights, {})
        self.assertEqual(self.store.fen, rules.apply(chess.STARTING_FEN, Move("e2", "e4")))
        self.assertEqual(self.store.history[-1].san, "e4")

    def test_click_on_other_own_piece_reseeds_selection(self):
        self.sm.click("e2")
        state = self.sm.click("g1")
        self.assertEqual(state, OriginSelected("g1"))
        self.assertIn("f3", self.sm.highlights)
        self.assertNotIn("e4", self.sm.highlights)
        self.assertEqual(len(self.store.history), 0)

    def test_click_on_non_destination_clears_selection(self):
        self.sm.click("e2")
        self.assertEqual(self.sm.click("e5"), Idle())
        self.sm.click("e2")
        self.assertEqual(self.sm.click("e7"), Idle())
        self.assertEqual(self.store.fen, chess.STARTING_FEN)

    def test_non_destination_never_mutates_position(self):
        for fen in (chess.STARTING_FEN, AFTER_E4_D5):
            store = PositionStore(fen)
            board = chess.Board(fen)
            own = [chess.square_name(sq) for sq, p in board.piece_map().items() if p.color == board.turn]
            for origin in own:
                dests = rules.legal_destinations(fen, origin)
                for target in chess.SQUARE_NAMES:
                    if target in dests:
                        continue
                    sm = SelectionStateMachine(store)
                    sm.click(origin)
                    state = sm.click(target)
                    occupant = rules.piece_at(fen, target)
                    if occupant is not None and occupant[0] is rules.side_to_move(fen):
                        self.assertEqual(state, OriginSelected(target))
                    else:
                        self.assertEqual(state, Idle())
                    self.assertEqual(store.fen, fen)

    def test_capture_destinations_are_marked(self):
        store = PositionStore(AFTER_E4_D5)
        sm = SelectionStateMachine(store)
        sm.click("e4")
        self.assertEqual(sm.highlights["d5"], HighlightKind.CAPTURE)
        self.assertEqual(sm.highlights["e5"], HighlightKind.QUIET)

    def test_store_rejection_falls_back_to_reselection(self):
        self.sm.click("e2")
        with patch.object(self.store, "submit", return_value=False):
            state = self.sm.click("e4")
        self.assertEqual(state, Idle())
        self.assertEqual(self.store.fen, chess.STARTING_FEN)


class PromotionFlowTests(unittest.TestCase):
    def setUp(self):
        self.store = PositionStore(PROMOTION_FEN)
        self.sm = SelectionStateMachine(self.store)

    def test_pawn_to_last_rank_waits_for_promotion_choice(self):
        self.sm.click("e7")
        state = self.sm.click("e8")
        self.assertEqual(state, AwaitingPromotion("e7", "e8"))
        self.assertTrue(self.sm.promotion_pending)
        self.assertEqual(self.store.fen, PROMOTION_FEN)

    def test_clicks_while_pending_keep_the_pending_move(self):
        self.sm.click("e7")
        self.sm.click("e8")
        self.assertEqual(self.sm.click("e1"), AwaitingPromotion("e7", "e8"))
        self.assertEqual(self.store.fen, PROMOTION_FEN)

    def test_explicit_rook_choice_is_used(self):
        self.sm.click("e7")
        self.sm.click("e8")
        self.assertTrue(self.sm.choose_promotion("Rook"))
        self.assertTrue(self.sm.is_idle)
        self.assertEqual(rules.piece_at(self.store.fen, "e8"), (rules.side_to_move(PROMOTION_FEN), "r"))
        self.assertEqual(self.store.history[-1].move, Move("e7", "e8", "r"))

    def test_renderer_piece_code_is_accepted(self):
        self.sm.click("e7")
        self.sm.click("e8")
        self.assertTrue(self.sm.choose_promotion("wN"))
        self.assertEqual(rules.piece_at(self.store.fen, "e8")[1], "n")

    def test_dismissed_chooser_returns_to_idle_without_moving(self):
        self.sm.click("e7")
        self.sm.click("e8")
        self.assertFalse(self.sm.choose_promotion(None))
        self.assertTrue(self.sm.is_idle)
        self.assertEqual(self.store.fen, PROMOTION_FEN)

    def test_unknown_piece_dismisses_too(self):
        self.sm.click("e7")
        self.sm.click("e8")
        self.assertFalse(self.sm.choose_promotion("king"))
        self.assertTrue(self.sm.is_idle)
        self.assertEqual(self.store.fen, PROMOTION_FEN)

    def test_reset_clears_pending_promotion(self):
        self.sm.click("e7")
        self.sm.click("e8")
        self.sm.reset()
        self.assertTrue(self.sm.is_idle)
        self.assertFalse(self.sm.promotion_pending)
        self.assertEqual(self.sm.highlights, {})


if __name__ == "__main__":
    unittest.main()
