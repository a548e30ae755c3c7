"""
Two-click move entry.

States: Idle -> OriginSelected(origin) -> (commit | AwaitingPromotion(origin, destination)) -> Idle.

- A click on one of the side-to-move's own pieces while a piece is selected reseeds the
  selection instead of requiring a separate deselect click.
- A pawn reaching its last rank parks the move in AwaitingPromotion; nothing is applied
  until choose_promotion() supplies a kind or cancel_promotion() dismisses the chooser.
- Turn gating is the caller's job; this class assumes the click is admissible.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional

from . import rules
from .highlights import compute_highlights
from .models import (
    AwaitingPromotion,
    HighlightKind,
    Idle,
    Move,
    OriginSelected,
    SelectionState,
    normalize_promotion,
    normalize_square,
)
from .position_store import PositionStore

log = logging.getLogger("selection")


class SelectionStateMachine:
    def __init__(self, store: PositionStore):
        self.store = store
        self.state: SelectionState = Idle()
        self.highlights: Dict[str, HighlightKind] = {}

    @property
    def is_idle(self) -> bool:
        return isinstance(self.state, Idle)

    @property
    def promotion_pending(self) -> bool:
        return isinstance(self.state, AwaitingPromotion)

    @property
    def selected_square(self) -> Optional[str]:
        if isinstance(self.state, (OriginSelected, AwaitingPromotion)):
            return self.state.origin
        return None

    # -- transitions -------------------------------------------------------
    def click(self, square: str) -> SelectionState:
        sq = normalize_square(square)
        if isinstance(self.state, AwaitingPromotion):
            # the pending pair stays put until a kind is chosen or the chooser is dismissed
            return self.state
        if sq is None:
            self._to_idle()
            return self.state
        if isinstance(self.state, OriginSelected):
            return self._click_with_origin(self.state.origin, sq)
        return self._select_or_idle(sq)

    def choose_promotion(self, piece: Optional[str]) -> bool:
        """Commit the pending promotion with piece; returns True if the store accepted it.

        A missing or unrecognised piece dismisses the chooser without touching the position.
        Either way the machine ends in Idle.
        """
        if not isinstance(self.state, AwaitingPromotion):
            return False
        kind = normalize_promotion(piece)
        pending = self.state
        accepted = False
        if kind is not None:
            move = Move(pending.origin, pending.destination, kind)
            accepted = self.store.submit(move)
            if not accepted:
                log.warning("Promotion %s rejected", move.uci())
        else:
            log.debug("Promotion chooser dismissed for %s%s", pending.origin, pending.destination)
        self._to_idle()
        return accepted

    def cancel_promotion(self) -> None:
        self.choose_promotion(None)

    def reset(self) -> None:
        self._to_idle()

    # -- internals ---------------------------------------------------------
    def _click_with_origin(self, origin: str, sq: str) -> SelectionState:
        fen = self.store.fen
        if sq in rules.legal_destinations(fen, origin):
            if rules.is_promotion(fen, origin, sq):
                self.state = AwaitingPromotion(origin, sq)
                self.highlights = {}
                return self.state
            if self.store.submit(Move(origin, sq)):
                self._to_idle()
                return self.state
            log.warning("Store rejected %s%s after it was listed as legal", origin, sq)
        return self._select_or_idle(sq)

    def _select_or_idle(self, sq: str) -> SelectionState:
        fen = self.store.fen
        occupant = rules.piece_at(fen, sq)
        if occupant is not None and occupant[0] is rules.side_to_move(fen):
            self.state = OriginSelected(sq)
            self.highlights = compute_highlights(fen, sq)
        else:
            self._to_idle()
        return self.state

    def _to_idle(self) -> None:
        self.state = Idle()
        self.highlights = {}
