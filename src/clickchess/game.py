"""
Single-session controller.

- GameController: owns the PositionStore, the SelectionStateMachine and the OpponentOrchestrator
  for one game session and is the only writer of their state. All calls are expected on one
  asyncio event loop; the engine request is the only suspension point.
  - click()/choose_promotion()/cancel_promotion(): human input, discarded unless the turn gate admits it.
  - reset(): new game with the same settings; abandons any engine request.
  - close(): leaves the session; the engine session is disposed and late replies are ignored.
  - snapshot(): read-only view for renderers and the assistant bridge.

"""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from . import turn_gate
from .engine_session import EngineSession
from .highlights import compute_highlights
from .models import AwaitingPromotion, GameMode, GameSettings, GameStatus, Move
from .orchestrator import OpponentOrchestrator
from .position_store import PositionStore
from .selection import SelectionStateMachine


class GameController:
    def __init__(self, settings: GameSettings | None = None, opponent_factory: Optional[Callable[[], Any]] = None,
                 starting_fen: str | None = None):
        self.log = logging.getLogger("GameController")
        self.settings = settings or GameSettings()
        self.store = PositionStore(starting_fen)
        self.selection = SelectionStateMachine(self.store)
        self.orchestrator = OpponentOrchestrator(self.store, on_complete=self._on_opponent_complete)
        self.analysis: Optional[dict] = None
        self.closed = False
        self._opponent_factory = opponent_factory
        if self.settings.mode is GameMode.HUMAN_VS_OPPONENT:
            self.orchestrator.attach(EngineSession.open(opponent_factory))
        self.log.info("Session started mode=%s human_side=%s", self.settings.mode.value, self.settings.human_side.value)

    # ---------------- Derived state -----------------
    @property
    def fen(self) -> str:
        return self.store.fen

    @property
    def status(self) -> GameStatus:
        return self.store.status()

    @property
    def status_label(self) -> str:
        return self.status.label

    @property
    def thinking(self) -> bool:
        return self.orchestrator.thinking

    @property
    def input_accepted(self) -> bool:
        if self.closed:
            return False
        return turn_gate.human_may_act(self.settings, self.store.fen, self.status, self.orchestrator.requesting)

    # ---------------- Lifecycle -----------------
    def start(self) -> bool:
        """Kick off the opponent if it moves first. Returns True when a request was issued."""
        return self._evaluate_turn()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.selection.reset()
        self.orchestrator.detach()
        self.log.info("Session closed after %d plies", len(self.store.history))

    def reset(self) -> bool:
        self.orchestrator.invalidate()
        self.selection.reset()
        self.store.reset()
        self.analysis = None
        self.log.info("Game reset")
        return self._evaluate_turn()

    # ---------------- Human input -----------------
    def click(self, square: str) -> bool:
        """Handle a click on square. Returns False when the click was discarded by the turn gate."""
        if not self.input_accepted:
            self.log.debug("Ignoring click on %s: input not accepted", square)
            return False
        plies = len(self.store.history)
        self.selection.click(square)
        if len(self.store.history) != plies:
            self._after_human_move()
        return True

    def choose_promotion(self, piece: Optional[str]) -> bool:
        if self.closed or not self.selection.promotion_pending:
            return False
        accepted = self.selection.choose_promotion(piece)
        if accepted:
            self._after_human_move()
        return accepted

    def cancel_promotion(self) -> None:
        self.selection.cancel_promotion()

    def request_opponent_move(self) -> bool:
        """Explicitly (re)request an opponent move, e.g. after a dropped engine reply."""
        if self.closed:
            return False
        return self._evaluate_turn()

    async def wait_for_opponent(self) -> None:
        await self.orchestrator.wait()

    async def analyse(self) -> Optional[dict]:
        """Refresh engine analysis for the current position (opponent mode only, never while thinking)."""
        session = self.orchestrator.session
        if self.closed or session is None or self.orchestrator.requesting:
            return self.analysis
        fen = self.store.fen
        result = await session.analyse(fen)
        if result is not None and self.store.fen == fen:
            self.analysis = dict(result, fen=fen)
        return self.analysis

    # ---------------- Snapshot -----------------
    def snapshot(self) -> dict:
        state = self.selection.state
        last = self.store.last_entry
        return {
            "fen": self.store.fen,
            "side_to_move": self.store.side_to_move.value,
            "mode": self.settings.mode.value,
            "human_side": self.settings.human_side.value if self.settings.mode is GameMode.HUMAN_VS_OPPONENT else None,
            "status": self.status.value,
            "status_label": self.status_label,
            "game_over": self.status.is_terminal,
            "thinking": self.thinking,
            "input_accepted": self.input_accepted,
            "selected_square": self.selection.selected_square,
            "highlights": {sq: kind.value for sq, kind in self.selection.highlights.items()},
            "promotion_pending": (
                {"origin": state.origin, "destination": state.destination}
                if isinstance(state, AwaitingPromotion) else None
            ),
            "move_history": [e.to_dict() for e in self.store.history],
            "history_text": self.store.history_text(),
            "last_move": last.san if last else None,
            "opponent": self.orchestrator.session.name if self.orchestrator.session else None,
            "last_engine_error": self.orchestrator.last_error,
            "analysis": self.analysis if self.analysis and self.analysis.get("fen") == self.store.fen else None,
        }

    def highlights_for(self, square: Optional[str]) -> dict:
        return compute_highlights(self.store.fen, square)

    # ---------------- Internals -----------------
    def _after_human_move(self) -> None:
        entry = self.store.last_entry
        if entry is not None:
            self.log.info("[ply %d] human: %s (%s)", entry.ply, entry.san, entry.move.uci())
        self._evaluate_turn()

    def _evaluate_turn(self) -> bool:
        if self.closed or self.settings.mode is not GameMode.HUMAN_VS_OPPONENT:
            return False
        if self.orchestrator.requesting:
            return False
        if not turn_gate.opponent_to_move(self.settings, self.store.fen, self.status):
            return False
        assert self.selection.is_idle, "opponent request while a selection is in progress"
        return self.orchestrator.maybe_request(self.settings)

    def _on_opponent_complete(self, move: Optional[Move]) -> None:
        assert self.selection.is_idle, "opponent move applied while a selection is in progress"
        if move is not None:
            entry = self.store.last_entry
            self.log.info("[ply %d] opponent: %s (%s)", entry.ply, entry.san, move.uci())
        if self.status.is_terminal:
            self.log.info("Game over: %s", self.status_label)
