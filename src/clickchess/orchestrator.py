"""
OpponentOrchestrator: drives the automated side's turns.

States: IDLE -> REQUESTING -> IDLE. A request is issued only from IDLE, so repeated triggers
while the engine is thinking are no-ops. Each attach/detach/invalidate bumps a generation
counter; a reply is applied only if its generation is still current and the position has not
moved since the request was issued. Engine failures and unusable replies are logged and dropped:
the turn is never retried automatically.
"""
from __future__ import annotations

import asyncio
import enum
import logging
import time
from typing import Callable, Optional

from . import turn_gate
from .engine_session import EngineSession, EngineSessionClosed
from .models import GameSettings, Move
from .move_validator import parse_engine_reply
from .position_store import PositionStore

log = logging.getLogger("orchestrator")


class OrchestratorState(str, enum.Enum):
    IDLE = "idle"
    REQUESTING = "requesting"


class OpponentOrchestrator:
    def __init__(self, store: PositionStore, on_complete: Optional[Callable[[Optional[Move]], None]] = None):
        self.store = store
        self.on_complete = on_complete
        self.state = OrchestratorState.IDLE
        self.thinking = False
        self.session: Optional[EngineSession] = None
        self.last_error: Optional[str] = None
        self.requests_issued = 0
        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def requesting(self) -> bool:
        return self.state is OrchestratorState.REQUESTING

    @property
    def generation(self) -> int:
        return self._generation

    # -- lifecycle ---------------------------------------------------------
    def attach(self, session: EngineSession) -> None:
        if self.session is not None:
            self.detach()
        self._generation += 1
        self.session = session
        log.info("Attached engine session %d (%s)", session.id, session.name)

    def detach(self) -> None:
        """Release the engine session; an in-flight reply will not be applied."""
        session = self.session
        self.invalidate()
        self.session = None
        if session is not None:
            session.dispose()

    def invalidate(self) -> None:
        """Abandon any in-flight request without releasing the session."""
        self._generation += 1
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            log.info("Abandoned in-flight engine request")
        self.state = OrchestratorState.IDLE
        self.thinking = False

    # -- triggering --------------------------------------------------------
    def maybe_request(self, settings: GameSettings) -> bool:
        """Start a request if it is the opponent's turn and none is in flight.

        Must be called from the running event loop. Returns True when a request was issued.
        """
        if self.state is not OrchestratorState.IDLE:
            return False
        if self.session is None or self.session.closed:
            return False
        if not turn_gate.opponent_to_move(settings, self.store.fen, self.store.status()):
            return False
        fen = self.store.fen
        loop = asyncio.get_running_loop()
        self.state = OrchestratorState.REQUESTING
        self.thinking = True
        self.last_error = None
        self.requests_issued += 1
        self._task = loop.create_task(self._run(self.session, self._generation, fen))
        log.debug("Requested move from session %d for %s", self.session.id, fen)
        return True

    async def wait(self) -> None:
        """Wait for the in-flight request (if any) to finish."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    # -- request / reply ---------------------------------------------------
    async def _run(self, session: EngineSession, generation: int, fen: str) -> None:
        move: Optional[Move] = None
        try:
            move = await self._request_and_apply(session, generation, fen)
        finally:
            if generation == self._generation:
                self.state = OrchestratorState.IDLE
                self.thinking = False
                self._task = None
        if generation == self._generation and self.on_complete:
            self.on_complete(move)

    async def _request_and_apply(self, session: EngineSession, generation: int, fen: str) -> Optional[Move]:
        t0 = time.time()
        try:
            raw = await session.request_best_move(fen)
        except EngineSessionClosed:
            log.info("Engine session %d closed before replying", session.id)
            return None
        except Exception as e:
            self.last_error = "engine_request_failed"
            log.exception("Engine request failed: %s", e)
            return None
        ms = int((time.time() - t0) * 1000)
        if generation != self._generation or session is not self.session:
            log.info("Dropping reply %r from a superseded request", raw)
            return None
        if self.store.fen != fen:
            self.last_error = "stale_reply"
            log.warning("Dropping stale reply %r: position changed while thinking", raw)
            return None
        parsed = parse_engine_reply(raw, fen)
        if not parsed.get("ok"):
            self.last_error = parsed.get("reason", "bad_reply")
            log.warning("Dropping engine reply %r: %s", raw, self.last_error)
            return None
        move = parsed["move"]
        if not self.store.submit(move):
            self.last_error = "rejected_by_store"
            log.warning("Store rejected engine move %s", move.uci())
            return None
        log.info("Opponent played %s in %d ms", move.uci(), ms)
        return move
