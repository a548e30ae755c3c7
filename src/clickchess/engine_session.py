"""
EngineSession: scoped ownership of one opponent backend.

Created when a human-vs-opponent game begins and disposed when it ends. Backend calls are
blocking (python-chess SimpleEngine), so each runs in a worker thread via asyncio.to_thread and
the awaiting coroutine resumes on the event loop. At most one move request is outstanding and at
most one backend call runs: a request cancelled mid-search leaves its thread running and the next
call waits for it. After dispose() every request fails, late replies are reported as
EngineSessionClosed and the backend is closed in an executor once its current call returns.
"""
from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Callable, Optional

from .config import SETTINGS

log = logging.getLogger("engine_session")

_session_ids = itertools.count(1)


class EngineSessionError(RuntimeError):
    pass


class EngineSessionClosed(EngineSessionError):
    pass


class EngineBusy(EngineSessionError):
    pass


def create_opponent(kind: str | None = None, **kwargs) -> Any:
    """Build an opponent backend by name ('engine' or 'random')."""
    kind = (kind or SETTINGS.opponent or "engine").lower()
    if kind == "random":
        from .random_opponent import RandomOpponent
        return RandomOpponent(seed=kwargs.get("seed"))
    if kind in ("engine", "stockfish"):
        from .engine_opponent import EngineOpponent
        return EngineOpponent(depth=kwargs.get("depth"), movetime_ms=kwargs.get("movetime_ms"),
                              engine_path=kwargs.get("engine_path"))
    raise ValueError(f"Unsupported opponent '{kind}'. Use 'engine' or 'random'.")


class EngineSession:
    def __init__(self, opponent: Any):
        self.id = next(_session_ids)
        self.opponent = opponent
        self.closed = False
        self._requesting = False
        # the backend call currently running in a worker thread; outlives a cancelled request
        self._worker: Optional[asyncio.Future] = None
        self._closing: Optional[asyncio.Future] = None

    @classmethod
    def open(cls, factory: Optional[Callable[[], Any]] = None) -> "EngineSession":
        return cls((factory or create_opponent)())

    @property
    def name(self) -> str:
        return getattr(self.opponent, "name", None) or "Opponent"

    @property
    def requesting(self) -> bool:
        return self._requesting

    @property
    def busy(self) -> bool:
        """True while a backend call is still running, even if its requester gave up on it."""
        return self._worker is not None and not self._worker.done()

    @property
    def supports_analysis(self) -> bool:
        return callable(getattr(self.opponent, "analyse", None))

    async def request_best_move(self, fen: str) -> str:
        """Ask the backend for a move; returns its raw UCI encoding.

        A call abandoned by an earlier (cancelled) request is allowed to finish first, so the
        backend never sees two searches at once.
        """
        if self.closed:
            raise EngineSessionClosed(f"engine session {self.id} is closed")
        if self._requesting:
            raise EngineBusy(f"engine session {self.id} already has a request in flight")
        self._requesting = True
        try:
            reply = await self._call(self.opponent.choose, fen)
        finally:
            self._requesting = False
        if self.closed:
            raise EngineSessionClosed(f"engine session {self.id} closed while thinking")
        return reply

    async def analyse(self, fen: str) -> Optional[dict]:
        if self.closed or not self.supports_analysis:
            return None
        result = await self._call(self.opponent.analyse, fen)
        return None if self.closed else result

    async def drained(self) -> None:
        """Wait until no backend call is running and a pending close has completed."""
        while self.busy:
            await asyncio.wait({self._worker})
        if self._closing is not None and not self._closing.done():
            await asyncio.wait({self._closing})

    def dispose(self) -> None:
        """Close the session; the backend is shut down off the event loop once it is idle."""
        if self.closed:
            return
        self.closed = True
        if self.busy:
            log.info("Engine session %d disposed; backend closes after its current call", self.id)
            return
        self._release()
        log.info("Engine session %d disposed", self.id)

    # -- internals ---------------------------------------------------------
    async def _call(self, fn: Callable[..., Any], *args) -> Any:
        while self.busy:
            log.debug("Engine session %d waiting for an abandoned backend call", self.id)
            await asyncio.wait({self._worker})
        if self.closed:
            raise EngineSessionClosed(f"engine session {self.id} is closed")
        worker = asyncio.ensure_future(asyncio.to_thread(fn, *args))
        worker.add_done_callback(self._worker_done)
        self._worker = worker
        # shield: cancelling the requester must not mark the thread as finished
        return await asyncio.shield(worker)

    def _worker_done(self, fut: asyncio.Future) -> None:
        if self._worker is fut:
            self._worker = None
        if self.closed and self._closing is None:
            self._release()

    def _release(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._close_opponent()
            return
        self._closing = loop.run_in_executor(None, self._close_opponent)

    def _close_opponent(self) -> None:
        try:
            self.opponent.close()
        except Exception:
            # the engine process may already be gone; nothing left to release
            log.exception("Failed closing opponent for engine session %d", self.id)
