"""
Minimal Flask API that exposes clickchess sessions to a web board renderer.

Endpoints:
- POST   /api/sessions                        -> start a session {mode, human_side}
- GET    /api/sessions/<id>                   -> snapshot (FEN, status, highlight styles, thinking flag)
- POST   /api/sessions/<id>/click             -> {square}: feed one board click
- POST   /api/sessions/<id>/promotion         -> {piece}: choose a promotion piece (null dismisses)
- POST   /api/sessions/<id>/reset             -> restart the game with the same settings
- POST   /api/sessions/<id>/opponent-move     -> re-request an opponent move after a dropped reply
- POST   /api/sessions/<id>/analysis          -> refresh engine analysis (opponent mode)
- GET    /api/sessions/<id>/assistant-context -> context the assistant narrates from
- POST   /api/sessions/<id>/assistant         -> {question}: ask the assistant
- DELETE /api/sessions/<id>                   -> end the session

Every controller lives on one asyncio loop running in a background thread; request handlers hand
work to it with run_coroutine_threadsafe so game state has a single writer. Nothing is persisted.
"""
from __future__ import annotations

import asyncio
import logging
import threading
import time
import uuid
from typing import Any, Callable, Dict, Optional

from flask import Flask, jsonify, request

from clickchess.assistant import AssistantBridge, build_context
from clickchess.config import SETTINGS
from clickchess.engine_session import create_opponent
from clickchess.game import GameController
from clickchess.highlights import resolve_styles
from clickchess.models import GameMode, GameSettings, HighlightKind

logging.basicConfig(level=getattr(logging, SETTINGS.log_level, logging.INFO), format="%(asctime)s %(levelname)s %(message)s")

app = Flask(__name__)
sessions_lock = threading.Lock()
SESSIONS: Dict[str, dict] = {}
SESSION_TTL_S = 3600  # drop inactive sessions after an hour to avoid leaking engine processes
CALL_TIMEOUT_S = 30.0

assistant = AssistantBridge()


class LoopThread:
    """Owns the event loop every GameController runs on."""

    def __init__(self):
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name="clickchess-loop", daemon=True)
        self._thread.start()

    def _run(self):
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def call(self, fn: Callable[..., Any], *args, timeout: float = CALL_TIMEOUT_S) -> Any:
        async def _invoke():
            return fn(*args)
        return asyncio.run_coroutine_threadsafe(_invoke(), self.loop).result(timeout)

    def await_(self, coro_fn: Callable[..., Any], *args, timeout: float = CALL_TIMEOUT_S) -> Any:
        return asyncio.run_coroutine_threadsafe(coro_fn(*args), self.loop).result(timeout)


LOOP = LoopThread()


def _opponent_factory():
    return create_opponent(SETTINGS.opponent)


def _serialize(session: dict) -> dict:
    snap = LOOP.call(session["controller"].snapshot)
    marks = {sq: HighlightKind(kind) for sq, kind in snap["highlights"].items()}
    snap["square_styles"] = resolve_styles(marks)
    snap["session_id"] = session["id"]
    return snap


def _get_session(session_id: str) -> Optional[dict]:
    with sessions_lock:
        session = SESSIONS.get(session_id)
    if session:
        session["updated_at"] = time.time()
    return session


def _close_session(session: dict) -> None:
    try:
        LOOP.call(session["controller"].close)
    except Exception:
        logging.exception("Failed to close session %s", session.get("id"))


def _cleanup_stale_sessions(max_age_s: int = SESSION_TTL_S):
    now = time.time()
    with sessions_lock:
        stale = [sid for sid, s in SESSIONS.items() if now - s.get("updated_at", now) > max_age_s]
        dropped = [SESSIONS.pop(sid) for sid in stale]
    for s in dropped:
        _close_session(s)


def _not_found():
    return jsonify({"error": "not found"}), 404


@app.route("/api/sessions", methods=["POST"])
def create_session():
    _cleanup_stale_sessions()
    data = request.get_json(force=True, silent=True) or {}
    try:
        settings = GameSettings.from_payload(data)
    except ValueError:
        return jsonify({"error": "invalid mode or human_side"}), 400

    # launching an engine process blocks, so it happens here rather than on the shared loop
    backend = None
    if settings.mode is GameMode.HUMAN_VS_OPPONENT:
        try:
            backend = _opponent_factory()
        except RuntimeError as e:
            logging.error("Could not start opponent: %s", e)
            return jsonify({"error": "opponent_unavailable", "detail": str(e)}), 503

    def _build():
        controller = GameController(settings, opponent_factory=(lambda: backend) if backend is not None else None)
        controller.start()
        return controller

    try:
        controller = LOOP.call(_build)
    except Exception:
        if backend is not None:
            backend.close()
        raise

    session_id = data.get("session_id") or f"game_{int(time.time())}_{uuid.uuid4().hex[:6]}"
    session = {"id": session_id, "controller": controller, "created_at": time.time(), "updated_at": time.time()}
    with sessions_lock:
        previous = SESSIONS.pop(session_id, None)
        SESSIONS[session_id] = session
    if previous:
        _close_session(previous)
    return jsonify(_serialize(session)), 201


@app.route("/api/sessions/<session_id>", methods=["GET"])
def get_session(session_id: str):
    session = _get_session(session_id)
    if not session:
        return _not_found()
    return jsonify(_serialize(session))


@app.route("/api/sessions/<session_id>", methods=["DELETE"])
def delete_session(session_id: str):
    with sessions_lock:
        session = SESSIONS.pop(session_id, None)
    if not session:
        return _not_found()
    _close_session(session)
    return jsonify({"deleted": session_id})


@app.route("/api/sessions/<session_id>/click", methods=["POST"])
def click(session_id: str):
    session = _get_session(session_id)
    if not session:
        return _not_found()
    data = request.get_json(force=True, silent=True) or {}
    square = data.get("square")
    if not isinstance(square, str):
        return jsonify({"error": "square is required"}), 400
    accepted = LOOP.call(session["controller"].click, square)
    body = _serialize(session)
    body["accepted"] = accepted
    return jsonify(body)


@app.route("/api/sessions/<session_id>/promotion", methods=["POST"])
def promotion(session_id: str):
    session = _get_session(session_id)
    if not session:
        return _not_found()
    data = request.get_json(force=True, silent=True) or {}
    piece = data.get("piece")
    if piece:
        accepted = LOOP.call(session["controller"].choose_promotion, piece)
    else:
        LOOP.call(session["controller"].cancel_promotion)
        accepted = False
    body = _serialize(session)
    body["accepted"] = accepted
    return jsonify(body)


@app.route("/api/sessions/<session_id>/reset", methods=["POST"])
def reset(session_id: str):
    session = _get_session(session_id)
    if not session:
        return _not_found()
    LOOP.call(session["controller"].reset)
    return jsonify(_serialize(session))


@app.route("/api/sessions/<session_id>/opponent-move", methods=["POST"])
def opponent_move(session_id: str):
    session = _get_session(session_id)
    if not session:
        return _not_found()
    issued = LOOP.call(session["controller"].request_opponent_move)
    body = _serialize(session)
    body["requested"] = issued
    return jsonify(body)


@app.route("/api/sessions/<session_id>/analysis", methods=["POST"])
def analysis(session_id: str):
    session = _get_session(session_id)
    if not session:
        return _not_found()
    try:
        LOOP.await_(session["controller"].analyse)
    except Exception:
        logging.exception("Analysis failed for %s", session_id)
        return jsonify({"error": "analysis_failed"}), 502
    return jsonify(_serialize(session))


@app.route("/api/sessions/<session_id>/assistant-context", methods=["GET"])
def assistant_context(session_id: str):
    session = _get_session(session_id)
    if not session:
        return _not_found()
    return jsonify(build_context(LOOP.call(session["controller"].snapshot)))


@app.route("/api/sessions/<session_id>/assistant", methods=["POST"])
def ask_assistant(session_id: str):
    session = _get_session(session_id)
    if not session:
        return _not_found()
    if not assistant.initialized:
        return jsonify({"error": "assistant_not_configured"}), 503
    data = request.get_json(force=True, silent=True) or {}
    snapshot = LOOP.call(session["controller"].snapshot)
    reply = assistant.ask(snapshot, data.get("question"))
    return jsonify({"reply": reply, "context": build_context(snapshot)})


@app.after_request
def add_cors_headers(response):
    response.headers["Access-Control-Allow-Origin"] = request.headers.get("Origin", "*")
    response.headers["Access-Control-Allow-Credentials"] = "true"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, DELETE, OPTIONS"
    # Prevent caching so the board always sees the freshest position
    response.headers["Cache-Control"] = "no-store, max-age=0"
    return response


@app.route("/api/<path:path>", methods=["OPTIONS"])
def cors_preflight(path: str):
    resp = app.make_response(("", 204))
    resp.headers["Access-Control-Allow-Origin"] = request.headers.get("Origin", "*")
    resp.headers["Access-Control-Allow-Credentials"] = "true"
    resp.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
    resp.headers["Access-Control-Allow-Methods"] = "GET, POST, DELETE, OPTIONS"
    return resp


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8000, debug=False)
