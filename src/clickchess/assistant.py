"""
Game assistant bridge over an OpenAI-compatible chat endpoint (base URL configurable).

Consumes GameController.snapshot() only; nothing here mutates game state. The voice transport is
not part of this package: start()/stop() track whether an assistant session is live so a
front end can mirror it.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional
import logging
import random
import time

from openai import OpenAI

from .config import SETTINGS

log = logging.getLogger("assistant")

SYSTEM = (
    "You are a friendly chess buddy watching a game. Explain the position, the last move and "
    "sensible plans in plain spoken language. Keep answers short."
)


def build_context(snapshot: Dict[str, Any]) -> Dict[str, Any]:
    """Condense a controller snapshot into the context the assistant narrates from."""
    analysis = snapshot.get("analysis")
    human_side = snapshot.get("human_side")
    vs_opponent = snapshot.get("mode") == "human-vs-opponent"
    return {
        "position": snapshot.get("fen"),
        "gameMode": "Human vs CPU" if vs_opponent else "Human vs Human",
        "humanColor": human_side.capitalize() if human_side else None,
        "gameStatus": snapshot.get("status_label"),
        "moveHistory": snapshot.get("history_text") or "",
        "lastMove": snapshot.get("last_move") or "None",
        "currentTurn": (snapshot.get("side_to_move") or "white").capitalize(),
        "analysis": {
            "evaluation": analysis.get("evaluation"),
            "winningPercentage": analysis.get("winning_percentage"),
            "suggestedMoves": ", ".join(m["move"] for m in analysis.get("suggested_moves") or []),
        } if analysis else None,
    }


def context_text(ctx: Dict[str, Any]) -> str:
    lines = [
        f"Position (FEN): {ctx['position']}",
        f"Mode: {ctx['gameMode']}",
        f"Status: {ctx['gameStatus']}",
        f"Turn: {ctx['currentTurn']}",
        f"Moves: {ctx['moveHistory'] or '(none)'}",
        f"Last move: {ctx['lastMove']}",
    ]
    if ctx.get("humanColor"):
        lines.insert(2, f"Human plays: {ctx['humanColor']}")
    analysis = ctx.get("analysis")
    if analysis:
        lines.append(
            f"Engine: eval={analysis['evaluation']} win%={analysis['winningPercentage']} "
            f"candidates={analysis['suggestedMoves'] or '-'}"
        )
    return "\n".join(lines)


class AssistantBridge:
    def __init__(self, model: Optional[str] = None, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 client: Any = None):
        self.model = model or SETTINGS.assistant_model
        self._api_key = api_key if api_key is not None else SETTINGS.assistant_api_key
        self._base_url = base_url if base_url is not None else SETTINGS.assistant_base_url
        self._client = client
        self.connected = False

    @property
    def initialized(self) -> bool:
        return self._client is not None or bool(self._api_key)

    def _get_client(self):
        if self._client is None:
            self._client = OpenAI(api_key=self._api_key, base_url=self._base_url or None)
        return self._client

    # ------------------------- session controls -------------------------
    def start(self) -> bool:
        if not self.initialized:
            log.warning("Assistant not configured; set CLICKCHESS_ASSISTANT_API_KEY")
            return False
        self.connected = True
        log.info("Assistant session started")
        return True

    def stop(self) -> None:
        if self.connected:
            log.info("Assistant session ended")
        self.connected = False

    # ------------------------- chat -------------------------
    def build_messages(self, snapshot: Dict[str, Any], question: Optional[str] = None) -> List[Dict[str, str]]:
        ctx = build_context(snapshot)
        user = question or "Describe the current position and what to consider next."
        return [
            {"role": "system", "content": f"{SYSTEM}\n\nGame context:\n{context_text(ctx)}"},
            {"role": "user", "content": user},
        ]

    def ask(self, snapshot: Dict[str, Any], question: Optional[str] = None) -> str:
        """Ask about the game in snapshot; returns "" when the assistant is unavailable."""
        if not self.initialized:
            return ""
        messages = self.build_messages(snapshot, question)
        delay = 0.5
        retries = SETTINGS.assistant_retries
        for attempt in range(retries + 1):
            try:
                rsp = self._get_client().chat.completions.create(
                    model=self.model,
                    messages=messages,
                    timeout=SETTINGS.assistant_timeout_s,
                )
                text = _extract_text(rsp)
                if text:
                    return text.strip()
            except Exception:
                if attempt >= retries:
                    log.exception("Assistant request failed after %d attempts", attempt + 1)
                    break
                sleep_s = delay * (2 ** attempt) * (0.8 + 0.4 * random.random())
                time.sleep(min(sleep_s, 10.0))
        return ""


def _extract_text(rsp) -> str:
    if not getattr(rsp, "choices", None):
        return ""
    content = getattr(rsp.choices[0].message, "content", None)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [c.get("text") if isinstance(c, dict) else getattr(c, "text", None) for c in content]
        return "\n".join(p for p in parts if isinstance(p, str))
    return ""
