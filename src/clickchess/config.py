"""
Configuration and environment loading for clickchess.

- Loads settings.yml (YAML) from repo root if present; falls back to environment variables (.env supported).
- Exposes SETTINGS with keys used across the project (engine path and limits, assistant endpoint, log level).
"""
from dataclasses import dataclass
import logging
import os
from typing import Any, Callable

import yaml
from dotenv import load_dotenv

load_dotenv()

log = logging.getLogger("config")


def _repo_root() -> str:
    # this file: src/clickchess/config.py → repo root is two levels up
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))


def _load_yaml(path: str) -> dict:
    if not os.path.isfile(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        log.exception("Failed to read %s; using environment only", path)
        return {}
    return data if isinstance(data, dict) else {}


_cfg = _load_yaml(os.path.join(_repo_root(), "settings.yml"))


def _get(name: str, default: Any, cast: Callable[[Any], Any] | None = None) -> Any:
    if name in _cfg:
        val = _cfg[name]
        return cast(val) if cast else val
    env = os.environ.get(name)
    if env is not None and env != "":
        return cast(env) if cast else env
    return default


def _optional_int(val: Any) -> int | None:
    return int(val) if val not in (None, "", 0, "0") else None


@dataclass(frozen=True)
class Settings:
    # Opponent engine
    stockfish_path: str
    opponent: str
    engine_depth: int
    engine_movetime_ms: int | None
    analysis_depth: int

    # Assistant (OpenAI-compatible wire format)
    assistant_api_key: str
    assistant_base_url: str
    assistant_model: str
    assistant_timeout_s: float
    assistant_retries: int

    log_level: str


SETTINGS = Settings(
    stockfish_path=_get("STOCKFISH_PATH", ""),
    opponent=str(_get("CLICKCHESS_OPPONENT", "engine")).lower(),
    engine_depth=int(_get("CLICKCHESS_ENGINE_DEPTH", 10, cast=int)),
    engine_movetime_ms=_get("CLICKCHESS_ENGINE_MOVETIME_MS", None, cast=_optional_int),
    analysis_depth=int(_get("CLICKCHESS_ANALYSIS_DEPTH", 12, cast=int)),
    assistant_api_key=_get("CLICKCHESS_ASSISTANT_API_KEY", _get("OPENAI_API_KEY", "")),
    assistant_base_url=_get("CLICKCHESS_ASSISTANT_BASE_URL", ""),
    assistant_model=_get("CLICKCHESS_ASSISTANT_MODEL", "gpt-4o-mini"),
    assistant_timeout_s=float(_get("CLICKCHESS_ASSISTANT_TIMEOUT_S", 30.0, cast=float)),
    assistant_retries=int(_get("CLICKCHESS_ASSISTANT_RETRIES", 2, cast=int)),
    log_level=str(_get("CLICKCHESS_LOG_LEVEL", "INFO")).upper(),
)
