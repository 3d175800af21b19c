"""
Registrar - Prompt Logger.

Writes LLM prompts and responses to JSON files for debugging.
Enabled via REGISTRAR_LOG_PROMPTS=1 or the --log-prompts CLI flag.
"""

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

LOG_PROMPTS = os.getenv("REGISTRAR_LOG_PROMPTS", "0") == "1"
LOG_DIR = Path("prompt_logs")

_session_id: str | None = None
_call_counter: int = 0


def enable_prompt_logging(enabled: bool = True) -> None:
    """Enable or disable prompt logging."""
    global LOG_PROMPTS
    LOG_PROMPTS = enabled


def is_enabled() -> bool:
    return LOG_PROMPTS


def _get_session_dir() -> Path:
    """Get (and create) the directory for this run's logs."""
    global _session_id
    if _session_id is None:
        _session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    session_dir = LOG_DIR / _session_id
    session_dir.mkdir(parents=True, exist_ok=True)
    return session_dir


def _serialize_response(response: Any) -> Any:
    if response is None:
        return None
    if hasattr(response, "model_dump"):
        return response.model_dump()
    return str(response)


def log_prompt(
    *,
    task: str,
    model: str,
    system_prompt: str,
    user_prompt: str,
    response_model: str,
    response: Any = None,
    error: str | None = None,
) -> Path | None:
    """
    Write one LLM call to prompt_logs/<session>/NN_<task>.json.

    Returns the written path, or None when logging is disabled.
    """
    global _call_counter

    if not LOG_PROMPTS:
        return None

    _call_counter += 1
    path = _get_session_dir() / f"{_call_counter:02d}_{task}.json"
    record = {
        "ts": datetime.now().isoformat(),
        "task": task,
        "model": model,
        "response_model": response_model,
        "system_prompt": system_prompt,
        "user_prompt": user_prompt,
        "response": _serialize_response(response),
        "error": error,
    }

    try:
        path.write_text(json.dumps(record, indent=2, default=str), encoding="utf-8")
    except OSError as e:
        logger.warning(f"Failed to write prompt log {path}: {e}")
        return None

    return path
