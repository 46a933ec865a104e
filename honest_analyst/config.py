"""
Environment-driven settings for the analyst runtime.

.env is loaded from the project root before any value is read, so the same
variables drive the CLI, the web app and the LLM provider selection in llm.py.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent

load_dotenv(PROJECT_ROOT / ".env")


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = (os.environ.get(name) or "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def reports_dir() -> Path:
    """Directory where Markdown/PDF reports are written."""
    return Path(os.environ.get("ANALYST_REPORTS_DIR") or PROJECT_ROOT / "reports")


def history_path() -> Path:
    """JSON file holding past reports."""
    return Path(os.environ.get("ANALYST_HISTORY_PATH") or PROJECT_ROOT / "history" / "analysis_history.json")


def history_limit() -> int:
    return _env_int("ANALYST_HISTORY_LIMIT", 10)


def http_timeout() -> float:
    return _env_float("ANALYST_HTTP_TIMEOUT", 15.0)


def max_source_chars() -> int:
    """Characters of fetched article text passed to the research prompt."""
    return _env_int("ANALYST_MAX_SOURCE_CHARS", 25000)


def llm_retries() -> int:
    """Retries after the first attempt for rate-limited/overloaded LLM calls."""
    return _env_int("ANALYST_LLM_RETRIES", 3)


def retry_delay() -> float:
    """Initial backoff in seconds; doubles on every retry."""
    return _env_float("ANALYST_RETRY_DELAY", 2.0)
