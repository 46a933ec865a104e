"""
Configurable LLM layer: single provider or role-based overrides, plus retry on rate limits.

Single-provider: LLM_PROVIDER=gemini | openai | openrouter | ollama (default gemini).
Role overrides (set per-role env vars; else falls back to get_llm):
- Research phase (long free-text deep dive): RESEARCH_PROVIDER
- Structuring and Q/U scoring phases (structured output): SCORING_PROVIDER
"""

from __future__ import annotations

import logging
import os
import time
from typing import Callable, Optional, TypeVar

from langchain_core.language_models.chat_models import BaseChatModel
from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from honest_analyst import config

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS = (429, 503)
RETRYABLE_MARKERS = ("429", "503", "Resource has been exhausted")


def _provider(role_var: str = "") -> str:
    """Return the lowercase provider for a role env var, else LLM_PROVIDER; default gemini."""
    role = (os.environ.get(role_var) or "").strip().lower() if role_var else ""
    return role or (os.environ.get("LLM_PROVIDER") or "gemini").strip().lower()


def _temperature(default: float) -> float:
    raw = (os.environ.get("LLM_TEMPERATURE") or "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def _build(provider: str, temperature: float) -> BaseChatModel:
    if provider == "gemini":
        from langchain_google_genai import ChatGoogleGenerativeAI

        api_key = (os.environ.get("GOOGLE_API_KEY") or os.environ.get("API_KEY") or "").strip()
        if not api_key:
            raise ValueError(
                "GOOGLE_API_KEY is not set. Either set it in .env or use another provider: "
                "LLM_PROVIDER=openai (with OPENAI_API_KEY) or LLM_PROVIDER=ollama (no key, local)."
            )
        return ChatGoogleGenerativeAI(
            model=os.environ.get("GOOGLE_MODEL", "gemini-2.5-flash"),
            temperature=temperature,
            google_api_key=api_key,
        )

    if provider == "ollama":
        from langchain_ollama import ChatOllama

        return ChatOllama(
            model=os.environ.get("OLLAMA_MODEL", "llama3.2"),
            base_url=os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434"),
            temperature=temperature,
        )

    if provider == "openrouter":
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=os.environ.get("OPENROUTER_MODEL", "openai/gpt-4o-mini"),
            temperature=temperature,
            api_key=os.environ.get("OPENROUTER_API_KEY"),
            base_url=os.environ.get("OPENROUTER_API_BASE", "https://openrouter.ai/api/v1"),
        )

    if provider != "openai":
        raise ValueError(f"Unknown LLM provider: {provider!r}")

    from langchain_openai import ChatOpenAI

    api_key = os.environ.get("OPENAI_API_KEY")
    if not (api_key and str(api_key).strip()):
        raise ValueError(
            "OPENAI_API_KEY is not set. Either set it in .env or use another provider: "
            "LLM_PROVIDER=gemini (with GOOGLE_API_KEY) or LLM_PROVIDER=ollama (no key, local)."
        )
    return ChatOpenAI(
        model=os.environ.get("OPENAI_MODEL", "gpt-4o-mini"),
        temperature=temperature,
        api_key=api_key,
    )


def get_llm() -> BaseChatModel:
    """Chat model for text-only work (chat follow-ups and any role without an override)."""
    return _build(_provider(), _temperature(0.3))


def get_research_llm() -> BaseChatModel:
    """Phase 1: free-text research report. RESEARCH_PROVIDER overrides LLM_PROVIDER."""
    return _build(_provider("RESEARCH_PROVIDER"), _temperature(0.3))


def get_scoring_llm() -> BaseChatModel:
    """Phases 2-3: structured extraction and Q/U judgments. SCORING_PROVIDER overrides LLM_PROVIDER."""
    return _build(_provider("SCORING_PROVIDER"), _temperature(0.1))


def is_retryable(exc: BaseException) -> bool:
    """Rate-limit (429) and overload (503) failures, by status attribute or message."""
    status = getattr(exc, "status_code", None) or getattr(exc, "status", None) or getattr(exc, "code", None)
    if status in RETRYABLE_STATUS:
        return True
    message = str(exc)
    return any(marker in message for marker in RETRYABLE_MARKERS)


def _log_retry(retry_state: RetryCallState) -> None:
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        "LLM rate limit hit (attempt %d). Retrying in %.1fs...",
        retry_state.attempt_number,
        delay,
    )


def invoke_with_retry(
    call: Callable[[], T],
    retries: Optional[int] = None,
    delay: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run call(), retrying only rate-limit/overload errors with exponential backoff
    (delay, 2*delay, 4*delay, ...). Other errors and the final failure propagate.
    """
    retries = config.llm_retries() if retries is None else retries
    delay = config.retry_delay() if delay is None else delay
    retrying = Retrying(
        stop=stop_after_attempt(retries + 1),
        wait=wait_exponential(multiplier=delay, min=delay, max=delay * 2 ** max(retries, 0)),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry,
        sleep=sleep,
        reraise=True,
    )
    return retrying(call)
