import pytest

from honest_analyst import llm
from honest_analyst.llm import invoke_with_retry, is_retryable


class _ApiError(Exception):
    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


def test_is_retryable():
    assert is_retryable(_ApiError("too many", status_code=429))
    assert is_retryable(_ApiError("unavailable", status_code=503))
    assert is_retryable(RuntimeError("429 Resource has been exhausted (e.g. check quota)."))
    assert not is_retryable(_ApiError("bad request", status_code=400))
    assert not is_retryable(ValueError("schema mismatch"))


def test_retries_rate_limits_with_doubling_backoff():
    sleeps = []
    attempts = []

    def call():
        attempts.append(1)
        if len(attempts) < 3:
            raise _ApiError("rate limited", status_code=429)
        return "ok"

    assert invoke_with_retry(call, retries=3, delay=2.0, sleep=sleeps.append) == "ok"
    assert len(attempts) == 3
    assert sleeps == [2.0, 4.0]


def test_gives_up_after_retries():
    sleeps = []

    def call():
        raise _ApiError("overloaded", status_code=503)

    with pytest.raises(_ApiError):
        invoke_with_retry(call, retries=3, delay=2.0, sleep=sleeps.append)
    assert sleeps == [2.0, 4.0, 8.0]


def test_non_retryable_errors_propagate_immediately():
    sleeps = []
    attempts = []

    def call():
        attempts.append(1)
        raise ValueError("bad key")

    with pytest.raises(ValueError):
        invoke_with_retry(call, retries=3, delay=2.0, sleep=sleeps.append)
    assert attempts == [1]
    assert sleeps == []


def test_unknown_provider(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "carrier-pigeon")
    with pytest.raises(ValueError, match="Unknown LLM provider"):
        llm.get_llm()


def test_role_override_wins(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "openai")
    monkeypatch.setenv("RESEARCH_PROVIDER", "Ollama")
    assert llm._provider("RESEARCH_PROVIDER") == "ollama"
    assert llm._provider("SCORING_PROVIDER") == "openai"


def test_missing_openai_key(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "openai")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ValueError, match="OPENAI_API_KEY is not set"):
        llm.get_llm()
