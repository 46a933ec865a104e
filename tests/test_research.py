import pytest
from langchain_core.messages import AIMessage

from honest_analyst.errors import AnalysisError
from honest_analyst.nodes import research
from honest_analyst.nodes.research import (
    build_research_prompt,
    content_text,
    fetch_source_node,
    research_node,
    source_route,
)

from conftest import FakeChatModel


def test_content_text_handles_part_lists():
    message = AIMessage(content=[{"type": "text", "text": "Hello "}, {"type": "image_url"}, "world"])
    assert content_text(message) == "Hello world"
    assert content_text(AIMessage(content="  plain  ")) == "plain"


def test_source_route():
    assert source_route({"query": "https://example.com/story"}) == "fetch"
    assert source_route({"query": "inflation in 2023"}) == "skip"


def test_prompt_grounds_on_article_text():
    prompt = build_research_prompt("The council voted 5-2 to close the bridge.")
    assert "BEGIN ARTICLE CONTENT" in prompt
    assert "voted 5-2" in prompt
    assert "# 3. EVIDENCE CLUSTERS" in prompt


def test_prompt_without_article():
    prompt = build_research_prompt("")
    assert "BEGIN ARTICLE CONTENT" not in prompt
    assert "DEEP DIVE" in prompt


def test_fetch_source_failure_is_recorded(monkeypatch):
    monkeypatch.setattr(research, "fetch_url_content", lambda url: None)

    out = fetch_source_node({"query": "https://example.com/a"})

    assert out["source_text"] == ""
    assert "example.com" in out["phase_errors"]["fetch_source"]


def test_research_node_returns_text(monkeypatch):
    fake = FakeChatModel(replies=["# 1. BACKGROUND (K0)\n..."])
    monkeypatch.setattr(research, "get_research_llm", lambda: fake)

    out = research_node({"query": "bridge closure", "source_text": ""})

    assert out["research_text"].startswith("# 1. BACKGROUND")
    assert 'topic: "bridge closure"' in fake.calls[0][1].content


def test_research_empty_response_is_fatal(monkeypatch):
    monkeypatch.setattr(research, "get_research_llm", lambda: FakeChatModel(replies=[""]))

    with pytest.raises(AnalysisError, match="Phase 1 failed"):
        research_node({"query": "q"})


def test_research_missing_api_key_is_fatal(monkeypatch):
    def _missing():
        raise ValueError("GOOGLE_API_KEY is not set.")

    monkeypatch.setattr(research, "get_research_llm", _missing)

    with pytest.raises(AnalysisError, match="GOOGLE_API_KEY"):
        research_node({"query": "q"})
