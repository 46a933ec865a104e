import pytest

from honest_analyst.errors import AnalysisError
from honest_analyst.graph import run_analysis
from honest_analyst.nodes import extraction, research
from honest_analyst.state import ScoringResponse, StructuredAnalysis

from conftest import FakeChatModel


@pytest.fixture
def fake_models(monkeypatch, structured_analysis, two_hypothesis_scoring):
    research_model = FakeChatModel(replies=["# 1. BACKGROUND (K0)\n- Assumptions: ..."])
    scoring_model = FakeChatModel(
        structured={StructuredAnalysis: structured_analysis, ScoringResponse: two_hypothesis_scoring}
    )
    monkeypatch.setattr(research, "get_research_llm", lambda: research_model)
    monkeypatch.setattr(extraction, "get_scoring_llm", lambda: scoring_model)
    return research_model, scoring_model


def test_topic_runs_end_to_end(tmp_path, fake_models):
    result = run_analysis("bridge closure", reports_dir=str(tmp_path), run_id="run-1")

    report = result["report"]
    cluster = report.evidence_clusters[0]
    assert cluster.lrs["H1"] == pytest.approx(5.0)
    assert cluster.lrs["H2"] == pytest.approx(0.2)
    assert cluster.items[0].lrs == cluster.lrs
    assert result["cumulative_scores"] == pytest.approx({"H1": 5.0, "H2": 0.2})
    assert result["_run_id"] == "run-1"
    assert result["report_path"].startswith(str(tmp_path))
    assert result["phase_errors"] == {}


def test_url_query_fetches_article(tmp_path, monkeypatch, fake_models):
    monkeypatch.setattr(research, "fetch_url_content", lambda url: "The council voted to close the bridge. " * 10)

    result = run_analysis("https://example.com/bridge", reports_dir=str(tmp_path))

    research_model, _ = fake_models
    system_prompt = research_model.calls[0][0].content
    assert "BEGIN ARTICLE CONTENT" in system_prompt
    assert "council voted" in system_prompt
    assert result["source_text"].startswith("The council voted")


def test_scoring_failure_keeps_neutral_lrs(tmp_path, monkeypatch, structured_analysis):
    monkeypatch.setattr(research, "get_research_llm", lambda: FakeChatModel(replies=["research"]))
    monkeypatch.setattr(
        extraction,
        "get_scoring_llm",
        lambda: FakeChatModel(
            structured={StructuredAnalysis: structured_analysis, ScoringResponse: ValueError("bad scoring json")}
        ),
    )

    result = run_analysis("bridge closure", reports_dir=str(tmp_path))

    assert result["report"].evidence_clusters[0].lrs == {"H1": 1.0, "H2": 1.0}
    assert result["cumulative_scores"] == {"H1": 1.0, "H2": 1.0}
    assert "bad scoring json" in result["phase_errors"]["scoring"]


def test_research_failure_aborts(tmp_path, monkeypatch):
    monkeypatch.setattr(research, "get_research_llm", lambda: FakeChatModel(errors=[RuntimeError("quota")]))

    with pytest.raises(AnalysisError, match="Phase 1 failed: quota"):
        run_analysis("bridge closure", reports_dir=str(tmp_path))
