"""Extraction layer: structure the research report (phase 2) and collect Q/U judgments (phase 3).

Both phases use structured output only; no probabilities are computed here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import BaseModel

from honest_analyst.errors import AnalysisError
from honest_analyst.llm import get_scoring_llm, invoke_with_retry
from honest_analyst.state import (
    AnalysisReport,
    BackgroundKnowledge,
    EvidenceCluster,
    EvidenceItem,
    RubricAssessment,
    ScoringResponse,
    StructuredAnalysis,
    StructuredCluster,
)

logger = logging.getLogger(__name__)

STRUCTURING_PROMPT = """You are a data formatter. Your job is to convert the provided RESEARCH REPORT into a structured JSON format.

SOURCE REPORT:
{research_text}

INSTRUCTIONS:
1. Map "Background" to 'k0'.
2. Map "Hypotheses" to 'hypotheses'.
3. Map "Evidence Clusters" to 'evidence_clusters'.
4. IMPORTANT: Set all 'lrs_array' values to 1.0 for now. They are calculated by a dedicated Bayesian engine in the next step.
5. RUBRIC ASSESSMENT: Extract scores, justifications, strengths, and improvements.

Return ONLY valid JSON matching the schema."""

SCORING_SYSTEM = """You are an expert Bayesian Epistemologist engine. Your task is to evaluate a set of Evidence Clusters against a set of mutually exclusive Hypotheses.

You will NOT calculate probabilities. You will assign raw semantic weights (Q and U) which will be processed by an external deterministic engine using Branden Fitelson's Confirmation Theory framework.

### THE INPUTS
**Topic:** {topic}

**Hypotheses (H_i):**
{hypotheses}

**Evidence Clusters (E_k):**
{clusters}

---

### YOUR TASK
For EACH Evidence Cluster provided above, evaluate it against EACH Hypothesis.

### DEFINITIONS AND SCALES

#### 1. Q_i (Prior Plausibility Ratio)
Represents the relative plausibility of the hypothesis *before* seeing this specific evidence cluster, compared to a generic baseline.
*   1.0 = Standard / Plausible baseline.
*   > 1.0 = Privileged prior (e.g., 2.0 is twice as plausible).
*   < 1.0 = Implausible prior (e.g., 0.1 is unlikely).

#### 2. U_i (Relative Likelihood)
Represents P(E|H_i)/P_ref: "If this hypothesis were true, how expected is this evidence as compared to a reference P_ref?"
*   High (> 1.0): The hypothesis strictly predicts this evidence (3 = Strong Prediction, 10 = Smoking Gun).
*   Neutral (1.0): The evidence is irrelevant to the hypothesis.
*   Low (< 1.0): The hypothesis makes this evidence surprising or anomalous (0.3 = Surprising, 0.01 = Falsifies).

### OUTPUT FORMAT
Return JSON containing a list of clusters, where each cluster contains an analysis list for every hypothesis. Both Q_i and U_i must be >= 0."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_cluster(raw: StructuredCluster, hypothesis_ids: List[str]) -> EvidenceCluster:
    """Placeholder cluster: neutral LRs until the confirmation engine runs."""
    # Placeholders only for known hypotheses once the set is known
    ids = hypothesis_ids or [lr.hypothesis_id for lr in raw.lrs_array]
    lrs = {h_id: 1.0 for h_id in ids}
    items = [EvidenceItem(**item.model_dump(exclude_none=True)) for item in raw.items]
    cluster = EvidenceCluster(items=items, lrs=lrs)
    return cluster.model_copy(
        update={
            "id": raw.id or cluster.id,
            "name": raw.name or cluster.name,
            "description": raw.description or "",
        }
    )


def build_report(structured: StructuredAnalysis, query: str, generated_at: Optional[str] = None) -> AnalysisReport:
    """Fill defaults for anything the structuring model left out."""
    hypothesis_ids = [h.id for h in structured.hypotheses]
    return AnalysisReport(
        topic=structured.topic or query,
        original_query=query,
        k0=structured.k0 or BackgroundKnowledge(),
        hypotheses=list(structured.hypotheses),
        evidence_clusters=[_to_cluster(c, hypothesis_ids) for c in structured.evidence_clusters],
        rubric_assessment=structured.rubric_assessment or RubricAssessment(),
        reflexive_review=structured.reflexive_review or "No review generated.",
        synthesis=structured.synthesis or "No synthesis generated.",
        final_conclusion=structured.final_conclusion or "No conclusion generated.",
        generated_at=generated_at or _now_iso(),
    )


def structuring_node(state: Dict[str, Any]) -> Dict[str, Any]:
    """Phase 2: research text -> AnalysisReport with neutral placeholder LRs."""
    query = (state.get("query") or "").strip()
    prompt = STRUCTURING_PROMPT.format(research_text=state.get("research_text") or "")
    logger.info("Phase 2: structuring research report")
    try:
        llm = get_scoring_llm().with_structured_output(StructuredAnalysis)
        structured = invoke_with_retry(lambda: llm.invoke([HumanMessage(content=prompt)]))
        if isinstance(structured, dict):
            structured = StructuredAnalysis(**structured)
        if structured is None:
            raise ValueError("structuring model returned no data")
    except Exception as e:
        logger.error("Structuring phase error: %s", e)
        raise AnalysisError("Phase 2", str(e) or "Unknown API Error") from e

    report = build_report(structured, query)
    logger.info(
        "Structured %d hypotheses and %d evidence clusters",
        len(report.hypotheses),
        len(report.evidence_clusters),
    )
    return {"report": report}


def build_scoring_prompt(report: AnalysisReport) -> str:
    hypotheses = "\n\n".join(
        f'   - ID: "{h.id}"\n     Description: "{h.title} - {h.description}"' for h in report.hypotheses
    )
    clusters = "\n\n".join(
        f'   - Cluster ID: "{c.id}"\n     Name: "{c.name}"\n     Evidence Description: "{c.description}"'
        for c in report.evidence_clusters
    )
    return SCORING_SYSTEM.format(topic=report.topic, hypotheses=hypotheses, clusters=clusters)


def scoring_node(state: Dict[str, Any]) -> Dict[str, Any]:
    """
    Phase 3: Q/U judgments for every cluster x hypothesis. Returns {"scoring": BayesianScoring}.
    A failure here is not fatal: the report keeps neutral LRs (1.0).
    """
    report: Optional[AnalysisReport] = state.get("report")
    if report is None or not report.evidence_clusters or not report.hypotheses:
        return {"scoring": None}

    system_prompt = build_scoring_prompt(report)
    logger.info("Phase 3: collecting Q/U judgments for %d clusters", len(report.evidence_clusters))
    try:
        llm = get_scoring_llm().with_structured_output(ScoringResponse)
        response = invoke_with_retry(
            lambda: llm.invoke(
                [
                    SystemMessage(content=system_prompt),
                    HumanMessage(content="Generate the Bayesian Q and U values for all clusters."),
                ]
            )
        )
        if isinstance(response, BaseModel):
            response = response.model_dump()
        response = ScoringResponse(**(response or {}))
    except Exception as e:
        logger.warning("Bayesian scoring phase error; returning report with neutral likelihood ratios: %s", e)
        return {"scoring": None, "phase_errors": {"scoring": str(e)[:500]}}

    scoring, rejected = response.validated()
    if not rejected:
        return {"scoring": scoring}
    for cluster_id, error in rejected.items():
        logger.warning("Rejected Q/U judgments for cluster %r; it keeps neutral LRs: %s", cluster_id, error)
    summary = "; ".join(f"{cluster_id}: {error}" for cluster_id, error in rejected.items())
    return {"scoring": scoring, "phase_errors": {"scoring": f"invalid judgments for {summary}"[:500]}}
