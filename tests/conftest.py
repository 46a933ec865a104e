"""Shared fixtures: an offline chat model double and a small two-hypothesis report."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
from langchain_core.messages import AIMessage

from honest_analyst.state import (
    AnalysisReport,
    BayesianScoring,
    ClusterJudgments,
    EvidenceCluster,
    EvidenceItem,
    Hypothesis,
    HypothesisJudgment,
    StructuredAnalysis,
    StructuredCluster,
    StructuredItem,
)


class FakeChatModel:
    """Records invocations; returns canned text or canned structured objects per schema."""

    def __init__(
        self,
        replies: Optional[List[str]] = None,
        structured: Optional[Dict[type, Any]] = None,
        errors: Optional[List[BaseException]] = None,
    ):
        self.replies = list(replies or [])
        self.structured = dict(structured or {})
        self.errors = list(errors or [])
        self.calls: List[Any] = []

    def _maybe_raise(self) -> None:
        if self.errors:
            raise self.errors.pop(0)

    def invoke(self, messages, *args, **kwargs):
        self.calls.append(messages)
        self._maybe_raise()
        return AIMessage(content=self.replies.pop(0) if self.replies else "")

    def with_structured_output(self, schema, **kwargs):
        parent = self

        class _Bound:
            def invoke(self, messages, *args, **kw):
                parent.calls.append(messages)
                parent._maybe_raise()
                value = parent.structured.get(schema)
                if isinstance(value, BaseException):
                    raise value
                return value

        return _Bound()


@pytest.fixture
def two_hypothesis_report() -> AnalysisReport:
    return AnalysisReport(
        topic="Why did the bridge close?",
        original_query="bridge closure",
        hypotheses=[
            Hypothesis(id="H1", title="Structural fault", type="primary"),
            Hypothesis(id="H2", title="Scheduled maintenance", type="catch-all"),
        ],
        evidence_clusters=[
            EvidenceCluster(
                id="C1",
                name="Inspection records",
                lrs={"H1": 1.0, "H2": 1.0},
                items=[
                    EvidenceItem(id="E1", description="Crack reported", source="City engineer"),
                    EvidenceItem(id="E2", description="Load limit lowered", source="DOT"),
                ],
            ),
            EvidenceCluster(id="C2", name="Press statements", lrs={"H1": 1.0, "H2": 1.0}),
        ],
    )


@pytest.fixture
def two_hypothesis_scoring() -> BayesianScoring:
    return BayesianScoring(
        clusters=[
            ClusterJudgments(
                cluster_id="C1",
                analysis=[
                    HypothesisJudgment(hypothesis_id="H1", reasoning="cracks predicted", Q_i=2.0, U_i=5.0),
                    HypothesisJudgment(hypothesis_id="H2", reasoning="unexpected", Q_i=1.0, U_i=1.0),
                ],
            )
        ]
    )


@pytest.fixture
def structured_analysis() -> StructuredAnalysis:
    return StructuredAnalysis(
        topic="Why did the bridge close?",
        hypotheses=[
            Hypothesis(id="H1", title="Structural fault"),
            Hypothesis(id="H2", title="Scheduled maintenance", type="catch-all"),
        ],
        evidence_clusters=[
            StructuredCluster(
                id="C1",
                name="Inspection records",
                description="Reports from the same inspection round",
                items=[StructuredItem(id="E1", description="Crack reported", source="City engineer")],
            )
        ],
        final_conclusion="A structural fault is the best-supported explanation.",
    )
