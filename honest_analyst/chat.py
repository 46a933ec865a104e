"""Follow-up conversation with the analyst about a finished report.

History is an immutable tuple of ChatTurn values; each call returns a new tuple.
"""

from __future__ import annotations

import json
from typing import Optional, Sequence, Tuple

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from honest_analyst.llm import get_llm, invoke_with_retry
from honest_analyst.nodes.research import content_text
from honest_analyst.state import AnalysisReport, ChatTurn

ChatHistory = Tuple[ChatTurn, ...]


def build_context_prompt(report: AnalysisReport, message: str) -> str:
    """System prompt carrying the report's hypotheses, cluster LRs and cumulative scores."""
    hypotheses = "\n".join(f"- {h.id}: {h.title}" for h in report.hypotheses)
    clusters = "\n".join(f"- {c.name}: {json.dumps(c.lrs)}" for c in report.evidence_clusters)
    scores = json.dumps(report.cumulative_scores())
    return (
        "You are an intellectually honest analyst discussing a specific report.\n\n"
        "REPORT CONTEXT:\n"
        f"Topic: {report.topic}\n"
        f"Rubric Score: {report.rubric_assessment.total_score:.2f}/4.0\n\n"
        f"Hypotheses:\n{hypotheses}\n\n"
        f"Evidence Clusters & LRs (Fitelson Metric):\n{clusters}\n\n"
        f"Key Findings: {report.final_conclusion}\n"
        f"Cumulative Scores: {scores}\n\n"
        f"USER QUERY: {message}"
    )


def _to_messages(history: Sequence[ChatTurn]) -> list[BaseMessage]:
    return [HumanMessage(content=t.text) if t.role == "user" else AIMessage(content=t.text) for t in history]


def chat_with_analyst(
    report: AnalysisReport,
    history: Sequence[ChatTurn],
    message: str,
    llm: Optional[BaseChatModel] = None,
) -> Tuple[str, ChatHistory]:
    """Send message in the context of report; return (reply, history with both new turns appended)."""
    model = llm or get_llm()
    messages = [SystemMessage(content=build_context_prompt(report, message))]
    messages += _to_messages(history)
    messages.append(HumanMessage(content=message))

    response = invoke_with_retry(lambda: model.invoke(messages))
    reply = content_text(response)
    new_history: ChatHistory = tuple(history) + (
        ChatTurn(role="user", text=message),
        ChatTurn(role="model", text=reply),
    )
    return reply, new_history
