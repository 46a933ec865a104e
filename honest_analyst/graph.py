"""StateGraph: source gate (URL fetch or skip) -> research -> structuring -> scoring
-> confirmation -> report, END.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from langgraph.graph import END, StateGraph

from honest_analyst import config
from honest_analyst.nodes.extraction import scoring_node, structuring_node
from honest_analyst.nodes.research import fetch_source_node, research_node, source_route
from honest_analyst.nodes.synthesis import confirmation_node, report_node
from honest_analyst.state import AgentState


def build_analysis_graph():
    """
    Build the analysis graph.

    - source_gate: conditional -> fetch_source (query is a URL) or straight to research
    - research (phase 1) -> structuring (phase 2) -> scoring (phase 3)
    - confirmation: deterministic LRs per cluster + cumulative scores
    - report: Markdown (and optional PDF) on disk -> END
    """
    builder = StateGraph(AgentState)

    builder.add_node("source_gate", lambda s: {})
    builder.add_node("fetch_source", fetch_source_node)
    builder.add_node("research", research_node)
    builder.add_node("structuring", structuring_node)
    builder.add_node("scoring", scoring_node)
    builder.add_node("confirmation", confirmation_node)
    builder.add_node("report", report_node)

    builder.set_entry_point("source_gate")
    builder.add_conditional_edges("source_gate", source_route, {"fetch": "fetch_source", "skip": "research"})
    builder.add_edge("fetch_source", "research")
    builder.add_edge("research", "structuring")
    builder.add_edge("structuring", "scoring")
    builder.add_edge("scoring", "confirmation")
    builder.add_edge("confirmation", "report")
    builder.add_edge("report", END)

    return builder.compile()


def run_analysis(
    query: str,
    export_pdf: bool = False,
    reports_dir: Optional[str] = None,
    run_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Run the analysis graph and return the final state. The run id (generated when
    not given) is passed to the graph config for tracing and attached as _run_id.
    """
    graph = build_analysis_graph()
    initial: Dict[str, Any] = {
        "query": query.strip(),
        "source_text": "",
        "report": None,
        "scoring": None,
        "cumulative_scores": {},
        "export_pdf": export_pdf,
        "reports_dir": str(reports_dir or config.reports_dir()),
        "phase_errors": {},
    }

    rid = run_id or str(uuid.uuid4())
    result = graph.invoke(initial, config={"run_id": rid})
    result["_run_id"] = rid
    return result
