"""Research layer: optional article fetch and the free-text deep-dive research report (phase 1)."""

from __future__ import annotations

import logging
from typing import Any, Dict

from langchain_core.messages import HumanMessage, SystemMessage

from honest_analyst import config
from honest_analyst.errors import AnalysisError
from honest_analyst.llm import get_research_llm, invoke_with_retry
from honest_analyst.tools.web_tools import fetch_url_content, is_url

logger = logging.getLogger(__name__)

RESEARCH_REPORT_STRUCTURE = """Perform a DEEP DIVE investigation, reasoning as deeply as you can, step-by-step.

REQUIRED OUTPUT STRUCTURE (Markdown):

# 1. BACKGROUND (K0)
- Assumptions: ...
- Biases: ...
- Context: ...

# 2. HYPOTHESES (Mutually Exclusive & Exhaustive)
- H1 (Primary): [Description]
- H2 (Secondary): [Description]
- H0 (Catch-all): [Description]

# 3. EVIDENCE CLUSTERS (Crucial Section)
(Group all found evidence into thematic clusters. Do NOT list isolated facts. Group them by theme.)

## Cluster: [Name, e.g., "Economic Indicators"]
- Description: [Why these items are related/dependent]
- EVIDENCE ITEMS:
   * [Source Name]: [Specific Fact/Quote/Stat] - [Explanation]

# 4. INTELLECTUAL HONESTY RUBRIC GRADING
(Grade the source/topic based on these 4 dimensions. Scale 1.0 to 4.0)
1. Evidence Handling
2. Argument Structure
3. Methodological Transparency
4. Reflexivity & Revision

# 5. SYNTHESIS & CONCLUSION
- Reflexive Review: Did we prove K0 wrong?
- Final Verdict: ..."""


def content_text(message: Any) -> str:
    """Plain text of a chat model response (string content or a list of content parts)."""
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type", "text") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts).strip()
    return str(content or "").strip()


def build_research_prompt(source_text: str = "") -> str:
    """System prompt for phase 1; grounds the critique on fetched article text when available."""
    intro = (
        'You are an expert analyst practicing "Intellectual Honesty".\n'
        "Your goal is to critique a news article or analyze a topic using Bayesian process tracing and hermeneutics.\n\n"
    )
    if source_text:
        limit = config.max_source_chars()
        grounding = (
            "CRITICAL INSTRUCTION: The user has provided a URL.\n"
            "The FULL TEXT of the article has been retrieved for you.\n"
            "You MUST base your critique primarily on the following text content:\n\n"
            "--- BEGIN ARTICLE CONTENT ---\n"
            f"{source_text[:limit]}\n"
            "--- END ARTICLE CONTENT ---\n\n"
            "Only rely on outside knowledge to verify facts *external* to the article."
        )
    else:
        grounding = (
            "If the given topic is a URL, use what you know about the article and its publication date. "
            "If it is a general topic, perform a DEEP DIVE investigation."
        )
    return f"{intro}{grounding}\n\n{RESEARCH_REPORT_STRUCTURE}"


def source_route(state: Dict[str, Any]) -> str:
    """Route to the article fetch only when the query is a URL."""
    return "fetch" if is_url(state.get("query") or "") else "skip"


def fetch_source_node(state: Dict[str, Any]) -> Dict[str, Any]:
    """Fetch the article behind a URL query. Failure is recorded, not fatal."""
    url = (state.get("query") or "").strip()
    text = fetch_url_content(url)
    if text:
        return {"source_text": text}
    return {
        "source_text": "",
        "phase_errors": {"fetch_source": f"Could not retrieve article text from {url}; using LLM retrieval."},
    }


def research_node(state: Dict[str, Any]) -> Dict[str, Any]:
    """Phase 1: free-text research report. Returns {"research_text": str}."""
    query = (state.get("query") or "").strip()
    system_prompt = build_research_prompt(state.get("source_text") or "")
    messages = [
        SystemMessage(content=system_prompt),
        HumanMessage(content=f'Perform a comprehensive intellectual honesty analysis on the following topic: "{query}"'),
    ]

    logger.info("Phase 1: researching %r", query)
    try:
        llm = get_research_llm()
        response = invoke_with_retry(lambda: llm.invoke(messages))
    except Exception as e:
        logger.error("Research phase error: %s", e)
        raise AnalysisError("Phase 1", str(e) or "Unknown API Error") from e

    text = content_text(response)
    if not text:
        raise AnalysisError("Phase 1", "the research model returned an empty response")
    return {"research_text": text}
