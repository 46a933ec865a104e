"""Report export (Markdown, PDF) and log-scale display values for charts."""

from __future__ import annotations

import math
import textwrap
from pathlib import Path
from typing import Dict, List, Optional

from honest_analyst.state import AnalysisReport

# Floor applied before log10 for the cumulative radar axis; +2 shifts 0.01 to 0.
RADAR_FLOOR = 0.01
RADAR_OFFSET = 2.0


def log_lr(lr: float) -> float:
    """Symmetric display value for one cluster LR (0 = neutral)."""
    return math.log10(lr) if lr > 0 else math.log10(RADAR_FLOOR)


def radar_value(cumulative_score: float) -> float:
    """Non-negative radar axis value for a cumulative score."""
    return max(0.0, math.log10(max(cumulative_score, RADAR_FLOOR)) + RADAR_OFFSET)


def _fmt(value: float) -> str:
    return f"{value:.3f}" if abs(value) < 1000 else f"{value:.3g}"


def report_to_markdown(report: AnalysisReport, cumulative: Optional[Dict[str, float]] = None) -> str:
    """Serialize AnalysisReport to Markdown: Hypotheses -> Evidence Clusters -> Rubric -> Conclusion."""
    cumulative = cumulative if cumulative is not None else report.cumulative_scores()
    rubric = report.rubric_assessment
    lines = [
        "# Intellectual Honesty Report",
        "",
        f"**Topic:** {report.topic}",
        f"**Query:** {report.original_query}",
        f"**Rubric Score:** {rubric.total_score:.2f}/4.0",
    ]
    if report.generated_at:
        lines.append(f"**Generated:** {report.generated_at}")
    lines += ["", "## Background Knowledge (K0)", "", report.k0.context or "(none)", ""]
    for a in report.k0.assumptions:
        lines.append(f"- Assumption: {a}")
    for b in report.k0.potential_biases:
        lines.append(f"- Potential bias: {b}")

    lines += ["", "## Hypotheses", ""]
    for h in report.hypotheses:
        score = cumulative.get(h.id, 1.0)
        lines.append(f"- **{h.id}** ({h.type}) {h.title}: cumulative LR {_fmt(score)} (log10 {log_lr(score):+.2f})")
        if h.description:
            lines.append(f"  - {h.description}")

    lines += ["", "## Evidence Clusters", ""]
    for c in report.evidence_clusters:
        lines.append(f"### {c.name} (`{c.id}`)")
        lines.append("")
        if c.description:
            lines.append(c.description)
            lines.append("")
        if c.stats:
            lines.append("| Hypothesis | P(H) | P(E|H) | P(E|~H) | LR |")
            lines.append("|---|---|---|---|---|")
            for h_id, s in c.stats.items():
                lines.append(f"| {h_id} | {s.p_h:.3f} | {_fmt(s.p_e_h)} | {_fmt(s.p_e_not_h)} | {_fmt(s.lr)} |")
        else:
            lrs = ", ".join(f"{h_id}={_fmt(v)}" for h_id, v in c.lrs.items()) or "(not scored)"
            lines.append(f"- **LRs:** {lrs}")
        lines.append("")
        for item in c.items:
            lines.append(f"- [{item.source}] {item.description}")
            if item.explanation:
                lines.append(f"  - {item.explanation}")
        lines.append("")

    lines += ["## Rubric Assessment", ""]
    for name, dim in rubric.dimensions():
        lines.append(f"- **{name}:** {dim.score:.1f}/4.0 {dim.justification}".rstrip())
    lines += ["", rubric.overall_assessment, ""]
    lines += ["## Reflexive Review", "", report.reflexive_review, ""]
    lines += ["## Synthesis", "", report.synthesis, ""]
    lines += ["## Final Conclusion", "", report.final_conclusion, ""]
    return "\n".join(lines)


def write_report_markdown(report: AnalysisReport, out_path: Path) -> Path:
    """Write AnalysisReport to a Markdown file."""
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(report_to_markdown(report), encoding="utf-8")
    return out_path


def _pdf_lines(report: AnalysisReport) -> List[tuple[str, float, bool]]:
    """(text, fontsize, bold) rows for the PDF summary."""
    rows: List[tuple[str, float, bool]] = [
        ("Intellectual Honesty Report", 20, True),
        (report.topic, 16, True),
        (f"Rubric Score: {report.rubric_assessment.total_score:.2f}/4.0", 12, False),
        ("", 12, False),
        ("Cumulative Scores", 14, True),
    ]
    titles = {h.id: h.title for h in report.hypotheses}
    for h_id, score in report.cumulative_scores().items():
        rows.append((f"{h_id}: {score:.2f} - {titles.get(h_id, '')}".rstrip(" -"), 11, False))
    rows += [("", 12, False), ("Final Conclusion", 14, True), (report.final_conclusion, 12, False)]
    return rows


def write_report_pdf(report: AnalysisReport, out_path: Path) -> Path:
    """Write a one-section PDF summary with PyMuPDF, wrapping text and adding pages as needed."""
    import fitz  # PyMuPDF

    out_path.parent.mkdir(parents=True, exist_ok=True)
    margin = 50
    doc = fitz.open()
    try:
        page = doc.new_page()
        y = margin
        for text, size, bold in _pdf_lines(report):
            wrapped = textwrap.wrap(text, width=max(20, int(1000 / size))) or [""]
            for line in wrapped:
                if y + size > page.rect.height - margin:
                    page = doc.new_page()
                    y = margin
                y += size * 1.4
                page.insert_text((margin, y), line, fontsize=size, fontname="tibo" if bold else "tiro")
        doc.save(str(out_path))
    finally:
        doc.close()
    return out_path
