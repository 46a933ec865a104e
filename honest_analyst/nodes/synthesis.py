"""Synthesis layer: deterministic confirmation math over the judgments, then report output."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from honest_analyst import config
from honest_analyst.confirmation import lr_map, score_cluster
from honest_analyst.state import AnalysisReport, BayesianScoring, BayesianStats, EvidenceCluster
from honest_analyst.tools.export_tools import write_report_markdown, write_report_pdf

logger = logging.getLogger(__name__)


def apply_scores(cluster: EvidenceCluster, judgments: List[Any]) -> EvidenceCluster:
    """
    Score one cluster and return a copy carrying its LRs and stats.
    Every evidence item inherits the cluster LRs unchanged.
    """
    results = score_cluster([j.to_judgment() for j in judgments])
    lrs = dict(cluster.lrs)
    lrs.update(lr_map(results))
    stats = {r.hypothesis_id: BayesianStats.from_result(r) for r in results}
    items = [item.model_copy(update={"lrs": dict(lrs)}) for item in cluster.items]
    return cluster.model_copy(update={"lrs": lrs, "stats": stats, "items": items})


def reconcile_judgments(
    cluster_id: str, judgments: Sequence[Any], hypothesis_ids: Sequence[str]
) -> Tuple[Optional[List[Any]], List[str]]:
    """
    Match one cluster's judgments to the report's hypothesis set.

    Unknown ids are dropped and a repeated id keeps its first judgment. Returns
    (None, problems) when a hypothesis has no judgment, since priors over a
    partial set would not be comparable across clusters.
    """
    known = set(hypothesis_ids)
    problems: List[str] = []
    kept: Dict[str, Any] = {}
    for judgment in judgments:
        h_id = judgment.hypothesis_id
        if h_id not in known:
            problems.append(f"{cluster_id}: dropped judgment for unknown hypothesis {h_id!r}")
        elif h_id in kept:
            problems.append(f"{cluster_id}: ignored duplicate judgment for {h_id!r}")
        else:
            kept[h_id] = judgment
    missing = [h_id for h_id in hypothesis_ids if h_id not in kept]
    if missing:
        problems.append(f"{cluster_id}: no judgment for {', '.join(missing)}; cluster kept neutral")
        return None, problems
    return [kept[h_id] for h_id in hypothesis_ids], problems


def score_report(
    report: AnalysisReport, scoring: Optional[BayesianScoring]
) -> Tuple[AnalysisReport, List[str]]:
    """
    Run the confirmation engine on every cluster with a complete judgment set.
    Other clusters keep neutral LRs. Returns the scored copy and the problems found.
    """
    if scoring is None:
        return report, []
    hypothesis_ids = [h.id for h in report.hypotheses]
    by_cluster: Dict[str, List[Any]] = {}
    for entry in scoring.clusters:
        by_cluster.setdefault(entry.cluster_id, entry.analysis)
    clusters: List[EvidenceCluster] = []
    problems: List[str] = []
    for cluster in report.evidence_clusters:
        judgments = by_cluster.get(cluster.id)
        if not judgments:
            logger.warning("No Q/U judgments for cluster %r; keeping neutral LRs", cluster.id)
            clusters.append(cluster)
            continue
        matched, found = reconcile_judgments(cluster.id, judgments, hypothesis_ids)
        for problem in found:
            logger.warning(problem)
        problems.extend(found)
        clusters.append(cluster if matched is None else apply_scores(cluster, matched))
    return report.model_copy(update={"evidence_clusters": clusters}), problems


def apply_scoring(report: AnalysisReport, scoring: Optional[BayesianScoring]) -> AnalysisReport:
    return score_report(report, scoring)[0]


def confirmation_node(state: Dict[str, Any]) -> Dict[str, Any]:
    """Returns {"report": scored AnalysisReport, "cumulative_scores": {hypothesis_id: score}}."""
    report: Optional[AnalysisReport] = state.get("report")
    if report is None:
        return {"cumulative_scores": {}}
    scored, problems = score_report(report, state.get("scoring"))
    cumulative = scored.cumulative_scores()
    for h_id, score in sorted(cumulative.items(), key=lambda kv: -kv[1]):
        logger.info("Cumulative LR %s: %.4g", h_id, score)
    out: Dict[str, Any] = {"report": scored, "cumulative_scores": cumulative}
    if problems:
        out["phase_errors"] = {"confirmation": "; ".join(problems)[:500]}
    return out


def report_node(state: Dict[str, Any]) -> Dict[str, Any]:
    """
    Write the report to <reports_dir>/report_<timestamp>.md (and .pdf when export_pdf is set).
    Returns {"report_path": str, "pdf_path": str | None}.
    """
    report: Optional[AnalysisReport] = state.get("report")
    if report is None:
        return {"report_path": None, "pdf_path": None}

    out_dir = Path(state.get("reports_dir") or config.reports_dir())
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    md_path = write_report_markdown(report, out_dir / f"report_{timestamp}.md")
    logger.info("Report saved to %s", md_path)

    pdf_path = None
    if state.get("export_pdf"):
        pdf_path = str(write_report_pdf(report, out_dir / f"report_{timestamp}.pdf"))
        logger.info("PDF saved to %s", pdf_path)
    return {"report_path": str(md_path), "pdf_path": pdf_path}
