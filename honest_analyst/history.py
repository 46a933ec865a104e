"""Report history persisted as a JSON file behind a narrow load/save interface."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from honest_analyst import config
from honest_analyst.state import AnalysisReport, RubricAssessment, RubricDimension

logger = logging.getLogger(__name__)

History = Tuple[AnalysisReport, ...]


def _legacy_rubric() -> Dict[str, Any]:
    dim = RubricDimension(score=0, justification="Legacy report - Rubric not available.")
    return RubricAssessment(
        evidence_handling=dim,
        argument_structure=dim,
        methodological_transparency=dim,
        reflexivity_revision=dim,
        total_score=0,
        overall_assessment="This analysis was generated before the Intellectual Honesty Rubric feature was added.",
    ).model_dump()


def migrate_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """
    Bring an older saved report up to the current shape:
    - a flat evidence_matrix becomes a single "Legacy Evidence Set" cluster
    - a missing rubric_assessment becomes a zero-score placeholder
    """
    data = dict(record)
    if data.get("evidence_clusters") is None:
        data["evidence_clusters"] = [
            {
                "id": "legacy_cluster",
                "name": "Legacy Evidence Set",
                "description": "Data imported from previous version without thematic clustering.",
                "lrs": {},
                "items": data.pop("evidence_matrix", None) or [],
            }
        ]
    if data.get("rubric_assessment") is None:
        data["rubric_assessment"] = _legacy_rubric()
    data.setdefault("original_query", data.get("topic", ""))
    return data


class HistoryStore:
    """Most-recent-first list of reports in one JSON file."""

    def __init__(self, path: Optional[Path] = None, limit: Optional[int] = None):
        self.path = Path(path or config.history_path())
        self.limit = limit or config.history_limit()
        self._lock = threading.Lock()

    def load(self) -> History:
        """Read and migrate saved reports. A missing or unreadable file is an empty history."""
        if not self.path.exists():
            return ()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load history from %s: %s", self.path, e)
            return ()
        if not isinstance(raw, list):
            logger.error("History file %s does not hold a list; ignoring it", self.path)
            return ()

        reports: List[AnalysisReport] = []
        for record in raw:
            if not isinstance(record, dict):
                continue
            try:
                reports.append(AnalysisReport(**migrate_record(record)))
            except ValidationError as e:
                logger.warning("Skipping unreadable history record %r: %s", record.get("topic"), e)
        return tuple(reports)

    def save(self, reports: Sequence[AnalysisReport]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [r.model_dump(mode="json") for r in list(reports)[: self.limit]]
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def add(self, reports: Sequence[AnalysisReport], report: AnalysisReport) -> History:
        """New history with report first, capped at limit. Does not write."""
        return (report,) + tuple(reports)[: self.limit - 1]

    def record(self, report: AnalysisReport) -> History:
        """Load, prepend report and save under the store lock."""
        with self._lock:
            history = self.add(self.load(), report)
            self.save(history)
        return history

    def clear(self) -> None:
        with self._lock:
            if self.path.exists():
                self.path.unlink()
