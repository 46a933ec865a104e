#!/usr/bin/env python3
"""
Web UI for Honest Analyst: submit a topic or article URL, run the analysis, chat about the result.
Run: python app.py   or: flask --app app run
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

# Ensure project root is on path when running as script
sys.path.insert(0, str(Path(__file__).resolve().parent))

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent / ".env")

from flask import Flask, jsonify, render_template, request, send_from_directory
from pydantic import ValidationError

from honest_analyst import config
from honest_analyst.chat import chat_with_analyst
from honest_analyst.errors import AnalysisError
from honest_analyst.history import HistoryStore
from honest_analyst.logging_utils import setup_logging
from honest_analyst.state import AnalysisReport, ChatTurn

logger = logging.getLogger("honest_analyst.web")


def create_app(history_store: HistoryStore | None = None, reports_dir: Path | None = None) -> Flask:
    app = Flask(__name__, template_folder="web/templates")
    store = history_store or HistoryStore()
    out_dir = Path(reports_dir or config.reports_dir())
    out_dir.mkdir(parents=True, exist_ok=True)

    @app.route("/")
    def index():
        return render_template("index.html")

    @app.route("/api/analyze", methods=["POST"])
    def analyze_api():
        """Accept {"query": str, "pdf": bool}; run the analysis; return the scored report."""
        body = request.get_json(silent=True) or {}
        query = (body.get("query") or request.form.get("query") or "").strip()
        if not query:
            return jsonify({"ok": False, "error": "A topic or URL is required."}), 400

        from honest_analyst.graph import run_analysis

        try:
            result = run_analysis(query, export_pdf=bool(body.get("pdf")), reports_dir=str(out_dir))
        except AnalysisError as e:
            logger.error("Analysis failed: %s", e)
            return jsonify({"ok": False, "error": str(e)}), 502

        report = result.get("report")
        if report is None:
            return jsonify({"ok": False, "error": "No report was produced."}), 500
        store.record(report)

        report_path = result.get("report_path")
        report_filename = Path(report_path).name if report_path else None
        return jsonify(
            {
                "ok": True,
                "report": report.model_dump(mode="json"),
                "cumulative_scores": result.get("cumulative_scores") or {},
                "report_url": f"/reports/{report_filename}" if report_filename else None,
                "phase_errors": result.get("phase_errors") or {},
                "run_id": result.get("_run_id"),
            }
        )

    @app.route("/api/chat", methods=["POST"])
    def chat_api():
        """Accept {"report": AnalysisReport, "history": [ChatTurn], "message": str}; return reply + history."""
        body = request.get_json(silent=True) or {}
        message = (body.get("message") or "").strip()
        if not message:
            return jsonify({"ok": False, "error": "A message is required."}), 400
        try:
            report = AnalysisReport(**(body.get("report") or {}))
            history = tuple(ChatTurn(**t) for t in body.get("history") or [])
        except (TypeError, ValidationError) as e:
            return jsonify({"ok": False, "error": f"Invalid chat payload: {e}"}), 400
        try:
            reply, new_history = chat_with_analyst(report, history, message)
        except Exception as e:
            logger.error("Chat failed: %s", e)
            return jsonify({"ok": False, "error": str(e)}), 502
        return jsonify({"ok": True, "reply": reply, "history": [t.model_dump() for t in new_history]})

    @app.route("/api/history", methods=["GET"])
    def history_api():
        return jsonify({"ok": True, "history": [r.model_dump(mode="json") for r in store.load()]})

    @app.route("/api/history", methods=["DELETE"])
    def clear_history_api():
        store.clear()
        return jsonify({"ok": True})

    @app.route("/reports/<path:filename>")
    def serve_report(filename):
        """Serve a generated report (Markdown or PDF) from the reports directory."""
        path = (out_dir / filename).resolve()
        if not path.is_file() or path.parent != out_dir.resolve():
            return "Report not found.", 404
        return send_from_directory(out_dir, filename, as_attachment=False)

    return app


def main():
    setup_logging()
    port = int(os.environ.get("PORT", 8000))
    create_app().run(host="0.0.0.0", port=port, debug=os.environ.get("FLASK_DEBUG", "0") == "1")


if __name__ == "__main__":
    main()
