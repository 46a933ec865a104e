#!/usr/bin/env python3
"""
Run the full analysis graph: research -> structuring -> Q/U scoring -> confirmation -> Markdown report.
Usage: python main.py "<topic or article URL>"
   or:  python main.py "<topic or article URL>" --json
   or:  python main.py "<topic or article URL>" --pdf
   or:  python main.py            (prompts for the topic)
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

# Load .env from project root so LLM_PROVIDER and API keys are set before any imports that read them
from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent / ".env")

from honest_analyst.errors import AnalysisError
from honest_analyst.graph import run_analysis
from honest_analyst.history import HistoryStore
from honest_analyst.logging_utils import setup_logging

logger = logging.getLogger("honest_analyst.cli")


def _tracing_enabled() -> bool:
    return os.environ.get("LANGCHAIN_TRACING_V2", "").lower() in ("true", "1", "yes") and bool(
        os.environ.get("LANGCHAIN_API_KEY", "").strip()
    )


def _print_langsmith_trace_url(run_id: str) -> None:
    """Print the LangSmith trace URL for this run."""
    try:
        from langsmith import Client

        client = Client(api_key=os.environ.get("LANGCHAIN_API_KEY"))
        project_name = os.environ.get("LANGCHAIN_PROJECT") or "default"
        run = client.read_run(run_id)
        url = client.get_run_url(run=run, project_name=project_name)
        print("\n--- LangSmith trace ---")
        print(url)
    except Exception as e:
        # Trace may still be visible in the project; print run_id so user can search
        print(f"\nLangSmith trace run_id (search in your project): {run_id}", file=sys.stderr)
        print(f"(Could not resolve URL: {e})", file=sys.stderr)


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Evaluate competing hypotheses with a Bayesian confirmation metric.")
    parser.add_argument("query", nargs="?", help="Topic to analyze or URL of an article to critique")
    parser.add_argument("--json", action="store_true", help="Print the scored report as JSON")
    parser.add_argument("--pdf", action="store_true", help="Also export a PDF summary")
    parser.add_argument("--reports-dir", default=None, help="Where to write report files")
    parser.add_argument("--log-dir", default=None, help="Write a DEBUG run log to this directory")
    parser.add_argument("--no-history", action="store_true", help="Do not add the report to the history file")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, log_dir=args.log_dir)

    query = (args.query or "").strip()
    if not query:
        print("Enter a topic or the URL of an article to analyze.\n")
        query = input("Topic or URL: ").strip()
        if not query:
            print("Error: a topic is required.", file=sys.stderr)
            return 1

    print("Running analysis (research -> structuring -> scoring -> confirmation)...")
    try:
        result = run_analysis(query, export_pdf=args.pdf, reports_dir=args.reports_dir)
    except AnalysisError as e:
        logger.error("Analysis aborted: %s", e)
        return 2

    report = result.get("report")
    if report is None:
        print("\nNo report in state (structuring may have been skipped or failed).")
        return 2

    for phase, message in (result.get("phase_errors") or {}).items():
        print(f"Warning [{phase}]: {message}", file=sys.stderr)

    print("\n--- Analysis complete ---")
    print(f"Topic: {report.topic}")
    print(f"Rubric score: {report.rubric_assessment.total_score:.2f}/4.0")
    print("\n--- Cumulative likelihood ratios ---")
    titles = {h.id: h.title for h in report.hypotheses}
    scores = result.get("cumulative_scores") or {}
    for h_id, score in sorted(scores.items(), key=lambda kv: -kv[1]):
        print(f"  {h_id}: {score:.4g}  {titles.get(h_id, '')}")
    if result.get("report_path"):
        print(f"\nReport saved to: {result['report_path']}")
    if result.get("pdf_path"):
        print(f"PDF saved to: {result['pdf_path']}")

    run_id = result.get("_run_id")
    if run_id and _tracing_enabled():
        _print_langsmith_trace_url(run_id)

    if not args.no_history:
        HistoryStore().record(report)

    if args.json:
        print(json.dumps(report.model_dump(mode="json"), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
