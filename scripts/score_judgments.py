#!/usr/bin/env python3
"""
Score saved Q/U judgments offline, without any LLM call.
Run from repo root: python scripts/score_judgments.py judgments.json

judgments.json has the scoring-phase shape:
  {"clusters": [{"cluster_id": "C1", "analysis": [{"hypothesis_id": "H1", "Q_i": 2, "U_i": 5}, ...]}]}
"""

import json
import sys
from pathlib import Path

# Repo root on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pydantic import ValidationError

from honest_analyst.confirmation import combine, lr_map, score_cluster
from honest_analyst.state import BayesianScoring


def main() -> int:
    if len(sys.argv) < 2:
        print(__doc__, file=sys.stderr)
        return 1
    path = Path(sys.argv[1])
    try:
        scoring = BayesianScoring(**json.loads(path.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        print(f"FAIL: cannot read judgments from {path}: {e}", file=sys.stderr)
        return 1

    per_cluster = []
    for cluster in scoring.clusters:
        results = score_cluster([j.to_judgment() for j in cluster.analysis])
        per_cluster.append(lr_map(results))
        print(f"\nCluster {cluster.cluster_id}")
        print(f"  {'H':<8}{'P(H)':>8}{'P(E|H)':>10}{'P(E|~H)':>10}{'LR':>10}")
        for r in results:
            print(f"  {r.hypothesis_id:<8}{r.prior:>8.3f}{r.likelihood:>10.3f}{r.catchall:>10.3f}{r.lr:>10.3f}")

    print("\nCumulative scores")
    for h_id, score in sorted(combine(per_cluster).items(), key=lambda kv: -kv[1]):
        print(f"  {h_id}: {score:.4g}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
