"""Deterministic confirmation engine: per-cluster likelihood ratios and cross-cluster combination.

Turns subjective judgments (Q = prior plausibility ratio, U = relative likelihood)
into normalized priors, catch-all likelihoods and bounded likelihood ratios, then
multiplies the ratios across clusters treated as independent evidence.
No I/O, no state; every edge case degrades to a documented substitute value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Literal, Mapping, Sequence, get_args

# P(H_i) >= 1 - CERTAINTY_THRESHOLD leaves "not H_i" without prior mass.
CERTAINTY_THRESHOLD = 1e-4
CATCHALL_FLOOR = 0.001
LR_MIN = 0.001
LR_MAX = 1000.0
NEUTRAL_LR = 1.0

ZeroPriorMassPolicy = Literal["zero", "uniform"]


@dataclass(frozen=True)
class Judgment:
    """One caller judgment for one hypothesis within one cluster."""

    hypothesis_id: str
    Q: float = 1.0
    U: float = 1.0


@dataclass(frozen=True)
class ClusterResult:
    """Scored hypothesis within one cluster."""

    hypothesis_id: str
    prior: float
    likelihood: float
    catchall: float
    lr: float


def clamp_lr(value: float) -> float:
    """Bound a likelihood ratio to [LR_MIN, LR_MAX]."""
    return min(max(value, LR_MIN), LR_MAX)


def normalize_priors(
    q_values: Sequence[float],
    zero_mass_policy: ZeroPriorMassPolicy = "zero",
) -> List[float]:
    """
    P(H_i) = Q_i / sum(Q).

    When the Q values sum to exactly 0 the "zero" policy divides by 1, so every
    prior is 0. The "uniform" policy assigns 1/M instead. Any other policy name
    raises ValueError.
    """
    if zero_mass_policy not in get_args(ZeroPriorMassPolicy):
        raise ValueError(f"Unknown zero prior mass policy: {zero_mass_policy!r}")
    total = sum(q_values)
    if total == 0:
        if zero_mass_policy == "uniform" and q_values:
            return [1.0 / len(q_values)] * len(q_values)
        total = 1.0
    return [q / total for q in q_values]


def score_cluster(
    judgments: Sequence[Judgment],
    zero_mass_policy: ZeroPriorMassPolicy = "zero",
) -> List[ClusterResult]:
    """
    Score one evidence cluster against the full hypothesis set.

    For each hypothesis the catch-all likelihood U_~i is the average of the other
    hypotheses' U weighted by their priors renormalized over "not H_i". The
    likelihood ratio U_i / U_~i is clamped to [LR_MIN, LR_MAX]. Results keep the
    input order.
    """
    priors = normalize_priors([j.Q for j in judgments], zero_mass_policy)
    results: List[ClusterResult] = []

    for i, current in enumerate(judgments):
        p_i = priors[i]
        denominator = 1.0 - p_i

        if denominator <= CERTAINTY_THRESHOLD:
            results.append(
                ClusterResult(
                    hypothesis_id=current.hypothesis_id,
                    prior=p_i,
                    likelihood=current.U,
                    catchall=0.0,
                    lr=NEUTRAL_LR,
                )
            )
            continue

        catchall = 0.0
        for j, other in enumerate(judgments):
            if j == i:
                continue
            catchall += (priors[j] / denominator) * other.U

        divisor = CATCHALL_FLOOR if catchall == 0 else catchall
        results.append(
            ClusterResult(
                hypothesis_id=current.hypothesis_id,
                prior=p_i,
                likelihood=current.U,
                catchall=catchall,
                lr=clamp_lr(current.U / divisor),
            )
        )

    return results


def lr_map(results: Iterable[ClusterResult]) -> Dict[str, float]:
    """hypothesis_id -> lr for one scored cluster."""
    return {r.hypothesis_id: r.lr for r in results}


def combine(per_cluster_lrs: Iterable[Mapping[str, float]]) -> Dict[str, float]:
    """
    Cumulative score per hypothesis: the product of its LRs across clusters.

    A cluster without an entry for a hypothesis contributes 1.0. No clamping and
    no normalization across hypotheses.
    """
    scores: Dict[str, float] = {}
    for cluster_lrs in per_cluster_lrs:
        for hypothesis_id, lr in cluster_lrs.items():
            scores[hypothesis_id] = scores.get(hypothesis_id, 1.0) * lr
    return scores


__all__ = [
    "CATCHALL_FLOOR",
    "CERTAINTY_THRESHOLD",
    "LR_MAX",
    "LR_MIN",
    "NEUTRAL_LR",
    "ClusterResult",
    "Judgment",
    "ZeroPriorMassPolicy",
    "clamp_lr",
    "combine",
    "lr_map",
    "normalize_priors",
    "score_cluster",
]
