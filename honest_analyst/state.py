"""Typed state and Pydantic models for the Honest Analyst graph."""

import math
import operator
import uuid
from typing import Annotated, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from typing_extensions import TypedDict

from honest_analyst.confirmation import ClusterResult, Judgment, combine


def _short_id() -> str:
    return uuid.uuid4().hex[:9]


# --- Report content ---


class Hypothesis(BaseModel):
    """One candidate explanation in a mutually exclusive, exhaustive set."""

    id: str = Field(description="Unique ID like H1, H2, H0")
    title: str
    description: str = ""
    type: Literal["primary", "secondary", "catch-all"] = "primary"


class EvidenceItem(BaseModel):
    """A single factual piece of evidence inside a cluster."""

    id: str = Field(default_factory=_short_id)
    description: str = "No description"
    source: str = Field(default="Unknown Source", description="Origin of the evidence, e.g. NYT, BLS Report")
    url: Optional[str] = None
    explanation: str = ""
    # Inherited from the owning cluster once scored
    lrs: Dict[str, float] = Field(default_factory=dict)


class BayesianStats(BaseModel):
    """Intermediate confirmation math for one hypothesis in one cluster."""

    h_id: str
    p_h: float = Field(description="Prior P(H)")
    p_e_h: float = Field(description="P(E|H), the relative likelihood U")
    p_e_not_h: float = Field(description="P(E|~H), weighted average of competing likelihoods")
    lr: float

    @classmethod
    def from_result(cls, result: ClusterResult) -> "BayesianStats":
        return cls(
            h_id=result.hypothesis_id,
            p_h=result.prior,
            p_e_h=result.likelihood,
            p_e_not_h=result.catchall,
            lr=result.lr,
        )


class EvidenceCluster(BaseModel):
    """Thematic group of dependent evidence scored together as one unit."""

    id: str = Field(default_factory=_short_id)
    name: str = "Unnamed Cluster"
    description: str = ""
    lrs: Dict[str, float] = Field(default_factory=dict)
    stats: Optional[Dict[str, BayesianStats]] = None
    items: List[EvidenceItem] = Field(default_factory=list)


class BackgroundKnowledge(BaseModel):
    """K0: what the analyst assumed before looking at the evidence."""

    assumptions: List[str] = Field(default_factory=list)
    potential_biases: List[str] = Field(default_factory=list)
    context: str = ""


class RubricDimension(BaseModel):
    score: float = Field(ge=0, le=4, description="Score from 1.0 to 4.0 (0 for legacy placeholders)")
    justification: str = ""
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)


def default_dimension() -> RubricDimension:
    return RubricDimension(score=2.5, justification="Not evaluated")


class RubricAssessment(BaseModel):
    """Intellectual Honesty Assessment Framework grading."""

    evidence_handling: RubricDimension = Field(default_factory=default_dimension)
    argument_structure: RubricDimension = Field(default_factory=default_dimension)
    methodological_transparency: RubricDimension = Field(default_factory=default_dimension)
    reflexivity_revision: RubricDimension = Field(default_factory=default_dimension)
    total_score: float = 0.0
    overall_assessment: str = "Assessment not available."

    def dimensions(self) -> List[tuple[str, RubricDimension]]:
        return [
            ("Evidence Handling", self.evidence_handling),
            ("Argument Structure", self.argument_structure),
            ("Methodological Transparency", self.methodological_transparency),
            ("Reflexivity & Revision", self.reflexivity_revision),
        ]


class AnalysisReport(BaseModel):
    """Final analysis report: hypotheses, scored evidence clusters, rubric and conclusions."""

    topic: str
    original_query: str
    k0: BackgroundKnowledge = Field(default_factory=BackgroundKnowledge)
    hypotheses: List[Hypothesis] = Field(default_factory=list)
    evidence_clusters: List[EvidenceCluster] = Field(default_factory=list)
    rubric_assessment: RubricAssessment = Field(default_factory=RubricAssessment)
    reflexive_review: str = "No review generated."
    synthesis: str = "No synthesis generated."
    final_conclusion: str = "No conclusion generated."
    generated_at: str = ""

    def cumulative_scores(self) -> Dict[str, float]:
        """Product of each hypothesis' cluster LRs; hypotheses no cluster mentions stay at 1.0."""
        scores = combine(cluster.lrs for cluster in self.evidence_clusters)
        for h in self.hypotheses:
            scores.setdefault(h.id, 1.0)
        return scores


# --- Structuring phase output ---


class PlaceholderLR(BaseModel):
    hypothesis_id: str
    value: float = 1.0


class StructuredItem(BaseModel):
    id: Optional[str] = None
    description: Optional[str] = Field(default=None, description="The factual piece of evidence")
    source: Optional[str] = Field(
        default=None,
        description="Origin of the evidence (e.g. NYT, BLS Report). Use 'General Context' if not specified.",
    )
    url: Optional[str] = None
    explanation: Optional[str] = Field(default=None, description="Why this supports the cluster theme")


class StructuredCluster(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = Field(default=None, description="Name of the cluster, e.g. 'Inflation Data'")
    description: Optional[str] = Field(default=None, description="The dependency or theme shared by the items")
    lrs_array: List[PlaceholderLR] = Field(
        default_factory=list,
        description="PLACEHOLDER ONLY. Set value to 1.0. Values are calculated in the next phase.",
    )
    items: List[StructuredItem] = Field(default_factory=list)


class StructuredAnalysis(BaseModel):
    """Schema the structuring LLM fills from the free-text research report."""

    topic: Optional[str] = None
    k0: Optional[BackgroundKnowledge] = None
    hypotheses: List[Hypothesis] = Field(default_factory=list)
    evidence_clusters: List[StructuredCluster] = Field(default_factory=list)
    rubric_assessment: Optional[RubricAssessment] = None
    reflexive_review: Optional[str] = None
    synthesis: Optional[str] = None
    final_conclusion: Optional[str] = None


# --- Scoring phase output ---


class HypothesisJudgment(BaseModel):
    """Q/U judgment for one hypothesis against one cluster. Validated here, not in the engine."""

    hypothesis_id: str
    reasoning: str = Field(default="", description="Concise logic linking evidence to hypothesis")
    Q_i: float = Field(default=1.0, ge=0, description="Prior Plausibility Ratio")
    U_i: float = Field(default=1.0, ge=0, description="Relative Likelihood")

    @field_validator("Q_i", "U_i")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("judgment values must be finite")
        return value

    def to_judgment(self) -> Judgment:
        return Judgment(hypothesis_id=self.hypothesis_id, Q=self.Q_i, U=self.U_i)


class ClusterJudgments(BaseModel):
    cluster_id: str
    analysis: List[HypothesisJudgment] = Field(default_factory=list)


class BayesianScoring(BaseModel):
    """Validated Q and U weights per cluster per hypothesis."""

    clusters: List[ClusterJudgments] = Field(default_factory=list)


class RawHypothesisJudgment(BaseModel):
    hypothesis_id: Optional[str] = None
    reasoning: Optional[str] = Field(default=None, description="Concise logic linking evidence to hypothesis")
    Q_i: Optional[float] = Field(default=None, description="Prior Plausibility Ratio (>= 0)")
    U_i: Optional[float] = Field(default=None, description="Relative Likelihood (>= 0)")


class RawClusterJudgments(BaseModel):
    cluster_id: Optional[str] = None
    analysis: List[RawHypothesisJudgment] = Field(default_factory=list)


class ScoringResponse(BaseModel):
    """
    Schema the scoring LLM fills. Values are checked per cluster afterwards so one
    bad judgment only costs its own cluster.
    """

    clusters: List[RawClusterJudgments] = Field(default_factory=list)

    def validated(self) -> Tuple[BayesianScoring, Dict[str, str]]:
        """Valid clusters as BayesianScoring, plus cluster_id -> error for the rejected ones."""
        accepted: List[ClusterJudgments] = []
        rejected: Dict[str, str] = {}
        for index, raw in enumerate(self.clusters):
            try:
                accepted.append(ClusterJudgments.model_validate(raw.model_dump(exclude_none=True)))
            except ValidationError as e:
                rejected[raw.cluster_id or f"#{index}"] = str(e)
        return BayesianScoring(clusters=accepted), rejected


# --- Chat ---


class ChatTurn(BaseModel):
    """One message of a follow-up conversation about a report."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "model"]
    text: str


# --- Graph state ---


class AgentState(TypedDict, total=False):
    """LangGraph state. Phase errors are merged with a dict reducer."""

    query: str
    source_text: str
    research_text: str
    report: Optional[AnalysisReport]
    scoring: Optional[BayesianScoring]
    cumulative_scores: Dict[str, float]
    report_path: Optional[str]
    pdf_path: Optional[str]
    export_pdf: bool
    reports_dir: str
    # Non-fatal failures per phase (e.g. source fetch, scoring); fatal ones raise AnalysisError
    phase_errors: Annotated[
        Dict[str, str],
        operator.ior,
    ]
