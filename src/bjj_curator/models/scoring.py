"""Scoring data models: per-dimension scores, decisions and scoring inputs."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from bjj_curator.models.priority import CoveragePriority
from bjj_curator.models.reference import (
    CoverageSnapshot,
    EmergingTechnique,
    FeedbackStats,
    InstructorProfile,
    TaxonomyNode,
)
from bjj_curator.models.video import VideoAnalysis


class Dimension(str, Enum):
    INSTRUCTOR_AUTHORITY = "instructor_authority"
    TAXONOMY_MAPPING = "taxonomy_mapping"
    COVERAGE_BALANCE = "coverage_balance"
    UNIQUE_VALUE = "unique_value"
    USER_FEEDBACK = "user_feedback"
    BELT_LEVEL_FIT = "belt_level_fit"
    EMERGING_TECHNIQUE = "emerging_technique"


class Decision(str, Enum):
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"


@dataclass
class DimensionScore:
    """One dimension's verdict on a candidate.

    ``bonus`` is the boost the dimension suggests; the engine decides how
    much of it (if any) reaches the final score.
    """

    dimension: Dimension
    score: float
    reasons: list[str] = field(default_factory=list)
    bonus: float = 0.0

    def __post_init__(self):
        self.score = max(0.0, min(100.0, float(self.score)))
        self.bonus = max(0.0, float(self.bonus))

    def to_dict(self) -> dict[str, Any]:
        return {
            "dimension": self.dimension.value,
            "score": round(self.score, 1),
            "reasons": list(self.reasons),
            "bonus": round(self.bonus, 1),
        }


@dataclass
class ScoringDecision:
    """Aggregated, auditable accept/reject verdict for a candidate."""

    final_score: float
    base_score: float
    threshold: float
    decision: Decision
    dimension_scores: list[DimensionScore]
    boosts_applied: list[str] = field(default_factory=list)
    good_because: list[str] = field(default_factory=list)
    bad_because: list[str] = field(default_factory=list)
    reason: str = ""

    @property
    def accepted(self) -> bool:
        return self.decision == Decision.ACCEPT

    def dimension(self, dimension: Dimension) -> Optional[DimensionScore]:
        for score in self.dimension_scores:
            if score.dimension == dimension:
                return score
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "final_score": self.final_score,
            "base_score": self.base_score,
            "threshold": self.threshold,
            "decision": self.decision.value,
            "dimensions": [score.to_dict() for score in self.dimension_scores],
            "boosts_applied": list(self.boosts_applied),
            "good_because": list(self.good_because),
            "bad_because": list(self.bad_because),
            "reason": self.reason,
        }


@dataclass
class ScoringContext:
    """Everything the dimension evaluators read, loaded before scoring.

    Holding the analysis and reference snapshots here keeps scoring a pure
    function of (candidate, context).
    """

    analysis: VideoAnalysis
    now: datetime
    instructor: Optional[InstructorProfile] = None
    taxonomy_node: Optional[TaxonomyNode] = None
    coverage: Optional[CoverageSnapshot] = None
    similar_titles: list[str] = field(default_factory=list)
    instructor_technique_count: int = 0
    feedback: Optional[FeedbackStats] = None
    emerging: Optional[EmergingTechnique] = None
    trending_mentions: int = 0
    priority: Optional[CoveragePriority] = None
