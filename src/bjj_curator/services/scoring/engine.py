"""Scoring engine: seven-dimension evaluation and aggregation.

Aggregation is a pure function of the dimension scores:

1. Weighted base score across the seven dimensions (weights sum to 1.0).
2. Dimension minimums: a failing instructor or taxonomy score withholds all
   boosts, so a strong trend signal cannot carry an unverifiable video.
3. Boosts: each dimension's suggested bonus is capped by the boost table,
   total boosts are capped, and none apply below the boost floor.
4. Final score is clamped to [0, 100]; ACCEPT iff final >= threshold.
"""

import logging
from dataclasses import dataclass
from typing import Callable

from bjj_curator.models.scoring import (
    Decision,
    Dimension,
    DimensionScore,
    ScoringContext,
    ScoringDecision,
)
from bjj_curator.models.video import VideoCandidate
from bjj_curator.services.scoring.belt_level import evaluate_belt_level
from bjj_curator.services.scoring.coverage import evaluate_coverage
from bjj_curator.services.scoring.emerging import evaluate_emerging
from bjj_curator.services.scoring.feedback import evaluate_feedback
from bjj_curator.services.scoring.instructor import evaluate_instructor
from bjj_curator.services.scoring.taxonomy import evaluate_taxonomy
from bjj_curator.services.scoring.uniqueness import evaluate_uniqueness

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 71.0

DIMENSION_WEIGHTS: dict[Dimension, float] = {
    Dimension.INSTRUCTOR_AUTHORITY: 0.25,
    Dimension.TAXONOMY_MAPPING: 0.15,
    Dimension.COVERAGE_BALANCE: 0.10,
    Dimension.UNIQUE_VALUE: 0.20,
    Dimension.USER_FEEDBACK: 0.10,
    Dimension.BELT_LEVEL_FIT: 0.15,
    Dimension.EMERGING_TECHNIQUE: 0.05,
}

DIMENSION_MINIMUMS: dict[Dimension, float] = {
    Dimension.INSTRUCTOR_AUTHORITY: 40.0,
    Dimension.TAXONOMY_MAPPING: 40.0,
}


@dataclass(frozen=True)
class BoostRule:
    label: str
    cap: float


BOOST_TABLE: dict[Dimension, BoostRule] = {
    Dimension.INSTRUCTOR_AUTHORITY: BoostRule("Elite instructor", 10.0),
    Dimension.COVERAGE_BALANCE: BoostRule("Coverage gap", 10.0),
    Dimension.EMERGING_TECHNIQUE: BoostRule("Emerging technique", 10.0),
    Dimension.USER_FEEDBACK: BoostRule("User feedback", 8.0),
    Dimension.BELT_LEVEL_FIT: BoostRule("Belt level balance", 5.0),
}

MAX_TOTAL_BOOST = 20.0
BOOST_FLOOR = 50.0

DimensionEvaluator = Callable[[VideoCandidate, ScoringContext], DimensionScore]

DIMENSION_EVALUATORS: list[DimensionEvaluator] = [
    evaluate_instructor,
    evaluate_taxonomy,
    evaluate_coverage,
    evaluate_uniqueness,
    evaluate_feedback,
    evaluate_belt_level,
    evaluate_emerging,
]

GOOD_SCORE = 70.0
BAD_SCORE = 45.0


def aggregate(dimension_scores: list[DimensionScore], threshold: float = DEFAULT_THRESHOLD) -> ScoringDecision:
    """Combine dimension scores into an accept/reject decision.

    Args:
        dimension_scores: One score per dimension
        threshold: Minimum final score for ACCEPT

    Returns:
        ScoringDecision with the full breakdown

    Raises:
        ValueError: If a dimension is missing or duplicated
    """
    by_dimension = {score.dimension: score for score in dimension_scores}
    if len(by_dimension) != len(dimension_scores) or set(by_dimension) != set(DIMENSION_WEIGHTS):
        raise ValueError("Exactly one score per dimension is required")

    base = sum(by_dimension[dim].score * weight for dim, weight in DIMENSION_WEIGHTS.items())

    good_because: list[str] = []
    bad_because: list[str] = []
    for score in dimension_scores:
        if score.score >= GOOD_SCORE:
            good_because.extend(score.reasons)
        elif score.score < BAD_SCORE:
            bad_because.extend(score.reasons)

    failed_minimums = [
        dim.value
        for dim, minimum in DIMENSION_MINIMUMS.items()
        if by_dimension[dim].score < minimum
    ]

    boosts_applied: list[str] = []
    total_boost = 0.0
    if failed_minimums:
        bad_because.append(f"Boosts withheld: below minimum on {', '.join(failed_minimums)}")
    elif base < BOOST_FLOOR:
        bad_because.append(f"Boosts withheld: base score {base:.1f} below {BOOST_FLOOR:.0f}")
    else:
        for dim, rule in BOOST_TABLE.items():
            suggested = by_dimension[dim].bonus
            if suggested <= 0:
                continue
            amount = min(suggested, rule.cap, MAX_TOTAL_BOOST - total_boost)
            if amount <= 0:
                break
            total_boost += amount
            boosts_applied.append(f"{rule.label} +{amount:.1f}")

    final_score = round(max(0.0, min(100.0, base + total_boost)), 1)
    decision = Decision.ACCEPT if final_score >= threshold else Decision.REJECT

    if decision == Decision.ACCEPT:
        reason = f"Score {final_score:.1f} meets threshold {threshold:.0f}"
    else:
        reason = f"Score {final_score:.1f} below threshold {threshold:.0f}"

    return ScoringDecision(
        final_score=final_score,
        base_score=round(base, 1),
        threshold=threshold,
        decision=decision,
        dimension_scores=list(dimension_scores),
        boosts_applied=boosts_applied,
        good_because=good_because,
        bad_because=bad_because,
        reason=reason,
    )


class ScoringEngine:
    """Scores candidates across the seven quality dimensions."""

    def __init__(self, threshold: float = DEFAULT_THRESHOLD):
        self.threshold = threshold

    def evaluate_dimensions(self, candidate: VideoCandidate, context: ScoringContext) -> list[DimensionScore]:
        return [evaluate(candidate, context) for evaluate in DIMENSION_EVALUATORS]

    def score(self, candidate: VideoCandidate, context: ScoringContext) -> ScoringDecision:
        """Score a candidate.

        Args:
            candidate: Candidate with details applied
            context: Analysis and reference snapshots for the candidate

        Returns:
            ScoringDecision for the candidate
        """
        decision = aggregate(self.evaluate_dimensions(candidate, context), self.threshold)
        logger.debug(
            f"Scored {candidate.video_id}: {decision.final_score} "
            f"(base {decision.base_score}, {decision.decision.value})"
        )
        return decision
