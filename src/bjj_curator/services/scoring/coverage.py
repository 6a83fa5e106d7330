"""Coverage balance dimension."""

from bjj_curator.models.reference import CoverageSnapshot
from bjj_curator.models.scoring import Dimension, DimensionScore, ScoringContext
from bjj_curator.models.video import VideoCandidate

# Techniques with this many videos already count as common
COMMON_TECHNIQUE_COUNT = 10


def coverage_gap_bonus(ratio: float, common: bool) -> float:
    """Bonus for filling a coverage gap, smaller for already common techniques."""
    if ratio < 0.3:
        return 10.0 if common else 25.0
    if ratio < 0.5:
        return 8.0 if common else 15.0
    if ratio < 0.8:
        return 3.0 if common else 5.0
    return 0.0


def evaluate_coverage(candidate: VideoCandidate, context: ScoringContext) -> DimensionScore:
    """Score how much the library needs another video of this technique."""
    coverage = context.coverage or CoverageSnapshot(technique=context.analysis.technique)
    ratio = coverage.ratio
    common = coverage.current_count >= COMMON_TECHNIQUE_COUNT

    # Empty technique scores 100; a full one bottoms out at 20
    score = 100 - min(ratio, 1.0) * 80
    reasons = [f"{coverage.current_count}/{coverage.target_count} videos for {coverage.technique}"]

    if ratio >= 0.8:
        reasons.append("Technique is well covered")
        return DimensionScore(Dimension.COVERAGE_BALANCE, score, reasons)

    bonus = coverage_gap_bonus(ratio, common)
    reasons.append("Fills a coverage gap")

    if context.analysis.skill_level == coverage.least_covered_level:
        bonus += 5
        reasons.append(f"Adds to least covered level ({coverage.least_covered_level})")

    return DimensionScore(Dimension.COVERAGE_BALANCE, score, reasons, bonus)
