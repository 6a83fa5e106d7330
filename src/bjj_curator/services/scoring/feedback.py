"""User feedback dimension."""

from bjj_curator.models.scoring import Dimension, DimensionScore, ScoringContext
from bjj_curator.models.video import VideoCandidate

NEUTRAL_SCORE = 50.0
MIN_VOTES = 5


def evaluate_feedback(candidate: VideoCandidate, context: ScoringContext) -> DimensionScore:
    """Score historical engagement with this instructor and technique.

    Neutral (50) when there is no engagement history.
    """
    stats = context.feedback
    if stats is None:
        return DimensionScore(Dimension.USER_FEEDBACK, NEUTRAL_SCORE, ["No feedback history"])

    score = NEUTRAL_SCORE
    bonus = 0.0
    reasons: list[str] = []

    ratio = stats.helpful_ratio
    if ratio is not None and stats.total_votes >= MIN_VOTES:
        if ratio > 0.8:
            score += 30
            bonus += 15
            reasons.append(f"{ratio:.0%} of {stats.total_votes} users found similar videos helpful")
        elif ratio > 0.6:
            score += 15
            bonus += 7
            reasons.append(f"{ratio:.0%} helpful votes")
        elif ratio < 0.4:
            score -= 20
            reasons.append(f"Only {ratio:.0%} helpful votes")

    if stats.watch_completion_rate is not None and stats.watch_completion_rate > 0.7:
        score += 15
        bonus += 5
        reasons.append(f"High watch completion ({stats.watch_completion_rate:.0%})")

    if (
        stats.recommendation_success_rate is not None
        and stats.recommendation_success_rate > 0.5
        and stats.recommendation_count >= 10
    ):
        score += 10
        bonus += 5
        reasons.append("Recommendations of this pairing usually land")

    if stats.saved_count > 10:
        score += 10
        bonus += 3
        reasons.append(f"Saved {stats.saved_count} times")

    if not reasons:
        reasons.append("Feedback history is inconclusive")

    return DimensionScore(Dimension.USER_FEEDBACK, score, reasons, bonus)
