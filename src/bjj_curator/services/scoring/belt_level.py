"""Belt-level fit dimension."""

from bjj_curator.models.scoring import Dimension, DimensionScore, ScoringContext
from bjj_curator.models.video import VideoCandidate

BASE_SCORE = 70.0

LEVEL_BELTS = {
    "beginner": ["white", "blue"],
    "intermediate": ["blue", "purple"],
    "advanced": ["purple", "brown", "black"],
}

FUNDAMENTAL_KEYWORDS = ["fundamental", "basic", "beginner", "introduction", "white belt", "first", "step by step"]
ADVANCED_KEYWORDS = ["advanced", "competition", "high level", "black belt", "setup", "chain", "system"]
PREREQUISITE_KEYWORDS = ["before", "prerequisite", "foundation", "first learn"]


def evaluate_belt_level(candidate: VideoCandidate, context: ScoringContext) -> DimensionScore:
    """Score how clearly the video targets a belt band, and balance across bands."""
    analysis = context.analysis
    level = analysis.skill_level
    text = " ".join([candidate.title, candidate.description, *analysis.key_details]).lower()

    score = BASE_SCORE
    bonus = 0.0
    belts = LEVEL_BELTS[level]
    reasons = [f"Pitched at {level} ({'/'.join(belts)} belts)"]

    if level == "beginner":
        bonus += 5
        if any(keyword in text for keyword in FUNDAMENTAL_KEYWORDS):
            score += 15
            reasons.append("Teaches fundamentals explicitly")
    elif level == "advanced":
        bonus += 3
        if any(keyword in text for keyword in ADVANCED_KEYWORDS):
            score += 10
            reasons.append("Clear advanced application")
    elif any(keyword in text for keyword in FUNDAMENTAL_KEYWORDS + ADVANCED_KEYWORDS):
        score += 5
        reasons.append("Bridges fundamentals and advanced use")

    if any(keyword in text for keyword in PREREQUISITE_KEYWORDS):
        score += 5
        reasons.append("States prerequisites")

    coverage = context.coverage
    if coverage is not None and coverage.least_covered_level == level:
        bonus += 2
        reasons.append(f"Balances belt distribution toward {level}")

    return DimensionScore(Dimension.BELT_LEVEL_FIT, score, reasons, bonus)
