"""Unique value dimension."""

import re

from bjj_curator.models.scoring import Dimension, DimensionScore, ScoringContext
from bjj_curator.models.video import VideoCandidate

BASE_SCORE = 70.0

# A title that signals a distinct teaching angle
ANGLE_PATTERNS = [
    (r"\b(vs|versus|against|counter)\b", "counters a specific reaction"),
    (r"\b(mistakes?|errors?|wrong)\b", "covers common mistakes"),
    (r"\b(details?|secrets?|keys?)\b", "focuses on fine details"),
    (r"\b(beginners?|white belt|first)\b", "beginner-oriented angle"),
    (r"\b(advanced|complex|high level)\b", "advanced angle"),
    (r"\b(competition|tournament)\b", "competition application"),
    (r"\b(drills?|drilling|training|practice)\b", "drilling focus"),
]


def _title_words(title: str) -> set[str]:
    return {word for word in re.findall(r"[a-z0-9]+", title.lower()) if len(word) > 2}


def evaluate_uniqueness(candidate: VideoCandidate, context: ScoringContext) -> DimensionScore:
    """Score what the candidate adds beyond near-duplicates in the library."""
    score = BASE_SCORE
    reasons: list[str] = []
    title = candidate.title.lower()

    if context.instructor_technique_count > 0:
        score -= 15
        reasons.append(
            f"Instructor already has {context.instructor_technique_count} videos on this technique"
        )
    else:
        score += 10
        reasons.append("Adds instructor variety for this technique")

    candidate_words = _title_words(candidate.title)
    for existing in context.similar_titles:
        existing_words = _title_words(existing)
        if not candidate_words or not existing_words:
            continue
        overlap = len(candidate_words & existing_words) / len(candidate_words | existing_words)
        if overlap >= 0.8:
            score -= 20
            reasons.append(f"Near-duplicate of existing video: {existing}")
            break

    for pattern, label in ANGLE_PATTERNS:
        if re.search(pattern, title):
            score += 10
            reasons.append(f"Unique angle: {label}")
            break

    if len(context.analysis.key_details) >= 3:
        score += 10
        reasons.append("Covers several specific details")

    return DimensionScore(Dimension.UNIQUE_VALUE, score, reasons)
