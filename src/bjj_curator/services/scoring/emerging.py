"""Emerging technique dimension."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from bjj_curator.models.reference import InstructorTier
from bjj_curator.models.scoring import Dimension, DimensionScore, ScoringContext
from bjj_curator.models.video import VideoCandidate
from bjj_curator.services.scoring.instructor import find_elite_instructor

NEW_KEYWORDS = ["new", "modern", "latest", "2025", "2026", "innovation", "innovative"]
RECENT_UPLOAD_WINDOW = timedelta(days=183)


def _parse_published(value: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        published = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)
    return published


def evaluate_emerging(candidate: VideoCandidate, context: ScoringContext) -> DimensionScore:
    """Score whether the candidate covers a technique that is rising but under-covered.

    The score is a confidence that the technique is emerging. The bonus only
    applies while the library's coverage of it is still thin.
    """
    coverage = context.coverage
    under_covered = coverage is None or coverage.ratio < 0.5
    record = context.emerging

    if record is not None:
        score = max(record.confidence_score, 60.0)
        reasons = [f"Tracked emerging technique ({record.status})"]
        bonus = 20.0 if record.status == "validated" else 15.0
        if record.confidence_score > 70:
            bonus += 5
        if not under_covered:
            bonus = 0.0
            reasons.append("Already well covered")
        return DimensionScore(Dimension.EMERGING_TECHNIQUE, score, reasons, bonus)

    confidence = 40.0
    reasons: list[str] = []

    published = _parse_published(candidate.published_at)
    if published is not None and context.now - published <= RECENT_UPLOAD_WINDOW:
        confidence += 20
        reasons.append("Uploaded in the last six months")

    elite = (
        context.instructor is not None and context.instructor.tier == InstructorTier.ELITE
    ) or find_elite_instructor(candidate.title) is not None
    if elite:
        confidence += 30
        reasons.append("Elite instructor showing it")

    title = candidate.title.lower()
    if any(keyword in title for keyword in NEW_KEYWORDS):
        confidence += 10
        reasons.append("Presented as new")

    if context.trending_mentions > 0:
        confidence += min(20, context.trending_mentions * 5)
        reasons.append(f"Hot in {context.trending_mentions} recent competition analyses")

    bonus = 0.0
    if confidence >= 60 and under_covered:
        bonus = 15.0 if elite else 10.0
        reasons.append("Trending technique still under-covered")

    if not reasons:
        reasons.append("No emerging signals")

    return DimensionScore(Dimension.EMERGING_TECHNIQUE, confidence, reasons, bonus)
