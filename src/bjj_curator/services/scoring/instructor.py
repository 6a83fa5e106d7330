"""Instructor authority dimension."""

from typing import Optional

from bjj_curator.models.reference import InstructorProfile, InstructorTier
from bjj_curator.models.scoring import Dimension, DimensionScore, ScoringContext
from bjj_curator.models.video import VideoCandidate

# Recognized by name in titles even when the registry has no entry
ELITE_INSTRUCTORS = [
    "gordon ryan",
    "john danaher",
    "lachlan giles",
    "craig jones",
    "mikey musumeci",
    "rafael mendes",
    "marcelo garcia",
    "bernardo faria",
    "garry tonon",
    "eddie cummings",
    "keenan cornelius",
    "ryan hall",
    "caio terra",
    "andre galvao",
    "roger gracie",
]

KNOWN_ACADEMIES = ["gracie", "atos", "alliance", "checkmat", "unity", "b-team", "new wave", "art of jiu jitsu"]

BRAZILIAN_NAME_MARKERS = ["silva", "santos", "souza", "oliveira", "pereira", "costa", "almeida", "ribeiro"]

ELITE_BONUS = 10.0
UNKNOWN_BASE_SCORE = 40.0
ANONYMOUS_SCORE = 30.0


def find_elite_instructor(text: str) -> Optional[str]:
    """Return the first elite instructor named in ``text``, if any."""
    lowered = text.lower()
    for name in ELITE_INSTRUCTORS:
        if name in lowered:
            return name
    return None


def evaluate_instructor(candidate: VideoCandidate, context: ScoringContext) -> DimensionScore:
    """Score how credible the teaching source is.

    Registry instructors score their stored credibility. Unknown instructors
    start at 40 (30 when no instructor can be identified at all) and gain a
    little for academy affiliation signals.
    """
    profile: Optional[InstructorProfile] = context.instructor
    name = context.analysis.instructor_name

    if profile is not None:
        reasons = [f"{profile.name} is a {profile.tier.replace('_', ' ')} instructor"]
        score = profile.credibility_score
        bonus = 0.0
        if profile.tier == InstructorTier.ELITE:
            bonus += ELITE_BONUS
            reasons.append("Elite instructor")
        if profile.boost_multiplier > 1.0:
            bonus += (profile.boost_multiplier - 1.0) * 20
            reasons.append(f"Reputation multiplier x{profile.boost_multiplier:.2f}")
        return DimensionScore(Dimension.INSTRUCTOR_AUTHORITY, score, reasons, bonus)

    elite = find_elite_instructor(f"{candidate.title} {name or ''}")
    if elite:
        return DimensionScore(
            Dimension.INSTRUCTOR_AUTHORITY,
            90,
            [f"Elite instructor {elite.title()} named in title"],
            ELITE_BONUS,
        )

    if not name:
        return DimensionScore(
            Dimension.INSTRUCTOR_AUTHORITY,
            ANONYMOUS_SCORE,
            ["No identifiable instructor"],
        )

    score = UNKNOWN_BASE_SCORE
    reasons = [f"Unknown instructor {name}"]
    haystack = f"{name} {candidate.channel_name} {candidate.description}".lower()
    if any(academy in haystack for academy in KNOWN_ACADEMIES):
        score += 10
        reasons.append("Affiliated with a known academy")
    if any(marker in name.lower() for marker in BRAZILIAN_NAME_MARKERS):
        score += 5
        reasons.append("Brazilian lineage name")
    return DimensionScore(Dimension.INSTRUCTOR_AUTHORITY, score, reasons)
