"""Reference data the scorer and priority selector read.

These rows are maintained outside the curation loop (seeded, or written by
the product's feedback and meta-analysis jobs) and are treated as read-only
snapshots during a run.
"""

from dataclasses import dataclass, field
from typing import Optional

from bjj_curator.utils.text import normalize_source_key


class InstructorTier:
    ELITE = "elite"
    HIGH_QUALITY = "high_quality"
    EMERGING = "emerging"
    UNKNOWN = "unknown"


@dataclass
class InstructorProfile:
    """Registry entry for a known instructor."""

    name: str
    tier: str = InstructorTier.UNKNOWN
    credibility_score: float = 50.0
    boost_multiplier: float = 1.0
    auto_accept: bool = False
    channel_id: Optional[str] = None
    specialties: list[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        return normalize_source_key(self.name)


@dataclass
class TaxonomyNode:
    """A technique in the official taxonomy."""

    technique_name: str
    category: Optional[str] = None
    gi_applicability: str = "both"  # gi_only, nogi_only, both
    target_video_count: Optional[int] = None
    priority: int = 5


@dataclass
class FeedbackStats:
    """Aggregated engagement signals for an instructor/technique pairing."""

    helpful_count: int = 0
    unhelpful_count: int = 0
    watch_completion_rate: Optional[float] = None
    recommendation_count: int = 0
    recommendation_success_rate: Optional[float] = None
    saved_count: int = 0

    @property
    def total_votes(self) -> int:
        return self.helpful_count + self.unhelpful_count

    @property
    def helpful_ratio(self) -> Optional[float]:
        if self.total_votes == 0:
            return None
        return self.helpful_count / self.total_votes


@dataclass
class EmergingTechnique:
    """A technique flagged as rising in competition or community use."""

    technique_name: str
    status: str = "monitoring"  # monitoring, validated
    confidence_score: float = 0.0
    first_seen: str = ""


@dataclass
class CoverageSnapshot:
    """How much of a technique the library already holds."""

    technique: str
    current_count: int = 0
    target_count: int = 50
    level_counts: dict[str, int] = field(default_factory=dict)

    @property
    def ratio(self) -> float:
        if self.target_count <= 0:
            return 1.0
        return self.current_count / self.target_count

    @property
    def least_covered_level(self) -> str:
        levels = ("beginner", "intermediate", "advanced")
        return min(levels, key=lambda level: (self.level_counts.get(level, 0), levels.index(level)))
