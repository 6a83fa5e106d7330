"""Candidate pre-filtering before LLM analysis and scoring.

Cheap metadata checks that reject candidates without spending an LLM call:
- Duration window (too short to teach anything, or too long to be a single lesson)
- Non-instructional title patterns (podcasts, match footage, promos, ...)
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from bjj_curator.models.video import VideoCandidate

logger = logging.getLogger(__name__)

# Skip reasons, counted separately on the run record
REASON_DURATION = "duration"
REASON_CONTENT = "content"

DEFAULT_NON_INSTRUCTIONAL_PATTERNS = [
    r"\bpodcast\b",
    r"\binterview\b",
    r"\bq\s*&\s*a\b",
    r"\bvlog\b",
    r"\bmatch footage\b",
    r"\bfull match\b",
    r"\bhighlights?\b",
    r"\bcompilation\b",
    r"\bpromo\b",
    r"\btrailer\b",
    r"\bannouncement\b",
    r"\breaction\b",
]


@dataclass
class FilterConfig:
    """Configuration for candidate pre-filtering."""

    min_duration_seconds: int = 90
    max_duration_seconds: int = 3600
    non_instructional_patterns: list[str] = field(
        default_factory=lambda: list(DEFAULT_NON_INSTRUCTIONAL_PATTERNS)
    )

    @classmethod
    def from_config(cls, config: dict) -> "FilterConfig":
        """Create FilterConfig from application config."""
        return cls(
            min_duration_seconds=config.get("min_video_duration_seconds", 90),
            max_duration_seconds=config.get("max_video_duration_seconds", 3600),
        )


@dataclass
class FilterStats:
    """Statistics from filtering candidates during a run."""

    total_input: int = 0
    total_passed: int = 0
    total_filtered: int = 0
    reasons: dict[str, int] = field(default_factory=dict)

    @property
    def filter_rate(self) -> float:
        """Return the percentage of candidates that were filtered out."""
        if self.total_input == 0:
            return 0.0
        return (self.total_filtered / self.total_input) * 100

    def record(self, passed: bool, category: Optional[str] = None) -> None:
        self.total_input += 1
        if passed:
            self.total_passed += 1
            return
        self.total_filtered += 1
        if category:
            self.reasons[category] = self.reasons.get(category, 0) + 1

    def to_dict(self) -> dict:
        return {
            "total_input": self.total_input,
            "total_passed": self.total_passed,
            "total_filtered": self.total_filtered,
            "filter_rate_percent": round(self.filter_rate, 1),
            "reasons": dict(self.reasons),
        }

    def __str__(self) -> str:
        return (
            f"Filtered {self.total_filtered}/{self.total_input} candidates "
            f"({self.filter_rate:.1f}%), {self.total_passed} passed"
        )


def is_non_instructional(title: str, patterns: Optional[list[str]] = None) -> bool:
    """Check whether a title looks like non-instructional content."""
    lowered = title.lower()
    for pattern in patterns or DEFAULT_NON_INSTRUCTIONAL_PATTERNS:
        if re.search(pattern, lowered):
            return True
    return False


def check_candidate(
    candidate: VideoCandidate, filter_config: FilterConfig
) -> tuple[bool, str, Optional[str]]:
    """Decide whether a candidate is worth analyzing.

    Args:
        candidate: Candidate with details applied
        filter_config: Filter configuration

    Returns:
        Tuple of (passed, reason, category):
        - passed: True if the candidate passes all filters
        - reason: Human-readable explanation of the decision
        - category: REASON_DURATION or REASON_CONTENT when rejected, else None
    """
    duration = candidate.duration_seconds
    if duration is None:
        return False, "No duration available", REASON_DURATION

    if duration < filter_config.min_duration_seconds:
        return (
            False,
            f"Too short: {duration}s < {filter_config.min_duration_seconds}s",
            REASON_DURATION,
        )

    if duration > filter_config.max_duration_seconds:
        return (
            False,
            f"Too long: {duration}s > {filter_config.max_duration_seconds}s",
            REASON_DURATION,
        )

    if is_non_instructional(candidate.title, filter_config.non_instructional_patterns):
        return False, f"Non-instructional title: {candidate.title}", REASON_CONTENT

    return True, "Passed all filters", None
