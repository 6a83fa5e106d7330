"""Data models for the BJJ curator."""

from bjj_curator.models.curation_run import (
    CurationRun,
    Eligibility,
    GuardrailStatus,
    RunStatus,
    RunSummary,
    RunType,
)
from bjj_curator.models.priority import CoveragePriority
from bjj_curator.models.scoring import (
    Decision,
    Dimension,
    DimensionScore,
    ScoringContext,
    ScoringDecision,
)
from bjj_curator.models.video import (
    AcceptedVideoRecord,
    VideoAnalysis,
    VideoCandidate,
    VideoDetails,
)

__all__ = [
    "AcceptedVideoRecord",
    "CoveragePriority",
    "CurationRun",
    "Decision",
    "Dimension",
    "DimensionScore",
    "Eligibility",
    "GuardrailStatus",
    "RunStatus",
    "RunSummary",
    "RunType",
    "ScoringContext",
    "ScoringDecision",
    "VideoAnalysis",
    "VideoCandidate",
    "VideoDetails",
]
