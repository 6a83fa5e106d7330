"""Pydantic request/response models for the curation API."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from bjj_curator.models.curation_run import RunType

# =============================================================================
# Request Models
# =============================================================================


class StartRunRequest(BaseModel):
    """Request body for starting a curation run."""

    run_type: RunType = RunType.MANUAL

    model_config = {"json_schema_extra": {"examples": [{"run_type": "manual"}]}}


# =============================================================================
# Response Models
# =============================================================================


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str

    model_config = {"json_schema_extra": {"examples": [{"message": "Cooldown cleared"}]}}


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str

    model_config = {"json_schema_extra": {"examples": [{"status": "healthy", "version": "0.1.0"}]}}


class StartRunResponse(BaseModel):
    """A run was accepted and handed to a worker."""

    run_id: str
    status: str = "running"

    model_config = {
        "json_schema_extra": {
            "examples": [{"run_id": "550e8400-e29b-41d4-a716-446655440000", "status": "running"}]
        }
    }


class RunResponse(BaseModel):
    """Snapshot of a curation run."""

    id: str
    run_type: str
    status: str
    created_at: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    videos_screened: int = 0
    videos_analyzed: int = 0
    videos_added: int = 0
    videos_rejected: int = 0
    searches_performed: int = 0
    searches_failed: int = 0
    quota_used: int = 0
    acceptance_rate: Optional[float] = None
    guardrail_status: Optional[str] = None
    error_message: Optional[str] = None
    skip_breakdown: dict[str, int] = Field(default_factory=dict)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "id": "550e8400-e29b-41d4-a716-446655440000",
                    "run_type": "manual",
                    "status": "completed",
                    "created_at": "2026-01-15T17:00:00+00:00",
                    "started_at": "2026-01-15T17:00:00+00:00",
                    "completed_at": "2026-01-15T17:12:41+00:00",
                    "videos_analyzed": 96,
                    "videos_added": 9,
                    "videos_rejected": 87,
                    "quota_used": 1003,
                    "acceptance_rate": 9.38,
                    "guardrail_status": "ok",
                    "skip_breakdown": {"duration": 12, "duplicates": 31, "quota": 0, "other": 4},
                }
            ]
        }
    }


class RunListResponse(BaseModel):
    runs: list[RunResponse]
    total: int


class ProgressResponse(BaseModel):
    """Buffered progress messages for a run."""

    run_id: str
    status: Optional[str] = None
    messages: list[dict[str, Any]]


class EligibilityResponse(BaseModel):
    """Whether a run could start right now."""

    eligible: bool
    reason: str
    batch_size: int = 0
    quota_remaining: Optional[int] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"eligible": False, "reason": "Insufficient quota remaining today (40 units)", "batch_size": 100,
                 "quota_remaining": 40}
            ]
        }
    }


class StatsResponse(BaseModel):
    """Aggregate curation statistics."""

    runs: dict[str, Any]
    last_24h: dict[str, Any]
    library_total: int
    techniques: list[dict[str, Any]]
    quota: dict[str, Any]


class ExhaustionResponse(BaseModel):
    """Per-source exhaustion state."""

    sources: list[dict[str, Any]]
    cooling: int
