"""Video-related data models."""

from dataclasses import asdict, dataclass, field
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bjj_curator.utils.text import normalize_technique_name


@dataclass
class VideoCandidate:
    """A search hit from the video index, enriched by a detail lookup.

    Candidates are ephemeral: they live for one run and are only persisted
    through an AcceptedVideoRecord.
    """

    video_id: str
    title: str
    channel_name: str = ""
    channel_id: str = ""
    description: str = ""
    published_at: str = ""
    thumbnail_url: str = ""
    # Filled in by the detail lookup
    duration_seconds: Optional[int] = None
    view_count: Optional[int] = None
    like_count: Optional[int] = None

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.video_id}"

    def apply_details(self, details: "VideoDetails") -> None:
        self.duration_seconds = details.duration_seconds
        self.view_count = details.view_count
        self.like_count = details.like_count


@dataclass
class VideoDetails:
    """Detail lookup result for a single video."""

    video_id: str
    duration_seconds: int
    view_count: int = 0
    like_count: int = 0


class VideoAnalysis(BaseModel):
    """Structured content analysis returned by the LLM for one candidate.

    Validation is strict: anything the model returns outside these shapes
    is rejected rather than coerced, and the candidate is skipped.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", strict=True)

    is_instructional: bool = Field(alias="isInstructional")
    technique: str = Field(min_length=1)
    technique_type: str = Field(alias="techniqueType", min_length=1)
    position_category: str = Field(alias="positionCategory", min_length=1)
    gi_or_nogi: Literal["gi", "nogi", "both"] = Field(alias="giOrNogi")
    quality_score: float = Field(alias="qualityScore", ge=0, le=10)
    skill_level: Literal["beginner", "intermediate", "advanced"] = Field(alias="skillLevel")
    instructor_name: Optional[str] = Field(default=None, alias="instructorName")
    key_details: list[str] = Field(default_factory=list, alias="keyDetails")

    @field_validator("gi_or_nogi", mode="before")
    @classmethod
    def _normalize_gi(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower().replace("-", "").replace(" ", "")
        return value

    @field_validator("skill_level", mode="before")
    @classmethod
    def _normalize_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("technique")
    @classmethod
    def _named_technique(cls, value: str) -> str:
        if not normalize_technique_name(value):
            raise ValueError("technique must contain letters or digits")
        return value.strip()

    @field_validator("instructor_name", mode="before")
    @classmethod
    def _blank_instructor(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() in ("", "unknown", "n/a", "none"):
            return None
        return value


@dataclass
class AcceptedVideoRecord:
    """A library entry created from an accepted candidate."""

    source_id: str
    title: str
    technique_name: str
    final_score: float
    channel_name: str = ""
    channel_id: str = ""
    instructor_name: Optional[str] = None
    technique_type: Optional[str] = None
    position_category: Optional[str] = None
    gi_or_nogi: Optional[str] = None
    quality_score: Optional[float] = None
    skill_level: Optional[str] = None
    status: str = "active"
    tags: list[str] = field(default_factory=list)
    dimension_scores: dict[str, Any] = field(default_factory=dict)
    duration_seconds: Optional[int] = None
    view_count: Optional[int] = None
    like_count: Optional[int] = None
    thumbnail_url: str = ""
    published_at: str = ""
    run_id: Optional[str] = None
    created_at: str = ""
    id: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
