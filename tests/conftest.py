"""Shared pytest fixtures for BJJ curator tests."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict

import pytest
import pytest_asyncio

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from bjj_curator.models.scoring import Dimension, DimensionScore, ScoringDecision  # noqa: E402
from bjj_curator.models.video import VideoAnalysis, VideoCandidate  # noqa: E402
from bjj_curator.services.scoring import aggregate  # noqa: E402
from bjj_curator.utils.database import Database  # noqa: E402

FIXED_NOW = datetime(2026, 3, 10, 18, 0, tzinfo=timezone.utc)


class MutableClock:
    """Callable clock tests can move forward."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def sample_config(tmp_path) -> Dict:
    """Complete configuration for testing."""
    return {
        "youtube_api_key": "test_youtube_key",
        "gemini_api_key": "test_gemini_key",
        "gemini_model": "gemini-3-flash-preview",
        "resend_api_key": None,
        "notification_email": None,
        "notification_from": "BJJ Curator <curation@test.local>",
        "database_path": str(tmp_path / "curation.db"),
        "daily_quota_limit": 10000,
        "quota_safety_ratio": 0.95,
        "quota_timezone": "America/Los_Angeles",
        "search_quota_cost": 100,
        "detail_quota_cost": 1,
        "min_video_duration_seconds": 90,
        "max_video_duration_seconds": 3600,
        "acceptance_threshold": 71.0,
        "exhaustion_trigger_count": 5,
        "exhaustion_cooldown_days": 30,
        "auto_curation_enabled": True,
        "curation_batch_size": 100,
        "curation_interval_minutes": 180,
        "scheduler_poll_seconds": 60,
        "max_searches_per_run": 10,
        "results_per_search": 50,
        "target_video_count": 10000,
        "target_videos_per_technique": 100,
        "target_videos_per_instructor": 50,
        "worker_timeout_seconds": 5,
        "worker_start_method": "fork",
        "log_level": "INFO",
        "log_json": False,
    }


@pytest_asyncio.fixture
async def database(tmp_path):
    """Connected database in a temporary directory."""
    db = Database(str(tmp_path / "test.db"))
    await db.connect()
    yield db
    await db.close()


@pytest.fixture
def make_candidate():
    """Factory for VideoCandidate objects with details applied."""

    def _make(video_id: str = "vid001", **overrides) -> VideoCandidate:
        fields = {
            "video_id": video_id,
            "title": "Gordon Ryan Armbar Details From Closed Guard",
            "channel_name": "BJJ Fanatics",
            "channel_id": "UC_fanatics",
            "description": "Breaking down the armbar from closed guard.",
            "published_at": "",
            "duration_seconds": 600,
            "view_count": 25000,
            "like_count": 900,
        }
        fields.update(overrides)
        return VideoCandidate(**fields)

    return _make


@pytest.fixture
def make_analysis():
    """Factory for validated VideoAnalysis objects."""

    def _make(**overrides) -> VideoAnalysis:
        fields = {
            "is_instructional": True,
            "technique": "armbar",
            "technique_type": "submission",
            "position_category": "closed guard",
            "gi_or_nogi": "both",
            "quality_score": 8.5,
            "skill_level": "intermediate",
            "instructor_name": "Gordon Ryan",
            "key_details": ["control the wrist", "pinch the knees", "hips up to finish"],
        }
        fields.update(overrides)
        return VideoAnalysis(**fields)

    return _make


@pytest.fixture
def make_decision():
    """Factory for ScoringDecision objects with every dimension at one score."""

    def _make(score: float = 90.0) -> ScoringDecision:
        return aggregate([DimensionScore(dimension, score, [f"{dimension.value} ok"]) for dimension in Dimension])

    return _make
