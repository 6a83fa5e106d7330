"""Configuration loading and validation for the BJJ curator."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Get the project root directory (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / ".env")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def load_config() -> dict:
    """Load configuration from environment variables."""

    # Helper function to resolve paths relative to project root
    def resolve_path(path: str | None, default_relative: str) -> str:
        if not path:
            return str(PROJECT_ROOT / default_relative)
        if Path(path).is_absolute():
            return path
        return str(PROJECT_ROOT / path)

    config = {
        # Required API keys
        "youtube_api_key": os.getenv("YOUTUBE_API_KEY"),
        "gemini_api_key": os.getenv("GEMINI_API_KEY"),
        # Model configuration
        "gemini_model": os.getenv("GEMINI_MODEL", "gemini-3-flash-preview"),
        # Run report email (Resend)
        "resend_api_key": os.getenv("RESEND_API_KEY"),
        "notification_email": os.getenv("NOTIFICATION_EMAIL"),
        "notification_from": os.getenv(
            "NOTIFICATION_FROM", "BJJ Curator <curation@notifications.local>"
        ),
        # Storage
        "database_path": resolve_path(os.getenv("DATABASE_PATH"), ".curator/curation.db"),
        # Search quota
        "daily_quota_limit": int(os.getenv("DAILY_QUOTA_LIMIT", "10000")),
        "quota_safety_ratio": float(os.getenv("QUOTA_SAFETY_RATIO", "0.95")),
        "quota_timezone": os.getenv("QUOTA_TIMEZONE", "America/Los_Angeles"),
        "search_quota_cost": int(os.getenv("SEARCH_QUOTA_COST", "100")),
        "detail_quota_cost": int(os.getenv("DETAIL_QUOTA_COST", "1")),
        # Candidate filtering and scoring
        "min_video_duration_seconds": int(os.getenv("MIN_VIDEO_DURATION_SECONDS", "90")),
        "max_video_duration_seconds": int(os.getenv("MAX_VIDEO_DURATION_SECONDS", "3600")),
        "acceptance_threshold": float(os.getenv("ACCEPTANCE_THRESHOLD", "71")),
        # Source exhaustion
        "exhaustion_trigger_count": int(os.getenv("EXHAUSTION_TRIGGER_COUNT", "5")),
        "exhaustion_cooldown_days": int(os.getenv("EXHAUSTION_COOLDOWN_DAYS", "30")),
        # Run scheduling
        "auto_curation_enabled": _env_bool("AUTO_CURATION_ENABLED", "true"),
        "curation_batch_size": int(os.getenv("CURATION_BATCH_SIZE", "100")),
        "curation_interval_minutes": int(os.getenv("CURATION_INTERVAL_MINUTES", "180")),
        "scheduler_poll_seconds": int(os.getenv("SCHEDULER_POLL_SECONDS", "60")),
        "max_searches_per_run": int(os.getenv("MAX_SEARCHES_PER_RUN", "10")),
        "results_per_search": int(os.getenv("RESULTS_PER_SEARCH", "50")),
        # Library targets
        "target_video_count": int(os.getenv("TARGET_VIDEO_COUNT", "10000")),
        "target_videos_per_technique": int(os.getenv("TARGET_VIDEOS_PER_TECHNIQUE", "100")),
        "target_videos_per_instructor": int(os.getenv("TARGET_VIDEOS_PER_INSTRUCTOR", "50")),
        # Worker process
        "worker_timeout_seconds": int(os.getenv("WORKER_TIMEOUT_SECONDS", "1200")),
        "worker_start_method": os.getenv("WORKER_START_METHOD", "spawn"),
        # Logging
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "log_json": _env_bool("LOG_JSON", "false"),
    }

    return config


def validate_config(config: dict) -> list[str]:
    """Validate configuration and return list of errors."""
    errors = []

    if not config.get("youtube_api_key"):
        errors.append("YOUTUBE_API_KEY is required")

    if not config.get("gemini_api_key"):
        errors.append("GEMINI_API_KEY is required")

    if config.get("daily_quota_limit", 0) <= 0:
        errors.append("DAILY_QUOTA_LIMIT must be positive")

    ratio = config.get("quota_safety_ratio", 0.95)
    if not 0 < ratio <= 1:
        errors.append("QUOTA_SAFETY_RATIO must be in (0, 1]")

    min_duration = config.get("min_video_duration_seconds", 90)
    max_duration = config.get("max_video_duration_seconds", 3600)
    if min_duration < 0 or max_duration <= min_duration:
        errors.append(
            "MIN_VIDEO_DURATION_SECONDS must be non-negative and below MAX_VIDEO_DURATION_SECONDS"
        )

    threshold = config.get("acceptance_threshold", 71)
    if not 0 <= threshold <= 100:
        errors.append("ACCEPTANCE_THRESHOLD must be between 0 and 100")

    if config.get("exhaustion_trigger_count", 5) < 1:
        errors.append("EXHAUSTION_TRIGGER_COUNT must be at least 1")

    if config.get("worker_timeout_seconds", 1200) <= 0:
        errors.append("WORKER_TIMEOUT_SECONDS must be positive")

    if config.get("worker_start_method", "spawn") not in ("spawn", "fork", "forkserver"):
        errors.append("WORKER_START_METHOD must be one of spawn, fork, forkserver")

    return errors
