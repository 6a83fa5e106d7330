"""SQLite connection management and schema for the curation engine.

Both the API host and the worker process open their own connection to the
same database file. WAL mode plus a busy timeout lets the worker write
library rows while the host updates run status.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = ".curator/curation.db"

SCHEMA = """
CREATE TABLE IF NOT EXISTS curation_runs (
    id TEXT PRIMARY KEY,
    run_type TEXT NOT NULL DEFAULT 'scheduled',
    status TEXT NOT NULL DEFAULT 'pending',
    active INTEGER NOT NULL DEFAULT 0,
    videos_screened INTEGER NOT NULL DEFAULT 0,
    videos_analyzed INTEGER NOT NULL DEFAULT 0,
    videos_added INTEGER NOT NULL DEFAULT 0,
    videos_rejected INTEGER NOT NULL DEFAULT 0,
    videos_skipped_duration INTEGER NOT NULL DEFAULT 0,
    videos_skipped_duplicates INTEGER NOT NULL DEFAULT 0,
    videos_skipped_quota INTEGER NOT NULL DEFAULT 0,
    videos_skipped_other INTEGER NOT NULL DEFAULT 0,
    searches_performed INTEGER NOT NULL DEFAULT 0,
    searches_failed INTEGER NOT NULL DEFAULT 0,
    quota_used INTEGER NOT NULL DEFAULT 0,
    acceptance_rate REAL,
    guardrail_status TEXT,
    error_message TEXT,
    started_at TEXT,
    completed_at TEXT,
    created_at TEXT NOT NULL
);

-- At most one pending/running run, enforced by the store itself
CREATE UNIQUE INDEX IF NOT EXISTS idx_runs_single_active
    ON curation_runs (active) WHERE active = 1;

CREATE INDEX IF NOT EXISTS idx_runs_started_at
    ON curation_runs (started_at DESC);

CREATE TABLE IF NOT EXISTS video_library (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    source_id TEXT NOT NULL UNIQUE,
    title TEXT NOT NULL,
    channel_name TEXT,
    channel_id TEXT,
    instructor_name TEXT,
    technique_name TEXT NOT NULL,
    technique_type TEXT,
    position_category TEXT,
    gi_or_nogi TEXT,
    quality_score REAL,
    final_score REAL NOT NULL,
    skill_level TEXT,
    status TEXT NOT NULL DEFAULT 'active',
    tags JSON,
    dimension_scores JSON,
    duration_seconds INTEGER,
    view_count INTEGER,
    like_count INTEGER,
    thumbnail_url TEXT,
    published_at TEXT,
    run_id TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_library_technique
    ON video_library (technique_name);

CREATE INDEX IF NOT EXISTS idx_library_instructor
    ON video_library (instructor_name);

CREATE TABLE IF NOT EXISTS source_exhaustion (
    source TEXT PRIMARY KEY,
    display_name TEXT NOT NULL,
    consecutive_empty INTEGER NOT NULL DEFAULT 0,
    cooldown_until TEXT,
    last_empty_at TEXT,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS quota_usage (
    date TEXT PRIMARY KEY,
    units_used INTEGER NOT NULL DEFAULT 0,
    units_limit INTEGER NOT NULL,
    exhausted INTEGER NOT NULL DEFAULT 0,
    exhausted_reason TEXT,
    search_calls INTEGER NOT NULL DEFAULT 0,
    detail_calls INTEGER NOT NULL DEFAULT 0,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS instructors (
    name TEXT PRIMARY KEY,
    display_name TEXT NOT NULL,
    channel_id TEXT,
    tier TEXT NOT NULL DEFAULT 'unknown',
    credibility_score REAL NOT NULL DEFAULT 50,
    boost_multiplier REAL NOT NULL DEFAULT 1.0,
    auto_accept INTEGER NOT NULL DEFAULT 0,
    specialties JSON
);

CREATE TABLE IF NOT EXISTS technique_taxonomy (
    technique_name TEXT PRIMARY KEY,
    category TEXT,
    gi_applicability TEXT NOT NULL DEFAULT 'both',
    target_video_count INTEGER,
    priority INTEGER NOT NULL DEFAULT 5
);

CREATE TABLE IF NOT EXISTS technique_requests (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    technique_name TEXT NOT NULL,
    requested_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_requests_requested_at
    ON technique_requests (requested_at DESC);

CREATE TABLE IF NOT EXISTS competition_meta (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    hot_techniques JSON NOT NULL,
    analysis_date TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS emerging_techniques (
    technique_name TEXT PRIMARY KEY,
    status TEXT NOT NULL DEFAULT 'monitoring',
    confidence_score REAL NOT NULL DEFAULT 0,
    first_seen TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS video_feedback (
    instructor_name TEXT NOT NULL,
    technique_name TEXT NOT NULL,
    helpful_count INTEGER NOT NULL DEFAULT 0,
    unhelpful_count INTEGER NOT NULL DEFAULT 0,
    watch_completion_rate REAL,
    recommendation_count INTEGER NOT NULL DEFAULT 0,
    recommendation_success_rate REAL,
    saved_count INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (instructor_name, technique_name)
);
"""


def utc_now() -> datetime:
    """Timezone-aware current time; every stored timestamp goes through this."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a stored ISO timestamp, treating naive values as UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Database:
    """Async SQLite connection shared by the curation stores.

    Stores receive this object rather than opening their own connection so a
    process holds exactly one connection to the database file.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH, busy_timeout: float = 30.0):
        """Initialize with database path.

        Args:
            db_path: Path to SQLite database file. Parent directory
                     will be created if it doesn't exist.
            busy_timeout: Seconds to wait on a lock held by the other process
        """
        self.db_path = Path(db_path)
        self.busy_timeout = busy_timeout
        self.conn: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open the connection, enable WAL mode and create the schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.conn = await aiosqlite.connect(str(self.db_path), timeout=self.busy_timeout)
        self.conn.row_factory = aiosqlite.Row

        await self.conn.execute("PRAGMA journal_mode=WAL")
        await self.conn.executescript(SCHEMA)
        await self.conn.commit()
        logger.info(f"Curation database connected: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self.conn:
            await self.conn.close()
            self.conn = None
            logger.info("Curation database connection closed")

    @property
    def connection(self) -> aiosqlite.Connection:
        """The open connection.

        Raises:
            RuntimeError: If database is not connected
        """
        if self.conn is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self.conn

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
