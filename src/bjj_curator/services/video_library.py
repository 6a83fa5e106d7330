"""Persistence layer for accepted videos.

The ``source_id`` UNIQUE constraint is the authoritative dedup check; the
``exists`` pre-check only saves quota and LLM calls.
"""

import json
import logging
from typing import Any, Optional

import aiosqlite

from bjj_curator.models.reference import CoverageSnapshot, InstructorTier
from bjj_curator.models.scoring import ScoringDecision
from bjj_curator.models.video import AcceptedVideoRecord, VideoAnalysis, VideoCandidate
from bjj_curator.services.errors import DuplicateCandidateError
from bjj_curator.utils.database import Database, utc_now
from bjj_curator.utils.text import normalize_source_key, normalize_technique_name

logger = logging.getLogger(__name__)

# Videos with a lower LLM quality score are stored but held back from users
MIN_ACTIVE_QUALITY = 7.0


def build_record(
    candidate: VideoCandidate,
    analysis: VideoAnalysis,
    decision: ScoringDecision,
    run_id: Optional[str] = None,
    instructor_tier: Optional[str] = None,
) -> AcceptedVideoRecord:
    """Project an accepted candidate onto a library record."""
    technique = normalize_technique_name(analysis.technique)
    instructor = analysis.instructor_name or None
    tags = [
        technique,
        normalize_technique_name(analysis.technique_type),
        normalize_technique_name(analysis.position_category),
        analysis.gi_or_nogi,
        analysis.skill_level,
    ]
    if instructor_tier == InstructorTier.ELITE:
        tags.append("elite instructor")

    return AcceptedVideoRecord(
        source_id=candidate.video_id,
        title=candidate.title,
        technique_name=technique,
        final_score=decision.final_score,
        channel_name=candidate.channel_name,
        channel_id=candidate.channel_id,
        instructor_name=instructor,
        technique_type=analysis.technique_type,
        position_category=analysis.position_category,
        gi_or_nogi=analysis.gi_or_nogi,
        quality_score=analysis.quality_score,
        skill_level=analysis.skill_level,
        status="active" if analysis.quality_score >= MIN_ACTIVE_QUALITY else "pending_analysis",
        tags=list(dict.fromkeys(tag for tag in tags if tag)),
        dimension_scores=decision.to_dict(),
        duration_seconds=candidate.duration_seconds,
        view_count=candidate.view_count,
        like_count=candidate.like_count,
        thumbnail_url=candidate.thumbnail_url,
        published_at=candidate.published_at,
        run_id=run_id,
    )


class VideoLibrary:
    """Async store of accepted videos."""

    def __init__(self, database: Database):
        self.database = database

    async def exists(self, source_id: str) -> bool:
        async with self.database.connection.execute(
            "SELECT 1 FROM video_library WHERE source_id = ?", (source_id,)
        ) as cursor:
            return await cursor.fetchone() is not None

    async def insert(
        self,
        candidate: VideoCandidate,
        analysis: VideoAnalysis,
        decision: ScoringDecision,
        run_id: Optional[str] = None,
        instructor_tier: Optional[str] = None,
    ) -> AcceptedVideoRecord:
        """Insert an accepted candidate.

        Args:
            candidate: The accepted candidate
            analysis: Its validated analysis
            decision: The ACCEPT decision (persisted for audit)
            run_id: Run that produced the record
            instructor_tier: Registry tier of the instructor, if known

        Returns:
            The stored AcceptedVideoRecord

        Raises:
            DuplicateCandidateError: If the source id is already in the library
        """
        record = build_record(candidate, analysis, decision, run_id, instructor_tier)
        record.created_at = utc_now().isoformat()
        conn = self.database.connection

        try:
            cursor = await conn.execute(
                """
                INSERT INTO video_library (
                    source_id, title, channel_name, channel_id, instructor_name, technique_name,
                    technique_type, position_category, gi_or_nogi, quality_score, final_score,
                    skill_level, status, tags, dimension_scores, duration_seconds, view_count,
                    like_count, thumbnail_url, published_at, run_id, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.source_id,
                    record.title,
                    record.channel_name,
                    record.channel_id,
                    normalize_source_key(record.instructor_name) if record.instructor_name else None,
                    record.technique_name,
                    record.technique_type,
                    record.position_category,
                    record.gi_or_nogi,
                    record.quality_score,
                    record.final_score,
                    record.skill_level,
                    record.status,
                    json.dumps(record.tags),
                    json.dumps(record.dimension_scores),
                    record.duration_seconds,
                    record.view_count,
                    record.like_count,
                    record.thumbnail_url,
                    record.published_at,
                    record.run_id,
                    record.created_at,
                ),
            )
            await conn.commit()
        except aiosqlite.IntegrityError as e:
            await conn.rollback()
            raise DuplicateCandidateError(candidate.video_id) from e

        record.id = cursor.lastrowid
        logger.info(f"Added {record.source_id} to library: {record.technique_name} ({record.final_score})")
        return record

    async def get(self, source_id: str) -> Optional[AcceptedVideoRecord]:
        async with self.database.connection.execute(
            "SELECT * FROM video_library WHERE source_id = ?", (source_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return self._row_to_record(row) if row else None

    async def count(self) -> int:
        async with self.database.connection.execute("SELECT COUNT(*) FROM video_library") as cursor:
            row = await cursor.fetchone()
            return row[0] if row else 0

    async def coverage(self, technique: str, target_count: int) -> CoverageSnapshot:
        """Current library coverage of a technique, split by skill level."""
        technique = normalize_technique_name(technique)
        async with self.database.connection.execute(
            "SELECT skill_level, COUNT(*) AS n FROM video_library WHERE technique_name = ? GROUP BY skill_level",
            (technique,),
        ) as cursor:
            rows = await cursor.fetchall()
        level_counts = {row["skill_level"]: row["n"] for row in rows if row["skill_level"]}
        return CoverageSnapshot(
            technique=technique,
            current_count=sum(row["n"] for row in rows),
            target_count=target_count,
            level_counts=level_counts,
        )

    async def technique_counts(self) -> dict[str, int]:
        async with self.database.connection.execute(
            "SELECT technique_name, COUNT(*) AS n FROM video_library GROUP BY technique_name"
        ) as cursor:
            rows = await cursor.fetchall()
        return {row["technique_name"]: row["n"] for row in rows}

    async def count_by_instructor(self) -> dict[str, int]:
        async with self.database.connection.execute(
            "SELECT instructor_name, COUNT(*) AS n FROM video_library "
            "WHERE instructor_name IS NOT NULL GROUP BY instructor_name"
        ) as cursor:
            rows = await cursor.fetchall()
        return {row["instructor_name"]: row["n"] for row in rows}

    async def similar_titles(self, technique: str, instructor: Optional[str], limit: int = 20) -> tuple[list[str], int]:
        """Titles already stored for this technique, and how many share the instructor.

        Returns:
            Tuple of (recent titles for the technique, count by the same instructor)
        """
        technique = normalize_technique_name(technique)
        async with self.database.connection.execute(
            "SELECT title FROM video_library WHERE technique_name = ? ORDER BY created_at DESC LIMIT ?",
            (technique, limit),
        ) as cursor:
            titles = [row["title"] for row in await cursor.fetchall()]

        same_instructor = 0
        if instructor:
            async with self.database.connection.execute(
                "SELECT COUNT(*) FROM video_library WHERE technique_name = ? AND instructor_name = ?",
                (technique, normalize_source_key(instructor)),
            ) as cursor:
                row = await cursor.fetchone()
                same_instructor = row[0] if row else 0

        return titles, same_instructor

    async def technique_breakdown(self, limit: int = 50) -> list[dict[str, Any]]:
        """Per-technique counts and average score, largest first."""
        async with self.database.connection.execute(
            """
            SELECT technique_name, COUNT(*) AS videos, ROUND(AVG(final_score), 1) AS avg_score,
                   SUM(CASE WHEN status = 'active' THEN 1 ELSE 0 END) AS active
            FROM video_library
            GROUP BY technique_name
            ORDER BY videos DESC, technique_name ASC
            LIMIT ?
            """,
            (limit,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [
            {
                "technique": row["technique_name"],
                "videos": row["videos"],
                "active": row["active"],
                "avg_score": row["avg_score"],
            }
            for row in rows
        ]

    def _row_to_record(self, row: aiosqlite.Row) -> AcceptedVideoRecord:
        return AcceptedVideoRecord(
            id=row["id"],
            source_id=row["source_id"],
            title=row["title"],
            technique_name=row["technique_name"],
            final_score=row["final_score"],
            channel_name=row["channel_name"] or "",
            channel_id=row["channel_id"] or "",
            instructor_name=row["instructor_name"],
            technique_type=row["technique_type"],
            position_category=row["position_category"],
            gi_or_nogi=row["gi_or_nogi"],
            quality_score=row["quality_score"],
            skill_level=row["skill_level"],
            status=row["status"],
            tags=json.loads(row["tags"]) if row["tags"] else [],
            dimension_scores=json.loads(row["dimension_scores"]) if row["dimension_scores"] else {},
            duration_seconds=row["duration_seconds"],
            view_count=row["view_count"],
            like_count=row["like_count"],
            thumbnail_url=row["thumbnail_url"] or "",
            published_at=row["published_at"] or "",
            run_id=row["run_id"],
            created_at=row["created_at"],
        )
