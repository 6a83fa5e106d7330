"""Reference data store: instructors, taxonomy and demand signals.

The curation loop only reads these tables. They are written by the seed
command, by the product's feedback endpoints and by the competition
meta-analysis job.
"""

import json
import logging
from datetime import datetime, timedelta
from typing import Optional

from bjj_curator.models.reference import (
    EmergingTechnique,
    FeedbackStats,
    InstructorProfile,
    InstructorTier,
    TaxonomyNode,
)
from bjj_curator.utils.database import Database, utc_now
from bjj_curator.utils.text import normalize_source_key, normalize_technique_name

logger = logging.getLogger(__name__)

DEFAULT_ELITE_INSTRUCTORS = [
    "Gordon Ryan",
    "John Danaher",
    "Lachlan Giles",
    "Craig Jones",
    "Mikey Musumeci",
    "Rafael Mendes",
    "Marcelo Garcia",
    "Bernardo Faria",
    "Garry Tonon",
    "Eddie Cummings",
    "Keenan Cornelius",
    "Ryan Hall",
    "Caio Terra",
    "Andre Galvao",
    "Roger Gracie",
]

# (technique, position category, gi applicability)
DEFAULT_TAXONOMY = [
    ("armbar", "closed guard", "both"),
    ("triangle choke", "closed guard", "both"),
    ("scissor sweep", "closed guard", "both"),
    ("hip bump sweep", "closed guard", "both"),
    ("kimura", "side control", "both"),
    ("americana", "side control", "both"),
    ("arm triangle", "side control", "both"),
    ("side control escape", "side control", "both"),
    ("mount escape", "mount", "both"),
    ("rear naked choke", "back control", "both"),
    ("bow and arrow choke", "back control", "gi_only"),
    ("back take", "back control", "both"),
    ("knee slice pass", "half guard", "both"),
    ("torreando pass", "open guard", "both"),
    ("butterfly sweep", "open guard", "both"),
    ("de la riva sweep", "open guard", "both"),
    ("berimbolo", "open guard", "both"),
    ("collar drag", "open guard", "gi_only"),
    ("x guard sweep", "open guard", "both"),
    ("heel hook", "leg entanglement", "nogi_only"),
    ("ankle lock", "leg entanglement", "both"),
    ("single leg takedown", "standing", "both"),
    ("double leg takedown", "standing", "both"),
    ("guillotine choke", "standing", "both"),
    ("darce choke", "turtle", "both"),
]


class ReferenceData:
    """Async access to the reference tables."""

    def __init__(self, database: Database):
        self.database = database

    async def upsert_instructor(self, profile: InstructorProfile) -> None:
        conn = self.database.connection
        await conn.execute(
            """
            INSERT INTO instructors
                (name, display_name, channel_id, tier, credibility_score, boost_multiplier, auto_accept, specialties)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(name) DO UPDATE SET
                display_name = excluded.display_name,
                channel_id = excluded.channel_id,
                tier = excluded.tier,
                credibility_score = excluded.credibility_score,
                boost_multiplier = excluded.boost_multiplier,
                auto_accept = excluded.auto_accept,
                specialties = excluded.specialties
            """,
            (
                profile.key,
                profile.name,
                profile.channel_id,
                profile.tier,
                profile.credibility_score,
                profile.boost_multiplier,
                int(profile.auto_accept),
                json.dumps(profile.specialties),
            ),
        )
        await conn.commit()

    async def get_instructors(self) -> dict[str, InstructorProfile]:
        """All registry instructors keyed by case-folded name."""
        async with self.database.connection.execute("SELECT * FROM instructors") as cursor:
            rows = await cursor.fetchall()
        return {
            row["name"]: InstructorProfile(
                name=row["display_name"],
                tier=row["tier"],
                credibility_score=row["credibility_score"],
                boost_multiplier=row["boost_multiplier"],
                auto_accept=bool(row["auto_accept"]),
                channel_id=row["channel_id"],
                specialties=json.loads(row["specialties"]) if row["specialties"] else [],
            )
            for row in rows
        }

    async def upsert_taxonomy_node(self, node: TaxonomyNode) -> None:
        conn = self.database.connection
        await conn.execute(
            """
            INSERT INTO technique_taxonomy (technique_name, category, gi_applicability, target_video_count, priority)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(technique_name) DO UPDATE SET
                category = excluded.category,
                gi_applicability = excluded.gi_applicability,
                target_video_count = excluded.target_video_count,
                priority = excluded.priority
            """,
            (
                normalize_technique_name(node.technique_name),
                node.category,
                node.gi_applicability,
                node.target_video_count,
                node.priority,
            ),
        )
        await conn.commit()

    async def get_taxonomy(self) -> dict[str, TaxonomyNode]:
        """Taxonomy nodes keyed by normalized technique name."""
        async with self.database.connection.execute("SELECT * FROM technique_taxonomy") as cursor:
            rows = await cursor.fetchall()
        return {
            row["technique_name"]: TaxonomyNode(
                technique_name=row["technique_name"],
                category=row["category"],
                gi_applicability=row["gi_applicability"],
                target_video_count=row["target_video_count"],
                priority=row["priority"],
            )
            for row in rows
        }

    async def record_technique_request(self, technique: str, requested_at: Optional[datetime] = None) -> None:
        """Record that a user asked for help with a technique."""
        conn = self.database.connection
        await conn.execute(
            "INSERT INTO technique_requests (technique_name, requested_at) VALUES (?, ?)",
            (normalize_technique_name(technique), (requested_at or utc_now()).isoformat()),
        )
        await conn.commit()

    async def request_counts(self, now: Optional[datetime] = None) -> dict[str, tuple[int, int]]:
        """Request counts per technique over the last 7 and 30 days.

        Returns:
            Dict mapping technique to (requests in 7 days, requests in 30 days)
        """
        now = now or utc_now()
        week_ago = (now - timedelta(days=7)).isoformat()
        month_ago = (now - timedelta(days=30)).isoformat()
        async with self.database.connection.execute(
            """
            SELECT technique_name,
                   SUM(CASE WHEN requested_at >= ? THEN 1 ELSE 0 END) AS recent,
                   COUNT(*) AS monthly
            FROM technique_requests
            WHERE requested_at >= ?
            GROUP BY technique_name
            """,
            (week_ago, month_ago),
        ) as cursor:
            rows = await cursor.fetchall()
        return {row["technique_name"]: (row["recent"], row["monthly"]) for row in rows}

    async def record_competition_meta(
        self, hot_techniques: list[str], analysis_date: Optional[datetime] = None
    ) -> None:
        conn = self.database.connection
        await conn.execute(
            "INSERT INTO competition_meta (hot_techniques, analysis_date) VALUES (?, ?)",
            (
                json.dumps([normalize_technique_name(t) for t in hot_techniques]),
                (analysis_date or utc_now()).isoformat(),
            ),
        )
        await conn.commit()

    async def recent_hot_techniques(self, limit: int = 5) -> list[list[str]]:
        """Hot technique lists from the most recent meta analyses, newest first."""
        async with self.database.connection.execute(
            "SELECT hot_techniques FROM competition_meta ORDER BY analysis_date DESC LIMIT ?",
            (limit,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [json.loads(row["hot_techniques"]) for row in rows]

    async def upsert_emerging(self, record: EmergingTechnique) -> None:
        conn = self.database.connection
        await conn.execute(
            """
            INSERT INTO emerging_techniques (technique_name, status, confidence_score, first_seen)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(technique_name) DO UPDATE SET
                status = excluded.status,
                confidence_score = excluded.confidence_score
            """,
            (
                normalize_technique_name(record.technique_name),
                record.status,
                record.confidence_score,
                record.first_seen or utc_now().isoformat(),
            ),
        )
        await conn.commit()

    async def get_emerging(self) -> dict[str, EmergingTechnique]:
        async with self.database.connection.execute("SELECT * FROM emerging_techniques") as cursor:
            rows = await cursor.fetchall()
        return {
            row["technique_name"]: EmergingTechnique(
                technique_name=row["technique_name"],
                status=row["status"],
                confidence_score=row["confidence_score"],
                first_seen=row["first_seen"],
            )
            for row in rows
        }

    async def upsert_feedback(self, instructor: str, technique: str, stats: FeedbackStats) -> None:
        conn = self.database.connection
        await conn.execute(
            """
            INSERT INTO video_feedback
                (instructor_name, technique_name, helpful_count, unhelpful_count, watch_completion_rate,
                 recommendation_count, recommendation_success_rate, saved_count)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(instructor_name, technique_name) DO UPDATE SET
                helpful_count = excluded.helpful_count,
                unhelpful_count = excluded.unhelpful_count,
                watch_completion_rate = excluded.watch_completion_rate,
                recommendation_count = excluded.recommendation_count,
                recommendation_success_rate = excluded.recommendation_success_rate,
                saved_count = excluded.saved_count
            """,
            (
                normalize_source_key(instructor),
                normalize_technique_name(technique),
                stats.helpful_count,
                stats.unhelpful_count,
                stats.watch_completion_rate,
                stats.recommendation_count,
                stats.recommendation_success_rate,
                stats.saved_count,
            ),
        )
        await conn.commit()

    async def get_feedback(self, instructor: str, technique: str) -> Optional[FeedbackStats]:
        async with self.database.connection.execute(
            "SELECT * FROM video_feedback WHERE instructor_name = ? AND technique_name = ?",
            (normalize_source_key(instructor), normalize_technique_name(technique)),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return FeedbackStats(
            helpful_count=row["helpful_count"],
            unhelpful_count=row["unhelpful_count"],
            watch_completion_rate=row["watch_completion_rate"],
            recommendation_count=row["recommendation_count"],
            recommendation_success_rate=row["recommendation_success_rate"],
            saved_count=row["saved_count"],
        )

    async def seed_defaults(self) -> tuple[int, int]:
        """Insert the default elite instructors and core taxonomy.

        Existing rows are left untouched.

        Returns:
            Tuple of (instructors added, taxonomy nodes added)
        """
        instructors = await self.get_instructors()
        taxonomy = await self.get_taxonomy()
        added_instructors = added_nodes = 0

        for name in DEFAULT_ELITE_INSTRUCTORS:
            if normalize_source_key(name) in instructors:
                continue
            await self.upsert_instructor(
                InstructorProfile(
                    name=name,
                    tier=InstructorTier.ELITE,
                    credibility_score=95.0,
                    auto_accept=True,
                )
            )
            added_instructors += 1

        for technique, category, gi in DEFAULT_TAXONOMY:
            if technique in taxonomy:
                continue
            await self.upsert_taxonomy_node(
                TaxonomyNode(technique_name=technique, category=category, gi_applicability=gi)
            )
            added_nodes += 1

        logger.info(f"Seeded {added_instructors} instructors and {added_nodes} taxonomy nodes")
        return added_instructors, added_nodes
