"""Loads the reference snapshots a candidate is scored against."""

import logging
from datetime import datetime
from typing import Callable, Optional

from bjj_curator.models.priority import CoveragePriority
from bjj_curator.models.reference import EmergingTechnique, InstructorProfile, TaxonomyNode
from bjj_curator.models.scoring import ScoringContext
from bjj_curator.models.video import VideoAnalysis, VideoCandidate
from bjj_curator.services.reference_data import ReferenceData
from bjj_curator.services.video_library import VideoLibrary
from bjj_curator.utils.database import utc_now
from bjj_curator.utils.text import normalize_source_key, normalize_technique_name

logger = logging.getLogger(__name__)


class ScoringContextBuilder:
    """Builds a ScoringContext per candidate.

    Registry-wide tables (instructors, taxonomy, emerging techniques,
    competition meta) are loaded once per run; library-dependent snapshots
    are read per candidate so videos accepted earlier in the run count.
    """

    def __init__(
        self,
        reference: ReferenceData,
        library: VideoLibrary,
        default_target: int = 100,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.reference = reference
        self.library = library
        self.default_target = default_target
        self.clock = clock
        self._instructors: Optional[dict[str, InstructorProfile]] = None
        self._instructors_by_channel: dict[str, InstructorProfile] = {}
        self._taxonomy: dict[str, TaxonomyNode] = {}
        self._emerging: dict[str, EmergingTechnique] = {}
        self._hot_counts: dict[str, int] = {}

    async def load(self) -> None:
        """Load the per-run reference snapshots."""
        self._instructors = await self.reference.get_instructors()
        self._instructors_by_channel = {
            profile.channel_id: profile
            for profile in self._instructors.values()
            if profile.channel_id
        }
        self._taxonomy = await self.reference.get_taxonomy()
        self._emerging = await self.reference.get_emerging()

        self._hot_counts = {}
        for hot_list in await self.reference.recent_hot_techniques(limit=5):
            for technique in hot_list:
                self._hot_counts[technique] = self._hot_counts.get(technique, 0) + 1

        logger.debug(
            f"Loaded scoring references: {len(self._instructors)} instructors, "
            f"{len(self._taxonomy)} taxonomy nodes, {len(self._emerging)} emerging"
        )

    def find_instructor(self, candidate: VideoCandidate, analysis: VideoAnalysis) -> Optional[InstructorProfile]:
        instructors = self._instructors or {}
        if analysis.instructor_name:
            profile = instructors.get(normalize_source_key(analysis.instructor_name))
            if profile:
                return profile
        if candidate.channel_id and candidate.channel_id in self._instructors_by_channel:
            return self._instructors_by_channel[candidate.channel_id]
        return instructors.get(normalize_source_key(candidate.channel_name)) if candidate.channel_name else None

    async def build(
        self,
        candidate: VideoCandidate,
        analysis: VideoAnalysis,
        priority: Optional[CoveragePriority] = None,
    ) -> ScoringContext:
        if self._instructors is None:
            await self.load()

        technique = normalize_technique_name(analysis.technique)
        node = self._taxonomy.get(technique)
        target = (node.target_video_count if node and node.target_video_count else None) or self.default_target

        instructor = self.find_instructor(candidate, analysis)
        instructor_name = instructor.name if instructor else analysis.instructor_name

        coverage = await self.library.coverage(technique, target)
        similar_titles, same_instructor = await self.library.similar_titles(technique, instructor_name)
        feedback = (
            await self.reference.get_feedback(instructor_name, technique) if instructor_name else None
        )

        return ScoringContext(
            analysis=analysis,
            now=self.clock(),
            instructor=instructor,
            taxonomy_node=node,
            coverage=coverage,
            similar_titles=similar_titles,
            instructor_technique_count=same_instructor,
            feedback=feedback,
            emerging=self._emerging.get(technique),
            trending_mentions=self._hot_counts.get(technique, 0),
            priority=priority,
        )
