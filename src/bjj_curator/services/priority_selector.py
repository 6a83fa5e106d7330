"""Priority selection: which techniques and instructors a run should target.

Demand combines what users ask for (technique requests over the last 7 and
30 days) with what is winning in competition (hot technique lists from
recent meta analyses). A technique's priority grows with its coverage gap
and its demand; techniques already at target are not selected.

    request score     = min(7, 1.5 * requests_7d) + min(3, 0.3 * requests_30d)
    competition score = min(10, 2 * mentions in the last 5 analyses)
    demand            = 0.6 * request score + 0.4 * competition score
    priority          = min(10, round(gap + min(5, demand / 2)))
"""

import logging
from datetime import datetime
from typing import Callable

from bjj_curator.models.priority import CoveragePriority
from bjj_curator.services.exhaustion_tracker import ExhaustionTracker
from bjj_curator.services.reference_data import ReferenceData
from bjj_curator.services.video_library import VideoLibrary
from bjj_curator.utils.database import utc_now
from bjj_curator.utils.text import normalize_source_key

logger = logging.getLogger(__name__)

MIN_PRIORITY = 3
META_WINDOW = 5


def request_score(recent_7d: int, monthly_30d: int) -> float:
    return min(10.0, min(7.0, recent_7d * 1.5) + min(3.0, monthly_30d * 0.3))


def competition_score(mentions: int) -> float:
    return min(10.0, mentions * 2.0)


def demand_score(recent_7d: int, monthly_30d: int, mentions: int) -> float:
    return round(0.6 * request_score(recent_7d, monthly_30d) + 0.4 * competition_score(mentions), 2)


def compute_priority(current_count: int, target_count: int, demand: float) -> int:
    """Priority 0-10 for a technique; 0 when it needs no curation."""
    if target_count <= 0 or current_count >= target_count:
        return 0
    if current_count == 0:
        return 10

    needed = target_count - current_count
    gap = min(10.0, 10.0 * needed / target_count)
    priority = min(10, round(gap + min(5.0, demand / 2)))
    priority = max(priority, MIN_PRIORITY)
    if current_count < 0.2 * target_count:
        priority = min(10, priority + 2)
    return priority


def generate_technique_searches(technique: str, current_count: int) -> list[str]:
    """Search queries for a technique, broader when the library has little of it."""
    searches = [f"{technique} bjj technique"]
    if current_count < 2:
        searches += [
            f"{technique} tutorial",
            f"how to do {technique}",
            f"{technique} step by step",
        ]
    else:
        searches += [
            f"{technique} advanced details",
            f"{technique} common mistakes",
            f"{technique} variations",
        ]
    searches += [f"{technique} gi", f"{technique} no gi"]
    return searches


def generate_instructor_searches(instructor: str) -> list[str]:
    return [
        f"{instructor} bjj technique",
        f"{instructor} jiu jitsu instructional",
    ]


class PrioritySelector:
    """Ranks coverage priorities for a curation run."""

    def __init__(
        self,
        reference: ReferenceData,
        library: VideoLibrary,
        tracker: ExhaustionTracker,
        target_per_technique: int = 100,
        target_per_instructor: int = 50,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.reference = reference
        self.library = library
        self.tracker = tracker
        self.target_per_technique = target_per_technique
        self.target_per_instructor = target_per_instructor
        self.clock = clock

    async def technique_priorities(self) -> list[CoveragePriority]:
        taxonomy = await self.reference.get_taxonomy()
        requests = await self.reference.request_counts(self.clock())
        mentions: dict[str, int] = {}
        for hot_list in await self.reference.recent_hot_techniques(limit=META_WINDOW):
            for technique in hot_list:
                mentions[technique] = mentions.get(technique, 0) + 1
        counts = await self.library.technique_counts()

        priorities = []
        for technique in sorted(set(taxonomy) | set(requests) | set(mentions)):
            node = taxonomy.get(technique)
            target = (node.target_video_count if node and node.target_video_count else None) or self.target_per_technique
            recent, monthly = requests.get(technique, (0, 0))
            demand = demand_score(recent, monthly, mentions.get(technique, 0))
            current = counts.get(technique, 0)
            priority = compute_priority(current, target, demand)
            if priority <= 0:
                continue
            priorities.append(
                CoveragePriority(
                    technique=technique,
                    priority=priority,
                    demand_score=demand,
                    coverage_count=current,
                    target_count=target,
                    suggested_searches=generate_technique_searches(technique, current),
                )
            )
        return priorities

    async def instructor_priorities(self) -> list[CoveragePriority]:
        instructors = await self.reference.get_instructors()
        counts = await self.library.count_by_instructor()

        priorities = []
        for key, profile in sorted(instructors.items()):
            current = counts.get(key, 0)
            # Credibility stands in for demand when ranking instructors
            demand = round(profile.credibility_score / 20, 2)
            priority = compute_priority(current, self.target_per_instructor, demand)
            if priority <= 0:
                continue
            priorities.append(
                CoveragePriority(
                    technique=f"{profile.name} instructionals",
                    priority=priority,
                    demand_score=demand,
                    coverage_count=current,
                    target_count=self.target_per_instructor,
                    suggested_searches=generate_instructor_searches(profile.name),
                    instructor=profile.name,
                )
            )
        return priorities

    async def get_top_priorities(self, limit: int = 10, include_instructors: bool = True) -> list[CoveragePriority]:
        """Highest-priority targets for a run.

        Sources on exhaustion cooldown are excluded. Ties on priority are
        broken by demand (higher first), then by name for a stable order.

        Args:
            limit: Maximum priorities to return
            include_instructors: Also target under-represented registry instructors

        Returns:
            Ranked list of CoveragePriority
        """
        candidates = await self.technique_priorities()
        if include_instructors:
            candidates += await self.instructor_priorities()

        cooling = await self.tracker.cooling_sources()
        eligible = [p for p in candidates if normalize_source_key(p.source) not in cooling]
        skipped = len(candidates) - len(eligible)
        if skipped:
            logger.info(f"Skipped {skipped} priorities on exhaustion cooldown")

        eligible.sort(key=lambda p: (-p.priority, -p.demand_score, p.source))
        return eligible[:limit]
