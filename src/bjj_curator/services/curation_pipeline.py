"""The curation loop executed inside the worker process.

For each priority, in ranked order and one at a time:

    search -> library dedup -> details -> pre-filter -> LLM analysis
           -> score -> insert

Per-candidate failures skip the candidate, a failed search skips the query,
and quota exhaustion ends the run with whatever was added so far.
"""

import logging
import math
from typing import Any, Callable, Optional

from bjj_curator.models.curation_run import RunSummary
from bjj_curator.models.priority import CoveragePriority
from bjj_curator.models.progress import ProgressMessage
from bjj_curator.models.video import VideoCandidate
from bjj_curator.services.ai_service import AIService
from bjj_curator.services.errors import (
    AnalysisError,
    DuplicateCandidateError,
    QuotaExhaustedError,
    TransientNetworkError,
)
from bjj_curator.services.exhaustion_tracker import ExhaustionTracker
from bjj_curator.services.priority_selector import PrioritySelector
from bjj_curator.services.scoring.context import ScoringContextBuilder
from bjj_curator.services.scoring.engine import ScoringEngine
from bjj_curator.services.video_filter import REASON_DURATION, FilterConfig, FilterStats, check_candidate
from bjj_curator.services.video_library import VideoLibrary
from bjj_curator.services.youtube_api_service import YouTubeAPIService

logger = logging.getLogger(__name__)

Emitter = Callable[[dict[str, Any]], None]


class CurationPipeline:
    """Runs one curation pass and reports progress through ``emit``."""

    def __init__(
        self,
        search: YouTubeAPIService,
        analyzer: AIService,
        engine: ScoringEngine,
        context_builder: ScoringContextBuilder,
        library: VideoLibrary,
        tracker: ExhaustionTracker,
        selector: PrioritySelector,
        config: dict,
        emit: Optional[Emitter] = None,
    ):
        self.search = search
        self.analyzer = analyzer
        self.engine = engine
        self.context_builder = context_builder
        self.library = library
        self.tracker = tracker
        self.selector = selector
        self.filter_config = FilterConfig.from_config(config)
        self.batch_size = config.get("curation_batch_size", 100)
        self.max_searches = config.get("max_searches_per_run", 10)
        self.results_per_search = config.get("results_per_search", 50)
        self.emit = emit
        self.filter_stats = FilterStats()
        # Counters of the current or last run, readable after a failure
        self.summary = RunSummary()
        self._run_id = ""
        self._seen: set[str] = set()

    def _progress(self, icon: str, message: str, severity: str = "info", data: Optional[dict] = None) -> None:
        logger.info(f"{icon} {message}")
        if self.emit is not None:
            self.emit(ProgressMessage(self._run_id, message, icon, severity, data).to_dict())

    async def run(self, run_id: str, priorities: Optional[list[CoveragePriority]] = None) -> RunSummary:
        """Execute the curation loop.

        Args:
            run_id: Id of the run being executed
            priorities: Targets to search; selected from coverage gaps when omitted

        Returns:
            RunSummary with the run's counters
        """
        self._run_id = run_id
        self._seen = set()
        self.filter_stats = FilterStats()
        summary = self.summary = RunSummary()

        self._progress("🚀", "Starting curation run", data={
            "batch_size": self.batch_size,
            "max_searches": self.max_searches,
        })

        if priorities is None:
            limit = max(1, math.ceil(self.batch_size / 10))
            priorities = await self.selector.get_top_priorities(limit)

        self._progress("🎯", f"Targeting {len(priorities)} priorities", data={
            "priorities": [p.to_dict() for p in priorities],
        })
        await self.context_builder.load()

        searches_left = self.max_searches
        try:
            for priority in priorities:
                if searches_left <= 0 or summary.analyzed >= self.batch_size:
                    break

                if not await self.tracker.is_eligible(priority.source):
                    self._progress("💤", f"Skipping {priority.source}: on exhaustion cooldown")
                    continue

                self._progress("📚", f"Curating {priority.technique} (priority {priority.priority})", data={
                    "coverage": priority.coverage_count,
                    "target": priority.target_count,
                })

                for query in priority.suggested_searches:
                    if searches_left <= 0 or summary.analyzed >= self.batch_size:
                        break
                    searches_left -= 1

                    added = await self._process_query(run_id, priority, query, summary)
                    if added is None:
                        continue
                    if added > 0:
                        await self.tracker.record_success(priority.source)
                        continue

                    state = await self.tracker.record_empty_search(priority.source)
                    if not await self.tracker.is_eligible(priority.source):
                        self._progress(
                            "🧊",
                            f"{priority.source} exhausted after {state.consecutive_empty} empty searches",
                            severity="warning",
                            data={"cooldown_until": state.cooldown_until},
                        )
                        break
        except QuotaExhaustedError as e:
            summary.quota_exhausted = True
            self._progress("⛔", f"Quota exhausted, ending run with partial results: {e}", severity="warning")
        finally:
            summary.quota_used = self.search.quota_used
            summary.rejected = max(0, summary.analyzed - summary.added)

        logger.info(f"Pre-filter: {self.filter_stats}")
        self._progress("🏁", f"Curation finished: {summary.added} added of {summary.analyzed} analyzed",
                       severity="success", data=summary.to_dict())
        return summary

    async def _process_query(
        self,
        run_id: str,
        priority: CoveragePriority,
        query: str,
        summary: RunSummary,
    ) -> Optional[int]:
        """Search one query and process its candidates.

        Returns:
            Number of videos added, or None if the search itself failed

        Raises:
            QuotaExhaustedError: Propagated to end the run
        """
        try:
            results = await self.search.search(query, self.results_per_search)
        except TransientNetworkError as e:
            summary.searches_failed += 1
            self._progress("⚠️", f"Search failed for '{query}': {e}", severity="warning")
            return None

        summary.searches_performed += 1
        self._progress("🔍", f"Searched '{query}': {len(results)} results")

        fresh: list[VideoCandidate] = []
        for candidate in results:
            if candidate.video_id in self._seen:
                continue
            if summary.analyzed >= self.batch_size:
                break
            self._seen.add(candidate.video_id)
            summary.analyzed += 1
            if await self.library.exists(candidate.video_id):
                summary.skipped_duplicates += 1
                continue
            fresh.append(candidate)

        if not fresh:
            return 0

        try:
            details = await self.search.get_details([c.video_id for c in fresh])
        except QuotaExhaustedError:
            summary.skipped_quota += len(fresh)
            raise
        except TransientNetworkError as e:
            summary.searches_failed += 1
            summary.skipped_other += len(fresh)
            self._progress("⚠️", f"Detail lookup failed for '{query}': {e}", severity="warning")
            return None

        added = 0
        for candidate in fresh:
            if candidate.video_id in details:
                candidate.apply_details(details[candidate.video_id])
            if await self._process_candidate(run_id, priority, candidate, summary):
                added += 1
        return added

    async def _process_candidate(
        self,
        run_id: str,
        priority: CoveragePriority,
        candidate: VideoCandidate,
        summary: RunSummary,
    ) -> bool:
        passed, reason, category = check_candidate(candidate, self.filter_config)
        self.filter_stats.record(passed, category)
        if not passed:
            if category == REASON_DURATION:
                summary.skipped_duration += 1
            else:
                summary.skipped_other += 1
            logger.debug(f"Filtered {candidate.video_id}: {reason}")
            return False

        try:
            analysis = await self.analyzer.analyze_video(candidate)
        except AnalysisError as e:
            summary.skipped_other += 1
            self._progress("⚠️", f"Analysis failed for '{candidate.title}': {e}", severity="warning")
            return False

        if not analysis.is_instructional:
            logger.debug(f"Not instructional: {candidate.video_id}")
            return False

        context = await self.context_builder.build(candidate, analysis, priority)
        decision = self.engine.score(candidate, context)
        if not decision.accepted:
            self._progress("❌", f"Rejected '{candidate.title}' ({decision.final_score})", data={
                "video_id": candidate.video_id,
                "score": decision.final_score,
                "bad_because": decision.bad_because[:3],
            })
            return False

        tier = context.instructor.tier if context.instructor else None
        try:
            record = await self.library.insert(candidate, analysis, decision, run_id, tier)
        except DuplicateCandidateError:
            summary.skipped_duplicates += 1
            return False

        summary.added += 1
        self._progress("✅", f"Added '{record.title}' ({record.final_score})", severity="success", data={
            "video_id": record.source_id,
            "technique": record.technique_name,
            "score": record.final_score,
            "good_because": decision.good_because[:3],
        })
        return True
