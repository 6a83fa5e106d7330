"""Run lifecycle: eligibility, start, and the single writer that closes runs.

Every path that ends a run (worker success, worker failure, crash or
timeout detected by the supervisor, stale-run cleanup) goes through
``complete``. Closing is a conditional update on active status, so
duplicate reports of the same outcome are harmless.
"""

import asyncio
from datetime import timedelta
from typing import Awaitable, Callable, Optional, Union

from bjj_curator.models.curation_run import (
    CurationRun,
    Eligibility,
    GuardrailStatus,
    RunStatus,
    RunSummary,
    RunType,
    classify_acceptance_rate,
)
from bjj_curator.services.errors import RunNotEligibleError
from bjj_curator.services.notification_service import NotificationService
from bjj_curator.services.quota_ledger import QuotaLedger
from bjj_curator.services.run_store import RunStore
from bjj_curator.services.video_library import VideoLibrary
from bjj_curator.utils.database import parse_timestamp, utc_now
from bjj_curator.utils.logging import get_logger

logger = get_logger(__name__)

# Consecutive out-of-band runs that raise a trend warning
TREND_WINDOW = 3
STALE_GRACE = timedelta(minutes=1)

Launcher = Callable[[str], Union[Awaitable[object], object]]


class RunOrchestrator:
    """Decides when runs start and records how they end."""

    def __init__(
        self,
        run_store: RunStore,
        config: dict,
        quota_ledger: Optional[QuotaLedger] = None,
        library: Optional[VideoLibrary] = None,
        notifier: Optional[NotificationService] = None,
        launcher: Optional[Launcher] = None,
    ):
        """Initialize the orchestrator.

        Args:
            run_store: Storage for run rows
            config: Application config (see utils.config.load_config)
            quota_ledger: Ledger consulted for remaining quota
            library: Library consulted for the total video target
            notifier: Sends a report when a run closes
            launcher: Called with the run id to start the worker
        """
        self.run_store = run_store
        self.config = config
        self.quota_ledger = quota_ledger
        self.library = library
        self.notifier = notifier
        self.launcher = launcher
        self._background_tasks: set[asyncio.Task] = set()

    @property
    def worker_timeout(self) -> timedelta:
        return timedelta(seconds=self.config.get("worker_timeout_seconds", 1200))

    async def can_start(self, run_type: RunType) -> Eligibility:
        """Check whether a run of ``run_type`` may start now.

        Runs stuck active past the worker timeout are failed first, so a
        crashed host never blocks curation forever.
        """
        batch_size = self.config.get("curation_batch_size", 100)

        await self.reconcile_stale_runs()

        if run_type == RunType.SCHEDULED and not self.config.get("auto_curation_enabled", True):
            return Eligibility(False, "Automated curation is disabled", batch_size)

        active = await self.run_store.get_active_run()
        if active is not None:
            return Eligibility(False, f"Run {active.id} is already {active.status.value}", batch_size)

        if run_type == RunType.SCHEDULED:
            last = await self.run_store.get_last_run(RunType.SCHEDULED)
            interval = timedelta(minutes=self.config.get("curation_interval_minutes", 180))
            last_started = parse_timestamp(last.started_at or last.created_at) if last else None
            if last_started is not None and utc_now() - last_started < interval:
                due = last_started + interval
                return Eligibility(False, f"Next scheduled run is due at {due.isoformat()}", batch_size)

        if self.library is not None:
            target = self.config.get("target_video_count", 10000)
            total = await self.library.count()
            if total >= target:
                return Eligibility(False, f"Library target reached ({total}/{target} videos)", batch_size)

        quota_remaining = None
        if self.quota_ledger is not None:
            quota_remaining = await self.quota_ledger.remaining(self.config.get("quota_safety_ratio", 0.95))
            if quota_remaining < self.config.get("search_quota_cost", 100):
                return Eligibility(
                    False,
                    f"Insufficient quota remaining today ({quota_remaining} units)",
                    batch_size,
                    quota_remaining,
                )

        return Eligibility(True, "Ready to run", batch_size, quota_remaining)

    async def start(self, run_type: RunType) -> str:
        """Create a run and hand it to the worker.

        Returns:
            The new run id

        Raises:
            RunNotEligibleError: If a run may not start now
        """
        eligibility = await self.can_start(run_type)
        if not eligibility.eligible:
            raise RunNotEligibleError(eligibility.reason)

        run = await self.run_store.create_run(run_type)
        await self.run_store.mark_running(run.id)
        logger.info("curation_run_started", run_id=run.id, run_type=run_type.value)

        if self.launcher is not None:
            try:
                result = self.launcher(run.id)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                await self.complete(run.id, 0, 0, 0, f"Failed to launch worker: {e}")
                raise
        return run.id

    async def complete(
        self,
        run_id: str,
        analyzed: int,
        added: int,
        quota_used: int,
        error: Optional[str] = None,
        summary: Optional[RunSummary] = None,
    ) -> bool:
        """Close a run as completed (no error) or failed.

        Returns:
            True if this call closed the run; False if it was already closed
        """
        summary = summary or RunSummary()
        summary.analyzed = analyzed
        summary.added = added
        summary.quota_used = quota_used
        summary.rejected = max(0, analyzed - added)

        rate, guardrail = classify_acceptance_rate(analyzed, added)
        status = RunStatus.FAILED if error else RunStatus.COMPLETED

        closed = await self.run_store.close_run(
            run_id,
            status,
            summary,
            error=error,
            acceptance_rate=rate,
            guardrail_status=guardrail.value,
        )
        if not closed:
            logger.debug("curation_run_already_closed", run_id=run_id)
            return False

        logger.info(
            "curation_run_closed",
            run_id=run_id,
            status=status.value,
            analyzed=analyzed,
            added=added,
            quota_used=quota_used,
            acceptance_rate=rate,
            guardrail=guardrail.value,
            error=error,
        )

        if status == RunStatus.COMPLETED:
            await self._check_trend()

        run = await self.run_store.get_run(run_id)
        if self.notifier is not None and run is not None:
            task = asyncio.create_task(self.notifier.send_run_report(run))
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)

        return True

    async def reconcile_stale_runs(self, max_age: Optional[timedelta] = None) -> list[str]:
        """Fail active runs older than ``max_age`` (worker timeout plus grace)."""
        max_age = max_age or self.worker_timeout + STALE_GRACE
        cleared = []
        for run in await self.run_store.find_stale_runs(max_age):
            minutes = int(max_age.total_seconds() // 60)
            closed = await self.complete(
                run.id,
                run.videos_analyzed,
                run.videos_added,
                run.quota_used,
                error=f"Auto-cleared: stuck in {run.status.value} state for over {minutes} minutes",
            )
            if closed:
                logger.warning("stale_run_cleared", run_id=run.id)
                cleared.append(run.id)
        return cleared

    async def _check_trend(self) -> None:
        runs = await self.run_store.list_runs(limit=TREND_WINDOW, status=RunStatus.COMPLETED)
        if len(runs) < TREND_WINDOW:
            return
        out_of_band = [
            run for run in runs
            if run.guardrail_status in (GuardrailStatus.CRITICAL.value, GuardrailStatus.LOW.value, GuardrailStatus.HIGH.value)
        ]
        if len(out_of_band) == TREND_WINDOW:
            logger.warning(
                "acceptance_rate_trend_alert",
                runs=[run.id for run in runs],
                rates=[run.acceptance_rate for run in runs],
            )

    async def get_run(self, run_id: str) -> Optional[CurationRun]:
        return await self.run_store.get_run(run_id)

    async def wait_for_notifications(self) -> None:
        """Wait for pending report emails (used on shutdown)."""
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
