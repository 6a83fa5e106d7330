"""Periodic trigger for scheduled curation runs.

Polls the orchestrator; whether a run is actually due (interval, active run,
quota, library target) is decided by ``RunOrchestrator.can_start``.
"""

import asyncio
import logging
from typing import Optional

from bjj_curator.models.curation_run import RunType
from bjj_curator.services.errors import RunNotEligibleError
from bjj_curator.services.run_orchestrator import RunOrchestrator

logger = logging.getLogger(__name__)


class CurationScheduler:
    """Background loop that starts scheduled runs when they are due."""

    def __init__(self, orchestrator: RunOrchestrator, config: dict):
        self.orchestrator = orchestrator
        self.poll_seconds = config.get("scheduler_poll_seconds", 60)
        self.enabled = config.get("auto_curation_enabled", True)
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> Optional[str]:
        """Start a scheduled run if one is due.

        Returns:
            The started run id, or None
        """
        eligibility = await self.orchestrator.can_start(RunType.SCHEDULED)
        if not eligibility.eligible:
            logger.debug(f"Scheduled curation not started: {eligibility.reason}")
            return None

        try:
            run_id = await self.orchestrator.start(RunType.SCHEDULED)
        except RunNotEligibleError as e:
            logger.info(f"Scheduled curation lost the race: {e.reason}")
            return None

        logger.info(f"Started scheduled curation run {run_id}")
        return run_id

    async def _loop(self) -> None:
        while True:
            try:
                await self.tick()
            except Exception as e:
                logger.error(f"Scheduler tick failed: {e}")
            await asyncio.sleep(self.poll_seconds)

    def start(self) -> None:
        if not self.enabled:
            logger.info("Automated curation disabled; scheduler not started")
            return
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Curation scheduler started (poll every {self.poll_seconds}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
