"""Curation worker process and its host-side supervisor.

The pipeline runs in a separate OS process so a hang or crash never takes the
API down with it. The worker talks to the host only through a
multiprocessing queue of plain dicts (see models.progress):

    progress  -> relayed to the progress feed
    complete  -> run closed as completed with the reported summary
    failed    -> run closed as failed with the reported error and any
                 partial counters

If the worker exits without sending a terminal message, or runs past the
timeout, the supervisor terminates it and fails the run itself.
"""

import asyncio
import logging
import multiprocessing
import sys
from queue import Empty
from typing import Any, Awaitable, Callable, Optional

from bjj_curator.models.curation_run import RunSummary
from bjj_curator.models.progress import (
    ProgressMessage,
    RunCompleteMessage,
    RunFailedMessage,
    parse_worker_message,
)
from bjj_curator.services.ai_service import AIService
from bjj_curator.services.curation_pipeline import CurationPipeline, Emitter
from bjj_curator.services.errors import CurationError, RunAbortedError, WorkerCrashError
from bjj_curator.services.exhaustion_tracker import ExhaustionTracker
from bjj_curator.services.priority_selector import PrioritySelector
from bjj_curator.services.progress_feed import ProgressFeed
from bjj_curator.services.quota_ledger import QuotaLedger
from bjj_curator.services.reference_data import ReferenceData
from bjj_curator.services.scoring.context import ScoringContextBuilder
from bjj_curator.services.scoring.engine import ScoringEngine
from bjj_curator.services.video_library import VideoLibrary
from bjj_curator.services.youtube_api_service import YouTubeAPIService
from bjj_curator.utils.config import validate_config
from bjj_curator.utils.database import Database
from bjj_curator.utils.logging import bind_run_context, setup_logging

logger = logging.getLogger(__name__)

FinishCallback = Callable[..., Awaitable[bool]]

# Grace period for a terminal message still in flight when the worker exits
EXIT_DRAIN_SECONDS = 1.0
TERMINATE_GRACE_SECONDS = 5.0


async def build_pipeline(database: Database, config: dict, emit: Optional[Emitter] = None) -> CurationPipeline:
    """Wire a pipeline against a connected database."""
    ledger = QuotaLedger(
        database,
        daily_limit=config["daily_quota_limit"],
        timezone_name=config["quota_timezone"],
    )
    search = YouTubeAPIService(
        api_key=config["youtube_api_key"],
        ledger=ledger,
        search_cost=config["search_quota_cost"],
        detail_cost=config["detail_quota_cost"],
    )
    analyzer = AIService(
        api_key=config["gemini_api_key"],
        model_name=config.get("gemini_model", "gemini-3-flash-preview"),
    )

    reference = ReferenceData(database)
    await reference.seed_defaults()
    library = VideoLibrary(database)
    tracker = ExhaustionTracker(
        database,
        trigger_count=config["exhaustion_trigger_count"],
        cooldown_days=config["exhaustion_cooldown_days"],
    )
    selector = PrioritySelector(
        reference,
        library,
        tracker,
        target_per_technique=config["target_videos_per_technique"],
        target_per_instructor=config["target_videos_per_instructor"],
    )

    return CurationPipeline(
        search=search,
        analyzer=analyzer,
        engine=ScoringEngine(config["acceptance_threshold"]),
        context_builder=ScoringContextBuilder(reference, library, config["target_videos_per_technique"]),
        library=library,
        tracker=tracker,
        selector=selector,
        config=config,
        emit=emit,
    )


async def _execute(run_id: str, config: dict, emit: Emitter) -> RunSummary:
    errors = validate_config(config)
    if errors:
        raise CurationError(f"Invalid configuration: {'; '.join(errors)}")

    async with Database(config["database_path"]) as database:
        pipeline = await build_pipeline(database, config, emit)
        try:
            return await pipeline.run(run_id)
        except Exception as e:
            raise RunAbortedError(str(e) or type(e).__name__, pipeline.summary) from e


def run_worker(run_id: str, config: dict, queue: Any) -> None:
    """Entry point of the worker process.

    Args:
        run_id: Run to execute (already marked running by the host)
        config: Application config dict
        queue: Multiprocessing queue back to the host
    """
    setup_logging(config.get("log_level", "INFO"), config.get("log_json", False))
    bind_run_context(run_id, role="worker")

    try:
        summary = asyncio.run(_execute(run_id, config, queue.put))
    except Exception as e:
        logger.exception(f"Curation worker failed: {e}")
        partial = e.summary if isinstance(e, RunAbortedError) else None
        queue.put(RunFailedMessage(run_id, str(e) or type(e).__name__, partial).to_dict())
        sys.exit(1)

    queue.put(RunCompleteMessage(run_id, summary).to_dict())


class WorkerSupervisor:
    """Starts worker processes and turns their outcome into a closed run."""

    def __init__(
        self,
        config: dict,
        on_finished: FinishCallback,
        progress_feed: Optional[ProgressFeed] = None,
        target: Callable[[str, dict, Any], None] = run_worker,
        start_method: Optional[str] = None,
        timeout: Optional[float] = None,
        poll_interval: float = 0.5,
    ):
        """Initialize the supervisor.

        Args:
            config: Application config, passed to each worker
            on_finished: Coroutine (run_id, analyzed, added, quota_used, error, summary)
                that closes the run; RunOrchestrator.complete
            progress_feed: Receives relayed progress and terminal messages
            target: Worker entry point (must be importable for spawn)
            start_method: multiprocessing start method; defaults to config
            timeout: Seconds a worker may run before being killed
            poll_interval: Seconds between queue polls
        """
        self.config = config
        self.on_finished = on_finished
        self.progress_feed = progress_feed
        self.target = target
        self.timeout = timeout or config.get("worker_timeout_seconds", 1200)
        self.poll_interval = poll_interval
        self._context = multiprocessing.get_context(start_method or config.get("worker_start_method", "spawn"))
        self._processes: dict[str, Any] = {}
        self._monitors: dict[str, asyncio.Task] = {}

    def launch(self, run_id: str) -> asyncio.Task:
        """Start a worker for ``run_id`` and return the task monitoring it."""
        queue = self._context.Queue()
        process = self._context.Process(
            target=self.target,
            args=(run_id, self.config, queue),
            name=f"curation-worker-{run_id[:8]}",
            daemon=True,
        )
        process.start()
        logger.info(f"Started curation worker pid={process.pid} for run {run_id}")

        self._processes[run_id] = process
        task = asyncio.create_task(self._monitor(run_id, process, queue))
        self._monitors[run_id] = task
        task.add_done_callback(lambda _: self._forget(run_id))
        return task

    def is_running(self, run_id: str) -> bool:
        process = self._processes.get(run_id)
        return process is not None and process.is_alive()

    async def wait(self, run_id: str) -> None:
        """Wait until the run's worker has finished and the run is closed."""
        task = self._monitors.get(run_id)
        if task is not None:
            await task

    async def shutdown(self) -> None:
        """Terminate live workers and wait for their runs to be closed."""
        for process in list(self._processes.values()):
            if process.is_alive():
                process.terminate()
        monitors = list(self._monitors.values())
        if monitors:
            await asyncio.gather(*monitors, return_exceptions=True)

    def _forget(self, run_id: str) -> None:
        self._processes.pop(run_id, None)
        self._monitors.pop(run_id, None)

    @staticmethod
    def _poll(queue: Any, timeout: float) -> Optional[dict]:
        try:
            return queue.get(timeout=timeout)
        except Empty:
            return None

    async def _monitor(self, run_id: str, process: Any, queue: Any) -> None:
        bind_run_context(run_id, role="host")
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout

        try:
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    await self._stop(process)
                    await self._fail(run_id, WorkerCrashError(f"Worker timed out after {int(self.timeout)} seconds"))
                    return

                payload = await loop.run_in_executor(None, self._poll, queue, min(self.poll_interval, remaining))
                if payload is None and not process.is_alive():
                    payload = await loop.run_in_executor(None, self._poll, queue, EXIT_DRAIN_SECONDS)
                    if payload is None:
                        await self._fail(
                            run_id, WorkerCrashError(f"Worker exited unexpectedly (exit code {process.exitcode})")
                        )
                        return
                if payload is None:
                    continue

                if await self._handle(run_id, payload):
                    return
        finally:
            await loop.run_in_executor(None, process.join, TERMINATE_GRACE_SECONDS)
            queue.close()

    async def _handle(self, run_id: str, payload: dict) -> bool:
        """Process one worker message; True once the run has been closed."""
        try:
            message = parse_worker_message(payload)
        except ValueError as e:
            logger.warning(f"Ignoring malformed worker message for run {run_id}: {e}")
            return False

        if isinstance(message, ProgressMessage):
            await self._publish(run_id, payload)
            return False

        await self._publish(run_id, payload)
        if isinstance(message, RunCompleteMessage):
            summary = message.summary
            await self.on_finished(
                run_id, summary.analyzed, summary.added, summary.quota_used, error=None, summary=summary
            )
        elif isinstance(message, RunFailedMessage):
            partial = message.summary
            if partial is None:
                await self.on_finished(run_id, 0, 0, 0, error=message.error)
            else:
                await self.on_finished(
                    run_id, partial.analyzed, partial.added, partial.quota_used, error=message.error, summary=partial
                )
        return True

    async def _fail(self, run_id: str, error: WorkerCrashError) -> None:
        logger.error(f"Curation run {run_id} failed: {error}")
        await self._publish(run_id, RunFailedMessage(run_id, str(error)).to_dict())
        await self.on_finished(run_id, 0, 0, 0, error=str(error))

    async def _publish(self, run_id: str, payload: dict) -> None:
        if self.progress_feed is not None:
            await self.progress_feed.publish(run_id, payload)

    async def _stop(self, process: Any) -> None:
        loop = asyncio.get_running_loop()
        process.terminate()
        await loop.run_in_executor(None, process.join, TERMINATE_GRACE_SECONDS)
        if process.is_alive():
            logger.warning(f"Worker pid={process.pid} ignored SIGTERM, killing")
            process.kill()
            await loop.run_in_executor(None, process.join, TERMINATE_GRACE_SECONDS)
