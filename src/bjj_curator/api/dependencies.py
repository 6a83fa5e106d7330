"""Service singletons and dependency injection for the curation API."""

from bjj_curator.api.websocket_manager import WebSocketManager
from bjj_curator.services.curation_worker import WorkerSupervisor
from bjj_curator.services.exhaustion_tracker import ExhaustionTracker
from bjj_curator.services.notification_service import NotificationService
from bjj_curator.services.progress_feed import ProgressFeed
from bjj_curator.services.quota_ledger import QuotaLedger
from bjj_curator.services.run_orchestrator import RunOrchestrator
from bjj_curator.services.run_store import RunStore
from bjj_curator.services.scheduler import CurationScheduler
from bjj_curator.services.video_library import VideoLibrary
from bjj_curator.utils.config import load_config
from bjj_curator.utils.database import Database

# Service singletons
_config: dict | None = None
_database: Database | None = None
_ws_manager: WebSocketManager | None = None
_progress_feed: ProgressFeed | None = None
_run_store: RunStore | None = None
_quota_ledger: QuotaLedger | None = None
_video_library: VideoLibrary | None = None
_exhaustion_tracker: ExhaustionTracker | None = None
_notifier: NotificationService | None = None
_orchestrator: RunOrchestrator | None = None
_supervisor: WorkerSupervisor | None = None
_scheduler: CurationScheduler | None = None


def configure(config: dict) -> None:
    """Use ``config`` instead of the environment; drops existing singletons."""
    reset_dependencies()
    global _config
    _config = config


def reset_dependencies() -> None:
    global _config, _database, _ws_manager, _progress_feed, _run_store, _quota_ledger
    global _video_library, _exhaustion_tracker, _notifier, _orchestrator, _supervisor, _scheduler
    _config = _database = _ws_manager = _progress_feed = _run_store = _quota_ledger = None
    _video_library = _exhaustion_tracker = _notifier = _orchestrator = _supervisor = _scheduler = None


def get_config() -> dict:
    """Get or load the application config."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def get_database() -> Database:
    """Get the shared database (connected during app startup)."""
    global _database
    if _database is None:
        _database = Database(get_config()["database_path"])
    return _database


def get_ws_manager() -> WebSocketManager:
    global _ws_manager
    if _ws_manager is None:
        _ws_manager = WebSocketManager()
    return _ws_manager


def get_progress_feed() -> ProgressFeed:
    """Get or create the progress feed, broadcasting to WebSocket observers."""
    global _progress_feed
    if _progress_feed is None:
        _progress_feed = ProgressFeed(broadcaster=get_ws_manager().broadcast)
    return _progress_feed


def get_run_store() -> RunStore:
    global _run_store
    if _run_store is None:
        _run_store = RunStore(get_database())
    return _run_store


def get_quota_ledger() -> QuotaLedger:
    global _quota_ledger
    if _quota_ledger is None:
        config = get_config()
        _quota_ledger = QuotaLedger(
            get_database(),
            daily_limit=config["daily_quota_limit"],
            timezone_name=config["quota_timezone"],
        )
    return _quota_ledger


def get_video_library() -> VideoLibrary:
    global _video_library
    if _video_library is None:
        _video_library = VideoLibrary(get_database())
    return _video_library


def get_exhaustion_tracker() -> ExhaustionTracker:
    global _exhaustion_tracker
    if _exhaustion_tracker is None:
        config = get_config()
        _exhaustion_tracker = ExhaustionTracker(
            get_database(),
            trigger_count=config["exhaustion_trigger_count"],
            cooldown_days=config["exhaustion_cooldown_days"],
        )
    return _exhaustion_tracker


def get_notifier() -> NotificationService:
    global _notifier
    if _notifier is None:
        config = get_config()
        _notifier = NotificationService(
            api_key=config.get("resend_api_key"),
            recipient=config.get("notification_email"),
            sender=config.get("notification_from", "curator@localhost"),
        )
    return _notifier


def get_orchestrator() -> RunOrchestrator:
    """Get or create the orchestrator, with the worker supervisor as launcher."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = RunOrchestrator(
            run_store=get_run_store(),
            config=get_config(),
            quota_ledger=get_quota_ledger(),
            library=get_video_library(),
            notifier=get_notifier(),
        )
        _orchestrator.launcher = get_supervisor().launch
    return _orchestrator


def get_supervisor() -> WorkerSupervisor:
    global _supervisor
    if _supervisor is None:
        _supervisor = WorkerSupervisor(
            config=get_config(),
            on_finished=lambda *args, **kwargs: get_orchestrator().complete(*args, **kwargs),
            progress_feed=get_progress_feed(),
        )
    return _supervisor


def get_scheduler() -> CurationScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = CurationScheduler(get_orchestrator(), get_config())
    return _scheduler
