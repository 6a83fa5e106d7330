"""FastAPI server for the BJJ curator."""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bjj_curator import __version__
from bjj_curator.api import dependencies
from bjj_curator.api.routers import curation
from bjj_curator.api.schemas import HealthResponse
from bjj_curator.services.reference_data import ReferenceData
from bjj_curator.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the database, clear stuck runs, and start the scheduler."""
    config = dependencies.get_config()
    database = dependencies.get_database()
    await database.connect()

    added_instructors, added_nodes = await ReferenceData(database).seed_defaults()
    if added_instructors or added_nodes:
        logger.info(f"Seeded {added_instructors} instructors and {added_nodes} taxonomy nodes")

    orchestrator = dependencies.get_orchestrator()
    cleared = await orchestrator.reconcile_stale_runs()
    if cleared:
        logger.warning(f"Cleared {len(cleared)} stale runs on startup")

    scheduler = dependencies.get_scheduler()
    if app.state.start_scheduler:
        scheduler.start()

    logger.info(f"BJJ curator API started (db={config['database_path']})")
    try:
        yield
    finally:
        await scheduler.stop()
        await dependencies.get_supervisor().shutdown()
        await orchestrator.wait_for_notifications()
        await database.close()
        logger.info("BJJ curator API stopped")


def create_app(config: Optional[dict] = None, start_scheduler: bool = True) -> FastAPI:
    """Build the API application.

    Args:
        config: Config dict to use instead of the environment
        start_scheduler: Start the scheduled-run loop on startup

    Returns:
        Configured FastAPI app
    """
    if config is not None:
        dependencies.configure(config)
    else:
        config = dependencies.get_config()
        setup_logging(config.get("log_level", "INFO"), config.get("log_json", False))

    app = FastAPI(title="BJJ Curator API", version=__version__, lifespan=lifespan)
    app.state.start_scheduler = start_scheduler

    # CORS middleware for the dashboard dev server
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get(
        "/api/health",
        response_model=HealthResponse,
        summary="Health check",
        description="Returns server health status.",
        tags=["Core"],
    )
    async def health() -> dict[str, str]:
        return {"status": "healthy", "version": __version__}

    app.include_router(curation.router)
    return app


def main() -> None:
    """Run the API with uvicorn (PORT env var, default 8000)."""
    import uvicorn

    config = dependencies.get_config()
    setup_logging(config.get("log_level", "INFO"), config.get("log_json", False))
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(create_app(config), host="0.0.0.0", port=port, log_level="info")


if __name__ == "__main__":
    main()
