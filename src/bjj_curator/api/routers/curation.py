"""Curation run routes: start, status, progress, history and stats."""

import logging
from datetime import timedelta
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect

from bjj_curator.api.dependencies import (
    get_exhaustion_tracker,
    get_orchestrator,
    get_progress_feed,
    get_quota_ledger,
    get_run_store,
    get_video_library,
    get_ws_manager,
)
from bjj_curator.api.schemas import (
    EligibilityResponse,
    ExhaustionResponse,
    MessageResponse,
    ProgressResponse,
    RunListResponse,
    RunResponse,
    StartRunRequest,
    StartRunResponse,
    StatsResponse,
)
from bjj_curator.models.curation_run import RunStatus, RunType
from bjj_curator.services.errors import RunNotEligibleError
from bjj_curator.utils.database import utc_now

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Curation"])


@router.post(
    "/api/curation/runs",
    response_model=StartRunResponse,
    status_code=202,
    summary="Start a curation run",
    description="Starts a run in a background worker. Returns 409 if a run may not start now.",
    responses={202: {"description": "Run accepted"}, 409: {"description": "Run not eligible"}},
)
async def start_run(request: Optional[StartRunRequest] = None) -> dict[str, Any]:
    run_type = request.run_type if request else RunType.MANUAL
    try:
        run_id = await get_orchestrator().start(run_type)
    except RunNotEligibleError as e:
        raise HTTPException(status_code=409, detail=e.reason)
    return {"run_id": run_id, "status": RunStatus.RUNNING.value}


@router.get(
    "/api/curation/runs",
    response_model=RunListResponse,
    summary="Run history",
    description="Lists runs newest first, optionally filtered by status and type.",
)
async def list_runs(
    limit: int = Query(20, ge=1, le=100),
    status: Optional[RunStatus] = None,
    run_type: Optional[RunType] = None,
) -> dict[str, Any]:
    runs = await get_run_store().list_runs(limit=limit, status=status, run_type=run_type)
    return {"runs": [run.to_dict() for run in runs], "total": len(runs)}


@router.get(
    "/api/curation/runs/{run_id}",
    response_model=RunResponse,
    summary="Run status",
    responses={404: {"description": "Run not found"}},
)
async def get_run(run_id: str) -> dict[str, Any]:
    run = await get_run_store().get_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return run.to_dict()


@router.get(
    "/api/curation/runs/{run_id}/progress",
    response_model=ProgressResponse,
    summary="Buffered run progress",
    description="Progress messages received from the worker so far (bounded history).",
    responses={404: {"description": "Run not found"}},
)
async def get_run_progress(run_id: str) -> dict[str, Any]:
    run = await get_run_store().get_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return {
        "run_id": run_id,
        "status": run.status.value,
        "messages": get_progress_feed().history(run_id),
    }


@router.get(
    "/api/curation/eligibility",
    response_model=EligibilityResponse,
    summary="Can a run start now",
)
async def get_eligibility(run_type: RunType = RunType.MANUAL) -> dict[str, Any]:
    eligibility = await get_orchestrator().can_start(run_type)
    return eligibility.to_dict()


@router.get(
    "/api/curation/stats",
    response_model=StatsResponse,
    summary="Curation statistics",
    description="Run totals, last 24h totals, per-technique library breakdown and today's quota.",
)
async def get_stats() -> dict[str, Any]:
    store = get_run_store()
    library = get_video_library()
    usage = await get_quota_ledger().usage()

    return {
        "runs": await store.aggregate_stats(),
        "last_24h": await store.aggregate_stats(since=utc_now() - timedelta(hours=24)),
        "library_total": await library.count(),
        "techniques": await library.technique_breakdown(),
        "quota": usage.to_dict(),
    }


@router.get(
    "/api/curation/exhaustion",
    response_model=ExhaustionResponse,
    summary="Source exhaustion state",
)
async def list_exhaustion(cooling_only: bool = False) -> dict[str, Any]:
    tracker = get_exhaustion_tracker()
    states = await tracker.list_states(only_cooling=cooling_only)
    cooling = await tracker.cooling_sources()
    return {"sources": [state.to_dict() for state in states], "cooling": len(cooling)}


@router.delete(
    "/api/curation/exhaustion/{source}",
    response_model=MessageResponse,
    summary="Clear a source cooldown",
    responses={404: {"description": "Source not tracked"}},
)
async def clear_exhaustion(source: str) -> dict[str, str]:
    cleared = await get_exhaustion_tracker().clear(source)
    if not cleared:
        raise HTTPException(status_code=404, detail="Source not tracked")
    return {"message": f"Cleared exhaustion state for {source}"}


@router.websocket("/ws/curation/{run_id}")
async def websocket_curation(websocket: WebSocket, run_id: str) -> None:
    """WebSocket endpoint for live run progress.

    Replays buffered history on connect, then streams messages as the
    worker sends them.

    Args:
        websocket: WebSocket connection
        run_id: Run to observe
    """
    run = await get_run_store().get_run(run_id)
    if run is None:
        await websocket.accept()
        await websocket.send_json({"type": "error", "message": "Run not found"})
        await websocket.close()
        return

    ws_manager = get_ws_manager()
    await ws_manager.connect(run_id, websocket)

    try:
        await websocket.send_json({"type": "status", "run": run.to_dict()})
        for message in get_progress_feed().history(run_id):
            await websocket.send_json(message)

        while True:
            try:
                data = await websocket.receive_text()
                if data == "ping":
                    await websocket.send_text("pong")
            except WebSocketDisconnect:
                break

    except Exception as e:
        logger.error(f"WebSocket error for curation run {run_id}: {e}")
    finally:
        ws_manager.disconnect(run_id, websocket)
