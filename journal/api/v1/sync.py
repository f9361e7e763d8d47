"""
Sync API Router

Control surface for the background embedding scheduler.

Endpoints:
    GET  /status — Whether the scheduler is running, and its cadence.
    POST /start  — Start the scheduler (no-op if running).
    POST /stop   — Stop the scheduler (no-op if stopped).
    POST /run    — Run one cycle now; dropped if a cycle is in progress.
"""

from fastapi import APIRouter, Depends

from journal.api.deps import get_resources
from journal.core.resources import Resources
from journal.schemas.chat import SyncReportResponse, SyncStatusResponse

router = APIRouter()


def _status(resources: Resources) -> SyncStatusResponse:
    scheduler = resources.scheduler
    return SyncStatusResponse(
        running=scheduler.is_running,
        interval_seconds=scheduler.interval,
        batch_size=scheduler.batch_size,
    )


@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(resources: Resources = Depends(get_resources)) -> SyncStatusResponse:
    return _status(resources)


@router.post("/start", response_model=SyncStatusResponse)
async def start_sync(resources: Resources = Depends(get_resources)) -> SyncStatusResponse:
    resources.scheduler.start()
    return _status(resources)


@router.post("/stop", response_model=SyncStatusResponse)
async def stop_sync(resources: Resources = Depends(get_resources)) -> SyncStatusResponse:
    resources.scheduler.stop()
    return _status(resources)


@router.post("/run", response_model=SyncReportResponse)
async def run_sync(resources: Resources = Depends(get_resources)) -> SyncReportResponse:
    """
    Run a single sync cycle and report what it did.

    Per-note failures are counted, not raised; ``skipped`` is true when
    another cycle already held the lock.
    """
    report = await resources.scheduler.run_cycle()
    return SyncReportResponse(**report._asdict())
