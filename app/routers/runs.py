"""
Real-time progress channel for generation runs.

Readers authenticate with the run's public token, passed either as the
``X-Run-Token`` header or the ``token`` query parameter.

Route summary
-------------
GET /api/runs/{run_id}         — latest snapshot
GET /api/runs/{run_id}/stream  — Server-Sent Events until the run finishes
"""
import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse

from app.config import settings
from app.models.schemas import RunStatusResponse
from app.services.run_manager import RunStatus, run_manager

logger = logging.getLogger(__name__)

router = APIRouter()


def _authorized_run(run_id: str, header_token: Optional[str], query_token: Optional[str]) -> RunStatus:
    try:
        run_status = run_manager.authorize(run_id, header_token or query_token)
    except PermissionError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing run access token.",
        )
    if run_status is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Run {run_id} not found.",
        )
    return run_status


@router.get("/{run_id}", response_model=RunStatusResponse)
async def get_run_status(
    run_id: str,
    x_run_token: Optional[str] = Header(None, alias="X-Run-Token"),
    token: Optional[str] = Query(None),
) -> RunStatusResponse:
    """Return the latest published snapshot of a run."""
    run_status = _authorized_run(run_id, x_run_token, token)
    return RunStatusResponse(**run_status.snapshot())


@router.get("/{run_id}/stream")
async def stream_run_status(
    run_id: str,
    request: Request,
    x_run_token: Optional[str] = Header(None, alias="X-Run-Token"),
    token: Optional[str] = Query(None),
) -> StreamingResponse:
    """
    Stream snapshots as Server-Sent Events.

    A ``data:`` event is sent whenever the snapshot changes, a keep-alive
    comment otherwise.  The stream closes after the terminal snapshot.
    """
    run_status = _authorized_run(run_id, x_run_token, token)

    async def event_stream():
        last_version = -1
        while True:
            if run_status.version != last_version:
                last_version = run_status.version
                yield f"data: {json.dumps(run_status.snapshot())}\n\n"
            else:
                yield ": keep-alive\n\n"
            if run_status.is_finished:
                break
            if await request.is_disconnected():
                logger.info("stream_run_status: client left run %s", run_id)
                break
            await asyncio.sleep(settings.STREAM_POLL_INTERVAL)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
