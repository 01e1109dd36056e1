"""Sync control routes."""

from __future__ import annotations

import asyncio
import contextlib

from fastapi import APIRouter, Depends, HTTPException, Query, status

from knowledge_sync.api.dependencies import get_orchestrator, get_sessions
from knowledge_sync.core.errors import ConnectionNotFoundError
from knowledge_sync.models.dto import DisconnectResponse, SyncStartRequest, SyncStatusResponse
from knowledge_sync.sync.orchestrator import SyncOrchestrator
from knowledge_sync.tree.session import SessionRegistry

router = APIRouter()


def _status_response(connection_id: str, sessions: SessionRegistry) -> SyncStatusResponse:
    session = sessions.find(connection_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Connection not found")
    return SyncStatusResponse.from_job(session.job, len(session.store))


@router.post(
    "/{connection_id}/sync",
    response_model=SyncStatusResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start syncing a connection",
)
async def start_sync(
    connection_id: str,
    request: SyncStartRequest,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    sessions: SessionRegistry = Depends(get_sessions),
) -> SyncStatusResponse:
    await orchestrator.start(request.to_info(connection_id))
    return _status_response(connection_id, sessions)


@router.post(
    "/{connection_id}/resync",
    response_model=SyncStatusResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Discard local documents and sync again",
)
async def resync(
    connection_id: str,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    sessions: SessionRegistry = Depends(get_sessions),
) -> SyncStatusResponse:
    try:
        await orchestrator.resync(connection_id)
    except ConnectionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _status_response(connection_id, sessions)


@router.get("/{connection_id}/sync", response_model=SyncStatusResponse, summary="Current sync status")
async def sync_status(
    connection_id: str,
    sessions: SessionRegistry = Depends(get_sessions),
) -> SyncStatusResponse:
    return _status_response(connection_id, sessions)


@router.get(
    "/{connection_id}/sync/changes",
    response_model=SyncStatusResponse,
    summary="Wait for the next progress update of a running sync",
)
async def sync_changes(
    connection_id: str,
    timeout: float = Query(default=25.0, gt=0, le=120, description="Longest wait in seconds"),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    sessions: SessionRegistry = Depends(get_sessions),
) -> SyncStatusResponse:
    """Long-poll: returns on the next observer update, or the current status
    when nothing is running or ``timeout`` passes."""
    _status_response(connection_id, sessions)
    if orchestrator.is_running(connection_id):
        changed = asyncio.Event()
        detach = orchestrator.attach(connection_id, lambda progress: changed.set())
        try:
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(changed.wait(), timeout)
        finally:
            detach()
    return _status_response(connection_id, sessions)


@router.delete("/{connection_id}", response_model=DisconnectResponse, summary="Disconnect a source")
async def disconnect(
    connection_id: str,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> DisconnectResponse:
    if not await orchestrator.disconnect(connection_id):
        raise HTTPException(status_code=404, detail="Connection not found")
    return DisconnectResponse(status="ok", connection_id=connection_id)


__all__ = ["router"]
