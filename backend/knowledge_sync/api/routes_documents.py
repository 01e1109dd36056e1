"""Document listing, browsing and subscription routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from knowledge_sync.api.dependencies import (
    get_app_settings,
    get_propagator,
    get_repository,
    get_sessions,
)
from knowledge_sync.core.config import Settings
from knowledge_sync.core.errors import UnknownDocumentsError
from knowledge_sync.db.repository import KnowledgeRepository
from knowledge_sync.models.dto import (
    BrowseResponse,
    DocumentResponse,
    DocumentsResponse,
    SubscribeRequest,
    SubscribeResponse,
    ToggleResponse,
)
from knowledge_sync.tree.navigation import project
from knowledge_sync.tree.presentation import syncing_badge, truncation_notice
from knowledge_sync.tree.session import ConnectionSession, SessionRegistry
from knowledge_sync.tree.subscription import SubscriptionPropagator, ToggleStatus

router = APIRouter()

_TOGGLE_ERRORS = {
    ToggleStatus.NOT_FOUND: 404,
    ToggleStatus.READ_ONLY: 409,
    ToggleStatus.REVERTED: 502,
}


def _known_session(connection_id: str, sessions: SessionRegistry) -> ConnectionSession:
    session = sessions.find(connection_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Connection not found")
    return session


@router.get("/{connection_id}/documents", response_model=DocumentsResponse, summary="All documents of a connection")
async def list_documents(
    connection_id: str,
    sessions: SessionRegistry = Depends(get_sessions),
) -> DocumentsResponse:
    session = _known_session(connection_id, sessions)
    return DocumentsResponse(
        documents=[DocumentResponse.from_node(node) for node in session.store],
        is_truncated=session.job.is_truncated,
    )


@router.patch(
    "/{connection_id}/documents/subscribe",
    response_model=SubscribeResponse,
    summary="Set the subscription flag on a batch of documents",
)
async def subscribe_documents(
    connection_id: str,
    request: SubscribeRequest,
    sessions: SessionRegistry = Depends(get_sessions),
    repository: KnowledgeRepository = Depends(get_repository),
) -> SubscribeResponse:
    session = _known_session(connection_id, sessions)
    try:
        updated = repository.set_subscribed(connection_id, request.document_ids, request.is_subscribed)
    except UnknownDocumentsError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    session.store.set_subscribed(request.document_ids, request.is_subscribed)
    return SubscribeResponse(updated=updated)


@router.get("/{connection_id}/browse", response_model=BrowseResponse, summary="Folder view or search results")
async def browse(
    connection_id: str,
    folder: str | None = Query(default=None, description="Folder to list; root when omitted"),
    search: str = Query(default="", description="Case-insensitive title search across the tree"),
    sessions: SessionRegistry = Depends(get_sessions),
    settings: Settings = Depends(get_app_settings),
) -> BrowseResponse:
    session = _known_session(connection_id, sessions)
    if folder is not None:
        node = session.store.get(folder)
        if node is None or not node.can_have_children:
            raise HTTPException(status_code=404, detail="Folder not found")
    view = project(session.store, folder, search)
    return BrowseResponse.build(
        connection_id,
        session.presentation(),
        view,
        badge=syncing_badge(len(session.store), session.status),
        truncation_notice=truncation_notice(session.job.is_truncated, settings.document_cap),
        accepts_subscriptions=session.accepts_subscriptions(),
    )


@router.post(
    "/{connection_id}/documents/{document_id}/toggle",
    response_model=ToggleResponse,
    summary="Toggle a document and everything below it",
)
async def toggle_document(
    connection_id: str,
    document_id: str,
    sessions: SessionRegistry = Depends(get_sessions),
    propagator: SubscriptionPropagator = Depends(get_propagator),
) -> ToggleResponse:
    session = _known_session(connection_id, sessions)
    outcome = await propagator.toggle(session, document_id)
    session.drain_notifications()
    if not outcome.ok:
        raise HTTPException(status_code=_TOGGLE_ERRORS[outcome.status], detail=outcome.message)
    return ToggleResponse(
        status=outcome.status.value,
        document_ids=outcome.document_ids,
        is_subscribed=outcome.is_subscribed,
    )


__all__ = ["router"]
