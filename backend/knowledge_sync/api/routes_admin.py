"""Administrative routes for Knowledge Sync."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from knowledge_sync.api.dependencies import get_repository
from knowledge_sync.core.metrics import metrics_response
from knowledge_sync.db.repository import KnowledgeRepository
from knowledge_sync.models.dto import SyncStatusResponse

router = APIRouter()


@router.get("/knowledge", response_model=list[SyncStatusResponse], summary="List connected sources")
async def list_knowledge(
    integration_id: str | None = Query(default=None, description="Only sources of this integration"),
    repository: KnowledgeRepository = Depends(get_repository),
) -> list[SyncStatusResponse]:
    return [
        SyncStatusResponse.from_job(job, repository.document_count(job.connection_id))
        for job in repository.list_jobs(integration_id)
    ]


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


__all__ = ["router"]
