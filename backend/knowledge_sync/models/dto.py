"""Pydantic DTOs exposed via API (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from knowledge_sync.models.entities import DocumentNode, SyncJob, SyncStatus
from knowledge_sync.sync.types import ConnectionInfo
from knowledge_sync.tree.navigation import ProjectedView
from knowledge_sync.tree.presentation import Presentation


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DocumentResponse(CamelModel):
    id: str
    parent_id: str | None = None
    title: str
    can_have_children: bool = False
    is_subscribed: bool = False
    storage_key: str | None = None

    @classmethod
    def from_node(cls, node: DocumentNode) -> "DocumentResponse":
        return cls(
            id=node.id,
            parent_id=node.parent_id,
            title=node.title,
            can_have_children=node.can_have_children,
            is_subscribed=node.is_subscribed,
            storage_key=node.storage_key,
        )

    def to_node(self) -> DocumentNode:
        return DocumentNode(
            id=self.id,
            parent_id=self.parent_id,
            title=self.title,
            can_have_children=self.can_have_children,
            is_subscribed=self.is_subscribed,
            storage_key=self.storage_key,
        )


class DocumentsResponse(CamelModel):
    documents: list[DocumentResponse]
    is_truncated: bool = False


class SubscribeRequest(CamelModel):
    document_ids: list[str] = Field(min_length=1)
    is_subscribed: bool


class SubscribeResponse(CamelModel):
    updated: int


class SyncStartRequest(CamelModel):
    integration_id: str
    integration_name: str
    integration_logo: str | None = None

    def to_info(self, connection_id: str) -> ConnectionInfo:
        return ConnectionInfo(
            connection_id=connection_id,
            integration_id=self.integration_id,
            integration_name=self.integration_name,
            integration_logo=self.integration_logo,
        )


class SyncStatusResponse(CamelModel):
    connection_id: str
    integration_id: str
    integration_name: str
    integration_logo: str | None = None
    status: SyncStatus
    is_truncated: bool = False
    sync_error: str | None = None
    documents_received: int = 0
    sync_started_at: datetime | None = None
    sync_completed_at: datetime | None = None

    @classmethod
    def from_job(cls, job: SyncJob, documents_received: int) -> "SyncStatusResponse":
        return cls(
            connection_id=job.connection_id,
            integration_id=job.integration_id,
            integration_name=job.integration_name,
            integration_logo=job.integration_logo,
            status=job.status,
            is_truncated=job.is_truncated,
            sync_error=job.sync_error,
            documents_received=documents_received,
            sync_started_at=job.sync_started_at,
            sync_completed_at=job.sync_completed_at,
        )


class BreadcrumbResponse(CamelModel):
    id: str
    title: str


class BrowseResponse(CamelModel):
    connection_id: str
    presentation: Presentation
    folder_id: str | None = None
    search: str = ""
    folders: list[DocumentResponse]
    files: list[DocumentResponse]
    breadcrumbs: list[BreadcrumbResponse]
    badge: str | None = None
    truncation_notice: str | None = None
    accepts_subscriptions: bool = True

    @classmethod
    def build(cls, connection_id: str, presentation: Presentation, view: ProjectedView, **extra) -> "BrowseResponse":
        return cls(
            connection_id=connection_id,
            presentation=presentation,
            folder_id=view.cursor,
            search=view.search,
            folders=[DocumentResponse.from_node(node) for node in view.folders],
            files=[DocumentResponse.from_node(node) for node in view.files],
            breadcrumbs=[BreadcrumbResponse(id=crumb.id, title=crumb.title) for crumb in view.breadcrumbs],
            **extra,
        )


class ToggleResponse(CamelModel):
    status: str
    document_ids: list[str]
    is_subscribed: bool | None = None
    message: str | None = None


class DisconnectResponse(CamelModel):
    status: str
    connection_id: str


__all__ = [
    "BreadcrumbResponse",
    "BrowseResponse",
    "DisconnectResponse",
    "DocumentResponse",
    "DocumentsResponse",
    "SubscribeRequest",
    "SubscribeResponse",
    "SyncStartRequest",
    "SyncStatusResponse",
    "ToggleResponse",
]
