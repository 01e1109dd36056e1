"""Async client for a running Knowledge Sync API."""

from __future__ import annotations

from typing import Any, Sequence

import httpx

from knowledge_sync.core.errors import KnowledgeSyncError, ListingFetchError, PersistenceError
from knowledge_sync.models.dto import DocumentsResponse, SyncStatusResponse
from knowledge_sync.models.entities import DocumentNode, SyncJob


class RemoteKnowledgeClient:
    """Talks to the documents, subscribe and sync endpoints.

    ``persist`` makes this usable as a ``SubscriptionBackend``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    async def __aenter__(self) -> "RemoteKnowledgeClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_documents(self, connection_id: str) -> tuple[list[DocumentNode], bool]:
        try:
            response = await self._client.get(f"/connections/{connection_id}/documents")
            response.raise_for_status()
            payload = DocumentsResponse.model_validate(response.json())
        except httpx.HTTPStatusError as exc:
            raise ListingFetchError(f"Failed to fetch documents ({exc.response.status_code})") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ListingFetchError(f"Failed to fetch documents: {exc}") from exc
        return [document.to_node() for document in payload.documents], payload.is_truncated

    async def persist(self, connection_id: str, document_ids: Sequence[str], is_subscribed: bool) -> None:
        body = {"documentIds": list(document_ids), "isSubscribed": is_subscribed}
        try:
            response = await self._client.patch(f"/connections/{connection_id}/documents/subscribe", json=body)
        except httpx.HTTPError as exc:
            raise PersistenceError(str(exc) or type(exc).__name__) from exc
        if response.is_error:
            raise PersistenceError(f"server responded {response.status_code}")

    async def sync_status(self, connection_id: str) -> SyncStatusResponse | None:
        response = await self._send("GET", f"/connections/{connection_id}/sync", allow_missing=True)
        if response is None:
            return None
        return SyncStatusResponse.model_validate(response.json())

    async def resync(self, connection_id: str) -> SyncStatusResponse:
        response = await self._send("POST", f"/connections/{connection_id}/resync")
        return SyncStatusResponse.model_validate(response.json())

    async def _send(self, method: str, path: str, allow_missing: bool = False, **kwargs: Any) -> httpx.Response | None:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise KnowledgeSyncError(f"{method} {path} failed: {exc}") from exc
        if allow_missing and response.status_code == 404:
            return None
        if response.is_error:
            raise KnowledgeSyncError(f"{method} {path} failed ({response.status_code})")
        return response


def job_from_status(status: SyncStatusResponse) -> SyncJob:
    return SyncJob(
        connection_id=status.connection_id,
        integration_id=status.integration_id,
        integration_name=status.integration_name,
        integration_logo=status.integration_logo,
        status=status.status,
        sync_started_at=status.sync_started_at,
        sync_completed_at=status.sync_completed_at,
        sync_error=status.sync_error,
        is_truncated=status.is_truncated,
    )


__all__ = ["RemoteKnowledgeClient", "job_from_status"]
