"""Paginated listing from an external connector service."""

from __future__ import annotations

from typing import AsyncIterator

import httpx

from knowledge_sync.connectors.base import RawDocument
from knowledge_sync.core.errors import ListingFetchError
from knowledge_sync.core.logging import connection_context, get_logger

logger = get_logger(__name__)


class HttpListingSource:
    """Follows ``cursor`` links of ``GET {base}/connections/{id}/documents``.

    Each page is ``{"documents": [...], "cursor": "<next>" | null}``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        page_size: int = 100,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.page_size = page_size
        self._transport = transport

    async def iter_documents(self, connection_id: str, limit: int) -> AsyncIterator[RawDocument]:
        url = f"{self.base_url}/connections/{connection_id}/documents"
        yielded = 0
        cursor: str | None = None
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            while yielded < limit:
                params: dict[str, str | int] = {"limit": min(self.page_size, limit - yielded)}
                if cursor:
                    params["cursor"] = cursor
                page = await self._fetch_page(client, url, params)
                for payload in page.get("documents") or []:
                    yield RawDocument.from_payload(payload)
                    yielded += 1
                    if yielded >= limit:
                        break
                cursor = page.get("cursor")
                if not cursor:
                    break
        logger.debug("Fetched %s listing entries", yielded, extra=connection_context(connection_id))

    async def _fetch_page(self, client: httpx.AsyncClient, url: str, params: dict[str, str | int]) -> dict:
        try:
            response = await client.get(url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise ListingFetchError(f"Listing request failed ({exc.response.status_code})") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ListingFetchError(f"Listing request failed: {exc}") from exc
        if not isinstance(payload, dict):
            raise ListingFetchError("Listing response is not an object")
        return payload


__all__ = ["HttpListingSource"]
