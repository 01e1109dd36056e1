"""Tests for listing sources."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from knowledge_sync.connectors.base import RawDocument
from knowledge_sync.connectors.filesystem import FilesystemListingSource
from knowledge_sync.connectors.http import HttpListingSource
from knowledge_sync.core.errors import ListingFetchError
from knowledge_sync.utils.hashing import stable_id


async def _collect(source, connection_id: str, limit: int = 100) -> list[RawDocument]:
    return [item async for item in source.iter_documents(connection_id, limit)]


@pytest.fixture
def source_root(tmp_path: Path) -> Path:
    base = tmp_path / "sources" / "conn-1"
    (base / "alpha").mkdir(parents=True)
    (base / "alpha" / "nested.md").write_text("# nested", encoding="utf-8")
    (base / "beta.txt").write_text("beta", encoding="utf-8")
    (base / ".hidden").write_text("skip me", encoding="utf-8")
    return tmp_path / "sources"


@pytest.mark.asyncio
async def test_filesystem_lists_breadth_first(source_root: Path) -> None:
    documents = await _collect(FilesystemListingSource(source_root), "conn-1")

    assert [doc.title for doc in documents] == ["alpha", "beta.txt", "nested.md"]
    alpha = documents[0]
    assert alpha.can_have_children is True
    assert alpha.parent_id is None
    assert alpha.id == stable_id("alpha", prefix="fs")
    assert documents[2].parent_id == alpha.id


@pytest.mark.asyncio
async def test_filesystem_ids_are_stable_and_limit_applies(source_root: Path) -> None:
    source = FilesystemListingSource(source_root)
    first = await _collect(source, "conn-1")
    second = await _collect(source, "conn-1")
    assert [doc.id for doc in first] == [doc.id for doc in second]
    assert len(await _collect(source, "conn-1", limit=2)) == 2


@pytest.mark.asyncio
async def test_filesystem_missing_connection_folder(tmp_path: Path) -> None:
    with pytest.raises(ListingFetchError):
        await _collect(FilesystemListingSource(tmp_path), "ghost")


def _paged_handler(requests: list[httpx.Request]):
    pages = {
        None: {"documents": [{"id": "F", "title": "Finance", "canHaveChildren": True}], "cursor": "p2"},
        "p2": {"documents": [{"id": "A", "parentId": "F", "title": "a.pdf"}, {"id": "B", "parentId": "F"}], "cursor": None},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=pages[request.url.params.get("cursor")])

    return handler


@pytest.mark.asyncio
async def test_http_follows_cursor_pages() -> None:
    requests: list[httpx.Request] = []
    source = HttpListingSource(
        "http://connector.test/",
        page_size=2,
        transport=httpx.MockTransport(_paged_handler(requests)),
    )
    documents = await _collect(source, "conn-1")

    assert [doc.id for doc in documents] == ["F", "A", "B"]
    assert documents[0].can_have_children is True
    assert documents[1].parent_id == "F"
    assert documents[2].title == "B"
    assert requests[0].url.path == "/connections/conn-1/documents"
    assert requests[1].url.params["cursor"] == "p2"


@pytest.mark.asyncio
async def test_http_stops_at_limit() -> None:
    requests: list[httpx.Request] = []
    source = HttpListingSource("http://connector.test", transport=httpx.MockTransport(_paged_handler(requests)))
    documents = await _collect(source, "conn-1", limit=1)
    assert [doc.id for doc in documents] == ["F"]
    assert len(requests) == 1
    assert requests[0].url.params["limit"] == "1"


@pytest.mark.asyncio
async def test_http_error_becomes_listing_error() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(503, json={"detail": "down"}))
    source = HttpListingSource("http://connector.test", transport=transport)
    with pytest.raises(ListingFetchError, match="503"):
        await _collect(source, "conn-1")


def test_payload_without_id_is_rejected() -> None:
    with pytest.raises(ListingFetchError):
        RawDocument.from_payload({"title": "nameless"})
