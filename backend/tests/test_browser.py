"""Tests for the interactive picker and its HTTP client."""

from __future__ import annotations

import json

import httpx
import pytest
import pytest_asyncio

from knowledge_sync.cli.browser import DocumentBrowser
from knowledge_sync.client.http import RemoteKnowledgeClient
from knowledge_sync.tree.presentation import Presentation


class FakeServer:
    """Just enough of the Knowledge Sync API for the picker."""

    def __init__(self) -> None:
        self.documents = [
            {"id": "F", "parentId": None, "title": "Finance", "canHaveChildren": True, "isSubscribed": False},
            {"id": "readme", "parentId": None, "title": "README.md", "canHaveChildren": False, "isSubscribed": False},
            {"id": "A", "parentId": "F", "title": "Budget.xlsx", "canHaveChildren": False, "isSubscribed": False},
        ]
        self.status = "completed"
        self.sync_error: str | None = None
        self.fail_documents = False
        self.fail_subscribe = False
        self.fail_resync = False
        self.patches: list[dict] = []

    def _status(self) -> dict:
        return {
            "connectionId": "conn-1",
            "integrationId": "gdrive",
            "integrationName": "Google Drive",
            "status": self.status,
            "isTruncated": False,
            "syncError": self.sync_error,
            "documentsReceived": len(self.documents),
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/connections/conn-1/sync":
            return httpx.Response(200, json=self._status())
        if path == "/connections/conn-1/documents":
            if self.fail_documents:
                return httpx.Response(500, json={"detail": "boom"})
            return httpx.Response(200, json={"documents": self.documents, "isTruncated": False})
        if path == "/connections/conn-1/documents/subscribe":
            body = json.loads(request.content)
            self.patches.append(body)
            if self.fail_subscribe:
                return httpx.Response(500, json={"detail": "boom"})
            return httpx.Response(200, json={"updated": len(body["documentIds"])})
        if path == "/connections/conn-1/resync":
            if self.fail_resync:
                return httpx.Response(500, json={"detail": "boom"})
            self.documents = []
            self.status = "in_progress"
            self.sync_error = None
            return httpx.Response(202, json=self._status())
        return httpx.Response(404, json={"detail": "Connection not found"})


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest_asyncio.fixture
async def browser(server: FakeServer):
    client = RemoteKnowledgeClient("http://ksync.test", transport=httpx.MockTransport(server.handler))
    async with client:
        picker = DocumentBrowser("conn-1", client, document_cap=50)
        await picker.refresh()
        yield picker


@pytest.mark.asyncio
async def test_refresh_renders_root_listing(browser: DocumentBrowser) -> None:
    lines = browser.render()
    assert lines[0] == "== Google Drive =="
    assert lines[1:] == ["  1 [ ] Finance/", "  2 [ ] README.md"]


@pytest.mark.asyncio
async def test_open_folder_shows_breadcrumbs(browser: DocumentBrowser) -> None:
    await browser.handle("open 1")
    assert browser.render()[1:] == ["Root > Finance", "  1 [ ] Budget.xlsx"]

    await browser.handle("up")
    assert browser.session.navigator.cursor is None

    await browser.handle("open readme")
    assert browser.render()[-1].startswith("! open:")


@pytest.mark.asyncio
async def test_search_lists_matches_from_everywhere(browser: DocumentBrowser) -> None:
    await browser.handle("search budget")
    assert browser.render()[1:] == ["Search: budget", "  1 [ ] Budget.xlsx"]
    await browser.handle("search zzz")
    assert browser.render()[-1] == "No items found"


@pytest.mark.asyncio
async def test_toggle_persists_folder_subtree(browser: DocumentBrowser, server: FakeServer) -> None:
    await browser.handle("toggle F")
    assert server.patches == [{"documentIds": ["F", "A"], "isSubscribed": True}]
    assert browser.render()[1] == "  1 [x] Finance/"


@pytest.mark.asyncio
async def test_failed_toggle_rolls_back_and_notifies(browser: DocumentBrowser, server: FakeServer) -> None:
    server.fail_subscribe = True
    await browser.handle("toggle 2")
    lines = browser.render()
    assert "  2 [ ] README.md" in lines
    assert lines[-1] == "! Failed to update subscription: server responded 500"


@pytest.mark.asyncio
async def test_fetch_error_keeps_previous_tree(browser: DocumentBrowser, server: FakeServer) -> None:
    server.fail_documents = True
    await browser.handle("refresh")
    assert browser.session.fetch_error is not None
    assert len(browser.session.store) == 3
    assert browser.session.presentation() is Presentation.BROWSING

    server.fail_documents = False
    await browser.handle("retry")
    assert browser.session.fetch_error is None


@pytest.mark.asyncio
async def test_resync_clears_tree_and_shows_syncing(browser: DocumentBrowser) -> None:
    await browser.handle("open F")
    await browser.handle("resync")
    assert len(browser.session.store) == 0
    assert browser.session.navigator.cursor is None
    assert browser.render()[1:] == ["[Syncing...]", "Syncing documents..."]
    assert browser.session.accepts_subscriptions() is False



@pytest.mark.asyncio
async def test_failed_resync_keeps_tree_and_notifies(browser: DocumentBrowser, server: FakeServer) -> None:
    server.fail_resync = True
    await browser.handle("open F")
    await browser.handle("resync")
    assert len(browser.session.store) == 3
    assert browser.session.navigator.cursor == "F"
    assert browser.render()[-1] == "! POST /connections/conn-1/resync failed (500)"


@pytest.mark.asyncio
async def test_resync_clears_a_previous_fetch_error(browser: DocumentBrowser, server: FakeServer) -> None:
    server.fail_documents = True
    await browser.handle("refresh")
    assert browser.session.fetch_error is not None

    await browser.handle("resync")
    assert browser.session.fetch_error is None
    assert browser.session.presentation() is Presentation.SYNCING

@pytest.mark.asyncio
async def test_sync_error_is_shown(server: FakeServer) -> None:
    server.documents = []
    server.status = "failed"
    server.sync_error = "token expired"
    async with RemoteKnowledgeClient("http://ksync.test", transport=httpx.MockTransport(server.handler)) as client:
        picker = DocumentBrowser("conn-1", client)
        await picker.refresh()
        assert picker.render()[1:] == ["An error occurred during the last sync", '"token expired" (type \'resync\')']


@pytest.mark.asyncio
async def test_quit_and_unknown_commands(browser: DocumentBrowser) -> None:
    assert await browser.handle("") is True
    assert await browser.handle("dance") is True
    assert browser.render()[-1].startswith("! Unknown command")
    assert await browser.handle("quit") is False
