"""Test fixtures for Knowledge Sync."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import AsyncIterator, Iterable, Sequence

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from knowledge_sync.connectors.base import RawDocument  # noqa: E402
from knowledge_sync.core.errors import ListingFetchError, PersistenceError  # noqa: E402
from knowledge_sync.models.entities import DocumentNode  # noqa: E402


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("KSYNC_DB_PATH", str(tmp_path / "ks.db"))
    monkeypatch.setenv("KSYNC_CONNECTOR_ROOT", str(tmp_path / "sources"))
    monkeypatch.delenv("KSYNC_CONFIG", raising=False)
    monkeypatch.delenv("KSYNC_CONNECTOR", raising=False)

    from knowledge_sync.api import dependencies as deps

    deps.reset_state()
    yield
    deps.reset_state()


def node(
    document_id: str,
    parent_id: str | None = None,
    folder: bool = False,
    subscribed: bool = False,
    title: str | None = None,
) -> DocumentNode:
    return DocumentNode(
        id=document_id,
        parent_id=parent_id,
        title=title or document_id,
        can_have_children=folder,
        is_subscribed=subscribed,
    )


@pytest.fixture
def sample_nodes() -> list[DocumentNode]:
    """root: F/ (A, G/ (B)), Notes/ (), readme."""
    return [
        node("F", folder=True, title="Finance"),
        node("Notes", folder=True, title="Notes"),
        node("readme", title="README.md"),
        node("A", "F", title="Budget 2024.xlsx"),
        node("G", "F", folder=True, title="Grants"),
        node("B", "G", title="grant-report.pdf"),
    ]


class FakeListingSource:
    """Yields prepared descriptors, optionally failing after ``fail_after`` items."""

    def __init__(
        self,
        documents: Iterable[RawDocument] = (),
        fail_after: int | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.documents = list(documents)
        self.fail_after = fail_after
        self.gate = gate
        self.calls: list[tuple[str, int]] = []

    async def iter_documents(self, connection_id: str, limit: int) -> AsyncIterator[RawDocument]:
        self.calls.append((connection_id, limit))
        if self.gate is not None:
            await self.gate.wait()
        for index, document in enumerate(self.documents[:limit]):
            if self.fail_after is not None and index >= self.fail_after:
                raise ListingFetchError("connector went away")
            yield document


def raw_documents(count: int, folders: int = 0) -> list[RawDocument]:
    docs = [RawDocument(id=f"dir{i}", parent_id=None, title=f"Folder {i}", can_have_children=True) for i in range(folders)]
    docs.extend(
        RawDocument(
            id=f"doc{i}",
            parent_id=f"dir{i % folders}" if folders else None,
            title=f"Document {i}",
            can_have_children=False,
        )
        for i in range(count - folders)
    )
    return docs


class RecordingBackend:
    """Subscription backend that records calls and can be told to fail."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[str, list[str], bool]] = []
        self.observed_states: list[dict[str, bool]] = []
        self.store = None

    async def persist(self, connection_id: str, document_ids: Sequence[str], is_subscribed: bool) -> None:
        self.calls.append((connection_id, list(document_ids), is_subscribed))
        if self.store is not None:
            self.observed_states.append(self.store.subscription_snapshot())
        if self.fail:
            raise PersistenceError("server responded 500")
