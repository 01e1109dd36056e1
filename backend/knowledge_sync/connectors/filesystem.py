"""Local directory tree exposed as a listing source."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import AsyncIterator

from knowledge_sync.connectors.base import RawDocument
from knowledge_sync.core.errors import ListingFetchError
from knowledge_sync.core.logging import get_logger
from knowledge_sync.utils.hashing import stable_id

logger = get_logger(__name__)


class FilesystemListingSource:
    """Lists ``root/<connection_id>`` breadth-first; hidden entries are skipped.

    Ids are derived from the path relative to the connection directory, so
    a resync of an unchanged directory produces the same ids.
    """

    def __init__(self, root: Path) -> None:
        self.root = root.expanduser()

    def connection_root(self, connection_id: str) -> Path:
        return self.root / connection_id

    async def iter_documents(self, connection_id: str, limit: int) -> AsyncIterator[RawDocument]:
        base = self.connection_root(connection_id)
        documents = await asyncio.to_thread(self._scan, base, limit)
        logger.info("Listed %s entries under %s", len(documents), base)
        for document in documents:
            yield document

    def _scan(self, base: Path, limit: int) -> list[RawDocument]:
        if not base.is_dir():
            raise ListingFetchError(f"Connection folder not found: {base}")
        documents: list[RawDocument] = []
        queue: list[tuple[Path, str | None]] = [(base, None)]
        while queue and len(documents) < limit:
            directory, parent_id = queue.pop(0)
            try:
                entries = sorted(os.scandir(directory), key=lambda entry: (not entry.is_dir(), entry.name.lower()))
            except OSError as exc:
                raise ListingFetchError(f"Cannot read {directory}: {exc}") from exc
            for entry in entries:
                if entry.name.startswith("."):
                    continue
                path = Path(entry.path)
                is_dir = entry.is_dir()
                document = RawDocument(
                    id=stable_id(path.relative_to(base).as_posix(), prefix="fs"),
                    parent_id=parent_id,
                    title=entry.name,
                    can_have_children=is_dir,
                )
                documents.append(document)
                if len(documents) >= limit:
                    break
                if is_dir:
                    queue.append((path, document.id))
        return documents


__all__ = ["FilesystemListingSource"]
