"""Application-level exception types.

Convention:
- Errors raised by the persistence, listing and sync boundaries derive from
  ``KnowledgeSyncError`` and are caught by the component that issued the
  call. The propagator turns ``PersistenceError`` into a rollback, the
  orchestrator turns listing failures into ``sync_error``, routes turn the
  rest into ``HTTPException``.
- ``ValueError`` stays reserved for malformed input.
"""

from __future__ import annotations

from typing import Sequence


class KnowledgeSyncError(Exception):
    """Base class for recoverable domain failures."""


class ConnectionNotFoundError(KnowledgeSyncError):
    """No sync job exists for the requested connection."""

    def __init__(self, connection_id: str) -> None:
        super().__init__(f"Unknown connection: {connection_id}")
        self.connection_id = connection_id


class UnknownDocumentsError(KnowledgeSyncError):
    """A subscription batch referenced ids that are not in the tree."""

    def __init__(self, connection_id: str, document_ids: Sequence[str]) -> None:
        super().__init__(f"{len(document_ids)} unknown document(s) for connection {connection_id}")
        self.connection_id = connection_id
        self.document_ids = list(document_ids)


class PersistenceError(KnowledgeSyncError):
    """The subscription persistence boundary rejected or failed a batch."""


class ListingFetchError(KnowledgeSyncError):
    """A listing source or the documents endpoint could not be read."""


__all__ = [
    "KnowledgeSyncError",
    "ConnectionNotFoundError",
    "UnknownDocumentsError",
    "PersistenceError",
    "ListingFetchError",
]
