"""Subscription persistence boundary."""

from __future__ import annotations

import sqlite3
from typing import Protocol, Sequence

from knowledge_sync.core.errors import PersistenceError, UnknownDocumentsError
from knowledge_sync.db.repository import KnowledgeRepository


class SubscriptionBackend(Protocol):
    """Applies one flag to a batch of ids, all or nothing.

    Implementations raise ``PersistenceError`` for any non-success.
    """

    async def persist(self, connection_id: str, document_ids: Sequence[str], is_subscribed: bool) -> None:
        ...


class RepositorySubscriptionBackend:
    """Persists straight into the local SQLite store."""

    def __init__(self, repository: KnowledgeRepository) -> None:
        self.repository = repository

    async def persist(self, connection_id: str, document_ids: Sequence[str], is_subscribed: bool) -> None:
        try:
            self.repository.set_subscribed(connection_id, document_ids, is_subscribed)
        except (UnknownDocumentsError, sqlite3.Error) as exc:
            raise PersistenceError(str(exc)) from exc


__all__ = ["RepositorySubscriptionBackend", "SubscriptionBackend"]
