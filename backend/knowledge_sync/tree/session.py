"""Per-connection browsing state."""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Callable, Iterable

from knowledge_sync.models.entities import DocumentNode, SyncJob, SyncStatus
from knowledge_sync.tree.navigation import Navigator
from knowledge_sync.tree.presentation import (
    Presentation,
    accepts_subscriptions,
    choose_presentation,
)
from knowledge_sync.tree.store import TreeStore

MAX_NOTIFICATIONS = 50


@dataclass(frozen=True, slots=True)
class Notification:
    level: str
    message: str


class ConnectionSession:
    """Everything one connection's view and engine share.

    Each session owns its store, so several connections can be browsed at
    once without touching each other.
    """

    def __init__(self, connection_id: str, nodes: Iterable[DocumentNode] = (), job: SyncJob | None = None) -> None:
        self.connection_id = connection_id
        self.store = TreeStore(nodes)
        self.navigator = Navigator(self.store)
        self.job = job
        self.loading = False
        self.fetch_error: str | None = None
        self.notifications: deque[Notification] = deque(maxlen=MAX_NOTIFICATIONS)
        self.toggle_lock = asyncio.Lock()

    @property
    def status(self) -> SyncStatus | None:
        return self.job.status if self.job is not None else None

    def notify(self, message: str, level: str = "error") -> None:
        self.notifications.append(Notification(level=level, message=message))

    def drain_notifications(self) -> list[Notification]:
        drained = list(self.notifications)
        self.notifications.clear()
        return drained

    def accepts_subscriptions(self) -> bool:
        return accepts_subscriptions(len(self.store), self.status)

    def presentation(self) -> Presentation:
        return choose_presentation(
            len(self.store),
            self.status,
            loading=self.loading,
            fetch_error=self.fetch_error,
            sync_error=self.job.sync_error if self.job is not None else None,
        )


SessionLoader = Callable[[str], ConnectionSession]


class SessionRegistry:
    """Sessions keyed by connection id, created on first use."""

    def __init__(self, loader: SessionLoader | None = None) -> None:
        self._sessions: dict[str, ConnectionSession] = {}
        self._loader = loader or ConnectionSession

    def get(self, connection_id: str) -> ConnectionSession:
        session = self._sessions.get(connection_id)
        if session is None:
            session = self._loader(connection_id)
            self._sessions[connection_id] = session
        return session

    def find(self, connection_id: str) -> ConnectionSession | None:
        """Session of a connection that has a sync job, else None.

        Unlike ``get`` nothing is cached for unknown connections.
        """
        session = self._sessions.get(connection_id)
        if session is None:
            session = self._loader(connection_id)
            if session.job is None:
                return None
            self._sessions[connection_id] = session
        return session if session.job is not None else None

    def peek(self, connection_id: str) -> ConnectionSession | None:
        return self._sessions.get(connection_id)

    def discard(self, connection_id: str) -> None:
        self._sessions.pop(connection_id, None)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


__all__ = ["ConnectionSession", "Notification", "SessionRegistry"]
