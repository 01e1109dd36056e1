"""Recursive subscription toggling with optimistic apply and rollback."""

from __future__ import annotations

import contextlib
from dataclasses import dataclass, field
from enum import StrEnum
from typing import AsyncIterator, Sequence

from knowledge_sync.core.errors import PersistenceError
from knowledge_sync.core.logging import connection_context, get_logger
from knowledge_sync.core.metrics import SUBSCRIPTION_TOGGLES
from knowledge_sync.models.entities import DocumentNode
from knowledge_sync.tree.persistence import SubscriptionBackend
from knowledge_sync.tree.session import ConnectionSession
from knowledge_sync.tree.store import TreeStore

logger = get_logger(__name__)


class ToggleStatus(StrEnum):
    APPLIED = "applied"
    REVERTED = "reverted"
    NOT_FOUND = "not_found"
    READ_ONLY = "read_only"


@dataclass(slots=True)
class ToggleOutcome:
    status: ToggleStatus
    document_id: str
    document_ids: list[str] = field(default_factory=list)
    is_subscribed: bool | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is ToggleStatus.APPLIED


def affected_ids(store: TreeStore, node: DocumentNode) -> list[str]:
    """The toggled node followed by all of its descendants if it is a folder."""
    if not node.can_have_children:
        return [node.id]
    return [node.id, *store.descendant_ids(node.id)]


class OptimisticUpdate:
    """Two-phase local change: ``begin`` snapshots and applies, then either
    ``commit`` keeps it or ``revert`` restores the snapshot exactly.
    Only the toggled ids are snapshotted, so a revert never touches nodes
    another toggle changed in the meantime.

    A revert after the store was bulk-replaced is dropped, since the
    snapshot belongs to a tree that no longer exists.
    """

    def __init__(self, store: TreeStore, document_ids: Sequence[str], is_subscribed: bool) -> None:
        self.store = store
        self.document_ids = list(document_ids)
        self.is_subscribed = is_subscribed
        self.snapshot: dict[str, bool] = {}
        self.generation: int | None = None
        self.state = "pending"

    def begin(self) -> "OptimisticUpdate":
        if self.state != "pending":
            raise RuntimeError(f"update already {self.state}")
        self.snapshot = {}
        for document_id in self.document_ids:
            node = self.store.get(document_id)
            if node is not None:
                self.snapshot[document_id] = node.is_subscribed
        self.generation = self.store.generation
        self.store.set_subscribed(self.document_ids, self.is_subscribed)
        self.state = "applied"
        return self

    def commit(self) -> None:
        self._require_applied()
        self.state = "committed"

    def revert(self) -> bool:
        """Restore the snapshot; returns False when the tree was replaced."""
        self._require_applied()
        self.state = "reverted"
        if self.store.generation != self.generation:
            return False
        self.store.restore_subscriptions(self.snapshot)
        return True

    def _require_applied(self) -> None:
        if self.state != "applied":
            raise RuntimeError(f"update is {self.state}, not applied")


class SubscriptionPropagator:
    """Toggle a node and its subtree, persist the batch, roll back on failure."""

    def __init__(self, backend: SubscriptionBackend, serialize: bool = True) -> None:
        self.backend = backend
        self.serialize = serialize

    async def toggle(self, session: ConnectionSession, document_id: str) -> ToggleOutcome:
        async with self._guard(session):
            return await self._toggle(session, document_id)

    @contextlib.asynccontextmanager
    async def _guard(self, session: ConnectionSession) -> AsyncIterator[None]:
        if not self.serialize:
            yield
            return
        async with session.toggle_lock:
            yield

    async def _toggle(self, session: ConnectionSession, document_id: str) -> ToggleOutcome:
        context = connection_context(session.connection_id, document_id=document_id)
        if not session.accepts_subscriptions():
            message = "Documents are still syncing; subscriptions are unavailable until some arrive"
            session.notify(message, level="info")
            SUBSCRIPTION_TOGGLES.labels(outcome=ToggleStatus.READ_ONLY.value).inc()
            return ToggleOutcome(ToggleStatus.READ_ONLY, document_id, message=message)

        node = session.store.get(document_id)
        if node is None:
            message = f"Document {document_id} is not in the current tree"
            session.notify(message)
            SUBSCRIPTION_TOGGLES.labels(outcome=ToggleStatus.NOT_FOUND.value).inc()
            return ToggleOutcome(ToggleStatus.NOT_FOUND, document_id, message=message)

        document_ids = affected_ids(session.store, node)
        is_subscribed = not node.is_subscribed
        update = OptimisticUpdate(session.store, document_ids, is_subscribed).begin()

        try:
            await self.backend.persist(session.connection_id, document_ids, is_subscribed)
        except PersistenceError as exc:
            restored = update.revert()
            message = f"Failed to update subscription: {exc}"
            session.notify(message)
            SUBSCRIPTION_TOGGLES.labels(outcome=ToggleStatus.REVERTED.value).inc()
            if restored:
                logger.warning("Subscription toggle reverted: %s", exc, extra=context)
            else:
                logger.warning("Subscription toggle failed after the tree was replaced: %s", exc, extra=context)
            return ToggleOutcome(
                ToggleStatus.REVERTED,
                document_id,
                document_ids=document_ids,
                is_subscribed=is_subscribed,
                message=message,
            )

        update.commit()
        SUBSCRIPTION_TOGGLES.labels(outcome=ToggleStatus.APPLIED.value).inc()
        logger.info(
            "Set subscription=%s on %s document(s)",
            is_subscribed,
            len(document_ids),
            extra=context,
        )
        return ToggleOutcome(
            ToggleStatus.APPLIED,
            document_id,
            document_ids=document_ids,
            is_subscribed=is_subscribed,
        )


__all__ = [
    "OptimisticUpdate",
    "SubscriptionPropagator",
    "ToggleOutcome",
    "ToggleStatus",
    "affected_ids",
]
