"""Listing source interface shared by connectors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, AsyncIterator, Mapping, Protocol

from knowledge_sync.core.errors import ListingFetchError
from knowledge_sync.models.entities import DocumentNode


@dataclass(frozen=True, slots=True)
class RawDocument:
    """Descriptor as delivered by a remote listing, before it joins a tree."""

    id: str
    parent_id: str | None
    title: str
    can_have_children: bool

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RawDocument":
        try:
            document_id = str(payload["id"])
        except KeyError as exc:
            raise ListingFetchError(f"Listing entry without id: {dict(payload)!r}") from exc
        parent_id = payload.get("parentId")
        return cls(
            id=document_id,
            parent_id=str(parent_id) if parent_id not in (None, "") else None,
            title=str(payload.get("title") or payload.get("name") or document_id),
            can_have_children=bool(payload.get("canHaveChildren", False)),
        )

    def to_node(self, is_subscribed: bool = False) -> DocumentNode:
        return DocumentNode(
            id=self.id,
            parent_id=self.parent_id,
            title=self.title,
            can_have_children=self.can_have_children,
            is_subscribed=is_subscribed,
        )


class ListingSource(Protocol):
    """Yields a connection's documents; stops after ``limit`` items.

    Failures are raised as ``ListingFetchError``.
    """

    def iter_documents(self, connection_id: str, limit: int) -> AsyncIterator[RawDocument]:
        ...


__all__ = ["ListingSource", "RawDocument"]
