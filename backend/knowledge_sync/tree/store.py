"""In-memory snapshot of one connection's document tree."""

from __future__ import annotations

from typing import Iterable, Iterator, Mapping

from knowledge_sync.models.entities import DocumentNode


class TreeStore:
    """Flat ``id -> DocumentNode`` mapping with a parent -> children index.

    Nodes keep their arrival order. ``generation`` changes on every bulk
    replace so holders of a snapshot can tell the tree was swapped out.
    """

    def __init__(self, nodes: Iterable[DocumentNode] = ()) -> None:
        self._nodes: dict[str, DocumentNode] = {}
        self._children: dict[str | None, list[str]] = {}
        self.generation = 0
        self._load(nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._nodes

    def __iter__(self) -> Iterator[DocumentNode]:
        return iter(self._nodes.values())

    def get(self, document_id: str) -> DocumentNode | None:
        return self._nodes.get(document_id)

    def nodes(self) -> list[DocumentNode]:
        return list(self._nodes.values())

    # Bulk mutation -----------------------------------------------------

    def replace(self, nodes: Iterable[DocumentNode]) -> None:
        """Swap in a fresh listing and rebuild the children index."""
        self._nodes = {}
        self._children = {}
        self.generation += 1
        self._load(nodes)

    def clear(self) -> None:
        self.replace(())

    def extend(self, nodes: Iterable[DocumentNode]) -> int:
        """Add newly arrived nodes; an existing id is overwritten in place."""
        added = 0
        for node in nodes:
            previous = self._nodes.get(node.id)
            if previous is not None and previous.parent_id != node.parent_id:
                self._children[previous.parent_id].remove(node.id)
                self._children.setdefault(node.parent_id, []).append(node.id)
            elif previous is None:
                self._children.setdefault(node.parent_id, []).append(node.id)
                added += 1
            self._nodes[node.id] = node
        return added

    def _load(self, nodes: Iterable[DocumentNode]) -> None:
        self.extend(nodes)

    # Subscription state ------------------------------------------------

    def set_subscribed(self, document_ids: Iterable[str], is_subscribed: bool) -> int:
        changed = 0
        for document_id in document_ids:
            node = self._nodes.get(document_id)
            if node is None:
                continue
            if node.is_subscribed != is_subscribed:
                node.is_subscribed = is_subscribed
                changed += 1
        return changed

    def subscription_snapshot(self) -> dict[str, bool]:
        return {node.id: node.is_subscribed for node in self._nodes.values()}

    def restore_subscriptions(self, snapshot: Mapping[str, bool]) -> int:
        """Write back a snapshot; ids that have since disappeared are skipped."""
        restored = 0
        for document_id, is_subscribed in snapshot.items():
            node = self._nodes.get(document_id)
            if node is not None:
                node.is_subscribed = is_subscribed
                restored += 1
        return restored

    def subscribed_ids(self) -> list[str]:
        return [node.id for node in self._nodes.values() if node.is_subscribed]

    # Traversal ---------------------------------------------------------

    def children(self, parent_id: str | None) -> list[DocumentNode]:
        return [self._nodes[child_id] for child_id in self._children.get(parent_id, ())]

    def descendant_ids(self, document_id: str) -> list[str]:
        """Pre-order ids of every node below ``document_id``, at any depth."""
        result: list[str] = []
        seen = {document_id}
        stack = list(reversed(self._children.get(document_id, ())))
        while stack:
            child_id = stack.pop()
            if child_id in seen:
                continue
            seen.add(child_id)
            result.append(child_id)
            stack.extend(reversed(self._children.get(child_id, ())))
        return result


__all__ = ["TreeStore"]
