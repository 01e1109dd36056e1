"""Folder/breadcrumb projection and search over a TreeStore.

Nothing here mutates the store. ``project`` and ``breadcrumb_trail`` are
pure; ``Navigator`` only owns the cursor (``None`` is the root).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from knowledge_sync.models.entities import DocumentNode
from knowledge_sync.tree.store import TreeStore


@dataclass(frozen=True, slots=True)
class Breadcrumb:
    id: str
    title: str


@dataclass(slots=True)
class ProjectedView:
    folders: list[DocumentNode] = field(default_factory=list)
    files: list[DocumentNode] = field(default_factory=list)
    breadcrumbs: list[Breadcrumb] = field(default_factory=list)
    cursor: str | None = None
    search: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.folders and not self.files


def breadcrumb_trail(store: TreeStore, cursor: str | None) -> list[Breadcrumb]:
    """Ancestors of ``cursor`` from the root down to the cursor itself."""
    trail: list[Breadcrumb] = []
    seen: set[str] = set()
    current = store.get(cursor) if cursor is not None else None
    while current is not None and current.id not in seen:
        seen.add(current.id)
        trail.append(Breadcrumb(id=current.id, title=current.title))
        current = store.get(current.parent_id) if current.parent_id is not None else None
    trail.reverse()
    return trail


def search_nodes(store: TreeStore, search: str) -> list[DocumentNode]:
    needle = search.casefold()
    return [node for node in store if needle in node.title.casefold()]


def project(store: TreeStore, cursor: str | None = None, search: str = "") -> ProjectedView:
    """Visible folders/files for ``cursor``, or global matches when searching."""
    if search:
        candidates = search_nodes(store, search)
        breadcrumbs: list[Breadcrumb] = []
    else:
        if cursor is not None and cursor not in store:
            cursor = None
        candidates = store.children(cursor)
        breadcrumbs = breadcrumb_trail(store, cursor)
    return ProjectedView(
        folders=[node for node in candidates if node.can_have_children],
        files=[node for node in candidates if not node.can_have_children],
        breadcrumbs=breadcrumbs,
        cursor=cursor,
        search=search,
    )


class Navigator:
    """Cursor over a store, driven by folder clicks and breadcrumb clicks."""

    def __init__(self, store: TreeStore) -> None:
        self.store = store
        self.cursor: str | None = None

    def navigate_to_folder(self, folder_id: str) -> None:
        node = self.store.get(folder_id)
        if node is None:
            raise KeyError(folder_id)
        if not node.can_have_children:
            raise ValueError(f"{node.title!r} is not a folder")
        self.cursor = folder_id

    def navigate_to_breadcrumb(self, index: int) -> None:
        """Jump to breadcrumb ``index``; ``-1`` returns to the root."""
        if index < 0:
            self.reset()
            return
        trail = self.breadcrumbs()
        if index >= len(trail):
            raise IndexError(index)
        self.cursor = trail[index].id

    def navigate_up(self) -> None:
        trail = self.breadcrumbs()
        self.navigate_to_breadcrumb(len(trail) - 2)

    def reset(self) -> None:
        self.cursor = None

    def breadcrumbs(self) -> list[Breadcrumb]:
        self._drop_stale_cursor()
        return breadcrumb_trail(self.store, self.cursor)

    def view(self, search: str = "") -> ProjectedView:
        self._drop_stale_cursor()
        return project(self.store, self.cursor, search)

    def _drop_stale_cursor(self) -> None:
        if self.cursor is not None and self.cursor not in self.store:
            self.cursor = None


__all__ = [
    "Breadcrumb",
    "Navigator",
    "ProjectedView",
    "breadcrumb_trail",
    "project",
    "search_nodes",
]
