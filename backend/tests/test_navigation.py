"""Tests for folder projection, breadcrumbs and search."""

import pytest
from conftest import node

from knowledge_sync.tree.navigation import Navigator, breadcrumb_trail, project
from knowledge_sync.tree.store import TreeStore


@pytest.fixture
def store(sample_nodes) -> TreeStore:
    return TreeStore(sample_nodes)


def _ids(nodes) -> list[str]:
    return [item.id for item in nodes]


def test_root_view_puts_folders_first() -> None:
    store = TreeStore([node("f1"), node("D", folder=True), node("f2"), node("E", folder=True)])
    view = project(store)
    assert _ids(view.folders) == ["D", "E"]
    assert _ids(view.files) == ["f1", "f2"]
    assert view.breadcrumbs == []


def test_folder_view_lists_direct_children_only(store: TreeStore) -> None:
    view = project(store, "F")
    assert _ids(view.folders) == ["G"]
    assert _ids(view.files) == ["A"]


def test_breadcrumbs_walk_from_root_to_cursor() -> None:
    store = TreeStore([node("A", folder=True), node("B", "A", folder=True)])
    navigator = Navigator(store)

    navigator.navigate_to_folder("B")
    assert [crumb.id for crumb in navigator.breadcrumbs()] == ["A", "B"]

    navigator.navigate_to_breadcrumb(0)
    assert navigator.cursor == "A"
    assert [crumb.id for crumb in navigator.breadcrumbs()] == ["A"]

    navigator.navigate_to_breadcrumb(-1)
    assert navigator.cursor is None
    assert navigator.breadcrumbs() == []


def test_navigate_up_and_invalid_targets(store: TreeStore) -> None:
    navigator = Navigator(store)
    navigator.navigate_to_folder("G")
    navigator.navigate_up()
    assert navigator.cursor == "F"
    navigator.navigate_up()
    assert navigator.cursor is None

    with pytest.raises(ValueError):
        navigator.navigate_to_folder("A")
    with pytest.raises(KeyError):
        navigator.navigate_to_folder("nope")
    with pytest.raises(IndexError):
        navigator.navigate_to_breadcrumb(3)


def test_search_is_global_and_case_insensitive(store: TreeStore) -> None:
    view = project(store, "Notes", search="GR")
    assert _ids(view.folders) == ["G"]
    assert _ids(view.files) == ["B"]
    assert view.breadcrumbs == []

    navigator = Navigator(store)
    navigator.navigate_to_folder("G")
    searched = navigator.view("budget")
    assert _ids(searched.files) == ["A"]
    assert searched.breadcrumbs == []
    assert navigator.cursor == "G"


def test_stale_cursor_falls_back_to_root(store: TreeStore) -> None:
    navigator = Navigator(store)
    navigator.navigate_to_folder("G")
    store.replace([node("Z")])
    view = navigator.view()
    assert navigator.cursor is None
    assert _ids(view.files) == ["Z"]


def test_projection_never_mutates_store(store: TreeStore) -> None:
    before = [(item.id, item.parent_id, item.is_subscribed) for item in store]
    project(store, "F", "a")
    project(store, "G")
    assert [(item.id, item.parent_id, item.is_subscribed) for item in store] == before


def test_breadcrumb_walk_stops_on_missing_parent_and_cycles() -> None:
    orphan = TreeStore([node("X", "gone", folder=True)])
    assert [crumb.id for crumb in breadcrumb_trail(orphan, "X")] == ["X"]

    looped = TreeStore([node("P", "Q", folder=True), node("Q", "P", folder=True)])
    assert [crumb.id for crumb in breadcrumb_trail(looped, "P")] == ["Q", "P"]
