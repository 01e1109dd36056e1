"""Tests for the tree store."""

from conftest import node

from knowledge_sync.tree.store import TreeStore


def test_children_keep_arrival_order(sample_nodes) -> None:
    store = TreeStore(sample_nodes)
    assert [child.id for child in store.children(None)] == ["F", "Notes", "readme"]
    assert [child.id for child in store.children("F")] == ["A", "G"]
    assert store.children("readme") == []


def test_descendants_follow_every_level(sample_nodes) -> None:
    store = TreeStore(sample_nodes)
    assert store.descendant_ids("F") == ["A", "G", "B"]
    assert store.descendant_ids("G") == ["B"]
    assert store.descendant_ids("Notes") == []


def test_replace_rebuilds_index_and_bumps_generation(sample_nodes) -> None:
    store = TreeStore(sample_nodes)
    generation = store.generation
    store.replace([node("X", folder=True), node("y", "X")])
    assert store.generation == generation + 1
    assert "F" not in store
    assert store.children("F") == []
    assert store.descendant_ids("X") == ["y"]

    store.clear()
    assert len(store) == 0
    assert store.generation == generation + 2


def test_extend_adds_and_moves_nodes(sample_nodes) -> None:
    store = TreeStore(sample_nodes)
    generation = store.generation
    added = store.extend([node("C", "G"), node("A", "Notes")])
    assert added == 1
    assert store.generation == generation
    assert [child.id for child in store.children("F")] == ["G"]
    assert [child.id for child in store.children("Notes")] == ["A"]
    assert store.descendant_ids("G") == ["B", "C"]


def test_set_subscribed_ignores_unknown_ids(sample_nodes) -> None:
    store = TreeStore(sample_nodes)
    changed = store.set_subscribed(["A", "missing", "B"], True)
    assert changed == 2
    assert store.subscribed_ids() == ["A", "B"]
    assert store.set_subscribed(["A"], True) == 0


def test_restore_skips_vanished_nodes(sample_nodes) -> None:
    store = TreeStore(sample_nodes)
    snapshot = store.subscription_snapshot()
    store.set_subscribed(["F", "A"], True)
    store.replace([node("F", folder=True, subscribed=True)])
    restored = store.restore_subscriptions(snapshot)
    assert restored == 1
    assert store.get("F").is_subscribed is False
