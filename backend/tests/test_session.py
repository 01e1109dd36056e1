"""Tests for the per-connection session registry."""

from conftest import node

from knowledge_sync.models.entities import SyncJob, SyncStatus
from knowledge_sync.tree.session import ConnectionSession, SessionRegistry


def _job(connection_id: str) -> SyncJob:
    return SyncJob(
        connection_id=connection_id,
        integration_id="gdrive",
        integration_name="Google Drive",
        integration_logo=None,
        status=SyncStatus.COMPLETED,
    )


def _loader(known: set[str]):
    loads: list[str] = []

    def load(connection_id: str) -> ConnectionSession:
        loads.append(connection_id)
        job = _job(connection_id) if connection_id in known else None
        return ConnectionSession(connection_id, [node("readme")] if job else (), job)

    return load, loads


def test_find_does_not_cache_unknown_connections() -> None:
    load, loads = _loader(set())
    registry = SessionRegistry(loader=load)
    for index in range(10):
        assert registry.find(f"nope-{index}") is None
    assert len(registry) == 0
    assert len(loads) == 10


def test_find_caches_known_connections() -> None:
    load, loads = _loader({"conn-1"})
    registry = SessionRegistry(loader=load)
    session = registry.find("conn-1")
    assert session is not None
    assert len(session.store) == 1
    assert registry.find("conn-1") is session
    assert loads == ["conn-1"]
    assert "conn-1" in registry


def test_find_skips_a_cached_session_without_job() -> None:
    load, _ = _loader(set())
    registry = SessionRegistry(loader=load)
    registry.get("conn-1")
    assert "conn-1" in registry
    assert registry.find("conn-1") is None
