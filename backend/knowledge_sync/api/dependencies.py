"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from knowledge_sync.connectors.base import ListingSource
from knowledge_sync.connectors.filesystem import FilesystemListingSource
from knowledge_sync.connectors.http import HttpListingSource
from knowledge_sync.core.config import Settings, get_settings
from knowledge_sync.db.repository import KnowledgeRepository
from knowledge_sync.db.sqlite import SQLiteDatabase
from knowledge_sync.sync.orchestrator import SyncOrchestrator, repository_session_loader
from knowledge_sync.tree.persistence import RepositorySubscriptionBackend
from knowledge_sync.tree.session import SessionRegistry
from knowledge_sync.tree.subscription import SubscriptionPropagator

_DB: SQLiteDatabase | None = None
_REPOSITORY: KnowledgeRepository | None = None
_SESSIONS: SessionRegistry | None = None
_ORCHESTRATOR: SyncOrchestrator | None = None
_PROPAGATOR: SubscriptionPropagator | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_database() -> SQLiteDatabase:
    global _DB
    if _DB is None:
        settings = get_app_settings()
        db = SQLiteDatabase(settings.db_path)
        db.ensure_schema()
        _DB = db
    return _DB


def get_repository() -> KnowledgeRepository:
    global _REPOSITORY
    if _REPOSITORY is None:
        _REPOSITORY = KnowledgeRepository(get_database())
    return _REPOSITORY


def get_sessions() -> SessionRegistry:
    global _SESSIONS
    if _SESSIONS is None:
        _SESSIONS = SessionRegistry(loader=repository_session_loader(get_repository()))
    return _SESSIONS


def build_listing_source(settings: Settings) -> ListingSource:
    if settings.connector == "http":
        return HttpListingSource(
            settings.connector_url,
            timeout=settings.connector_timeout,
            page_size=settings.page_size,
        )
    return FilesystemListingSource(settings.connector_root)


def get_orchestrator() -> SyncOrchestrator:
    global _ORCHESTRATOR
    if _ORCHESTRATOR is None:
        settings = get_app_settings()
        _ORCHESTRATOR = SyncOrchestrator(
            repository=get_repository(),
            sessions=get_sessions(),
            listing_source=build_listing_source(settings),
            settings=settings,
        )
    return _ORCHESTRATOR


def get_propagator() -> SubscriptionPropagator:
    global _PROPAGATOR
    if _PROPAGATOR is None:
        _PROPAGATOR = SubscriptionPropagator(
            RepositorySubscriptionBackend(get_repository()),
            serialize=get_app_settings().serialize_toggles,
        )
    return _PROPAGATOR


def reset_state() -> None:
    """Drop every cached singleton."""
    global _DB, _REPOSITORY, _SESSIONS, _ORCHESTRATOR, _PROPAGATOR
    get_settings.cache_clear()
    get_app_settings.cache_clear()
    _DB = None
    _REPOSITORY = None
    _SESSIONS = None
    _ORCHESTRATOR = None
    _PROPAGATOR = None


__all__ = [
    "build_listing_source",
    "get_app_settings",
    "get_database",
    "get_orchestrator",
    "get_propagator",
    "get_repository",
    "get_sessions",
    "reset_state",
]
