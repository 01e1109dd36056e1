"""Background sync job lifecycle per connection."""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import Callable, Iterable

from knowledge_sync.connectors.base import ListingSource
from knowledge_sync.core.config import Settings
from knowledge_sync.core.logging import connection_context, get_logger
from knowledge_sync.core.metrics import DOCUMENTS_SYNCED, SYNC_DURATION, SYNC_TRANSITIONS
from knowledge_sync.db.repository import KnowledgeRepository
from knowledge_sync.models.entities import DocumentNode, SyncJob, SyncStatus
from knowledge_sync.sync.types import ConnectionInfo, SyncObserver, SyncProgress
from knowledge_sync.tree.session import ConnectionSession, SessionLoader, SessionRegistry
from knowledge_sync.utils.time import utc_now

logger = get_logger(__name__)


def repository_session_loader(repository: KnowledgeRepository) -> SessionLoader:
    """Build sessions from what the database already holds."""

    def load(connection_id: str) -> ConnectionSession:
        return ConnectionSession(
            connection_id,
            repository.list_documents(connection_id),
            repository.get_job(connection_id),
        )

    return load


class SyncOrchestrator:
    """Runs one listing task per connection and tracks its state.

    ``in_progress`` ends in ``completed`` (possibly truncated) or
    ``failed``. Resync is a hard reset: the running task is cancelled, the
    connection's documents are dropped and a new task starts. Each
    (re)start bumps a generation so a superseded task can never write.
    """

    def __init__(
        self,
        repository: KnowledgeRepository,
        sessions: SessionRegistry,
        listing_source: ListingSource,
        settings: Settings,
    ) -> None:
        self.repository = repository
        self.sessions = sessions
        self.listing_source = listing_source
        self.document_cap = settings.document_cap
        self.page_size = settings.page_size
        self.preserve_subscriptions = settings.preserve_subscriptions
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._observers: dict[str, list[SyncObserver]] = {}
        self._generations: dict[str, int] = {}
        self._started: dict[str, float] = {}

    # Public API --------------------------------------------------------

    async def start(self, info: ConnectionInfo) -> SyncProgress:
        """Start syncing a connection; a job already running is left alone."""
        if self.is_running(info.connection_id):
            return self.progress(info.connection_id)
        return await self._restart(info)

    async def resync(self, connection_id: str) -> SyncProgress:
        job = self.repository.require_job(connection_id)
        info = ConnectionInfo(
            connection_id=job.connection_id,
            integration_id=job.integration_id,
            integration_name=job.integration_name,
            integration_logo=job.integration_logo,
        )
        return await self._restart(info)

    async def disconnect(self, connection_id: str) -> bool:
        await self._cancel(connection_id)
        self._generations[connection_id] = self._generations.get(connection_id, 0) + 1
        self.sessions.discard(connection_id)
        self._observers.pop(connection_id, None)
        removed = self.repository.delete_job(connection_id)
        if removed:
            logger.info("Disconnected source", extra=connection_context(connection_id))
        return removed

    def progress(self, connection_id: str) -> SyncProgress | None:
        session = self.sessions.find(connection_id)
        if session is None:
            return None
        return SyncProgress.of(session.job, len(session.store))

    def is_running(self, connection_id: str) -> bool:
        task = self._tasks.get(connection_id)
        return task is not None and not task.done()

    def attach(self, connection_id: str, observer: SyncObserver) -> Callable[[], None]:
        """Register ``observer`` for progress updates; returns its detach."""
        self._observers.setdefault(connection_id, []).append(observer)

        def detach() -> None:
            self.detach(connection_id, observer)

        return detach

    def detach(self, connection_id: str, observer: SyncObserver) -> None:
        observers = self._observers.get(connection_id, [])
        if observer in observers:
            observers.remove(observer)

    async def wait(self, connection_id: str) -> SyncProgress | None:
        """Block until the connection's current task (if any) finishes."""
        while True:
            task = self._tasks.get(connection_id)
            if task is None or task.done():
                break
            await asyncio.wait({task})
        return self.progress(connection_id)

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    # Lifecycle ---------------------------------------------------------

    async def _restart(self, info: ConnectionInfo) -> SyncProgress:
        connection_id = info.connection_id
        await self._cancel(connection_id)
        generation = self._generations.get(connection_id, 0) + 1
        self._generations[connection_id] = generation

        preserved: set[str] = set()
        if self.preserve_subscriptions:
            preserved = {node.id for node in self.repository.list_documents(connection_id) if node.is_subscribed}

        session = self.sessions.get(connection_id)
        if self.repository.get_job(connection_id) is not None:
            self.repository.clear_documents(connection_id)
        session.store.clear()
        session.fetch_error = None

        job = SyncJob(
            connection_id=connection_id,
            integration_id=info.integration_id,
            integration_name=info.integration_name,
            integration_logo=info.integration_logo,
            status=SyncStatus.IN_PROGRESS,
            sync_started_at=utc_now(),
        )
        self.repository.save_job(job)
        session.job = job
        self._started[connection_id] = time.monotonic()
        SYNC_TRANSITIONS.labels(status=SyncStatus.IN_PROGRESS.value).inc()
        logger.info("Sync started for %s", info.integration_name, extra=connection_context(connection_id))

        task = asyncio.create_task(self._run(connection_id, generation, preserved), name=f"sync:{connection_id}")
        self._tasks[connection_id] = task
        task.add_done_callback(lambda done: self._forget(connection_id, done))
        self._notify(connection_id)
        return self.progress(connection_id)

    async def _run(self, connection_id: str, generation: int, preserved: set[str]) -> None:
        received = 0
        truncated = False
        batch: list[DocumentNode] = []
        listing = self.listing_source.iter_documents(connection_id, self.document_cap + 1)
        try:
            async with contextlib.aclosing(listing):
                async for raw in listing:
                    if received >= self.document_cap:
                        truncated = True
                        break
                    batch.append(raw.to_node(is_subscribed=raw.id in preserved))
                    received += 1
                    if len(batch) >= self.page_size:
                        if not self._ingest(connection_id, generation, batch):
                            return
                        batch = []
            if batch and not self._ingest(connection_id, generation, batch):
                return
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("Sync failed: %s", exc, extra=connection_context(connection_id))
            self._finish(connection_id, generation, SyncStatus.FAILED, error=str(exc) or type(exc).__name__)
            return
        self._finish(connection_id, generation, SyncStatus.COMPLETED, truncated=truncated)

    def _ingest(self, connection_id: str, generation: int, nodes: Iterable[DocumentNode]) -> bool:
        if not self._is_current(connection_id, generation):
            return False
        nodes = list(nodes)
        self.repository.add_documents(connection_id, nodes)
        self.sessions.get(connection_id).store.extend(nodes)
        DOCUMENTS_SYNCED.inc(len(nodes))
        self._notify(connection_id)
        return True

    def _finish(
        self,
        connection_id: str,
        generation: int,
        status: SyncStatus,
        truncated: bool = False,
        error: str | None = None,
    ) -> None:
        if not self._is_current(connection_id, generation):
            return
        session = self.sessions.get(connection_id)
        job = session.job
        if job is None:
            return
        job.status = status
        job.sync_completed_at = utc_now()
        job.is_truncated = truncated
        job.sync_error = error
        self.repository.save_job(job)
        SYNC_TRANSITIONS.labels(status=status.value).inc()
        started = self._started.pop(connection_id, None)
        if started is not None:
            SYNC_DURATION.labels(status=status.value).observe(time.monotonic() - started)
        context = connection_context(connection_id, documents=len(session.store), truncated=truncated)
        if status is SyncStatus.FAILED:
            logger.warning("Sync failed: %s", error, extra=context)
        else:
            logger.info("Sync completed", extra=context)
        self._notify(connection_id)

    async def _cancel(self, connection_id: str) -> None:
        task = self._tasks.pop(connection_id, None)
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    def _forget(self, connection_id: str, task: asyncio.Task[None]) -> None:
        if self._tasks.get(connection_id) is task:
            del self._tasks[connection_id]

    def _is_current(self, connection_id: str, generation: int) -> bool:
        return self._generations.get(connection_id) == generation

    def _notify(self, connection_id: str) -> None:
        progress = self.progress(connection_id)
        if progress is None:
            return
        for observer in list(self._observers.get(connection_id, ())):
            try:
                observer(progress)
            except Exception:
                logger.exception("Sync observer failed", extra=connection_context(connection_id))


__all__ = ["SyncOrchestrator", "repository_session_loader"]
