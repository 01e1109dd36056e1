"""Sync job value types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from knowledge_sync.models.entities import SyncJob, SyncStatus


@dataclass(frozen=True, slots=True)
class ConnectionInfo:
    """Identifies the external source a sync is started for."""

    connection_id: str
    integration_id: str
    integration_name: str
    integration_logo: str | None = None


@dataclass(frozen=True, slots=True)
class SyncProgress:
    """What observers (and the status endpoint) see of a job."""

    connection_id: str
    status: SyncStatus
    is_truncated: bool
    sync_error: str | None
    documents_received: int
    sync_started_at: datetime | None = None
    sync_completed_at: datetime | None = None

    @classmethod
    def of(cls, job: SyncJob, documents_received: int) -> "SyncProgress":
        return cls(
            connection_id=job.connection_id,
            status=job.status,
            is_truncated=job.is_truncated,
            sync_error=job.sync_error,
            documents_received=documents_received,
            sync_started_at=job.sync_started_at,
            sync_completed_at=job.sync_completed_at,
        )

    @property
    def finished(self) -> bool:
        return self.status is not SyncStatus.IN_PROGRESS


SyncObserver = Callable[[SyncProgress], None]


__all__ = ["ConnectionInfo", "SyncObserver", "SyncProgress"]
