"""Internal dataclasses representing persisted entities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class SyncStatus(StrEnum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(slots=True)
class DocumentNode:
    """One folder or file of a connection's remote tree."""

    id: str
    parent_id: str | None
    title: str
    can_have_children: bool
    is_subscribed: bool = False
    storage_key: str | None = None

    @property
    def is_folder(self) -> bool:
        return self.can_have_children


@dataclass(slots=True)
class SyncJob:
    """Sync state for one connection; at most one exists per connection."""

    connection_id: str
    integration_id: str
    integration_name: str
    integration_logo: str | None
    status: SyncStatus
    sync_started_at: datetime | None = None
    sync_completed_at: datetime | None = None
    sync_error: str | None = None
    is_truncated: bool = False


__all__ = ["DocumentNode", "SyncJob", "SyncStatus"]
