"""Choose what a browsing view shows for the current sync/fetch state."""

from __future__ import annotations

from enum import StrEnum

from knowledge_sync.models.entities import SyncStatus


class Presentation(StrEnum):
    LOADING = "loading"
    SYNCING = "syncing"
    FETCH_ERROR = "fetch_error"
    SYNC_ERROR = "sync_error"
    BROWSING = "browsing"


def choose_presentation(
    document_count: int,
    status: SyncStatus | None,
    loading: bool = False,
    fetch_error: str | None = None,
    sync_error: str | None = None,
) -> Presentation:
    # Any documents at all means the tree is browsable, even mid-sync.
    if document_count:
        return Presentation.BROWSING
    syncing = status is SyncStatus.IN_PROGRESS
    if loading and not syncing:
        return Presentation.LOADING
    if syncing:
        return Presentation.SYNCING
    if fetch_error:
        return Presentation.FETCH_ERROR
    if sync_error:
        return Presentation.SYNC_ERROR
    return Presentation.BROWSING


def accepts_subscriptions(document_count: int, status: SyncStatus | None) -> bool:
    """Toggles are refused while a sync runs and nothing has arrived yet."""
    return not (status is SyncStatus.IN_PROGRESS and document_count == 0)


def syncing_badge(document_count: int, status: SyncStatus | None) -> str | None:
    if status is not SyncStatus.IN_PROGRESS:
        return None
    if document_count:
        return f"{document_count} Documents Synced"
    return "Syncing..."


def truncation_notice(is_truncated: bool, document_cap: int) -> str | None:
    if not is_truncated:
        return None
    return f"Sync was truncated to {document_cap} documents"


__all__ = [
    "Presentation",
    "accepts_subscriptions",
    "choose_presentation",
    "syncing_badge",
    "truncation_notice",
]
