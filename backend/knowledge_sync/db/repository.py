"""SQL access for sync jobs and their documents."""

from __future__ import annotations

import sqlite3
from typing import Iterable, Sequence

from knowledge_sync.core.errors import ConnectionNotFoundError, UnknownDocumentsError
from knowledge_sync.db.sqlite import SQLiteDatabase
from knowledge_sync.models.entities import DocumentNode, SyncJob, SyncStatus
from knowledge_sync.utils.time import datetime_to_ms, ms_to_datetime, now_ms

_JOB_COLUMNS = (
    "connection_id, integration_id, integration_name, integration_logo, sync_status, "
    "sync_started_at, sync_completed_at, sync_error, is_truncated"
)
_DOCUMENT_COLUMNS = "id, parent_id, title, can_have_children, is_subscribed, storage_key"


class KnowledgeRepository:
    """Reads and writes the ``knowledge`` and ``documents`` tables."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    # Sync jobs ---------------------------------------------------------

    def get_job(self, connection_id: str) -> SyncJob | None:
        row = self.db.execute(
            f"SELECT {_JOB_COLUMNS} FROM knowledge WHERE connection_id = ?",
            [connection_id],
        ).fetchone()
        return _row_to_job(row) if row else None

    def require_job(self, connection_id: str) -> SyncJob:
        job = self.get_job(connection_id)
        if job is None:
            raise ConnectionNotFoundError(connection_id)
        return job

    def list_jobs(self, integration_id: str | None = None) -> list[SyncJob]:
        if integration_id:
            rows = self.db.query(
                f"SELECT {_JOB_COLUMNS} FROM knowledge WHERE integration_id = ? ORDER BY created_at, connection_id",
                [integration_id],
            )
        else:
            rows = self.db.query(f"SELECT {_JOB_COLUMNS} FROM knowledge ORDER BY created_at, connection_id")
        return [_row_to_job(row) for row in rows]

    def save_job(self, job: SyncJob) -> None:
        now = now_ms()
        self.db.execute(
            f"""
            INSERT INTO knowledge ({_JOB_COLUMNS}, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(connection_id) DO UPDATE SET
              integration_id = excluded.integration_id,
              integration_name = excluded.integration_name,
              integration_logo = excluded.integration_logo,
              sync_status = excluded.sync_status,
              sync_started_at = excluded.sync_started_at,
              sync_completed_at = excluded.sync_completed_at,
              sync_error = excluded.sync_error,
              is_truncated = excluded.is_truncated,
              updated_at = excluded.updated_at
            """,
            [
                job.connection_id,
                job.integration_id,
                job.integration_name,
                job.integration_logo,
                job.status.value,
                datetime_to_ms(job.sync_started_at),
                datetime_to_ms(job.sync_completed_at),
                job.sync_error,
                int(job.is_truncated),
                now,
                now,
            ],
        )
        self.db.commit()

    def delete_job(self, connection_id: str) -> bool:
        with self.db.transaction() as conn:
            conn.execute("DELETE FROM documents WHERE connection_id = ?", [connection_id])
            cursor = conn.execute("DELETE FROM knowledge WHERE connection_id = ?", [connection_id])
        return cursor.rowcount > 0

    # Documents ---------------------------------------------------------

    def document_count(self, connection_id: str) -> int:
        count = self.db.scalar("SELECT COUNT(*) FROM documents WHERE connection_id = ?", [connection_id])
        return int(count or 0)

    def list_documents(self, connection_id: str) -> list[DocumentNode]:
        rows = self.db.query(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE connection_id = ? ORDER BY ordinal",
            [connection_id],
        )
        return [_row_to_document(row) for row in rows]

    def clear_documents(self, connection_id: str) -> int:
        cursor = self.db.execute("DELETE FROM documents WHERE connection_id = ?", [connection_id])
        self.db.commit()
        return cursor.rowcount

    def add_documents(self, connection_id: str, nodes: Iterable[DocumentNode]) -> None:
        """Append a page of arrived documents, keeping arrival order."""
        now = now_ms()
        start = self.document_count(connection_id)
        with self.db.transaction() as conn:
            conn.executemany(
                """
                INSERT INTO documents (
                  connection_id, id, parent_id, title, can_have_children, is_subscribed,
                  storage_key, ordinal, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(connection_id, id) DO UPDATE SET
                  parent_id = excluded.parent_id,
                  title = excluded.title,
                  can_have_children = excluded.can_have_children,
                  updated_at = excluded.updated_at
                """,
                [
                    (
                        connection_id,
                        node.id,
                        node.parent_id,
                        node.title,
                        int(node.can_have_children),
                        int(node.is_subscribed),
                        node.storage_key,
                        start + offset,
                        now,
                        now,
                    )
                    for offset, node in enumerate(nodes)
                ],
            )

    def set_subscribed(self, connection_id: str, document_ids: Sequence[str], is_subscribed: bool) -> int:
        """Apply one flag to every id or to none of them."""
        unique_ids = list(dict.fromkeys(document_ids))
        if not unique_ids:
            return 0
        placeholders = ",".join("?" for _ in unique_ids)
        with self.db.transaction() as conn:
            cursor = conn.execute(
                f"""
                UPDATE documents SET is_subscribed = ?, updated_at = ?
                WHERE connection_id = ? AND id IN ({placeholders})
                """,
                [int(is_subscribed), now_ms(), connection_id, *unique_ids],
            )
            if cursor.rowcount != len(unique_ids):
                known = {
                    row["id"]
                    for row in conn.execute(
                        f"SELECT id FROM documents WHERE connection_id = ? AND id IN ({placeholders})",
                        [connection_id, *unique_ids],
                    )
                }
                raise UnknownDocumentsError(connection_id, [doc_id for doc_id in unique_ids if doc_id not in known])
        return cursor.rowcount


def _row_to_job(row: sqlite3.Row) -> SyncJob:
    return SyncJob(
        connection_id=row["connection_id"],
        integration_id=row["integration_id"],
        integration_name=row["integration_name"],
        integration_logo=row["integration_logo"],
        status=SyncStatus(row["sync_status"]),
        sync_started_at=ms_to_datetime(row["sync_started_at"]),
        sync_completed_at=ms_to_datetime(row["sync_completed_at"]),
        sync_error=row["sync_error"],
        is_truncated=bool(row["is_truncated"]),
    )


def _row_to_document(row: sqlite3.Row) -> DocumentNode:
    return DocumentNode(
        id=row["id"],
        parent_id=row["parent_id"],
        title=row["title"],
        can_have_children=bool(row["can_have_children"]),
        is_subscribed=bool(row["is_subscribed"]),
        storage_key=row["storage_key"],
    )


__all__ = ["KnowledgeRepository"]
