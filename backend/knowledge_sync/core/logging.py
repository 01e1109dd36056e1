"""Logging setup for Knowledge Sync.

Records are emitted as one JSON object per line. Structured fields travel
as ``ctx_*`` attributes passed through ``extra=``; ``connection_context``
builds them for the common case.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import orjson

LEVEL_ENV = "KSYNC_LOG_LEVEL"
FORMAT_ENV = "KSYNC_LOG_FORMAT"
CONTEXT_PREFIX = "ctx_"
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Libraries whose INFO output drowns ours.
_QUIET_LOGGERS = ("httpx", "httpcore", "urllib3")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = {
            key[len(CONTEXT_PREFIX) :]: value
            for key, value in record.__dict__.items()
            if key.startswith(CONTEXT_PREFIX)
        }
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(payload, default=str).decode("utf-8")


def configure_logging(level: str | int | None = None, fmt: str | None = None) -> None:
    """Install a single stdout handler on the root logger.

    ``level`` and ``fmt`` ("json" or "text") default to ``KSYNC_LOG_LEVEL``
    and ``KSYNC_LOG_FORMAT``.
    """
    level = level or os.environ.get(LEVEL_ENV, "INFO")
    fmt = (fmt or os.environ.get(FORMAT_ENV, "json")).lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(TEXT_FORMAT) if fmt == "text" else JsonFormatter())
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]
    logging.captureWarnings(True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = "knowledge_sync") -> logging.Logger:
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


def connection_context(connection_id: str, **extra: Any) -> dict[str, Any]:
    """``extra=`` mapping tagging a record with its connection."""
    context = {f"{CONTEXT_PREFIX}connection_id": connection_id}
    for key, value in extra.items():
        context[f"{CONTEXT_PREFIX}{key}"] = value
    return context


__all__ = ["JsonFormatter", "configure_logging", "connection_context", "get_logger"]
