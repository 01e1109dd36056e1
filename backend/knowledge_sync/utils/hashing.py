"""Hashing utilities."""

from __future__ import annotations

import hashlib


def sha256_bytes(data: bytes) -> str:
    """Return hex digest for bytes input."""
    return hashlib.sha256(data).hexdigest()


def stable_id(value: str, prefix: str | None = None, length: int = 24) -> str:
    """Deterministic short id derived from ``value``."""
    digest = sha256_bytes(value.encode("utf-8"))[:length]
    return f"{prefix}_{digest}" if prefix else digest
