"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

SUBSCRIPTION_TOGGLES = Counter(
    "ksync_subscription_toggles_total",
    "Subscription toggles by outcome",
    labelnames=("outcome",),
    registry=REGISTRY,
)

SYNC_TRANSITIONS = Counter(
    "ksync_sync_transitions_total",
    "Sync job state transitions",
    labelnames=("status",),
    registry=REGISTRY,
)

SYNC_DURATION = Histogram(
    "ksync_sync_duration_seconds",
    "Wall time of finished sync jobs",
    labelnames=("status",),
    registry=REGISTRY,
)

DOCUMENTS_SYNCED = Counter(
    "ksync_documents_synced_total",
    "Documents received from listing sources",
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "SUBSCRIPTION_TOGGLES",
    "SYNC_TRANSITIONS",
    "SYNC_DURATION",
    "DOCUMENTS_SYNCED",
    "metrics_response",
]
