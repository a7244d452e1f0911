"""Prometheus metrics helpers for the list store and external sync."""

from __future__ import annotations

from typing import Literal

from prometheus_client import Counter, Histogram

_store_requests = Counter(
    "tracker_store_requests_total",
    "Requests made to the remote list store by HTTP method and outcome.",
    ["method", "status"],
)
_store_invalid_records = Counter(
    "tracker_store_invalid_records_total",
    "Fetched list records rejected by structural validation.",
    ["entity"],
)
_sync_runs = Counter(
    "tracker_sync_runs_total",
    "External feed sync runs by operation and outcome.",
    ["operation", "status"],
)
_sync_duration = Histogram(
    "tracker_sync_run_duration_seconds",
    "Duration of external feed sync runs in seconds.",
    ["operation"],
    buckets=(0.5, 1, 2, 5, 10, 30, 60, 120, 300),
)
_sync_records_created = Counter(
    "tracker_sync_records_created_total",
    "Records created by external feed sync by entity.",
    ["entity"],
)
_sync_items_skipped = Counter(
    "tracker_sync_items_skipped_total",
    "Feed events or attendees skipped because they could not be processed.",
    ["operation"],
)


def record_store_request(method: str, status: Literal["success", "failure"]) -> None:
    """Count one list-store HTTP request."""

    _store_requests.labels(method=method.upper(), status=status).inc()


def record_invalid_records(entity: str, count: int) -> None:
    if count > 0:
        _store_invalid_records.labels(entity=entity).inc(count)


def record_sync_run(
    *,
    operation: str,
    status: Literal["success", "failure"],
    duration_seconds: float,
) -> None:
    """Capture outcome and duration for a sync run."""

    _sync_runs.labels(operation=operation, status=status).inc()
    _sync_duration.labels(operation=operation).observe(max(duration_seconds, 0.0))


def record_sync_created(entity: str, count: int) -> None:
    if count > 0:
        _sync_records_created.labels(entity=entity).inc(count)


def record_sync_skipped(operation: str) -> None:
    _sync_items_skipped.labels(operation=operation).inc()
