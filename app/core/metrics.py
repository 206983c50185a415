from __future__ import annotations

"""Prometheus counters for delivery, analytics ingest and best-effort side effects."""

from prometheus_client import Counter

deliveries_total = Counter(
    "delivery_responses_total",
    "Media delivery responses by mode and outcome",
    labelnames=("mode", "result"),
)
view_count_failures_total = Counter(
    "delivery_view_count_failures_total",
    "Best-effort view counter increments that failed",
)
analytics_events_total = Counter(
    "analytics_events_total",
    "Session analytics events ingested",
    labelnames=("kind",),
)
access_denials_total = Counter(
    "access_denials_total",
    "Access evaluator denials by reason",
    labelnames=("reason",),
)
storage_cleanup_failures_total = Counter(
    "storage_cleanup_failures_total",
    "Stored objects left behind after their video row was deleted",
)


def inc_delivery(mode: str, result: str) -> None:
    deliveries_total.labels(mode=mode, result=result).inc()


def inc_view_count_failure() -> None:
    view_count_failures_total.inc()


def inc_analytics_event(kind: str) -> None:
    analytics_events_total.labels(kind=kind).inc()


def inc_access_denial(reason: str) -> None:
    access_denials_total.labels(reason=reason).inc()


def inc_storage_cleanup_failure() -> None:
    storage_cleanup_failures_total.inc()


__all__ = [
    "inc_delivery",
    "inc_view_count_failure",
    "inc_analytics_event",
    "inc_access_denial",
    "inc_storage_cleanup_failure",
]
