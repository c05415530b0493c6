"""Prometheus metrics for monitoring stage transitions and notification delivery."""

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest

# Stage transition metrics
stage_transition_total = Counter(
    "stage_transition_total",
    "Total campaign stage transitions",
    ["operation", "outcome"],
)

stage_transition_duration = Histogram(
    "stage_transition_duration_seconds",
    "Stage transition latency in seconds",
    ["operation"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

stage_band_executions_total = Counter(
    "stage_band_executions_total",
    "Band handlers executed during transitions",
    ["band"],
)

idempotent_replays_total = Counter(
    "stage_transition_idempotent_replays_total",
    "Transitions answered from the idempotency cache",
)

# Notification metrics
notification_publish_total = Counter(
    "workflow_notification_publish_total",
    "Workflow notifications published",
    ["publisher", "event_type", "status"],
)


def get_metrics_text() -> str:
    """Get Prometheus metrics in text format."""
    return generate_latest(REGISTRY).decode("utf-8")
