"""
Prometheus metrics for application monitoring.

This module defines all Prometheus metrics used throughout the gateway:
- API request metrics (requests, duration, in-progress)
- Storage metrics (usage, quota ceiling, operations, drift)
- Admission metrics (rejections, presigned URLs issued)
- Retention sweep metrics (passes, deletions, bytes freed)
"""
from prometheus_client import Counter, Gauge, Histogram


# ============================================================================
# API Metrics
# ============================================================================

api_requests_total = Counter(
    "api_requests_total",
    "Total number of API requests",
    ["method", "endpoint", "status"],
)

api_request_duration_seconds = Histogram(
    "api_request_duration_seconds",
    "API request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

api_requests_in_progress = Gauge(
    "api_requests_in_progress",
    "Number of API requests currently being processed",
    ["method", "endpoint"],
)


# ============================================================================
# Storage Metrics
# ============================================================================

storage_used_bytes = Gauge(
    "storage_used_bytes",
    "Last observed value of the usage counter",
)

storage_quota_bytes = Gauge(
    "storage_quota_bytes",
    "Exclusive storage ceiling",
)

storage_operations_total = Counter(
    "storage_operations_total",
    "Total number of storage operations",
    ["operation", "status"],  # operation: upload, metadata, delete
)

storage_operation_duration_seconds = Histogram(
    "storage_operation_duration_seconds",
    "Duration of storage operations",
    ["operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1, 2, 5, 10, 30],
)

usage_drift_events_total = Counter(
    "usage_drift_events_total",
    "Usage counter adjustments that could not be applied",
)


# ============================================================================
# Admission Metrics
# ============================================================================

quota_rejections_total = Counter(
    "quota_rejections_total",
    "Upload batches rejected before any write",
    ["reason"],  # reason: batch_size, type, quota
)

presigned_urls_issued_total = Counter(
    "presigned_urls_issued_total",
    "Presigned upload URLs handed out",
)


# ============================================================================
# Retention Sweep Metrics
# ============================================================================

sweep_runs_total = Counter(
    "sweep_runs_total",
    "Completed retention sweep passes",
)

sweep_deleted_objects_total = Counter(
    "sweep_deleted_objects_total",
    "Objects deleted by the retention sweep",
)

sweep_freed_bytes_total = Counter(
    "sweep_freed_bytes_total",
    "Bytes reclaimed by the retention sweep",
)

sweep_duration_seconds = Histogram(
    "sweep_duration_seconds",
    "Duration of a full retention sweep pass",
    buckets=[1, 5, 15, 30, 60, 120, 300, 600, 1800],
)


# ============================================================================
# System Metrics (Application Level)
# ============================================================================

app_info = Gauge(
    "app_info",
    "Application information",
    ["version"],
)

app_uptime_seconds = Gauge(
    "app_uptime_seconds",
    "Application uptime in seconds",
)


# ============================================================================
# Helper Functions
# ============================================================================

def record_storage_operation(operation: str, success: bool, duration: float):
    """Record storage operation metrics."""
    status = "success" if success else "failed"
    storage_operations_total.labels(operation=operation, status=status).inc()
    storage_operation_duration_seconds.labels(operation=operation).observe(duration)


def record_sweep(deleted: int, freed_bytes: int, duration: float):
    """Record one retention sweep pass."""
    sweep_runs_total.inc()
    sweep_deleted_objects_total.inc(deleted)
    sweep_freed_bytes_total.inc(freed_bytes)
    sweep_duration_seconds.observe(duration)
