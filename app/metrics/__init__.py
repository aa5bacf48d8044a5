"""
Metrics module for application monitoring.

This module provides Prometheus metrics collection and helper functions.
"""
from app.metrics.prometheus import (
    # API Metrics
    api_requests_total,
    api_request_duration_seconds,
    api_requests_in_progress,

    # Storage Metrics
    storage_used_bytes,
    storage_quota_bytes,
    storage_operations_total,
    storage_operation_duration_seconds,
    usage_drift_events_total,

    # Admission Metrics
    quota_rejections_total,
    presigned_urls_issued_total,

    # Retention Sweep Metrics
    sweep_runs_total,
    sweep_deleted_objects_total,
    sweep_freed_bytes_total,
    sweep_duration_seconds,

    # System Metrics
    app_info,
    app_uptime_seconds,

    # Helper Functions
    record_storage_operation,
    record_sweep,
)

__all__ = [
    # API Metrics
    "api_requests_total",
    "api_request_duration_seconds",
    "api_requests_in_progress",

    # Storage Metrics
    "storage_used_bytes",
    "storage_quota_bytes",
    "storage_operations_total",
    "storage_operation_duration_seconds",
    "usage_drift_events_total",

    # Admission Metrics
    "quota_rejections_total",
    "presigned_urls_issued_total",

    # Retention Sweep Metrics
    "sweep_runs_total",
    "sweep_deleted_objects_total",
    "sweep_freed_bytes_total",
    "sweep_duration_seconds",

    # System Metrics
    "app_info",
    "app_uptime_seconds",

    # Helper Functions
    "record_storage_operation",
    "record_sweep",
]
