"""HTTP middleware: per-request Prometheus instrumentation."""
from app.middleware.metrics import MetricsMiddleware, route_label

__all__ = ["MetricsMiddleware", "route_label"]
