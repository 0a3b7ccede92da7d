"""
Prometheus metrics for the Tasks service.

Each ``MetricsCollector`` owns a ``CollectorRegistry`` so several service
instances (one per test, for example) can live in one process without
duplicate-timeseries errors. ``/metrics`` exposes that registry.
"""

from typing import Any, Dict, Optional, Sequence, Tuple, Type

from prometheus_client import CollectorRegistry, Counter, Histogram, Info
from prometheus_client.metrics import MetricWrapperBase


MetricSpec = Tuple[Type[MetricWrapperBase], str, Sequence[str]]

COMMON_METRICS: Dict[str, MetricSpec] = {
    "http_requests_total": (Counter, "Total HTTP requests", ("method", "endpoint", "status_code")),
    "http_request_duration_seconds": (Histogram, "HTTP request duration in seconds", ("method", "endpoint")),
    "health_check_total": (Counter, "Total health check requests", ("status",)),
    "errors_total": (Counter, "Total errors", ("error_type", "service")),
}

CACHE_METRICS: Dict[str, MetricSpec] = {
    "cache_requests_total": (Counter, "Read-through cache lookups by outcome", ("operation", "result")),
    "cache_errors_total": (Counter, "Cache faults absorbed by the fail-open policy", ("stage",)),
    "cache_invalidations_total": (Counter, "Cache generation replacements", ("status",)),
}

SERVICE_METRICS: Dict[str, Dict[str, MetricSpec]] = {
    "tasks": CACHE_METRICS,
}


class MetricsCollector:
    """Metrics for one service instance."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}

        info = Info("service_info", "Service information", registry=self.registry)
        info.info({"service": service_name, "version": "1.0.0"})
        self._metrics["service_info"] = info

        self._register(COMMON_METRICS)
        self._register(SERVICE_METRICS.get(service_name, {}))

    def _register(self, specs: Dict[str, MetricSpec]):
        for name, (metric_type, description, labels) in specs.items():
            self._metrics[name] = metric_type(name, description, list(labels), registry=self.registry)

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()
        self._metrics["http_request_duration_seconds"].labels(method=method, endpoint=endpoint).observe(duration)

    def record_health_check(self, status: str):
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str, service: Optional[str] = None):
        self._metrics["errors_total"].labels(error_type=error_type, service=service or self.service_name).inc()

    def increment_counter(self, metric_name: str, **labels):
        """Increment a registered counter; unknown names are ignored."""
        metric = self._metrics.get(metric_name)
        if isinstance(metric, Counter):
            metric.labels(**labels).inc()


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
