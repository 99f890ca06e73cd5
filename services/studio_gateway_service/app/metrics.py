"""Metrics definitions for the Studio Gateway Service."""

from __future__ import annotations

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram


class GatewayMetrics:
    """A container for all Prometheus metrics for the Studio Gateway Service."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics with optional registry for test isolation."""
        if registry is None:
            registry = REGISTRY
        self.http_requests_total = Counter(
            "studio_gateway_http_requests_total",
            "Total number of proxied HTTP requests.",
            ["method", "endpoint", "http_status"],
            registry=registry,
        )
        self.http_request_duration_seconds = Histogram(
            "studio_gateway_http_request_duration_seconds",
            "Proxied HTTP request duration in seconds.",
            ["method", "endpoint"],
            registry=registry,
        )
        self.downstream_service_calls_total = Counter(
            "studio_gateway_downstream_service_calls_total",
            "Total number of calls to the backend API.",
            ["service", "method", "endpoint", "status_code"],
            registry=registry,
        )
        self.downstream_service_call_duration_seconds = Histogram(
            "studio_gateway_downstream_service_call_duration_seconds",
            "Duration of calls to the backend API in seconds.",
            ["service", "method", "endpoint"],
            registry=registry,
        )
        self.api_errors_total = Counter(
            "studio_gateway_api_errors_total",
            "Total number of API errors.",
            ["endpoint", "error_type"],
            registry=registry,
        )
