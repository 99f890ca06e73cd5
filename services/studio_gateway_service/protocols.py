"""
Protocols for the Studio Gateway Service.

Routes depend on these interfaces, not on the httpx-backed implementation.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Protocol
from uuid import UUID

from prometheus_client import Counter, Histogram

from services.studio_gateway_service.models import ProxyResponse


class BackendProxyProtocol(Protocol):
    """Protocol for forwarding requests to the backend API."""

    async def forward_json(
        self,
        method: str,
        path: str,
        body: Any = None,
        authorization: str | None = None,
        query: str | None = None,
        correlation_id: UUID | None = None,
    ) -> ProxyResponse:
        """Forward a JSON (or bodiless) request and relay the backend answer."""
        ...

    async def forward_binary(
        self,
        path: str,
        content_type: str,
        stream: AsyncIterator[bytes],
        authorization: str | None = None,
        query: str | None = None,
        correlation_id: UUID | None = None,
        content_length: int | None = None,
    ) -> ProxyResponse:
        """Stream a raw multipart body to the backend without re-encoding it."""
        ...

    async def fetch_download(self, url: str, correlation_id: UUID | None = None) -> ProxyResponse:
        """Fetch an allow-listed file for the download route."""
        ...


class MetricsProtocol(Protocol):
    """Protocol for metrics collection matching GatewayMetrics exactly."""

    @property
    def http_requests_total(self) -> Counter:
        """Total HTTP requests counter."""
        ...

    @property
    def http_request_duration_seconds(self) -> Histogram:
        """HTTP request duration histogram."""
        ...

    @property
    def downstream_service_calls_total(self) -> Counter:
        """Downstream service calls counter."""
        ...

    @property
    def downstream_service_call_duration_seconds(self) -> Histogram:
        """Downstream service call duration histogram."""
        ...

    @property
    def api_errors_total(self) -> Counter:
        """API errors counter."""
        ...
