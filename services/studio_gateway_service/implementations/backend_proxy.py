"""Backend proxy implementation for the Studio Gateway Service.

Forwards browser requests to the backend API with httpx and relays the
backend's status code and body bytes unchanged. Backend non-2xx answers are
ordinary results; only transport failures become StudioErrors.
"""

from __future__ import annotations

import json
import time
from collections.abc import AsyncIterator
from typing import Any
from uuid import UUID

import httpx

from services.studio_gateway_service.config import Settings
from services.studio_gateway_service.models import DEFAULT_CONTENT_TYPE, ProxyResponse
from services.studio_gateway_service.protocols import BackendProxyProtocol, MetricsProtocol
from studio_service_libs.error_handling import (
    raise_connection_error,
    raise_external_service_error,
    raise_timeout_error,
)
from studio_service_libs.logging_utils import create_service_logger

logger = create_service_logger("studio_gateway.backend_proxy")

SERVICE_NAME = "studio_gateway_service"
BACKEND_SERVICE = "backend_api"


class BackendProxy(BackendProxyProtocol):
    """httpx-backed BackendProxyProtocol implementation."""

    def __init__(
        self, client: httpx.AsyncClient, settings: Settings, metrics: MetricsProtocol
    ) -> None:
        """Initialize the proxy.

        Args:
            client: Shared httpx AsyncClient; its timeouts apply to JSON calls
            settings: Gateway settings providing the backend URL and upload timeout
            metrics: Gateway metrics for downstream call accounting
        """
        self._client = client
        self._base_url = settings.BACKEND_API_URL.rstrip("/")
        self._binary_timeout = httpx.Timeout(
            settings.BINARY_UPLOAD_TIMEOUT_SECONDS,
            connect=settings.HTTP_CLIENT_CONNECT_TIMEOUT_SECONDS,
        )
        self._metrics = metrics

    async def forward_json(
        self,
        method: str,
        path: str,
        body: Any = None,
        authorization: str | None = None,
        query: str | None = None,
        correlation_id: UUID | None = None,
    ) -> ProxyResponse:
        """Forward a JSON request.

        `body` is serialised as JSON when it is not None; None sends no body.

        Raises:
            StudioError: TIMEOUT or CONNECTION_ERROR on transport failure
        """
        headers = self._headers(authorization, correlation_id)
        content: bytes | None = None
        if body is not None:
            content = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"

        return await self._send(
            method,
            path,
            query,
            correlation_id,
            operation="forward_json",
            content=content,
            headers=headers,
        )

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
        """Stream a multipart body to the backend as POST.

        The body is passed through chunk by chunk with the inbound Content-Type
        (including its boundary), so the backend sees the browser's bytes.

        Raises:
            StudioError: TIMEOUT or CONNECTION_ERROR on transport failure
        """
        headers = self._headers(authorization, correlation_id)
        headers["Content-Type"] = content_type
        if content_length is not None:
            headers["Content-Length"] = str(content_length)

        return await self._send(
            "POST",
            path,
            query,
            correlation_id,
            operation="forward_binary",
            content=stream,
            headers=headers,
            timeout=self._binary_timeout,
        )

    async def fetch_download(self, url: str, correlation_id: UUID | None = None) -> ProxyResponse:
        """Fetch a file for the download route.

        Raises:
            StudioError: EXTERNAL_SERVICE_ERROR when the file cannot be fetched
        """
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            logger.warning("Download fetch failed", url=url, error=str(e))
            raise_external_service_error(
                service=SERVICE_NAME,
                operation="fetch_download",
                external_service="file_storage",
                message="Failed to fetch file",
                correlation_id=correlation_id,
                error_type=type(e).__name__,
            )

        if not response.is_success:
            logger.warning("Download upstream error", url=url, status_code=response.status_code)
            raise_external_service_error(
                service=SERVICE_NAME,
                operation="fetch_download",
                external_service="file_storage",
                message="Failed to fetch file",
                correlation_id=correlation_id,
                status_code=response.status_code,
            )

        return ProxyResponse(
            status_code=response.status_code,
            content_type=response.headers.get("content-type", "application/octet-stream"),
            payload=response.content,
        )

    async def _send(
        self,
        method: str,
        path: str,
        query: str | None,
        correlation_id: UUID | None,
        *,
        operation: str,
        content: bytes | AsyncIterator[bytes] | None,
        headers: dict[str, str],
        timeout: httpx.Timeout | None = None,
    ) -> ProxyResponse:
        url = f"{self._base_url}{path}"
        if query:
            url = f"{url}?{query}"
        endpoint = _endpoint_label(path)
        logger.info(
            "Proxying request to backend",
            method=method,
            path=path,
            correlation_id=str(correlation_id) if correlation_id else None,
        )

        request_kwargs: dict[str, Any] = {"content": content, "headers": headers}
        if timeout is not None:
            request_kwargs["timeout"] = timeout

        start = time.perf_counter()
        try:
            response = await self._client.request(method, url, **request_kwargs)
        except httpx.TimeoutException as e:
            self._metrics.api_errors_total.labels(endpoint=endpoint, error_type="timeout").inc()
            logger.warning("Backend request timed out", method=method, path=path)
            raise_timeout_error(
                service=SERVICE_NAME,
                operation=operation,
                timeout_seconds=_read_timeout(timeout or self._client.timeout),
                message="Request timeout",
                correlation_id=correlation_id,
                path=path,
                error_type=type(e).__name__,
            )
        except httpx.RequestError as e:
            self._metrics.api_errors_total.labels(
                endpoint=endpoint, error_type="connection"
            ).inc()
            logger.warning("Backend unreachable", method=method, path=path, error=str(e))
            raise_connection_error(
                service=SERVICE_NAME,
                operation=operation,
                target=self._base_url,
                message="Backend service unavailable",
                correlation_id=correlation_id,
                path=path,
                error=str(e),
            )
        finally:
            self._metrics.downstream_service_call_duration_seconds.labels(
                service=BACKEND_SERVICE, method=method, endpoint=endpoint
            ).observe(time.perf_counter() - start)

        self._metrics.downstream_service_calls_total.labels(
            service=BACKEND_SERVICE,
            method=method,
            endpoint=endpoint,
            status_code=str(response.status_code),
        ).inc()
        logger.info(
            "Backend responded", method=method, path=path, status_code=response.status_code
        )
        return ProxyResponse(
            status_code=response.status_code,
            content_type=response.headers.get("content-type") or DEFAULT_CONTENT_TYPE,
            payload=response.content,
        )

    @staticmethod
    def _headers(authorization: str | None, correlation_id: UUID | None) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if authorization:
            headers["Authorization"] = authorization
        if correlation_id is not None:
            headers["X-Correlation-ID"] = str(correlation_id)
        return headers


def _endpoint_label(path: str) -> str:
    """Metric label for a backend path: its /api/<domain> prefix."""
    parts = path.split("/")
    return "/".join(parts[:3]) if len(parts) >= 3 else path


def _read_timeout(timeout: httpx.Timeout) -> float:
    return float(timeout.read) if timeout.read is not None else 0.0
