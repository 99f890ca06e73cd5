"""
Backend proxy routes for the Studio Gateway Service.

Each domain under /api is a catch-all route that forwards to the same path on
the backend. The browser never learns the backend address; status codes and
bodies are relayed unchanged.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from dishka.integrations.fastapi import FromDishka, inject
from fastapi import APIRouter, Request, Response

from services.studio_gateway_service.models import ProxyRequest, ProxyResponse
from services.studio_gateway_service.protocols import BackendProxyProtocol, MetricsProtocol
from studio_service_libs.error_handling import (
    StudioError,
    raise_unsupported_routing,
    raise_validation_error,
)
from studio_service_libs.logging_utils import create_service_logger

router = APIRouter()
logger = create_service_logger("studio_gateway.proxy_routes")

SERVICE_NAME = "studio_gateway_service"


@dataclass(frozen=True)
class DomainRoute:
    """One proxied /api/<domain>/* namespace."""

    domain: str
    methods: tuple[str, ...]
    accepts_multipart: bool = False


DOMAIN_ROUTES: tuple[DomainRoute, ...] = (
    DomainRoute("generate", ("GET", "POST"), accepts_multipart=True),
    DomainRoute("hints", ("GET", "POST", "PUT", "PATCH", "DELETE")),
    DomainRoute("generations", ("GET", "POST")),
    DomainRoute("tokens", ("GET", "POST")),
    DomainRoute("auth", ("GET", "POST", "PUT", "DELETE")),
)


async def proxy_request(
    route: DomainRoute,
    request: Request,
    path: str,
    proxy: BackendProxyProtocol,
    metrics: MetricsProtocol,
    correlation_id: UUID,
) -> Response:
    """Forward one inbound request according to its domain's body rules.

    Raises:
        StudioError: UNSUPPORTED_ROUTING for multipart on a JSON-only route,
            VALIDATION_ERROR for an unparseable JSON body, TIMEOUT or
            CONNECTION_ERROR when the backend cannot be reached
    """
    inbound = ProxyRequest.from_request(request, route.domain, path)
    endpoint = f"/api/{route.domain}"

    start = time.perf_counter()
    try:
        if inbound.is_multipart:
            result = await _forward_multipart(route, inbound, request, proxy, correlation_id)
        else:
            body = await _read_json_body(request, inbound, correlation_id)
            result = await proxy.forward_json(
                inbound.method,
                inbound.logical_path,
                body=body,
                authorization=inbound.authorization,
                query=inbound.query_string,
                correlation_id=correlation_id,
            )
    except StudioError as e:
        metrics.api_errors_total.labels(endpoint=endpoint, error_type=e.error_code).inc()
        raise
    finally:
        metrics.http_request_duration_seconds.labels(
            method=inbound.method, endpoint=endpoint
        ).observe(time.perf_counter() - start)

    metrics.http_requests_total.labels(
        method=inbound.method, endpoint=endpoint, http_status=str(result.status_code)
    ).inc()
    return _to_response(result)


async def _forward_multipart(
    route: DomainRoute,
    inbound: ProxyRequest,
    request: Request,
    proxy: BackendProxyProtocol,
    correlation_id: UUID,
) -> ProxyResponse:
    if not route.accepts_multipart or inbound.method != "POST":
        logger.warning(
            "Rejecting multipart request on JSON-only route",
            method=inbound.method,
            path=inbound.logical_path,
            correlation_id=str(correlation_id),
        )
        raise_unsupported_routing(
            service=SERVICE_NAME,
            operation="proxy_request",
            message="Multipart uploads are not supported on this route",
            correlation_id=correlation_id,
            content_type=inbound.content_type,
            path=inbound.logical_path,
        )

    return await proxy.forward_binary(
        inbound.logical_path,
        inbound.content_type or "",
        request.stream(),
        authorization=inbound.authorization,
        query=inbound.query_string,
        correlation_id=correlation_id,
        content_length=inbound.content_length,
    )


async def _read_json_body(
    request: Request, inbound: ProxyRequest, correlation_id: UUID
) -> Any:
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        raise_validation_error(
            service=SERVICE_NAME,
            operation="proxy_request",
            field="body",
            message="Request body is not valid JSON",
            correlation_id=correlation_id,
            path=inbound.logical_path,
            error=str(e),
        )


def _to_response(result: ProxyResponse) -> Response:
    return Response(
        content=result.payload,
        status_code=result.status_code,
        headers={"content-type": result.content_type},
    )


def _register(route: DomainRoute) -> None:
    @router.api_route(
        f"/api/{route.domain}/{{path:path}}",
        methods=list(route.methods),
        name=f"proxy_{route.domain}",
        summary=f"Proxy /api/{route.domain}/* to the backend",
    )
    @inject
    async def forward(
        request: Request,
        path: str,
        proxy: FromDishka[BackendProxyProtocol],
        metrics: FromDishka[MetricsProtocol],
        correlation_id: FromDishka[UUID],
    ) -> Response:
        return await proxy_request(route, request, path, proxy, metrics, correlation_id)


for _route in DOMAIN_ROUTES:
    _register(_route)
