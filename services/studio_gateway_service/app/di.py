from __future__ import annotations

from collections.abc import AsyncIterator
from uuid import UUID, uuid4

import httpx
from dishka import Provider, Scope, from_context, provide
from fastapi import Request
from prometheus_client import REGISTRY, CollectorRegistry

from services.studio_gateway_service.app.metrics import GatewayMetrics
from services.studio_gateway_service.config import Settings, settings
from services.studio_gateway_service.implementations.backend_proxy import BackendProxy
from services.studio_gateway_service.protocols import BackendProxyProtocol, MetricsProtocol


class StudioGatewayProvider(Provider):
    scope = Scope.APP

    @provide
    def get_config(self) -> Settings:
        return settings

    @provide(scope=Scope.APP)
    async def get_http_client(self, config: Settings) -> AsyncIterator[httpx.AsyncClient]:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(
                config.HTTP_CLIENT_TIMEOUT_SECONDS,
                connect=config.HTTP_CLIENT_CONNECT_TIMEOUT_SECONDS,
            )
        ) as client:
            yield client

    @provide(scope=Scope.APP)
    def provide_backend_proxy(
        self, client: httpx.AsyncClient, config: Settings, metrics: MetricsProtocol
    ) -> BackendProxyProtocol:
        return BackendProxy(client, config, metrics)

    @provide(scope=Scope.APP)
    def provide_metrics(self) -> MetricsProtocol:
        return GatewayMetrics()

    @provide(scope=Scope.APP)
    def provide_registry(self) -> CollectorRegistry:
        return REGISTRY


class RequestContextProvider(Provider):
    """Per-request values read from the inbound request."""

    request = from_context(provides=Request, scope=Scope.REQUEST)

    @provide(scope=Scope.REQUEST)
    def provide_correlation_id(self, request: Request) -> UUID:
        """Provide correlation ID from request state as UUID."""
        return getattr(request.state, "correlation_id", uuid4())
