"""
Shared configuration for Studio Gateway Service tests.

Builds the gateway app the way create_app() does, but with a container whose
backend transport is a BackendStub.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from dishka import make_async_container
from dishka.integrations.fastapi import FastapiProvider, setup_dishka
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from services.studio_gateway_service.app.di import RequestContextProvider
from services.studio_gateway_service.app.middleware import CorrelationIDMiddleware
from services.studio_gateway_service.routers import download_routes, proxy_routes
from services.studio_gateway_service.routers.health_routes import router as health_router
from services.studio_gateway_service.tests.test_provider import (
    BackendStub,
    StudioGatewayTestProvider,
)
from studio_service_libs.error_handling.fastapi import (
    register_error_handlers as register_fastapi_error_handlers,
)


def create_test_app() -> FastAPI:
    app = FastAPI(title="studio_gateway_service_test")
    register_fastapi_error_handlers(app)
    app.add_middleware(CorrelationIDMiddleware)
    app.include_router(health_router)
    app.include_router(download_routes.router)
    app.include_router(proxy_routes.router)
    return app


@pytest.fixture
def backend() -> BackendStub:
    return BackendStub()


@pytest.fixture
async def client(backend: BackendStub) -> AsyncIterator[AsyncClient]:
    """Gateway test client with the DI container wired to the backend stub."""
    container = make_async_container(
        StudioGatewayTestProvider(backend),
        RequestContextProvider(),
        FastapiProvider(),
    )
    app = create_test_app()
    setup_dishka(container, app)

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await container.close()
