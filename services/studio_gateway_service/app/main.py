from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.studio_gateway_service.app.startup_setup import (
    create_di_container,
    setup_dependency_injection,
)
from services.studio_gateway_service.config import settings
from studio_service_libs.error_handling.fastapi import (
    register_error_handlers as register_fastapi_error_handlers,
)
from studio_service_libs.logging_utils import configure_service_logging

from ..routers import download_routes, proxy_routes
from ..routers.health_routes import router as health_router
from .middleware import CorrelationIDMiddleware


def create_app() -> FastAPI:
    configure_service_logging(settings.SERVICE_NAME, log_level=settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version="1.0.0",
        description=(
            "Studio Gateway - forwards browser API calls to the image generation "
            "backend without exposing its address"
        ),
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Register error handlers
    register_fastapi_error_handlers(app, service_name=settings.SERVICE_NAME)

    # Add Correlation ID Middleware (must be early in chain)
    app.add_middleware(CorrelationIDMiddleware)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

    # Include routers
    app.include_router(health_router, tags=["Health"])
    app.include_router(download_routes.router, tags=["Download"])
    app.include_router(proxy_routes.router, tags=["Proxy"])

    # Setup Dishka DI
    container = create_di_container()
    setup_dependency_injection(app, container)

    # Store container reference for cleanup
    app.state.di_container = container

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.studio_gateway_service.app.main:app",
        host=settings.HTTP_HOST,
        port=settings.HTTP_PORT,
        reload=settings.is_development(),
        log_level=settings.LOG_LEVEL.lower(),
    )
