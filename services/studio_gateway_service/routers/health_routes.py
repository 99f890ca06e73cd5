"""Health and metrics routes for the Studio Gateway Service."""

from __future__ import annotations

from dishka import FromDishka
from dishka.integrations.fastapi import inject
from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from services.studio_gateway_service.config import Settings
from studio_service_libs.logging_utils import create_service_logger

router = APIRouter(tags=["Health"])
logger = create_service_logger("studio_gateway_service.routers.health")


@router.get("/healthz")
@inject
async def health_check(config: FromDishka[Settings]) -> dict[str, str | dict]:
    """Liveness check; the backend is only contacted on proxied requests."""
    logger.debug("Health check requested")
    return {
        "service": "studio_gateway_service",
        "status": "healthy",
        "message": "Studio Gateway Service is healthy",
        "version": "1.0.0",
        "checks": {"service_responsive": True},
        "dependencies": {
            "backend_api": {
                "status": "unchecked",
                "note": "Backend availability is checked on request",
            },
        },
        "environment": config.ENVIRONMENT.value,
    }


@router.get("/metrics", response_class=PlainTextResponse)
@inject
async def metrics(registry: FromDishka[CollectorRegistry]):
    """Prometheus metrics endpoint."""
    metrics_data = generate_latest(registry)
    return PlainTextResponse(content=metrics_data, media_type=CONTENT_TYPE_LATEST)
