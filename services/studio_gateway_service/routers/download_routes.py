"""
File download route for the Studio Gateway Service.

Fetches a generated image from object storage on behalf of the browser so it
can be saved as an attachment. Only https URLs on allow-listed hosts are
fetched.
"""

from __future__ import annotations

from urllib.parse import urlsplit
from uuid import UUID

from dishka.integrations.fastapi import FromDishka, inject
from fastapi import APIRouter, Response

from services.studio_gateway_service.config import Settings
from services.studio_gateway_service.protocols import BackendProxyProtocol
from studio_service_libs.error_handling import raise_validation_error
from studio_service_libs.logging_utils import create_service_logger

router = APIRouter()
logger = create_service_logger("studio_gateway.download_routes")

SERVICE_NAME = "studio_gateway_service"


def is_allowed_download_url(url: str, config: Settings) -> bool:
    """True for https URLs whose host is allow-listed or ends with an allowed suffix."""
    parts = urlsplit(url)
    host = parts.hostname
    if parts.scheme != "https" or not host:
        return False
    if host in config.ALLOWED_DOWNLOAD_HOSTS:
        return True
    return any(host.endswith(suffix) for suffix in config.DOWNLOAD_HOST_SUFFIXES)


def attachment_filename(url: str, filename: str | None) -> str:
    """Requested filename, else the last URL path segment, else "download"."""
    name = filename or urlsplit(url).path.rsplit("/", 1)[-1] or "download"
    # Header values are latin-1 and the name sits inside one quoted token
    return "".join(ch for ch in name if ch not in '"\r\n' and ord(ch) < 256) or "download"


@router.get("/api/download", summary="Download a generated file as an attachment")
@inject
async def download_file(
    proxy: FromDishka[BackendProxyProtocol],
    config: FromDishka[Settings],
    correlation_id: FromDishka[UUID],
    url: str | None = None,
    filename: str | None = None,
) -> Response:
    if not url:
        raise_validation_error(
            service=SERVICE_NAME,
            operation="download_file",
            field="url",
            message="Missing url parameter",
            correlation_id=correlation_id,
        )
    if not is_allowed_download_url(url, config):
        logger.warning("Rejected download URL", url=url, correlation_id=str(correlation_id))
        raise_validation_error(
            service=SERVICE_NAME,
            operation="download_file",
            field="url",
            message="URL not allowed",
            correlation_id=correlation_id,
            value=url,
        )

    result = await proxy.fetch_download(url, correlation_id=correlation_id)
    name = attachment_filename(url, filename)
    logger.info("Serving download", filename=name, size_bytes=len(result.payload))
    return Response(
        content=result.payload,
        headers={
            "Content-Type": result.content_type,
            "Content-Disposition": f'attachment; filename="{name}"',
            "Cache-Control": "private, max-age=0, must-revalidate",
        },
    )
