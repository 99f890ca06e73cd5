"""
FastAPI integration for StudioError.

Renders every error as the body the browser client expects:
`{"success": false, "message": ..., "error": {code, message, correlation_id,
service, operation, details}}`.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from studio_common.error_enums import ErrorCode
from studio_common.models.error_models import ErrorDetail

from ..logging_utils import create_service_logger
from .error_detail_factory import create_error_detail_with_context
from .studio_error import StudioError

logger = create_service_logger("studio_service_libs.error_handling.fastapi")

ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.AUTHENTICATION_ERROR: 401,
    ErrorCode.UNKNOWN_ERROR: 500,
    ErrorCode.CONFIGURATION_ERROR: 500,
    ErrorCode.UNSUPPORTED_ROUTING: 501,
    ErrorCode.EXTERNAL_SERVICE_ERROR: 502,
    ErrorCode.INVALID_RESPONSE: 502,
    ErrorCode.CONNECTION_ERROR: 503,
    ErrorCode.TIMEOUT: 504,
}


def create_error_response(error_detail: ErrorDetail, status_code: int | None = None) -> JSONResponse:
    """Build the JSON error response for an ErrorDetail."""
    if status_code is None:
        status_code = ERROR_CODE_TO_HTTP_STATUS.get(error_detail.error_code, 500)

    body: dict[str, Any] = {
        "success": False,
        "message": error_detail.message,
        "error": {
            "code": error_detail.error_code.value,
            "message": error_detail.message,
            "correlation_id": str(error_detail.correlation_id),
            "service": error_detail.service,
            "operation": error_detail.operation,
            "details": error_detail.details,
        },
    }
    return JSONResponse(
        status_code=status_code,
        content=body,
        headers={"X-Correlation-ID": str(error_detail.correlation_id)},
    )


def _request_correlation_id(request: Request) -> UUID:
    correlation_id = getattr(request.state, "correlation_id", None)
    return correlation_id if isinstance(correlation_id, UUID) else uuid4()


def register_error_handlers(app: FastAPI, service_name: str | None = None) -> None:
    """Register StudioError, request validation and catch-all handlers on the app."""
    service = service_name or app.title

    @app.exception_handler(StudioError)
    async def handle_studio_error(request: Request, exc: StudioError) -> JSONResponse:
        logger.warning(
            "Request failed with structured error",
            error_code=exc.error_code,
            error_message=exc.error_detail.message,
            service=exc.service,
            operation=exc.operation,
            correlation_id=exc.correlation_id,
            path=request.url.path,
        )
        return create_error_response(exc.error_detail)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {"type": err.get("type"), "loc": list(err.get("loc", ())), "msg": err.get("msg")}
            for err in exc.errors()
        ]
        message = "; ".join(str(err["msg"]) for err in errors) or "Request validation failed"
        error_detail = create_error_detail_with_context(
            error_code=ErrorCode.VALIDATION_ERROR,
            message=message,
            service=service,
            operation=f"{request.method} {request.url.path}",
            correlation_id=_request_correlation_id(request),
            details={"validation_errors": errors},
            capture_stack=False,
        )
        return create_error_response(error_detail, status_code=422)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        correlation_id = _request_correlation_id(request)
        logger.error(
            "Unhandled error while processing request",
            path=request.url.path,
            correlation_id=str(correlation_id),
            exc_info=exc,
        )
        error_detail = create_error_detail_with_context(
            error_code=ErrorCode.UNKNOWN_ERROR,
            message="Internal server error",
            service=service,
            operation=f"{request.method} {request.url.path}",
            correlation_id=correlation_id,
            details={"exception_type": type(exc).__name__},
            capture_stack=False,
        )
        return create_error_response(error_detail)
