"""
Error factory functions.

Each factory builds an ErrorDetail for one ErrorCode and raises it as a
StudioError. Keyword arguments beyond the named parameters are stored in
`details` unchanged.
"""

from __future__ import annotations

from typing import Any, NoReturn
from uuid import UUID

from studio_common.error_enums import ErrorCode

from .error_detail_factory import create_error_detail_with_context
from .studio_error import StudioError


def _raise(
    error_code: ErrorCode,
    service: str,
    operation: str,
    message: str,
    correlation_id: UUID | None,
    details: dict[str, Any],
) -> NoReturn:
    error_detail = create_error_detail_with_context(
        error_code=error_code,
        message=message,
        service=service,
        operation=operation,
        correlation_id=correlation_id,
        details=details,
        capture_stack=False,
    )
    raise StudioError(error_detail)


# =============================================================================
# Generic errors
# =============================================================================


def raise_validation_error(
    service: str,
    operation: str,
    field: str,
    message: str,
    correlation_id: UUID | None = None,
    value: Any = None,
    **additional_context: Any,
) -> NoReturn:
    """Raise VALIDATION_ERROR for one offending input field."""
    details: dict[str, Any] = {"field": field}
    if value is not None:
        details["value"] = value
    details.update(additional_context)
    _raise(ErrorCode.VALIDATION_ERROR, service, operation, message, correlation_id, details)


# =============================================================================
# Routing errors
# =============================================================================


def raise_unsupported_routing(
    service: str,
    operation: str,
    message: str,
    correlation_id: UUID | None = None,
    content_type: str | None = None,
    **additional_context: Any,
) -> NoReturn:
    """Raise UNSUPPORTED_ROUTING when a request reached a handler that cannot carry its body."""
    details: dict[str, Any] = {}
    if content_type is not None:
        details["content_type"] = content_type
    details.update(additional_context)
    _raise(ErrorCode.UNSUPPORTED_ROUTING, service, operation, message, correlation_id, details)


# =============================================================================
# Transport errors
# =============================================================================


def raise_timeout_error(
    service: str,
    operation: str,
    timeout_seconds: float,
    message: str,
    correlation_id: UUID | None = None,
    **additional_context: Any,
) -> NoReturn:
    details = {"timeout_seconds": timeout_seconds, **additional_context}
    _raise(ErrorCode.TIMEOUT, service, operation, message, correlation_id, details)


def raise_connection_error(
    service: str,
    operation: str,
    target: str,
    message: str,
    correlation_id: UUID | None = None,
    **additional_context: Any,
) -> NoReturn:
    details = {"target": target, **additional_context}
    _raise(ErrorCode.CONNECTION_ERROR, service, operation, message, correlation_id, details)


def raise_external_service_error(
    service: str,
    operation: str,
    external_service: str,
    message: str,
    correlation_id: UUID | None = None,
    status_code: int | None = None,
    **additional_context: Any,
) -> NoReturn:
    details: dict[str, Any] = {"external_service": external_service}
    if status_code is not None:
        details["status_code"] = status_code
    details.update(additional_context)
    _raise(ErrorCode.EXTERNAL_SERVICE_ERROR, service, operation, message, correlation_id, details)


def raise_invalid_response(
    service: str,
    operation: str,
    message: str,
    correlation_id: UUID | None = None,
    **additional_context: Any,
) -> NoReturn:
    """Raise INVALID_RESPONSE when a backend answer cannot be parsed into the expected model."""
    _raise(ErrorCode.INVALID_RESPONSE, service, operation, message, correlation_id, additional_context)
