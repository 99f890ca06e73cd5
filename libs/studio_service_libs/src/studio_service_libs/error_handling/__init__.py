"""
Structured error handling for Studio services and clients.

Usage:
    from studio_service_libs.error_handling import StudioError, raise_timeout_error
"""

from .error_detail_factory import create_error_detail_with_context
from .factories import (
    raise_connection_error,
    raise_external_service_error,
    raise_invalid_response,
    raise_timeout_error,
    raise_unsupported_routing,
    raise_validation_error,
)
from .studio_error import StudioError

__all__ = [
    "StudioError",
    "create_error_detail_with_context",
    "raise_connection_error",
    "raise_external_service_error",
    "raise_invalid_response",
    "raise_timeout_error",
    "raise_unsupported_routing",
    "raise_validation_error",
]
