"""Factory for ErrorDetail instances with automatic context capture."""

from __future__ import annotations

import traceback
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from studio_common.error_enums import ErrorCode
from studio_common.models.error_models import ErrorDetail


def create_error_detail_with_context(
    error_code: ErrorCode,
    message: str,
    service: str,
    operation: str,
    correlation_id: UUID | None = None,
    details: dict[str, Any] | None = None,
    capture_stack: bool = True,
) -> ErrorDetail:
    """
    Create an ErrorDetail stamped with the current time.

    Args:
        error_code: Error code from ErrorCode
        message: Human-readable error message
        service: Service or component raising the error
        operation: Operation that failed
        correlation_id: Request correlation ID; a new one is generated when omitted
        details: Extra structured context
        capture_stack: Include the current stack in stack_trace

    Returns:
        Frozen ErrorDetail
    """
    stack_trace = "".join(traceback.format_stack()[:-1]) if capture_stack else None

    return ErrorDetail(
        error_code=error_code,
        message=message,
        correlation_id=correlation_id or uuid4(),
        timestamp=datetime.now(timezone.utc),
        service=service,
        operation=operation,
        details=details or {},
        stack_trace=stack_trace,
    )
