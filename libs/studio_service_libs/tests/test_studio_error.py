"""
Unit tests for the StudioError exception class.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import pytest
from studio_common.error_enums import ErrorCode
from studio_common.models.error_models import ErrorDetail
from studio_service_libs.error_handling import StudioError


@pytest.fixture
def test_correlation_id() -> UUID:
    return uuid.uuid4()


@pytest.fixture
def basic_error_detail(test_correlation_id: UUID) -> ErrorDetail:
    return ErrorDetail(
        error_code=ErrorCode.TIMEOUT,
        message="Request timeout",
        correlation_id=test_correlation_id,
        timestamp=datetime.now(timezone.utc),
        service="studio_gateway_service",
        operation="forward_json",
        details={"timeout_seconds": 30.0},
    )


class TestStudioErrorConstruction:
    """Test StudioError construction and properties."""

    def test_string_and_properties(self, basic_error_detail: ErrorDetail) -> None:
        error = StudioError(basic_error_detail)

        assert str(error) == "[TIMEOUT] Request timeout"
        assert error.error_code == "TIMEOUT"
        assert error.correlation_id == str(basic_error_detail.correlation_id)
        assert error.service == "studio_gateway_service"
        assert error.operation == "forward_json"
        assert error.error_detail is basic_error_detail

    def test_repr_contains_identity(self, basic_error_detail: ErrorDetail) -> None:
        representation = repr(StudioError(basic_error_detail))

        assert "StudioError(" in representation
        assert "code=TIMEOUT" in representation
        assert "message='Request timeout'" in representation

    def test_catchable_as_exception(self, basic_error_detail: ErrorDetail) -> None:
        with pytest.raises(Exception):
            raise StudioError(basic_error_detail)


class TestStudioErrorUtilityMethods:
    """Test serialization and immutable detail updates."""

    def test_to_dict(self, basic_error_detail: ErrorDetail) -> None:
        error_dict: dict[str, Any] = StudioError(basic_error_detail).to_dict()

        assert error_dict["error"] == "[TIMEOUT] Request timeout"
        assert error_dict["error_detail"]["error_code"] == "TIMEOUT"
        assert error_dict["error_detail"]["correlation_id"] == str(
            basic_error_detail.correlation_id
        )

    def test_add_detail_returns_new_error(self, basic_error_detail: ErrorDetail) -> None:
        original = StudioError(basic_error_detail)

        updated = original.add_detail("path", "/api/hints/list")

        assert updated is not original
        assert updated.error_detail.details == {"timeout_seconds": 30.0, "path": "/api/hints/list"}
        assert "path" not in original.error_detail.details
        assert updated.correlation_id == original.correlation_id
