"""
Core exception type for the Studio platform.

StudioError wraps an immutable ErrorDetail so that the same structured data
reaches logs, HTTP error bodies and client-side error state.
"""

from __future__ import annotations

from typing import Any

from studio_common.models.error_models import ErrorDetail


class StudioError(Exception):
    """Exception carrying a structured ErrorDetail."""

    def __init__(self, error_detail: ErrorDetail) -> None:
        super().__init__(error_detail.message)
        self.error_detail = error_detail

    @property
    def error_code(self) -> str:
        return self.error_detail.error_code.value

    @property
    def correlation_id(self) -> str:
        return str(self.error_detail.correlation_id)

    @property
    def service(self) -> str:
        return self.error_detail.service

    @property
    def operation(self) -> str:
        return self.error_detail.operation

    def add_detail(self, key: str, value: Any) -> StudioError:
        """Return a new error with one extra detail entry; the original is unchanged."""
        new_detail = self.error_detail.model_copy(
            update={"details": {**self.error_detail.details, key: value}}
        )
        return StudioError(new_detail)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": str(self),
            "error_detail": self.error_detail.model_dump(mode="json"),
        }

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.error_detail.message}"

    def __repr__(self) -> str:
        return (
            f"StudioError(code={self.error_code}, message={self.error_detail.message!r}, "
            f"service={self.service}, operation={self.operation}, "
            f"correlation_id={self.correlation_id})"
        )
