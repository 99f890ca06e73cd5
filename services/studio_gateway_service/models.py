"""Proxy request/response models for the Studio Gateway Service."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from starlette.requests import Request

MULTIPART_FORM_DATA = "multipart/form-data"
DEFAULT_CONTENT_TYPE = "application/json"


class ProxyRequest(BaseModel):
    """Inbound request as seen by a proxy route, before its body is read.

    The body itself is not stored: JSON routes read and parse it, binary
    routes stream it through untouched.
    """

    method: str
    logical_path: str = Field(description="Backend path, /api/<domain>/<suffix>")
    query_string: str | None = None
    content_type: str | None = None
    content_length: int | None = None
    authorization: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_multipart(self) -> bool:
        return MULTIPART_FORM_DATA in (self.content_type or "").lower()

    @classmethod
    def from_request(cls, request: Request, domain: str, path: str) -> ProxyRequest:
        raw_length = request.headers.get("content-length")
        return cls(
            method=request.method,
            logical_path=f"/api/{domain}/{path}",
            query_string=request.url.query or None,
            content_type=request.headers.get("content-type"),
            content_length=int(raw_length) if raw_length and raw_length.isdigit() else None,
            authorization=request.headers.get("authorization") or None,
        )


class ProxyResponse(BaseModel):
    """Backend answer relayed to the browser byte for byte."""

    status_code: int
    content_type: str = DEFAULT_CONTENT_TYPE
    payload: bytes = b""

    model_config = ConfigDict(frozen=True)
