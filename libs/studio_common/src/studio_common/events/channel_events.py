"""Push channel event models.

The backend sends one JSON text frame per event: `{"event": <name>, "data": {...}}`.
ChannelEvent is the envelope after decoding. The payload models below give the
`data` object a typed shape for the events the client interprets; other events
reach subscribers as plain dicts. Payload models allow extra keys because
emitters spread free-form metadata into them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..error_enums import ChannelErrorCode
from ..generation_models import GenerationImage, GenerationMetadata
from ..websocket_enums import ChannelEventName


class ChannelEvent(BaseModel):
    """One decoded push event as dispatched to subscribers."""

    event_name: ChannelEventName
    payload: dict[str, Any] = Field(default_factory=dict)
    received_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = ConfigDict(frozen=True)


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)


class UnauthorizedPayload(_Payload):
    code: str = ChannelErrorCode.UNAUTHORIZED.value
    message: str = "Authentication required"


class GenerationProgressPayload(_Payload):
    generation_id: str = Field(alias="generationId")
    progress: int = Field(ge=0, le=100)
    message: str = ""
    timestamp: str | None = None
    client_request_id: str | None = Field(default=None, alias="clientRequestId")


class TokenUsage(_Payload):
    used: int | None = None
    remaining: int | None = None


class ProcessingInfo(_Payload):
    time_ms: int | None = Field(default=None, alias="timeMs")
    status: str | None = None


class GenerationResult(_Payload):
    """Result object attached to `generation_completed`."""

    generation_id: str | None = Field(default=None, alias="generationId")
    images: tuple[GenerationImage, ...] = ()
    number_of_images: int | None = Field(default=None, alias="numberOfImages")
    metadata: GenerationMetadata | None = None
    tokens: TokenUsage | None = None
    processing: ProcessingInfo | None = None
    created_at: str | None = Field(default=None, alias="createdAt")


class GenerationCompletedPayload(_Payload):
    generation_id: str = Field(alias="generationId")
    result: GenerationResult = Field(default_factory=GenerationResult)
    timestamp: str | None = None
    client_request_id: str | None = Field(default=None, alias="clientRequestId")


class GenerationFailedPayload(_Payload):
    generation_id: str = Field(alias="generationId")
    error: str = "Unknown error"
    timestamp: str | None = None
    client_request_id: str | None = Field(default=None, alias="clientRequestId")

    @field_validator("error", mode="before")
    @classmethod
    def _error_message(cls, value: Any) -> Any:
        # Emitters may pass an error object instead of its message
        if isinstance(value, dict):
            return value.get("message") or "Unknown error"
        return value


class TokenBalanceUpdatedPayload(_Payload):
    balance: int
    change: int | None = None
    reason: str | None = None
    transaction_id: str | None = Field(default=None, alias="transactionId")
    timestamp: str | None = None
