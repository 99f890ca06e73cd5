"""Wire models for generation jobs and token balances.

GenerationImage: One rendered image attached to a completed job.
GenerationMetadata: Prompt and layout parameters the job was created with.
GenerationItem: One job row as listed by `/api/generations/my-generations`.
GenerationPage: One cursor page of the generation list.
TokenBalance: Balance payload of `/api/tokens/balance`.

Every model accepts the backend's camelCase keys and the snake_case field
names (`populate_by_name`). Timestamps stay ISO strings exactly as the backend
sends them, because list cursors are built from them verbatim.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .status_enums import GenerationStatus

__all__ = [
    "TEMP_ID_PREFIX",
    "GenerationImage",
    "GenerationMetadata",
    "GenerationItem",
    "GenerationPage",
    "GenerationCursor",
    "TokenBalance",
]

TEMP_ID_PREFIX = "temp-"


class GenerationImage(BaseModel):
    """Rendered image reference; the URL points at object storage."""

    image_id: str = Field(alias="imageId")
    image_url: str = Field(alias="imageUrl")
    mime_type: str = Field(default="image/png", alias="mimeType")
    size_bytes: int | None = Field(default=None, alias="sizeBytes")

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="allow")


class GenerationMetadata(BaseModel):
    prompt: str = ""
    number_of_images: int = Field(default=1, alias="numberOfImages")
    aspect_ratio: str = Field(default="1:1", alias="aspectRatio")
    project_id: str | None = Field(default=None, alias="projectId")
    operation_type: str | None = Field(default=None, alias="operationType")

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="allow")


class GenerationItem(BaseModel):
    """One generation job as shown in the user's generation list.

    Items created locally before the backend answers carry a `temp-` id and a
    client_request_id so that later push events can be matched back to them.
    """

    generation_id: str = Field(alias="generationId", description="Backend id, or temp-* while optimistic")
    status: GenerationStatus = GenerationStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    created_at: str = Field(alias="createdAt", description="ISO-8601 creation timestamp as sent by the backend")
    completed_at: str | None = Field(default=None, alias="completedAt")
    reference_type: str | None = Field(default=None, alias="referenceType")
    metadata: GenerationMetadata = Field(default_factory=GenerationMetadata)
    tokens_used: int | None = Field(default=None, alias="tokensUsed")
    processing_time_ms: int | None = Field(default=None, alias="processingTimeMs")
    images: tuple[GenerationImage, ...] = ()
    error: str | None = None
    client_request_id: str | None = Field(default=None, alias="clientRequestId")

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    @property
    def is_temporary(self) -> bool:
        return self.generation_id.startswith(TEMP_ID_PREFIX)

    @property
    def is_terminal(self) -> bool:
        return self.status in GenerationStatus.terminal()

    def to_wire(self) -> dict[str, Any]:
        """Dump with the backend's camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class GenerationCursor(BaseModel):
    """Decoded list cursor: position of the last item of a page."""

    created_at: str = Field(alias="createdAt")
    id: str

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class GenerationPage(BaseModel):
    """Cursor page returned by `/api/generations/my-generations`.

    The backend answers either with a flat `{"results": [...], "cursor": {...}}`
    or with sections `{"queue", "completed", "failed", "cursor"}`, optionally
    wrapped in a `{"success", "data"}` envelope. `from_response` flattens both
    into `results` (queue first) and records how many items belong to the
    cursor-paginated part in `page_count`.
    """

    results: list[GenerationItem] = Field(default_factory=list)
    page_count: int = Field(default=0, alias="pageCount")
    next_cursor: str | None = Field(default=None, alias="nextCursor")
    has_more: bool | None = Field(default=None, alias="hasMore")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_response(cls, body: dict[str, Any]) -> GenerationPage:
        payload = body["data"] if isinstance(body.get("data"), dict) else body
        cursor = payload.get("cursor") or {}
        if "results" in payload:
            results = list(payload.get("results") or [])
            page_count = len(results)
        else:
            completed = list(payload.get("completed") or [])
            results = [
                *(payload.get("queue") or []),
                *completed,
                *(payload.get("failed") or []),
            ]
            page_count = len(completed)
        return cls(
            results=results,
            page_count=page_count,
            next_cursor=cursor.get("next"),
            has_more=cursor.get("hasMore"),
        )


class TokenBalance(BaseModel):
    balance: int
    user_id: str | None = Field(default=None, alias="userId")

    model_config = ConfigDict(populate_by_name=True, frozen=True)
