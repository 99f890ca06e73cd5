"""
Generation list reconciler.

Hydrates the first page of `/api/generations/my-generations`, appends further
pages on `load_more()`, and folds `generation_progress`, `generation_completed`
and `generation_failed` push events into the list. Items are ordered most
recent first with pending/processing jobs above finished ones.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any, ClassVar
from uuid import uuid4

from pydantic import ValidationError

from studio_common.events.channel_events import (
    GenerationCompletedPayload,
    GenerationFailedPayload,
    GenerationProgressPayload,
)
from studio_common.generation_models import (
    TEMP_ID_PREFIX,
    GenerationCursor,
    GenerationItem,
    GenerationMetadata,
    GenerationPage,
)
from studio_common.status_enums import GenerationStatus
from studio_common.websocket_enums import ChannelEventName

from ..protocols import StudioApiClientProtocol
from ..session import SessionChannel
from .base import ReconciledState, StateReconciler

Items = tuple[GenerationItem, ...]


def encode_cursor(item: GenerationItem) -> str:
    """Encode the page boundary exactly like the backend: base64 of compact JSON."""
    raw = json.dumps(
        {"createdAt": item.created_at, "id": item.generation_id}, separators=(",", ":")
    )
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> GenerationCursor | None:
    """Decode a list cursor; None when it is malformed."""
    try:
        data = json.loads(base64.b64decode(cursor, validate=True).decode("utf-8"))
        return GenerationCursor.model_validate(data)
    except ValueError:
        return None


def _now_iso() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class GenerationListSnapshot:
    items: Items = ()
    has_more: bool = False

    def get(self, generation_id: str) -> GenerationItem | None:
        for item in self.items:
            if item.generation_id == generation_id:
                return item
        return None


class GenerationListReconciler(StateReconciler[GenerationListSnapshot]):
    """Mirrors the caller's generation jobs, including optimistic entries.

    Optimistic entries carry a `temp-` id and a clientRequestId. They are
    matched to server state either explicitly with `confirm_optimistic()` or
    by a push event carrying the same clientRequestId.
    """

    handled_events: ClassVar[frozenset[ChannelEventName]] = frozenset(
        {
            ChannelEventName.GENERATION_PROGRESS,
            ChannelEventName.GENERATION_COMPLETED,
            ChannelEventName.GENERATION_FAILED,
        }
    )

    def __init__(
        self,
        api_client: StudioApiClientProtocol,
        session: SessionChannel | None = None,
        page_size: int = 10,
        include_failed: bool = True,
    ) -> None:
        super().__init__(session, name="generations")
        self._api_client = api_client
        self._page_size = page_size
        self._include_failed = include_failed

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def refresh(self) -> ReconciledState[GenerationListSnapshot]:
        """Reset to the first page; unconfirmed optimistic entries stay on top."""
        return await self.hydrate()

    async def load_more(self) -> ReconciledState[GenerationListSnapshot]:
        """Append the next page. No-op when `has_more` is false."""
        return await self._enqueue(lambda: self._fetch_job(self._fetch_next_page, "load_more"))

    async def add_optimistic(
        self,
        metadata: GenerationMetadata | None = None,
        client_request_id: str | None = None,
    ) -> str:
        """Prepend a pending entry before the backend has answered; returns its temporary id."""
        item = GenerationItem(
            generation_id=f"{TEMP_ID_PREFIX}{uuid4().hex}",
            status=GenerationStatus.PENDING,
            progress=0,
            created_at=_now_iso(),
            metadata=metadata or GenerationMetadata(),
            client_request_id=client_request_id or str(uuid4()),
        )
        await self._enqueue(lambda: self._items_job(lambda items: (item, *items)))
        self._logger.debug(
            "Added optimistic generation",
            temp_id=item.generation_id,
            client_request_id=item.client_request_id,
        )
        return item.generation_id

    async def confirm_optimistic(
        self, temp_id: str, generation_id: str
    ) -> ReconciledState[GenerationListSnapshot]:
        """Rekey a temporary entry to the backend id, merging with an entry already present."""
        return await self._enqueue(
            lambda: self._items_job(lambda items: self._confirm(items, temp_id, generation_id))
        )

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def _fetch(self) -> GenerationListSnapshot:
        page = await self._api_client.get_my_generations(
            cursor=None, limit=self._page_size, include_failed=self._include_failed
        )
        fetched = _dedupe(page.results)
        fetched_request_ids = {i.client_request_id for i in fetched if i.client_request_id}
        current = self.snapshot.items if self.snapshot else ()
        optimistic = tuple(
            item
            for item in current
            if item.is_temporary and item.client_request_id not in fetched_request_ids
        )
        return GenerationListSnapshot(
            items=(*optimistic, *fetched), has_more=self._page_has_more(page)
        )

    async def _fetch_next_page(self) -> GenerationListSnapshot | None:
        snapshot = self.snapshot
        if snapshot is None or not snapshot.has_more:
            self._logger.debug("No more generations to load")
            return None
        tail = _pagination_tail(snapshot.items)
        if tail is None:
            return replace(snapshot, has_more=False)

        page = await self._api_client.get_my_generations(
            cursor=encode_cursor(tail), limit=self._page_size, include_failed=self._include_failed
        )
        known = {item.generation_id for item in snapshot.items}
        appended = tuple(item for item in _dedupe(page.results) if item.generation_id not in known)
        self._logger.debug(
            "Loaded generation page", appended=len(appended), page_count=page.page_count
        )
        return GenerationListSnapshot(
            items=(*snapshot.items, *appended), has_more=self._page_has_more(page)
        )

    def _page_has_more(self, page: GenerationPage) -> bool:
        return page.page_count >= self._page_size and page.has_more is not False

    # ------------------------------------------------------------------
    # Local mutations
    # ------------------------------------------------------------------

    async def _items_job(
        self, transform: Callable[[Items], Items]
    ) -> ReconciledState[GenerationListSnapshot]:
        snapshot = self.snapshot or GenerationListSnapshot()
        items = transform(snapshot.items)
        if items == snapshot.items and self.snapshot is not None:
            return self.state
        return self._commit(replace(self.state, snapshot=replace(snapshot, items=items)))

    def _confirm(self, items: Items, temp_id: str, generation_id: str) -> Items:
        temp_index = _index_of(items, temp_id)
        if temp_index is None:
            self._logger.warning("Unknown optimistic generation", temp_id=temp_id)
            return items
        temp = items[temp_index]

        existing_index = _index_of(items, generation_id)
        if existing_index is None:
            return _replace_at(items, temp_index, temp.model_copy(update={"generation_id": generation_id}))

        existing = items[existing_index]
        merged = existing.model_copy(
            update={
                "metadata": existing.metadata
                if existing.metadata != GenerationMetadata()
                else temp.metadata,
                "client_request_id": existing.client_request_id or temp.client_request_id,
            }
        )
        items = _replace_at(items, existing_index, merged)
        return tuple(item for index, item in enumerate(items) if index != temp_index)

    # ------------------------------------------------------------------
    # Push deltas
    # ------------------------------------------------------------------

    def _merge_delta(
        self,
        snapshot: GenerationListSnapshot | None,
        event_name: ChannelEventName,
        payload: dict[str, Any],
    ) -> GenerationListSnapshot | None:
        current = snapshot or GenerationListSnapshot()
        try:
            if event_name is ChannelEventName.GENERATION_PROGRESS:
                items = self._on_progress(current.items, GenerationProgressPayload.model_validate(payload))
            elif event_name is ChannelEventName.GENERATION_COMPLETED:
                items = self._on_completed(
                    current.items, GenerationCompletedPayload.model_validate(payload)
                )
            elif event_name is ChannelEventName.GENERATION_FAILED:
                items = self._on_failed(current.items, GenerationFailedPayload.model_validate(payload))
            else:
                self._logger.warning("Ignoring unhandled event", event_name=event_name.value)
                return None
        except ValidationError as e:
            self._logger.warning(
                "Ignoring malformed generation event",
                event_name=event_name.value,
                errors=e.error_count(),
            )
            return None

        if items == current.items:
            return None
        return replace(current, items=items)

    def _on_progress(self, items: Items, event: GenerationProgressPayload) -> Items:
        index = _locate(items, event.generation_id, event.client_request_id)
        if index is None:
            inserted = GenerationItem(
                generation_id=event.generation_id,
                status=GenerationStatus.PROCESSING,
                progress=event.progress,
                created_at=event.timestamp or _now_iso(),
                client_request_id=event.client_request_id,
            )
            return (inserted, *items)

        item = items[index]
        if item.is_terminal:
            self._logger.debug(
                "Ignoring progress for finished generation",
                generation_id=event.generation_id,
                status=item.status.value,
            )
            return items
        return _replace_at(
            items,
            index,
            item.model_copy(
                update={
                    "generation_id": event.generation_id,
                    "status": GenerationStatus.PROCESSING,
                    "progress": event.progress,
                }
            ),
        )

    def _on_completed(self, items: Items, event: GenerationCompletedPayload) -> Items:
        result = event.result
        index = _locate(items, event.generation_id, event.client_request_id)
        if index is None:
            base = GenerationItem(
                generation_id=event.generation_id,
                created_at=result.created_at or event.timestamp or _now_iso(),
                metadata=result.metadata or GenerationMetadata(),
                client_request_id=event.client_request_id,
            )
            others = items
        else:
            base = items[index]
            others = tuple(item for i, item in enumerate(items) if i != index)

        updates: dict[str, Any] = {
            "generation_id": event.generation_id,
            "status": GenerationStatus.COMPLETED,
            "progress": 100,
            "completed_at": result.created_at or event.timestamp or base.completed_at,
            "images": result.images,
            "error": None,
        }
        if result.tokens is not None and result.tokens.used is not None:
            updates["tokens_used"] = result.tokens.used
        if result.processing is not None and result.processing.time_ms is not None:
            updates["processing_time_ms"] = result.processing.time_ms

        completed = base.model_copy(update=updates)
        if index is not None and base.status is GenerationStatus.COMPLETED:
            # Redelivery keeps the entry where it already sits
            return _replace_at(items, index, completed)
        return _insert_finished(others, completed)

    def _on_failed(self, items: Items, event: GenerationFailedPayload) -> Items:
        index = _locate(items, event.generation_id, event.client_request_id)
        updates = {
            "generation_id": event.generation_id,
            "status": GenerationStatus.FAILED,
            "error": event.error,
        }
        if index is None:
            inserted = GenerationItem(
                generation_id=event.generation_id,
                created_at=event.timestamp or _now_iso(),
                client_request_id=event.client_request_id,
            ).model_copy(update=updates)
            return _insert_finished(items, inserted)
        return _replace_at(items, index, items[index].model_copy(update=updates))


def _index_of(items: Items, generation_id: str) -> int | None:
    for index, item in enumerate(items):
        if item.generation_id == generation_id:
            return index
    return None


def _locate(items: Items, generation_id: str, client_request_id: str | None) -> int | None:
    """Find by backend id, then by the clientRequestId of a still-temporary entry."""
    index = _index_of(items, generation_id)
    if index is not None or not client_request_id:
        return index
    for i, item in enumerate(items):
        if item.is_temporary and item.client_request_id == client_request_id:
            return i
    return None


def _replace_at(items: Items, index: int, item: GenerationItem) -> Items:
    return (*items[:index], item, *items[index + 1 :])


def _insert_finished(items: Items, item: GenerationItem) -> Items:
    """Insert at the head of the finished section, after pending/processing entries."""
    active = GenerationStatus.active()
    for index, other in enumerate(items):
        if other.status not in active:
            return (*items[:index], item, *items[index:])
    return (*items, item)


def _dedupe(items: Iterable[GenerationItem]) -> Items:
    seen: set[str] = set()
    unique: list[GenerationItem] = []
    for item in items:
        if item.generation_id in seen:
            continue
        seen.add(item.generation_id)
        unique.append(item)
    return tuple(unique)


def _pagination_tail(items: Items) -> GenerationItem | None:
    """Last server-confirmed completed entry, else the last server-confirmed entry."""
    confirmed = [item for item in items if not item.is_temporary]
    for item in reversed(confirmed):
        if item.status is GenerationStatus.COMPLETED:
            return item
    return confirmed[-1] if confirmed else None
