"""
Generic state reconciler.

A reconciler mirrors one piece of backend state into a local, frozen snapshot.
Every mutation (hydrate, page append, push delta, optimistic edit) is a job on
one FIFO queue served by a single worker task, so a delta that arrives while a
fetch is in flight is applied to the fresh snapshot once the fetch commits.
Readers only ever see whole ReconciledState values.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import Any, ClassVar, Generic, TypeVar

from studio_common.websocket_enums import ChannelEventName
from studio_service_libs.error_handling import StudioError
from studio_service_libs.logging_utils import create_service_logger

from ..session import SessionChannel
from ..subscription import Subscription

T = TypeVar("T")
R = TypeVar("R")

logger = create_service_logger("studio_client.reconcilers")


@dataclass(frozen=True)
class ReconciledState(Generic[T]):
    """Immutable view handed to consumers after every committed mutation."""

    snapshot: T | None = None
    loading: bool = False
    error: str | None = None


ChangeCallback = Callable[[ReconciledState[Any]], None]


class ReconcilerClosedError(RuntimeError):
    """Raised when work is submitted to a reconciler after close()."""


class StateReconciler(ABC, Generic[T]):
    """Base class: FIFO mutation queue, change notification and channel lease.

    Subclasses define `handled_events`, `_fetch()` and `_merge_delta()`.
    """

    handled_events: ClassVar[frozenset[ChannelEventName]] = frozenset()

    def __init__(self, session: SessionChannel | None = None, name: str | None = None) -> None:
        self._session = session
        self._name = name or type(self).__name__
        self._state: ReconciledState[T] = ReconciledState()
        self._queue: asyncio.Queue[tuple[Callable[[], Awaitable[Any]], asyncio.Future[Any]]] = (
            asyncio.Queue()
        )
        self._worker_task: asyncio.Task[None] | None = None
        self._callbacks: list[ChangeCallback] = []
        self._subscriptions: list[Subscription] = []
        self._leased = False
        self._closed = False
        self._logger = logger.bind(reconciler=self._name)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> ReconciledState[T]:
        return self._state

    @property
    def snapshot(self) -> T | None:
        return self._state.snapshot

    def on_change(self, callback: ChangeCallback) -> Subscription:
        """Register a consumer notified with the new state after each committed mutation."""
        self._callbacks.append(callback)

        def dispose() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return Subscription(dispose)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> ReconciledState[T]:
        """Subscribe handled events, lease the session channel and hydrate.

        Raises:
            StudioError: When the session channel cannot be connected
        """
        self._ensure_open()
        channel = self._session.channel if self._session is not None else None
        if channel is not None:
            for event_name in sorted(self.handled_events, key=lambda e: e.value):
                self._subscriptions.append(
                    channel.subscribe(event_name, self._make_delta_handler(event_name))
                )
        if self._session is not None:
            try:
                await self._session.acquire()
            except StudioError:
                self._drop_subscriptions()
                raise
            self._leased = True
        return await self.hydrate()

    async def close(self) -> None:
        """Unsubscribe, cancel queued and in-flight work, release the lease and drop state."""
        if self._closed:
            return
        self._closed = True
        self._drop_subscriptions()

        if self._worker_task is not None and not self._worker_task.done():
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
        self._worker_task = None

        while not self._queue.empty():
            _, future = self._queue.get_nowait()
            if not future.done():
                future.cancel()

        if self._leased and self._session is not None:
            self._leased = False
            await self._session.release()

        self._callbacks.clear()
        self._state = ReconciledState()
        self._logger.debug("Reconciler closed")

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def hydrate(self) -> ReconciledState[T]:
        """One fetch; success replaces the snapshot, failure keeps it and sets `error`."""
        return await self._enqueue(lambda: self._fetch_job(self._fetch, "hydrate"))

    async def apply_delta(
        self, event_name: ChannelEventName, payload: dict[str, Any]
    ) -> ReconciledState[T]:
        """Merge one push event by the reconciler's domain rule."""
        return await self._enqueue(lambda: self._delta_job(event_name, payload))

    async def _fetch_job(
        self, fetch: Callable[[], Awaitable[T | None]], operation: str
    ) -> ReconciledState[T]:
        """Run one fetch inside the queue. None from `fetch` means nothing to replace."""
        self._commit(replace(self._state, loading=True))
        try:
            snapshot = await fetch()
        except StudioError as e:
            self._logger.warning(
                "Fetch failed, keeping previous snapshot",
                operation=operation,
                error_code=e.error_code,
                error_message=e.error_detail.message,
            )
            return self._commit(replace(self._state, loading=False, error=e.error_detail.message))
        if snapshot is None:
            return self._commit(replace(self._state, loading=False))
        return self._commit(ReconciledState(snapshot=snapshot, loading=False, error=None))

    async def _delta_job(
        self, event_name: ChannelEventName, payload: dict[str, Any]
    ) -> ReconciledState[T]:
        if event_name not in self.handled_events:
            self._logger.warning("Ignoring unhandled event", event_name=event_name.value)
            return self._state
        merged = self._merge_delta(self._state.snapshot, event_name, payload)
        if merged is None or merged == self._state.snapshot:
            return self._state
        return self._commit(replace(self._state, snapshot=merged))

    @abstractmethod
    async def _fetch(self) -> T:
        """Fetch a full snapshot from the backend.

        Raises:
            StudioError: On any fetch failure
        """

    @abstractmethod
    def _merge_delta(
        self, snapshot: T | None, event_name: ChannelEventName, payload: dict[str, Any]
    ) -> T | None:
        """Return the merged snapshot, or None when the event changes nothing."""

    # ------------------------------------------------------------------
    # Queue plumbing
    # ------------------------------------------------------------------

    def _enqueue(self, job: Callable[[], Awaitable[R]]) -> asyncio.Future[R]:
        self._ensure_open()
        future: asyncio.Future[R] = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((job, future))
        if self._worker_task is None or self._worker_task.done():
            self._worker_task = asyncio.create_task(
                self._worker(), name=f"{self._name}-mutation-worker"
            )
        return future

    async def _worker(self) -> None:
        while True:
            job, future = await self._queue.get()
            if future.done():
                continue
            try:
                result = await job()
            except asyncio.CancelledError:
                future.cancel()
                raise
            except Exception as e:
                self._logger.error("Reconciler job failed", exc_info=True)
                if not future.done():
                    future.set_exception(e)
            else:
                # The caller may have stopped waiting while the job ran
                if not future.done():
                    future.set_result(result)

    def _make_delta_handler(self, event_name: ChannelEventName) -> Callable[[dict[str, Any]], None]:
        def handle(payload: dict[str, Any]) -> None:
            if self._closed:
                return
            future = self._enqueue(lambda: self._delta_job(event_name, payload))
            future.add_done_callback(_consume_result)

        return handle

    def _commit(self, state: ReconciledState[T]) -> ReconciledState[T]:
        self._state = state
        for callback in list(self._callbacks):
            try:
                callback(state)
            except Exception:
                self._logger.error("Change callback failed", exc_info=True)
        return state

    def _drop_subscriptions(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()

    def _ensure_open(self) -> None:
        if self._closed:
            raise ReconcilerClosedError(f"{self._name} is closed")


def _consume_result(future: asyncio.Future[Any]) -> None:
    # Deltas from the channel have no awaiting caller; surface their failures in logs
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Background reconciler work failed", error=str(exc))
