"""
Authenticated push channel client.

One long-lived websocket per session. The backend sends JSON text frames of the
form `{"event": <name>, "data": {...}}`; each frame is dispatched, in arrival
order, to the handlers subscribed to that event name at dispatch time.

Connection lifecycle: disconnected -> connecting -> connected, with error
reachable from any state. Unexpected drops are retried with a doubling delay;
an `unauthorized` event or an exhausted retry budget ends in error.
"""

from __future__ import annotations

import asyncio
import inspect
import json
from collections import defaultdict
from typing import Any

import aiohttp
from pydantic import ValidationError

from studio_common.error_enums import ErrorCode
from studio_common.events.channel_events import (
    ChannelEvent,
    UnauthorizedPayload,
)
from studio_common.models.error_models import ErrorDetail
from studio_common.websocket_enums import ChannelConnectionState, ChannelEventName
from studio_service_libs.error_handling import StudioError, create_error_detail_with_context
from studio_service_libs.logging_utils import create_service_logger, log_channel_event

from .config import Settings
from .protocols import EventHandler, StateCallback
from .subscription import Subscription

logger = create_service_logger("studio_client.event_channel")

SERVICE_NAME = "studio_client"

_AUTH_REJECTED_STATUSES = frozenset({401, 403})


class _HandlerEntry:
    __slots__ = ("handler", "active")

    def __init__(self, handler: EventHandler) -> None:
        self.handler = handler
        self.active = True


class EventChannelClient:
    """Websocket push channel with per-event-name subscriptions.

    Subscriptions belong to the client, not to a socket: they may be made
    before `connect()` and survive reconnects.
    """

    def __init__(
        self,
        url: str,
        *,
        reconnect_attempts: int = 5,
        reconnect_delay: float = 1.0,
        reconnect_delay_max: float = 5.0,
        connect_timeout: float = 20.0,
        heartbeat: float | None = 20.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._url = url
        self._reconnect_attempts = reconnect_attempts
        self._reconnect_delay = reconnect_delay
        self._reconnect_delay_max = reconnect_delay_max
        self._connect_timeout = connect_timeout
        self._heartbeat = heartbeat

        self._session = session
        self._owns_session = session is None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._token: str | None = None
        self._closing = False

        self._state = ChannelConnectionState.DISCONNECTED
        self._last_error: ErrorDetail | None = None
        self._handlers: dict[ChannelEventName, list[_HandlerEntry]] = defaultdict(list)
        self._state_callbacks: list[StateCallback] = []

    @classmethod
    def from_settings(
        cls, config: Settings, session: aiohttp.ClientSession | None = None
    ) -> EventChannelClient:
        return cls(
            config.WEBSOCKET_URL,
            reconnect_attempts=config.RECONNECT_ATTEMPTS,
            reconnect_delay=config.RECONNECT_DELAY_SECONDS,
            reconnect_delay_max=config.RECONNECT_DELAY_MAX_SECONDS,
            connect_timeout=config.CONNECT_TIMEOUT_SECONDS,
            heartbeat=config.HEARTBEAT_SECONDS,
            session=session,
        )

    @property
    def state(self) -> ChannelConnectionState:
        return self._state

    @property
    def last_error(self) -> ErrorDetail | None:
        return self._last_error

    @property
    def is_connected(self) -> bool:
        return self._state is ChannelConnectionState.CONNECTED

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, event_name: ChannelEventName, handler: EventHandler) -> Subscription:
        """Register `handler` for `event_name`.

        Each call creates an independent registration, even for the same
        handler object. Late subscribers never see earlier events.
        """
        entry = _HandlerEntry(handler)
        self._handlers[event_name].append(entry)

        def dispose() -> None:
            entry.active = False
            entries = self._handlers.get(event_name)
            if entries and entry in entries:
                entries.remove(entry)

        return Subscription(dispose)

    def on_state_change(self, callback: StateCallback) -> Subscription:
        """Observe connection state changes; called once immediately with the current state."""
        self._state_callbacks.append(callback)
        self._invoke_state_callback(callback, self._state)

        def dispose() -> None:
            if callback in self._state_callbacks:
                self._state_callbacks.remove(callback)

        return Subscription(dispose)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self, token: str | None) -> None:
        """Open the channel.

        Raises:
            StudioError: AUTHENTICATION_ERROR without a token or when the
                handshake is rejected, CONNECTION_ERROR/TIMEOUT when the
                server cannot be reached. The state is `error` in every case.
        """
        if self._state is ChannelConnectionState.CONNECTED and token == self._token:
            logger.debug("Push channel already connected")
            return

        if self._reader_task is not None:
            await self._stop_reader()
            await self._close_socket()

        if not token:
            raise StudioError(
                self._fail(
                    ErrorCode.AUTHENTICATION_ERROR,
                    "Cannot connect without token",
                    operation="connect",
                )
            )

        self._token = token
        self._closing = False
        self._set_state(ChannelConnectionState.CONNECTING)
        logger.info("Connecting push channel", url=self._url)

        try:
            await self._open()
        except aiohttp.WSServerHandshakeError as e:
            code = (
                ErrorCode.AUTHENTICATION_ERROR
                if e.status in _AUTH_REJECTED_STATUSES
                else ErrorCode.CONNECTION_ERROR
            )
            detail = self._fail(
                code, f"Handshake rejected: {e.status}", operation="connect", status=e.status
            )
            raise StudioError(detail) from e
        except asyncio.TimeoutError as e:
            detail = self._fail(
                ErrorCode.TIMEOUT,
                "Push channel handshake timed out",
                operation="connect",
                timeout_seconds=self._connect_timeout,
            )
            raise StudioError(detail) from e
        except aiohttp.ClientError as e:
            detail = self._fail(
                ErrorCode.CONNECTION_ERROR,
                f"Push channel unreachable: {e}",
                operation="connect",
                target=self._url,
            )
            raise StudioError(detail) from e

        self._last_error = None
        self._set_state(ChannelConnectionState.CONNECTED)
        self._reader_task = asyncio.create_task(self._run(), name="studio-push-channel-reader")

    async def disconnect(self) -> None:
        """Close the socket, stop reconnecting and move to `disconnected`."""
        self._closing = True
        await self._stop_reader()
        await self._close_socket()
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
        self._token = None
        self._set_state(ChannelConnectionState.DISCONNECTED)
        logger.info("Push channel disconnected")

    async def emit(self, event_name: str, data: dict[str, Any] | None = None) -> bool:
        """Send `{"event", "data"}` to the server. Returns False when not connected."""
        if not self.is_connected or self._ws is None or self._ws.closed:
            logger.warning("Cannot emit push event, channel not connected", event_name=event_name)
            return False
        await self._ws.send_json({"event": event_name, "data": data or {}})
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _open(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        self._ws = await asyncio.wait_for(
            self._session.ws_connect(
                self._url,
                headers={"Authorization": f"Bearer {self._token}"},
                heartbeat=self._heartbeat,
            ),
            timeout=self._connect_timeout,
        )

    async def _run(self) -> None:
        """Reader loop: read until the socket ends, then reconnect unless told to stop."""
        while True:
            await self._read_frames()
            if self._closing or self._state is ChannelConnectionState.ERROR:
                return
            logger.warning("Push channel dropped unexpectedly")
            self._set_state(ChannelConnectionState.DISCONNECTED)
            if not await self._reconnect():
                return

    async def _read_frames(self) -> None:
        ws = self._ws
        if ws is None:
            return
        async for msg in ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                await self._handle_frame(msg.data)
                if self._state is ChannelConnectionState.ERROR:
                    break
            elif msg.type == aiohttp.WSMsgType.ERROR:
                logger.warning("Push channel socket error", error=str(ws.exception()))
                break

    async def _reconnect(self) -> bool:
        delay = self._reconnect_delay
        for attempt in range(1, self._reconnect_attempts + 1):
            self._set_state(ChannelConnectionState.CONNECTING)
            logger.info(
                "Push channel reconnect attempt",
                attempt=attempt,
                max_attempts=self._reconnect_attempts,
                delay_seconds=delay,
            )
            await asyncio.sleep(delay)
            if self._closing:
                return False
            try:
                await self._open()
            except aiohttp.WSServerHandshakeError as e:
                if e.status in _AUTH_REJECTED_STATUSES:
                    self._fail(
                        ErrorCode.AUTHENTICATION_ERROR,
                        f"Handshake rejected: {e.status}",
                        operation="reconnect",
                        status=e.status,
                    )
                    return False
                logger.warning("Push channel reconnect failed", attempt=attempt, status=e.status)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning("Push channel reconnect failed", attempt=attempt, error=str(e))
            else:
                logger.info("Push channel reconnected", attempts=attempt)
                self._set_state(ChannelConnectionState.CONNECTED)
                return True
            delay = min(delay * 2, self._reconnect_delay_max)

        self._fail(
            ErrorCode.CONNECTION_ERROR,
            "Max reconnection attempts reached",
            operation="reconnect",
            attempts=self._reconnect_attempts,
        )
        return False

    async def _handle_frame(self, raw: str) -> None:
        try:
            frame = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring non-JSON push frame", frame_prefix=raw[:100])
            return
        if not isinstance(frame, dict):
            logger.warning("Ignoring push frame without event envelope")
            return

        raw_name = frame.get("event")
        event_name = ChannelEventName.parse(raw_name) if isinstance(raw_name, str) else None
        if event_name is None:
            logger.warning("Ignoring unknown push event", event_name=raw_name)
            return

        data = frame.get("data")
        if data is None:
            data = {}
        if not isinstance(data, dict):
            logger.warning("Ignoring push event with non-object data", event_name=raw_name)
            return

        event = ChannelEvent(event_name=event_name, payload=data)
        log_channel_event(
            logger,
            "Dispatching push event",
            event,
            handler_count=len(self._handlers.get(event_name, ())),
        )

        if event_name is ChannelEventName.UNAUTHORIZED:
            try:
                rejection = UnauthorizedPayload.model_validate(data)
            except ValidationError:
                rejection = UnauthorizedPayload()
            self._fail(
                ErrorCode.AUTHENTICATION_ERROR,
                rejection.message,
                operation="receive",
                code=rejection.code,
            )
            await self._dispatch(event)
            await self._close_socket()
            return

        if event_name is ChannelEventName.AUTHENTICATED:
            logger.info("Push channel authenticated", socket_id=data.get("socketId"))

        await self._dispatch(event)

    async def _dispatch(self, event: ChannelEvent) -> None:
        for entry in list(self._handlers.get(event.event_name, ())):
            if not entry.active:
                continue
            try:
                result = entry.handler(event.payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.error(
                    "Push event handler failed",
                    event_name=event.event_name.value,
                    exc_info=True,
                )

    async def _stop_reader(self) -> None:
        task = self._reader_task
        self._reader_task = None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _close_socket(self) -> None:
        ws = self._ws
        self._ws = None
        if ws is not None and not ws.closed:
            await ws.close()

    def _fail(
        self, code: ErrorCode, /, message: str, operation: str, **details: Any
    ) -> ErrorDetail:
        detail = create_error_detail_with_context(
            error_code=code,
            message=message,
            service=SERVICE_NAME,
            operation=f"event_channel.{operation}",
            details=details,
            capture_stack=False,
        )
        self._last_error = detail
        logger.error(
            "Push channel error",
            error_code=code.value,
            error_message=message,
            operation=operation,
        )
        self._set_state(ChannelConnectionState.ERROR)
        return detail

    def _set_state(self, state: ChannelConnectionState) -> None:
        if self._state is state:
            return
        logger.debug("Push channel state change", previous=self._state.value, current=state.value)
        self._state = state
        for callback in list(self._state_callbacks):
            self._invoke_state_callback(callback, state)

    def _invoke_state_callback(
        self, callback: StateCallback, state: ChannelConnectionState
    ) -> None:
        try:
            callback(state)
        except Exception:
            logger.error("Push channel state callback failed", exc_info=True)
