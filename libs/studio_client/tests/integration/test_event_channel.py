"""
Integration tests for EventChannelClient against a local aiohttp websocket server.

The server accepts `Bearer valid-token`, records frames sent by the client and
lets each test push frames or drop the socket to exercise reconnection.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any

import pytest
from aiohttp import WSMsgType, web
from aiohttp.test_utils import TestServer
from studio_client.event_channel import EventChannelClient
from studio_common.error_enums import ErrorCode
from studio_common.websocket_enums import ChannelConnectionState, ChannelEventName
from studio_service_libs.error_handling import StudioError

VALID_TOKEN = "valid-token"


class _PushServer:
    def __init__(self) -> None:
        self.connections = 0
        self.reject_status: int | None = None
        self.received: list[dict[str, Any]] = []
        self.sockets: list[web.WebSocketResponse] = []
        self.app = web.Application()
        self.app.router.add_get("/ws", self._handle)

    async def _handle(self, request: web.Request) -> web.StreamResponse:
        if self.reject_status is not None:
            return web.Response(status=self.reject_status)
        if request.headers.get("Authorization") != f"Bearer {VALID_TOKEN}":
            return web.Response(status=401)
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self.connections += 1
        self.sockets.append(ws)
        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                self.received.append(json.loads(msg.data))
        return ws

    async def push(self, event: str, data: Any) -> None:
        for ws in list(self.sockets):
            if not ws.closed:
                await ws.send_str(json.dumps({"event": event, "data": data}))

    async def push_raw(self, raw: str) -> None:
        for ws in list(self.sockets):
            if not ws.closed:
                await ws.send_str(raw)

    async def drop(self) -> None:
        for ws in list(self.sockets):
            await ws.close()
        self.sockets.clear()


@pytest.fixture
async def push_server() -> AsyncIterator[tuple[_PushServer, str]]:
    server = _PushServer()
    test_server = TestServer(server.app)
    await test_server.start_server()
    try:
        yield server, str(test_server.make_url("/ws"))
    finally:
        await test_server.close()


@pytest.fixture
async def channel(push_server: tuple[_PushServer, str]) -> AsyncIterator[EventChannelClient]:
    _, url = push_server
    client = EventChannelClient(
        url,
        reconnect_attempts=3,
        reconnect_delay=0.01,
        reconnect_delay_max=0.05,
        connect_timeout=2.0,
        heartbeat=None,
    )
    try:
        yield client
    finally:
        await client.disconnect()


async def _wait_until(predicate: Any, timeout: float = 2.0) -> None:
    async def poll() -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout=timeout)


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_without_token_fails(self, channel: EventChannelClient) -> None:
        with pytest.raises(StudioError) as exc_info:
            await channel.connect(None)

        assert exc_info.value.error_code == ErrorCode.AUTHENTICATION_ERROR.value
        assert exc_info.value.error_detail.message == "Cannot connect without token"
        assert channel.state is ChannelConnectionState.ERROR
        assert channel.last_error is not None

    @pytest.mark.asyncio
    async def test_rejected_handshake_is_authentication_error(
        self, channel: EventChannelClient, push_server: tuple[_PushServer, str]
    ) -> None:
        with pytest.raises(StudioError) as exc_info:
            await channel.connect("wrong-token")

        assert exc_info.value.error_code == ErrorCode.AUTHENTICATION_ERROR.value
        assert channel.state is ChannelConnectionState.ERROR
        assert push_server[0].connections == 0

    @pytest.mark.asyncio
    async def test_state_observer_sees_lifecycle(self, channel: EventChannelClient) -> None:
        states: list[ChannelConnectionState] = []
        channel.on_state_change(states.append)

        await channel.connect(VALID_TOKEN)
        await channel.disconnect()

        assert states == [
            ChannelConnectionState.DISCONNECTED,
            ChannelConnectionState.CONNECTING,
            ChannelConnectionState.CONNECTED,
            ChannelConnectionState.DISCONNECTED,
        ]


class TestDispatch:
    @pytest.mark.asyncio
    async def test_events_arrive_in_order_per_name(
        self, channel: EventChannelClient, push_server: tuple[_PushServer, str]
    ) -> None:
        server, _ = push_server
        progress: list[int] = []
        channel.subscribe(
            ChannelEventName.GENERATION_PROGRESS, lambda data: progress.append(data["progress"])
        )
        await channel.connect(VALID_TOKEN)
        await _wait_until(lambda: server.connections == 1)

        for value in (10, 20, 30, 40):
            await server.push("generation_progress", {"generationId": "gen-1", "progress": value})
        await _wait_until(lambda: len(progress) == 4)

        assert progress == [10, 20, 30, 40]

    @pytest.mark.asyncio
    async def test_each_subscription_is_independent(
        self, channel: EventChannelClient, push_server: tuple[_PushServer, str]
    ) -> None:
        server, _ = push_server
        calls: list[dict[str, Any]] = []
        first = channel.subscribe(ChannelEventName.TOKEN_BALANCE_UPDATED, calls.append)
        channel.subscribe(ChannelEventName.TOKEN_BALANCE_UPDATED, calls.append)
        await channel.connect(VALID_TOKEN)
        await _wait_until(lambda: server.connections == 1)

        await server.push("token_balance_updated", {"balance": 5})
        await _wait_until(lambda: len(calls) == 2)

        first.unsubscribe()
        first.unsubscribe()
        await server.push("token_balance_updated", {"balance": 4})
        await _wait_until(lambda: len(calls) == 3)
        await asyncio.sleep(0.05)

        assert [call["balance"] for call in calls] == [5, 5, 4]

    @pytest.mark.asyncio
    async def test_async_handlers_are_awaited(
        self, channel: EventChannelClient, push_server: tuple[_PushServer, str]
    ) -> None:
        server, _ = push_server
        seen: list[str] = []

        async def handler(data: dict[str, Any]) -> None:
            await asyncio.sleep(0)
            seen.append(data["userId"])

        channel.subscribe(ChannelEventName.USER_ONLINE, handler)
        await channel.connect(VALID_TOKEN)
        await _wait_until(lambda: server.connections == 1)

        await server.push("user_online", {"userId": "user-7"})
        await _wait_until(lambda: seen == ["user-7"])

    @pytest.mark.asyncio
    async def test_unknown_and_malformed_frames_are_ignored(
        self, channel: EventChannelClient, push_server: tuple[_PushServer, str]
    ) -> None:
        server, _ = push_server
        jobs: list[dict[str, Any]] = []
        channel.subscribe(ChannelEventName.JOB_COMPLETED, jobs.append)
        await channel.connect(VALID_TOKEN)
        await _wait_until(lambda: server.connections == 1)

        await server.push("mystery_event", {"x": 1})
        await server.push_raw("not json")
        await server.push("job_completed", ["not", "an", "object"])
        await server.push("job_completed", {"jobId": "job-1"})
        await _wait_until(lambda: len(jobs) == 1)

        assert jobs == [{"jobId": "job-1"}]
        assert channel.state is ChannelConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_others(
        self, channel: EventChannelClient, push_server: tuple[_PushServer, str]
    ) -> None:
        server, _ = push_server
        seen: list[str] = []

        def broken(data: dict[str, Any]) -> None:
            raise ValueError("handler bug")

        channel.subscribe(ChannelEventName.JOB_FAILED, broken)
        channel.subscribe(ChannelEventName.JOB_FAILED, lambda data: seen.append(data["jobId"]))
        await channel.connect(VALID_TOKEN)
        await _wait_until(lambda: server.connections == 1)

        await server.push("job_failed", {"jobId": "job-2", "error": "boom"})
        await _wait_until(lambda: seen == ["job-2"])


class TestUnauthorized:
    @pytest.mark.asyncio
    async def test_unauthorized_event_ends_in_error_without_reconnect(
        self, channel: EventChannelClient, push_server: tuple[_PushServer, str]
    ) -> None:
        server, _ = push_server
        notices: list[dict[str, Any]] = []
        channel.subscribe(ChannelEventName.UNAUTHORIZED, notices.append)
        await channel.connect(VALID_TOKEN)
        await _wait_until(lambda: server.connections == 1)

        await server.push("unauthorized", {"code": "TOKEN_EXPIRED", "message": "Token expired"})
        await _wait_until(lambda: channel.state is ChannelConnectionState.ERROR)
        await asyncio.sleep(0.1)

        assert notices == [{"code": "TOKEN_EXPIRED", "message": "Token expired"}]
        assert channel.last_error is not None
        assert channel.last_error.error_code is ErrorCode.AUTHENTICATION_ERROR
        assert channel.last_error.message == "Token expired"
        assert server.connections == 1
        assert channel.state is ChannelConnectionState.ERROR


class TestEmit:
    @pytest.mark.asyncio
    async def test_emit_while_disconnected_returns_false(self, channel: EventChannelClient) -> None:
        assert await channel.emit("ping", {}) is False

    @pytest.mark.asyncio
    async def test_emit_sends_event_envelope(
        self, channel: EventChannelClient, push_server: tuple[_PushServer, str]
    ) -> None:
        server, _ = push_server
        await channel.connect(VALID_TOKEN)

        assert await channel.emit("subscribe_generation", {"generationId": "gen-1"}) is True
        await _wait_until(lambda: len(server.received) == 1)

        assert server.received == [
            {"event": "subscribe_generation", "data": {"generationId": "gen-1"}}
        ]


class TestReconnect:
    @pytest.mark.asyncio
    async def test_reconnects_after_drop_and_keeps_subscriptions(
        self, channel: EventChannelClient, push_server: tuple[_PushServer, str]
    ) -> None:
        server, _ = push_server
        balances: list[int] = []
        channel.subscribe(
            ChannelEventName.TOKEN_BALANCE_UPDATED, lambda data: balances.append(data["balance"])
        )
        await channel.connect(VALID_TOKEN)
        await _wait_until(lambda: server.connections == 1)

        await server.drop()
        await _wait_until(lambda: server.connections == 2)
        await _wait_until(lambda: channel.state is ChannelConnectionState.CONNECTED)

        await server.push("token_balance_updated", {"balance": 9})
        await _wait_until(lambda: balances == [9])

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(
        self, channel: EventChannelClient, push_server: tuple[_PushServer, str]
    ) -> None:
        server, _ = push_server
        await channel.connect(VALID_TOKEN)
        await _wait_until(lambda: server.connections == 1)

        server.reject_status = 503
        await server.drop()
        await _wait_until(lambda: channel.state is ChannelConnectionState.ERROR)

        assert channel.last_error is not None
        assert channel.last_error.error_code is ErrorCode.CONNECTION_ERROR
        assert channel.last_error.message == "Max reconnection attempts reached"

    @pytest.mark.asyncio
    async def test_disconnect_stops_reconnecting(
        self, channel: EventChannelClient, push_server: tuple[_PushServer, str]
    ) -> None:
        server, _ = push_server
        await channel.connect(VALID_TOKEN)
        await _wait_until(lambda: server.connections == 1)

        await channel.disconnect()
        await asyncio.sleep(0.1)

        assert channel.state is ChannelConnectionState.DISCONNECTED
        assert server.connections == 1
