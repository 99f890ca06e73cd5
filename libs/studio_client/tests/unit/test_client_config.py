"""Tests for client Settings and the settings-based constructors."""

from __future__ import annotations

import httpx
import pytest
from httpx import Response
from respx import MockRouter
from studio_client.api_client import StudioApiClient
from studio_client.config import Settings
from studio_client.event_channel import EventChannelClient
from studio_common.error_enums import ErrorCode
from studio_common.websocket_enums import ChannelConnectionState
from studio_service_libs.error_handling import StudioError


@pytest.fixture
def client_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    monkeypatch.setenv("STUDIO_CLIENT_GATEWAY_URL", "http://gateway.local:4000/")
    monkeypatch.setenv("WEBSOCKET_URL", "ws://push.local/ws")
    monkeypatch.setenv("STUDIO_CLIENT_RECONNECT_ATTEMPTS", "2")
    return Settings(_env_file=None)


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("STUDIO_CLIENT_GATEWAY_URL", "GATEWAY_URL", "STUDIO_CLIENT_GENERATIONS_PAGE_SIZE"):
        monkeypatch.delenv(name, raising=False)

    config = Settings(_env_file=None)

    assert config.GATEWAY_URL == "http://localhost:3000"
    assert config.GENERATIONS_PAGE_SIZE == 10
    assert config.GENERATIONS_INCLUDE_FAILED is True


def test_reads_prefixed_and_bare_variables(client_settings: Settings) -> None:
    assert client_settings.GATEWAY_URL == "http://gateway.local:4000/"
    assert client_settings.WEBSOCKET_URL == "ws://push.local/ws"
    assert client_settings.RECONNECT_ATTEMPTS == 2


def test_page_size_bounds(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STUDIO_CLIENT_GENERATIONS_PAGE_SIZE", "0")

    with pytest.raises(ValueError):
        Settings(_env_file=None)


@pytest.mark.asyncio
async def test_api_client_from_settings_targets_gateway(
    client_settings: Settings, respx_mock: MockRouter
) -> None:
    route = respx_mock.get("http://gateway.local:4000/api/tokens/balance").mock(
        return_value=Response(200, json={"balance": 3})
    )

    async with httpx.AsyncClient() as http_client:
        api_client = StudioApiClient.from_settings(client_settings, http_client, token="t")
        balance = await api_client.get_token_balance()

    assert balance.balance == 3
    assert route.called


@pytest.mark.asyncio
async def test_channel_from_settings_requires_token(client_settings: Settings) -> None:
    channel = EventChannelClient.from_settings(client_settings)

    with pytest.raises(StudioError) as exc_info:
        await channel.connect(None)

    assert exc_info.value.error_code == ErrorCode.AUTHENTICATION_ERROR
    assert channel.state is ChannelConnectionState.ERROR
