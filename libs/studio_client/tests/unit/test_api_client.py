"""Unit tests for StudioApiClient against a respx-mocked gateway."""

from __future__ import annotations

from collections.abc import AsyncIterator
from uuid import uuid4

import httpx
import pytest
from httpx import Response
from respx import MockRouter
from studio_client.api_client import StudioApiClient
from studio_common.error_enums import ErrorCode
from studio_service_libs.error_handling import StudioError

GATEWAY = "http://gateway.test"


@pytest.fixture
async def api_client() -> AsyncIterator[StudioApiClient]:
    async with httpx.AsyncClient(timeout=httpx.Timeout(5.0)) as http_client:
        yield StudioApiClient(http_client, f"{GATEWAY}/", token="token-abc")


def _item(generation_id: str, created_at: str, status: str = "completed") -> dict:
    return {
        "generationId": generation_id,
        "status": status,
        "progress": 100 if status == "completed" else 0,
        "createdAt": created_at,
        "metadata": {"prompt": "a lighthouse", "numberOfImages": 1, "aspectRatio": "1:1"},
    }


class TestTokenBalance:
    @pytest.mark.asyncio
    async def test_sends_bearer_and_correlation_headers(
        self, api_client: StudioApiClient, respx_mock: MockRouter
    ) -> None:
        route = respx_mock.get(f"{GATEWAY}/api/tokens/balance").mock(
            return_value=Response(200, json={"success": True, "data": {"balance": 42}})
        )
        correlation_id = uuid4()

        balance = await api_client.get_token_balance(correlation_id=correlation_id)

        assert balance.balance == 42
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer token-abc"
        assert request.headers["X-Correlation-ID"] == str(correlation_id)

    @pytest.mark.asyncio
    async def test_accepts_unwrapped_body(
        self, api_client: StudioApiClient, respx_mock: MockRouter
    ) -> None:
        respx_mock.get(f"{GATEWAY}/api/tokens/balance").mock(
            return_value=Response(200, json={"balance": 7, "userId": "user-1"})
        )

        balance = await api_client.get_token_balance()

        assert balance.balance == 7
        assert balance.user_id == "user-1"

    @pytest.mark.asyncio
    async def test_no_authorization_header_without_token(
        self, api_client: StudioApiClient, respx_mock: MockRouter
    ) -> None:
        route = respx_mock.get(f"{GATEWAY}/api/tokens/balance").mock(
            return_value=Response(200, json={"balance": 1})
        )
        api_client.set_token(None)

        await api_client.get_token_balance()

        assert "Authorization" not in route.calls.last.request.headers

    @pytest.mark.asyncio
    async def test_error_status_uses_backend_message(
        self, api_client: StudioApiClient, respx_mock: MockRouter
    ) -> None:
        respx_mock.get(f"{GATEWAY}/api/tokens/balance").mock(
            return_value=Response(401, json={"success": False, "message": "Token expired"})
        )

        with pytest.raises(StudioError) as exc_info:
            await api_client.get_token_balance()

        error = exc_info.value
        assert error.error_code == ErrorCode.EXTERNAL_SERVICE_ERROR.value
        assert error.error_detail.message == "Token expired"
        assert error.error_detail.details["status_code"] == 401

    @pytest.mark.asyncio
    async def test_error_status_without_body_uses_default_message(
        self, api_client: StudioApiClient, respx_mock: MockRouter
    ) -> None:
        respx_mock.get(f"{GATEWAY}/api/tokens/balance").mock(
            return_value=Response(500, text="oops")
        )

        with pytest.raises(StudioError) as exc_info:
            await api_client.get_token_balance()

        assert exc_info.value.error_detail.message == "Failed to fetch token balance"

    @pytest.mark.asyncio
    async def test_timeout_maps_to_timeout_error(
        self, api_client: StudioApiClient, respx_mock: MockRouter
    ) -> None:
        respx_mock.get(f"{GATEWAY}/api/tokens/balance").mock(
            side_effect=httpx.ReadTimeout("slow")
        )

        with pytest.raises(StudioError) as exc_info:
            await api_client.get_token_balance()

        assert exc_info.value.error_code == ErrorCode.TIMEOUT.value

    @pytest.mark.asyncio
    async def test_connect_error_maps_to_connection_error(
        self, api_client: StudioApiClient, respx_mock: MockRouter
    ) -> None:
        respx_mock.get(f"{GATEWAY}/api/tokens/balance").mock(
            side_effect=httpx.ConnectError("refused")
        )

        with pytest.raises(StudioError) as exc_info:
            await api_client.get_token_balance()

        assert exc_info.value.error_code == ErrorCode.CONNECTION_ERROR.value

    @pytest.mark.asyncio
    async def test_malformed_payload_is_invalid_response(
        self, api_client: StudioApiClient, respx_mock: MockRouter
    ) -> None:
        respx_mock.get(f"{GATEWAY}/api/tokens/balance").mock(
            return_value=Response(200, json={"data": {"credits": 5}})
        )

        with pytest.raises(StudioError) as exc_info:
            await api_client.get_token_balance()

        assert exc_info.value.error_code == ErrorCode.INVALID_RESPONSE.value

    @pytest.mark.asyncio
    async def test_non_object_body_is_invalid_response(
        self, api_client: StudioApiClient, respx_mock: MockRouter
    ) -> None:
        respx_mock.get(f"{GATEWAY}/api/tokens/balance").mock(
            return_value=Response(200, json=[1, 2, 3])
        )

        with pytest.raises(StudioError) as exc_info:
            await api_client.get_token_balance()

        assert exc_info.value.error_code == ErrorCode.INVALID_RESPONSE.value


class TestMyGenerations:
    @pytest.mark.asyncio
    async def test_first_page_query_parameters(
        self, api_client: StudioApiClient, respx_mock: MockRouter
    ) -> None:
        route = respx_mock.get(f"{GATEWAY}/api/generations/my-generations").mock(
            return_value=Response(
                200,
                json={
                    "results": [_item("gen-1", "2026-01-02T10:00:00.000Z")],
                    "cursor": {"next": "abc", "hasMore": True},
                },
            )
        )

        page = await api_client.get_my_generations(limit=1)

        params = route.calls.last.request.url.params
        assert params["limit"] == "1"
        assert params["includeFailed"] == "true"
        assert "cursor" not in params
        assert [item.generation_id for item in page.results] == ["gen-1"]
        assert page.has_more is True
        assert page.next_cursor == "abc"

    @pytest.mark.asyncio
    async def test_cursor_and_exclude_failed_are_forwarded(
        self, api_client: StudioApiClient, respx_mock: MockRouter
    ) -> None:
        route = respx_mock.get(f"{GATEWAY}/api/generations/my-generations").mock(
            return_value=Response(200, json={"results": []})
        )

        page = await api_client.get_my_generations(cursor="eyJ4IjoxfQ==", include_failed=False)

        params = route.calls.last.request.url.params
        assert params["cursor"] == "eyJ4IjoxfQ=="
        assert params["includeFailed"] == "false"
        assert page.results == []
        assert page.has_more is None

    @pytest.mark.asyncio
    async def test_sectioned_listing_is_flattened(
        self, api_client: StudioApiClient, respx_mock: MockRouter
    ) -> None:
        respx_mock.get(f"{GATEWAY}/api/generations/my-generations").mock(
            return_value=Response(
                200,
                json={
                    "success": True,
                    "data": {
                        "queue": [_item("gen-q", "2026-01-03T10:00:00.000Z", "processing")],
                        "completed": [_item("gen-c", "2026-01-02T10:00:00.000Z")],
                        "failed": [],
                        "cursor": {"next": None, "hasMore": False},
                    },
                },
            )
        )

        page = await api_client.get_my_generations()

        assert [item.generation_id for item in page.results] == ["gen-q", "gen-c"]
        assert page.page_count == 1
        assert page.has_more is False

    @pytest.mark.asyncio
    async def test_invalid_item_is_invalid_response(
        self, api_client: StudioApiClient, respx_mock: MockRouter
    ) -> None:
        respx_mock.get(f"{GATEWAY}/api/generations/my-generations").mock(
            return_value=Response(200, json={"results": [{"status": "completed"}]})
        )

        with pytest.raises(StudioError) as exc_info:
            await api_client.get_my_generations()

        assert exc_info.value.error_code == ErrorCode.INVALID_RESPONSE.value
