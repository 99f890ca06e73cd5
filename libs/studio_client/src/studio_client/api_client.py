"""Studio gateway HTTP client for the one-shot fetches behind the reconcilers."""

from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

import httpx
from pydantic import ValidationError

from studio_common.generation_models import GenerationPage, TokenBalance
from studio_service_libs.error_handling import (
    raise_connection_error,
    raise_external_service_error,
    raise_invalid_response,
    raise_timeout_error,
)
from studio_service_libs.logging_utils import create_service_logger

from .config import Settings

logger = create_service_logger("studio_client.api_client")

SERVICE_NAME = "studio_client"


class StudioApiClient:
    """HTTP client for the gateway's token and generation routes."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        token: str | None = None,
    ) -> None:
        """Initialize with a shared HTTP client.

        Args:
            http_client: Shared httpx AsyncClient instance
            base_url: Gateway origin, e.g. "http://localhost:3000"
            token: Bearer token sent on every call; None sends no Authorization
        """
        self._client = http_client
        self._base_url = base_url.rstrip("/")
        self._token = token

    @classmethod
    def from_settings(
        cls, config: Settings, http_client: httpx.AsyncClient, token: str | None = None
    ) -> StudioApiClient:
        return cls(http_client, config.GATEWAY_URL, token=token)

    def set_token(self, token: str | None) -> None:
        self._token = token

    async def get_token_balance(self, correlation_id: UUID | None = None) -> TokenBalance:
        """Fetch the caller's current token balance.

        Raises:
            StudioError: On transport failure, non-2xx status or unparseable body
        """
        correlation_id = correlation_id or uuid4()
        body = await self._get_json(
            "/api/tokens/balance",
            operation="get_token_balance",
            failure_message="Failed to fetch token balance",
            correlation_id=correlation_id,
        )
        try:
            return TokenBalance.model_validate(body.get("data", body))
        except ValidationError as e:
            raise_invalid_response(
                service=SERVICE_NAME,
                operation="get_token_balance",
                message=f"Unexpected token balance payload: {e.error_count()} validation error(s)",
                correlation_id=correlation_id,
            )

    async def get_my_generations(
        self,
        cursor: str | None = None,
        limit: int = 10,
        include_failed: bool = True,
        correlation_id: UUID | None = None,
    ) -> GenerationPage:
        """Fetch one cursor page of the caller's generations.

        Args:
            cursor: Opaque cursor of the page boundary; None for the first page
            limit: Page size
            include_failed: Include failed generations in the listing

        Raises:
            StudioError: On transport failure, non-2xx status or unparseable body
        """
        params: dict[str, str] = {
            "limit": str(limit),
            "includeFailed": "true" if include_failed else "false",
        }
        if cursor:
            params["cursor"] = cursor
        correlation_id = correlation_id or uuid4()

        body = await self._get_json(
            "/api/generations/my-generations",
            operation="get_my_generations",
            failure_message="Failed to fetch generations",
            correlation_id=correlation_id,
            params=params,
        )
        try:
            page = GenerationPage.from_response(body)
        except ValidationError as e:
            raise_invalid_response(
                service=SERVICE_NAME,
                operation="get_my_generations",
                message=f"Unexpected generation page payload: {e.error_count()} validation error(s)",
                correlation_id=correlation_id,
            )

        logger.debug(
            "Fetched generation page",
            result_count=len(page.results),
            has_more=page.has_more,
            with_cursor=cursor is not None,
        )
        return page

    async def _get_json(
        self,
        path: str,
        *,
        operation: str,
        failure_message: str,
        correlation_id: UUID,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        headers = {"X-Correlation-ID": str(correlation_id)}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        try:
            response = await self._client.get(url, params=params, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("Gateway request timed out", path=path, correlation_id=str(correlation_id))
            raise_timeout_error(
                service=SERVICE_NAME,
                operation=operation,
                timeout_seconds=_read_timeout(self._client),
                message=f"Request timeout: {e.__class__.__name__}",
                correlation_id=correlation_id,
                path=path,
            )
        except httpx.RequestError as e:
            logger.warning(
                "Gateway unreachable", path=path, error=str(e), correlation_id=str(correlation_id)
            )
            raise_connection_error(
                service=SERVICE_NAME,
                operation=operation,
                target=self._base_url,
                message="Gateway unavailable",
                correlation_id=correlation_id,
                path=path,
            )

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code >= 400:
            message = failure_message
            if isinstance(body, dict) and isinstance(body.get("message"), str):
                message = body["message"]
            raise_external_service_error(
                service=SERVICE_NAME,
                operation=operation,
                external_service="studio_gateway",
                message=message,
                correlation_id=correlation_id,
                status_code=response.status_code,
                path=path,
            )

        if not isinstance(body, dict):
            raise_invalid_response(
                service=SERVICE_NAME,
                operation=operation,
                message="Gateway returned a non-object JSON body",
                correlation_id=correlation_id,
                path=path,
            )
        return body


def _read_timeout(client: httpx.AsyncClient) -> float:
    read = client.timeout.read
    return float(read) if read is not None else 0.0
