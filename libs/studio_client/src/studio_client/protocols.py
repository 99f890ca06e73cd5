"""
Protocols for the Studio client session layer.

Reconcilers and the session channel depend on these interfaces, not on the
concrete httpx and aiohttp implementations.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol
from uuid import UUID

from studio_common.generation_models import GenerationPage, TokenBalance
from studio_common.models.error_models import ErrorDetail
from studio_common.websocket_enums import ChannelConnectionState, ChannelEventName

from .subscription import Subscription

EventHandler = Callable[[dict[str, Any]], Awaitable[None] | None]
StateCallback = Callable[[ChannelConnectionState], None]


class StudioApiClientProtocol(Protocol):
    """Protocol for the gateway fetch client."""

    async def get_token_balance(self, correlation_id: UUID | None = None) -> TokenBalance:
        """Fetch the current token balance."""
        ...

    async def get_my_generations(
        self,
        cursor: str | None = None,
        limit: int = 10,
        include_failed: bool = True,
        correlation_id: UUID | None = None,
    ) -> GenerationPage:
        """Fetch one cursor page of generations."""
        ...


class EventChannelProtocol(Protocol):
    """Protocol for the authenticated push channel."""

    @property
    def state(self) -> ChannelConnectionState:
        """Current connection state."""
        ...

    @property
    def last_error(self) -> ErrorDetail | None:
        """Most recent connection or authentication error."""
        ...

    async def connect(self, token: str | None) -> None:
        """Open the channel with a bearer token."""
        ...

    async def disconnect(self) -> None:
        """Close the channel and stop reconnecting."""
        ...

    def subscribe(self, event_name: ChannelEventName, handler: EventHandler) -> Subscription:
        """Register a handler for one event name."""
        ...

    def on_state_change(self, callback: StateCallback) -> Subscription:
        """Register a connection state observer."""
        ...

    async def emit(self, event_name: str, data: dict[str, Any] | None = None) -> bool:
        """Send an event to the server; False when not connected."""
        ...
