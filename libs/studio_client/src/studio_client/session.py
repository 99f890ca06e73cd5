"""
Session-scoped owner of the single push channel.

Reconcilers lease the channel instead of connecting it themselves: the first
lease connects, the last release disconnects. The channel object itself is
passed in explicitly, so a session is testable without any global state.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from studio_common.websocket_enums import ChannelConnectionState
from studio_service_libs.logging_utils import create_service_logger

from .protocols import EventChannelProtocol

logger = create_service_logger("studio_client.session")


class SessionChannel:
    """Reference-counted lease over one EventChannelProtocol."""

    def __init__(self, channel: EventChannelProtocol, token: str | None) -> None:
        self._channel = channel
        self._token = token
        self._leases = 0
        self._lock = asyncio.Lock()

    @property
    def channel(self) -> EventChannelProtocol:
        return self._channel

    @property
    def lease_count(self) -> int:
        return self._leases

    async def acquire(self) -> EventChannelProtocol:
        """Take a lease, connecting the channel if it is not connected yet.

        A failed connect does not count as a lease.

        Raises:
            StudioError: When the channel cannot be connected
        """
        async with self._lock:
            if self._channel.state not in (
                ChannelConnectionState.CONNECTED,
                ChannelConnectionState.CONNECTING,
            ):
                await self._channel.connect(self._token)
            self._leases += 1
            logger.debug("Session channel leased", leases=self._leases)
            return self._channel

    async def release(self) -> None:
        """Drop a lease; the last release disconnects the channel."""
        async with self._lock:
            if self._leases == 0:
                logger.warning("Session channel released more often than acquired")
                return
            self._leases -= 1
            logger.debug("Session channel released", leases=self._leases)
            if self._leases == 0:
                await self._channel.disconnect()

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[EventChannelProtocol]:
        channel = await self.acquire()
        try:
            yield channel
        finally:
            await self.release()

    async def close(self) -> None:
        """Session teardown: disconnect regardless of outstanding leases."""
        async with self._lock:
            if self._leases:
                logger.info("Closing session channel with open leases", leases=self._leases)
            self._leases = 0
            await self._channel.disconnect()
