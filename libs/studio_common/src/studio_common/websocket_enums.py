"""Push channel enums for event names and connection lifecycle."""

from __future__ import annotations

from enum import Enum


class ChannelEventName(str, Enum):
    """
    Closed set of event names the backend emits on the push channel.

    Names are the exact wire tags; anything else received on the channel is
    treated as unknown and ignored.
    """

    AUTHENTICATED = "authenticated"
    UNAUTHORIZED = "unauthorized"

    USER_ONLINE = "user_online"
    USER_OFFLINE = "user_offline"

    GENERATION_PROGRESS = "generation_progress"
    GENERATION_COMPLETED = "generation_completed"
    GENERATION_FAILED = "generation_failed"

    JOB_PROGRESS = "job_progress"
    JOB_COMPLETED = "job_completed"
    JOB_FAILED = "job_failed"

    TOKEN_BALANCE_UPDATED = "token_balance_updated"

    @classmethod
    def parse(cls, raw: str) -> ChannelEventName | None:
        """Return the enum member for a wire tag, or None when the tag is unknown."""
        try:
            return cls(raw)
        except ValueError:
            return None


class ChannelConnectionState(str, Enum):
    """Push channel connection lifecycle states."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
