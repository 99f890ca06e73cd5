"""Push channel event envelope and per-event payload models."""

from .channel_events import (
    ChannelEvent,
    GenerationCompletedPayload,
    GenerationFailedPayload,
    GenerationProgressPayload,
    GenerationResult,
    TokenBalanceUpdatedPayload,
    UnauthorizedPayload,
)

__all__ = [
    "ChannelEvent",
    "GenerationCompletedPayload",
    "GenerationFailedPayload",
    "GenerationProgressPayload",
    "GenerationResult",
    "TokenBalanceUpdatedPayload",
    "UnauthorizedPayload",
]
