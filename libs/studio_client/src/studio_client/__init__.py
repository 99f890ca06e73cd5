"""
Studio client session layer.

StudioApiClient: Authenticated JSON fetches through the gateway.
EventChannelClient: Authenticated push channel with reconnection.
SessionChannel: Reference-counted lease over one push channel.
Reconcilers: Token balance and generation list mirrors.
"""

from .api_client import StudioApiClient
from .event_channel import EventChannelClient
from .reconcilers import (
    GenerationListReconciler,
    GenerationListSnapshot,
    ReconciledState,
    ReconcilerClosedError,
    TokenBalanceReconciler,
    TokenBalanceSnapshot,
)
from .session import SessionChannel
from .subscription import Subscription

__all__ = [
    "StudioApiClient",
    "EventChannelClient",
    "SessionChannel",
    "Subscription",
    "GenerationListReconciler",
    "GenerationListSnapshot",
    "ReconciledState",
    "ReconcilerClosedError",
    "TokenBalanceReconciler",
    "TokenBalanceSnapshot",
]
