"""
Studio Common Core Package.

Shared enums and wire models used by the gateway service and the client
session layer.
"""

from .config_enums import Environment
from .error_enums import ChannelErrorCode, ErrorCode
from .events.channel_events import ChannelEvent
from .generation_models import (
    TEMP_ID_PREFIX,
    GenerationCursor,
    GenerationImage,
    GenerationItem,
    GenerationMetadata,
    GenerationPage,
    TokenBalance,
)
from .models.error_models import ErrorDetail
from .status_enums import GenerationStatus
from .websocket_enums import ChannelConnectionState, ChannelEventName

__all__ = [
    # Enums
    "Environment",
    "ErrorCode",
    "ChannelErrorCode",
    "GenerationStatus",
    "ChannelEventName",
    "ChannelConnectionState",
    # Error model
    "ErrorDetail",
    # Generation and token models
    "TEMP_ID_PREFIX",
    "GenerationCursor",
    "GenerationImage",
    "GenerationItem",
    "GenerationMetadata",
    "GenerationPage",
    "TokenBalance",
    # Push channel
    "ChannelEvent",
]
