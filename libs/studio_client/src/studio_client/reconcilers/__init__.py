"""Local mirrors of backend state kept current by push deltas."""

from .base import ChangeCallback, ReconciledState, ReconcilerClosedError, StateReconciler
from .generations import (
    GenerationListReconciler,
    GenerationListSnapshot,
    decode_cursor,
    encode_cursor,
)
from .token_balance import TokenBalanceReconciler, TokenBalanceSnapshot

__all__ = [
    "ChangeCallback",
    "ReconciledState",
    "ReconcilerClosedError",
    "StateReconciler",
    "GenerationListReconciler",
    "GenerationListSnapshot",
    "TokenBalanceReconciler",
    "TokenBalanceSnapshot",
    "decode_cursor",
    "encode_cursor",
]
