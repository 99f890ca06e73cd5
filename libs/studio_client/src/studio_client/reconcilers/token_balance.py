"""Token balance reconciler: hydrate from `/api/tokens/balance`, replace on push."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, ClassVar

from pydantic import ValidationError

from studio_common.events.channel_events import TokenBalanceUpdatedPayload
from studio_common.websocket_enums import ChannelEventName

from ..protocols import StudioApiClientProtocol
from ..session import SessionChannel
from .base import StateReconciler

# Transaction ids remembered for duplicate detection
_SEEN_TRANSACTIONS = 256


@dataclass(frozen=True)
class TokenBalanceSnapshot:
    balance: int
    owner_id: str | None = None
    last_transaction_id: str | None = None
    updated_at: str | None = None


class TokenBalanceReconciler(StateReconciler[TokenBalanceSnapshot]):
    """Mirrors the caller's token balance.

    `token_balance_updated` carries the absolute balance after the change, so
    the delta replaces `balance` and never adds `change`. A repeated
    transactionId is skipped.
    """

    handled_events: ClassVar[frozenset[ChannelEventName]] = frozenset(
        {ChannelEventName.TOKEN_BALANCE_UPDATED}
    )

    def __init__(
        self, api_client: StudioApiClientProtocol, session: SessionChannel | None = None
    ) -> None:
        super().__init__(session, name="token_balance")
        self._api_client = api_client
        self._seen_transactions: deque[str] = deque(maxlen=_SEEN_TRANSACTIONS)

    async def _fetch(self) -> TokenBalanceSnapshot:
        balance = await self._api_client.get_token_balance()
        previous = self.snapshot
        return TokenBalanceSnapshot(
            balance=balance.balance,
            owner_id=balance.user_id,
            last_transaction_id=previous.last_transaction_id if previous else None,
        )

    def _merge_delta(
        self,
        snapshot: TokenBalanceSnapshot | None,
        event_name: ChannelEventName,
        payload: dict[str, Any],
    ) -> TokenBalanceSnapshot | None:
        try:
            update = TokenBalanceUpdatedPayload.model_validate(payload)
        except ValidationError as e:
            self._logger.warning("Ignoring malformed token balance update", errors=e.error_count())
            return None

        if update.transaction_id is not None:
            if update.transaction_id in self._seen_transactions:
                self._logger.debug(
                    "Skipping repeated token transaction", transaction_id=update.transaction_id
                )
                return None
            self._seen_transactions.append(update.transaction_id)

        self._logger.info(
            "Token balance updated",
            balance=update.balance,
            change=update.change,
            reason=update.reason,
        )
        return TokenBalanceSnapshot(
            balance=update.balance,
            owner_id=snapshot.owner_id if snapshot else None,
            last_transaction_id=update.transaction_id
            or (snapshot.last_transaction_id if snapshot else None),
            updated_at=update.timestamp,
        )
