"""
InMemoryPayoutRail - custody and payouts tracked in process memory.
"""

from __future__ import annotations

import uuid
from collections import defaultdict

from crowdfund.core.logging import get_logger
from crowdfund.core.types import TransferResult
from crowdfund.payout.base import PayoutRail


class InMemoryPayoutRail(PayoutRail):
    """
    Payout rail backed by Python dicts.

    Custody is a single pooled balance. A transfer larger than custody
    fails without moving anything.
    """

    def __init__(self, custody: int = 0) -> None:
        self._custody = custody
        self._balances: dict[str, int] = defaultdict(int)
        self._transfers: list[TransferResult] = []
        self._logger = get_logger("payout.memory")

    @property
    def name(self) -> str:
        return "memory"

    @property
    def custody(self) -> int:
        return self._custody

    @property
    def transfers(self) -> list[TransferResult]:
        """Successful transfers in the order they were made."""
        return list(self._transfers)

    def balance_of(self, recipient: str) -> int:
        return self._balances.get(recipient, 0)

    async def deposit(self, sender: str, amount: int) -> None:
        self._custody += amount
        self._logger.debug(f"Custody +{amount} from {sender} (total {self._custody})")

    async def refund(self, sender: str, amount: int) -> None:
        if amount > self._custody:
            raise ValueError(f"Cannot refund {amount}: custody holds {self._custody}")
        self._custody -= amount
        self._logger.debug(f"Custody -{amount} refunded to {sender} (total {self._custody})")

    async def transfer(
        self,
        recipient: str,
        amount: int,
        reference: str,
    ) -> TransferResult:
        if amount > self._custody:
            return TransferResult(
                success=False,
                recipient=recipient,
                amount=amount,
                error=f"Insufficient custody: {self._custody} < {amount}",
            )

        self._custody -= amount
        self._balances[recipient] += amount

        result = TransferResult(
            success=True,
            recipient=recipient,
            amount=amount,
            transaction_id=str(uuid.uuid4()),
            metadata={"reference": reference},
        )
        self._transfers.append(result)
        self._logger.info(f"Paid {amount} to {recipient} ({reference})")
        return result
