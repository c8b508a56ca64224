"""
Base payout rail interface.

A payout rail holds donated funds in custody and executes the transfer
requested by a settlement, reporting success or failure synchronously.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from crowdfund.core.types import TransferResult


class PayoutRail(ABC):
    """
    Abstract base class for payout rails.

    The ledger never assumes funds moved unless `transfer` returns a
    successful result.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in logs."""
        ...

    @abstractmethod
    async def transfer(
        self,
        recipient: str,
        amount: int,
        reference: str,
    ) -> TransferResult:
        """
        Pay `amount` out of custody to `recipient`.

        Args:
            recipient: Benefactor identity
            amount: Amount in smallest units
            reference: Caller-supplied reference (e.g. "campaign:3")

        Returns:
            Transfer result
        """
        ...

    async def deposit(self, sender: str, amount: int) -> None:
        """
        Record funds entering custody.

        Rails whose custody is managed elsewhere leave this as a no-op.
        """
        return None

    async def refund(self, sender: str, amount: int) -> None:
        """
        Return funds taken by `deposit` that the ledger did not accept.

        Rails whose custody is managed elsewhere leave this as a no-op.
        """
        return None

    async def close(self) -> None:
        """Release any connections held by the rail."""
        return None
