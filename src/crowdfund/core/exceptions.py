"""
Exception hierarchy for the crowdfund ledger.

All package exceptions inherit from CrowdfundError for easy catching.
Every LedgerError leaves persisted ledger state exactly as it was
before the failing call.
"""

from __future__ import annotations

from typing import Any


class CrowdfundError(Exception):
    """
    Base exception for all crowdfund errors.

    Example:
        >>> try:
        ...     await ledger.end("0xowner", 0)
        ... except CrowdfundError as e:
        ...     print(f"Ledger error: {e}")
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(CrowdfundError):
    """
    Configuration is missing or invalid.

    Raised when:
    - An owner-gated policy is configured without an owner
    - A storage backend or rail cannot be built from configuration
    """

    pass


class ValidationError(CrowdfundError):
    """
    Input validation error.

    Raised when:
    - An amount is negative, fractional, a float, or outside the amount domain
    - A duration is negative
    - Text fields are not strings
    """

    pass


class LedgerError(CrowdfundError):
    """Base exception for rejected ledger operations."""

    def __init__(
        self,
        message: str,
        index: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.index = index


class InvalidIndexError(LedgerError):
    """No campaign exists at the requested index."""

    def __init__(self, index: int, count: int) -> None:
        super().__init__(
            f"Campaign index {index} out of range (campaigns: {count})",
            index=index,
        )
        self.count = count


class NotAuthorizedError(LedgerError):
    """The caller is not permitted to perform the action."""

    def __init__(
        self,
        caller: str,
        action: str,
        reason: str,
        index: int | None = None,
    ) -> None:
        super().__init__(f"{caller} may not {action}: {reason}", index=index)
        self.caller = caller
        self.action = action
        self.reason = reason


class CampaignClosedError(LedgerError):
    """Donation attempted at or after the campaign deadline."""

    pass


class CampaignStillOpenError(LedgerError):
    """Settlement attempted before the campaign deadline."""

    pass


class CampaignAlreadySettledError(LedgerError):
    """The campaign has already paid out."""

    pass


class NothingToSettleError(LedgerError):
    """The campaign holds no funds to pay out."""

    pass


class NoBenefactorError(LedgerError):
    """The campaign has no valid recipient for its funds."""

    pass


class AmountOverflowError(LedgerError):
    """
    An amount would leave the representable domain.

    Raised when a donation would push the campaign balance past the
    configured maximum.
    """

    def __init__(
        self,
        message: str,
        index: int | None = None,
        current: int | None = None,
        value: int | None = None,
    ) -> None:
        super().__init__(message, index=index)
        self.current = current
        self.value = value


class ReentrantCallError(LedgerError):
    """A settlement is already in progress somewhere in the ledger."""

    pass


class TransferFailedError(LedgerError):
    """
    The payout rail did not complete the transfer.

    State has been rolled back, so the campaign remains eligible and
    the caller may resubmit the settlement later.
    """

    def __init__(
        self,
        message: str,
        index: int | None = None,
        recipient: str | None = None,
        amount: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, index=index, details=details)
        self.recipient = recipient
        self.amount = amount


class CampaignBusyError(LedgerError):
    """A lock needed by the operation could not be acquired in time."""

    pass
