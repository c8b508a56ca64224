"""
Type definitions for the crowdfund ledger.

This module contains the enums, data classes and amount helpers
used throughout the package.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import timedelta
from enum import Enum
from typing import Any, TypeAlias

# Relative campaign duration: whole seconds or a timedelta
DurationType: TypeAlias = int | timedelta

DEFAULT_AMOUNT_BITS = 256
MIN_AMOUNT_BITS = 128

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def max_amount(bits: int = DEFAULT_AMOUNT_BITS) -> int:
    """Largest representable amount for an unsigned integer of `bits` width."""
    return (1 << bits) - 1


def is_amount(value: Any, bits: int = DEFAULT_AMOUNT_BITS) -> bool:
    """Check that value is an unsigned integer inside the amount domain."""
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return 0 <= value <= max_amount(bits)


def checked_add(a: int, b: int, bits: int = DEFAULT_AMOUNT_BITS) -> int | None:
    """
    Add two amounts, returning None if the sum leaves the amount domain.

    Python ints never wrap, so the check is explicit against the
    configured width.
    """
    total = a + b
    if total > max_amount(bits):
        return None
    return total


def is_null_identity(identity: str | None) -> bool:
    """Check whether an identity cannot receive funds."""
    if identity is None:
        return True
    stripped = identity.strip()
    return not stripped or stripped.lower() == ZERO_ADDRESS


def duration_seconds(duration: DurationType) -> int:
    """Normalize a relative duration to whole seconds."""
    if isinstance(duration, timedelta):
        return int(duration.total_seconds())
    return duration


class AuthorizationPolicy(str, Enum):
    """Who may perform a guarded ledger action."""

    OPEN = "open"  # Any caller
    OWNER_ONLY = "owner_only"  # Only the configured owner
    ALLOWLIST = "allowlist"  # Owner plus explicitly listed callers

    @classmethod
    def from_string(cls, value: str) -> AuthorizationPolicy:
        value_lower = value.strip().lower().replace("-", "_")
        for member in cls:
            if member.value == value_lower:
                return member
        raise ValueError(
            f"Unknown authorization policy: {value}. Supported: {[p.value for p in cls]}"
        )


class LedgerAction(str, Enum):
    """Mutating ledger operations subject to authorization."""

    CREATE = "create"
    END = "end"


class CampaignStatus(str, Enum):
    """Lifecycle state of a campaign at a given instant."""

    OPEN = "open"  # Accepting donations
    AWAITING_SETTLEMENT = "awaiting_settlement"  # Deadline passed, not settled
    SETTLED = "settled"  # Payout issued


@dataclass
class Campaign:
    """
    A single fundraising campaign.

    Attributes:
        index: Position in the ledger (creation order)
        creator: Identity that registered the campaign
        name: Campaign name
        description: Campaign description
        benefactor: Identity entitled to the settled funds
        goal: Target amount (informational only)
        deadline: Unix time after which donations are rejected
        amount_raised: Current balance held for this campaign
        ended: True once the payout has been issued
        created_at: Unix time of creation
    """

    index: int
    creator: str
    name: str
    description: str
    benefactor: str | None
    goal: int
    deadline: int
    amount_raised: int = 0
    ended: bool = False
    created_at: int = 0

    def status_at(self, now: int) -> CampaignStatus:
        """Derive the lifecycle state at time `now`."""
        if self.ended:
            return CampaignStatus.SETTLED
        if now < self.deadline:
            return CampaignStatus.OPEN
        return CampaignStatus.AWAITING_SETTLEMENT

    def copy(self, **changes: Any) -> Campaign:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "index": self.index,
            "creator": self.creator,
            "name": self.name,
            "description": self.description,
            "benefactor": self.benefactor,
            "goal": str(self.goal),
            "deadline": self.deadline,
            "amount_raised": str(self.amount_raised),
            "ended": self.ended,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Campaign:
        """Create Campaign from dictionary."""
        return cls(
            index=int(data["index"]),
            creator=data.get("creator", ""),
            name=data.get("name", ""),
            description=data.get("description", ""),
            benefactor=data.get("benefactor"),
            goal=int(data.get("goal", "0")),
            deadline=int(data.get("deadline", 0)),
            amount_raised=int(data.get("amount_raised", "0")),
            ended=bool(data.get("ended", False)),
            created_at=int(data.get("created_at", 0)),
        )


@dataclass
class TransferResult:
    """Outcome of a payout request on the payout rail."""

    success: bool
    recipient: str
    amount: int
    transaction_id: str | None = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SettlementReceipt:
    """Returned by a successful settlement."""

    index: int
    benefactor: str
    amount: int
    transaction_id: str | None = None
