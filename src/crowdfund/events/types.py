"""
Ledger event records.

Emitted after a state change has been persisted. Delivery is
fire-and-forget; a failed delivery never undoes the change.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from crowdfund.core.types import Campaign


class EventType(str, Enum):
    """Types of ledger notifications."""

    CAMPAIGN_CREATED = "campaign.created"
    DONATION = "campaign.donation"
    CAMPAIGN_ENDED = "campaign.ended"


class LedgerEvent:
    """Common behaviour for all ledger events."""

    type: ClassVar[EventType]
    event_id: str
    timestamp: int

    def payload(self) -> dict[str, Any]:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        """Serialize for transport."""
        return {
            "id": self.event_id,
            "type": self.type.value,
            "timestamp": self.timestamp,
            "data": self.payload(),
        }


@dataclass(frozen=True)
class CampaignCreated(LedgerEvent):
    """A campaign was appended to the ledger."""

    type: ClassVar[EventType] = EventType.CAMPAIGN_CREATED

    caller: str
    campaign: Campaign
    timestamp: int
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def payload(self) -> dict[str, Any]:
        return {"caller": self.caller, "campaign": self.campaign.to_dict()}


@dataclass(frozen=True)
class Donation(LedgerEvent):
    """Funds were credited to a campaign."""

    type: ClassVar[EventType] = EventType.DONATION

    caller: str
    value: int
    index: int
    timestamp: int
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def payload(self) -> dict[str, Any]:
        return {"caller": self.caller, "value": str(self.value), "index": self.index}


@dataclass(frozen=True)
class CampaignEnded(LedgerEvent):
    """A campaign was settled and its funds paid out."""

    type: ClassVar[EventType] = EventType.CAMPAIGN_ENDED

    index: int
    benefactor: str
    amount: int
    timestamp: int
    transaction_id: str | None = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def payload(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "benefactor": self.benefactor,
            "amount": str(self.amount),
            "transaction_id": self.transaction_id,
        }
