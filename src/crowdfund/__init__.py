"""
Crowdfund - a minimal fundraising ledger.

Campaigns are registered with a goal, benefactor and deadline, collect
donations until the deadline, and are settled exactly once afterwards.

Usage:
    >>> from crowdfund import CrowdFund, ManualClock
    >>>
    >>> clock = ManualClock(start=0)
    >>> fund = CrowdFund(owner="0xowner", clock=clock)
    >>> index = await fund.create_campaign(
    ...     "0xalice", "Roof repair", "New roof for the hall", "0xhall", 100, 1000
    ... )
    >>> await fund.donate("0xbob", index, 40)
    >>> clock.set(1001)
    >>> receipt = await fund.end_campaign("0xowner", index)
"""

from crowdfund.client import CrowdFund
from crowdfund.core.clock import Clock, ManualClock, SystemClock
from crowdfund.core.config import Config
from crowdfund.core.exceptions import (
    AmountOverflowError,
    CampaignAlreadySettledError,
    CampaignBusyError,
    CampaignClosedError,
    CampaignStillOpenError,
    ConfigurationError,
    CrowdfundError,
    InvalidIndexError,
    LedgerError,
    NoBenefactorError,
    NotAuthorizedError,
    NothingToSettleError,
    ReentrantCallError,
    TransferFailedError,
    ValidationError,
)
from crowdfund.core.types import (
    AuthorizationPolicy,
    Campaign,
    CampaignStatus,
    LedgerAction,
    SettlementReceipt,
    TransferResult,
)
from crowdfund.events import (
    CampaignCreated,
    CampaignEnded,
    Donation,
    EventSink,
    InMemoryEventSink,
)
from crowdfund.guards import AccessGuard, GuardChain
from crowdfund.ledger import CampaignLedger
from crowdfund.payout import HttpPayoutRail, InMemoryPayoutRail, PayoutRail
from crowdfund.storage import InMemoryStorage, RedisStorage, StorageBackend, get_storage

__version__ = "0.1.0"

__all__ = [
    # Client
    "CrowdFund",
    "CampaignLedger",
    "Config",
    # Time
    "Clock",
    "ManualClock",
    "SystemClock",
    # Types
    "AuthorizationPolicy",
    "Campaign",
    "CampaignStatus",
    "LedgerAction",
    "SettlementReceipt",
    "TransferResult",
    # Errors
    "CrowdfundError",
    "ConfigurationError",
    "ValidationError",
    "LedgerError",
    "InvalidIndexError",
    "NotAuthorizedError",
    "CampaignClosedError",
    "CampaignStillOpenError",
    "CampaignAlreadySettledError",
    "NothingToSettleError",
    "NoBenefactorError",
    "AmountOverflowError",
    "ReentrantCallError",
    "TransferFailedError",
    "CampaignBusyError",
    # Events
    "CampaignCreated",
    "CampaignEnded",
    "Donation",
    "EventSink",
    "InMemoryEventSink",
    # Guards
    "AccessGuard",
    "GuardChain",
    # Payout
    "PayoutRail",
    "InMemoryPayoutRail",
    "HttpPayoutRail",
    # Storage
    "StorageBackend",
    "InMemoryStorage",
    "RedisStorage",
    "get_storage",
]
