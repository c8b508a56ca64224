"""
Ledger module - Campaign lifecycle for the crowdfund ledger.
"""

from crowdfund.ledger.ledger import CampaignLedger
from crowdfund.ledger.lock import (
    CREATE_LOCK,
    SETTLEMENT_LOCK,
    CampaignLockService,
    campaign_lock_key,
)

__all__ = [
    "CampaignLedger",
    "CampaignLockService",
    "CREATE_LOCK",
    "SETTLEMENT_LOCK",
    "campaign_lock_key",
]
