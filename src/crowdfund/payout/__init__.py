"""
Payout rails - custody and transfer of settled funds.
"""

from crowdfund.payout.base import PayoutRail
from crowdfund.payout.http_rail import HttpPayoutRail
from crowdfund.payout.memory import InMemoryPayoutRail

__all__ = [
    "PayoutRail",
    "HttpPayoutRail",
    "InMemoryPayoutRail",
]
