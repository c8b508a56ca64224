"""
Example: Basic Campaign Flow

Creates a campaign, takes two donations, and settles it once the
deadline has passed. Runs entirely in memory.
"""

import asyncio

from crowdfund import CrowdFund, ManualClock
from crowdfund.core.exceptions import CampaignStillOpenError


async def main():
    print("=== Crowdfund Basic Example ===\n")

    clock = ManualClock(start=1_700_000_000)
    async with CrowdFund(owner="0xowner", clock=clock) as fund:
        benefactor = "0x742d35Cc6634C0532925a3b844Bc9e7595f5e4a0"

        index = await fund.create_campaign(
            "0xalice", "Shelter", "Winter shelter roof", benefactor, goal=1_000, duration=3600
        )
        print(f"Created campaign {index}")

        await fund.donate("0xbob", index, 400)
        total = await fund.donate("0xcarol", index, 250)
        print(f"Raised so far: {total}")

        try:
            await fund.end_campaign("0xowner", index)
        except CampaignStillOpenError as e:
            print(f"Too early: {e}")

        clock.advance(3600)
        receipt = await fund.end_campaign("0xowner", index)
        print(f"Paid {receipt.amount} to {receipt.benefactor[:10]}... (tx {receipt.transaction_id})")
        print(f"Status: {(await fund.get_status(index)).value}")

    print("\n=== Example Complete ===")


if __name__ == "__main__":
    asyncio.run(main())
