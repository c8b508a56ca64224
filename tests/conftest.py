import asyncio

import pytest

from crowdfund.core.clock import ManualClock
from crowdfund.core.types import AuthorizationPolicy, LedgerAction
from crowdfund.events.sinks import InMemoryEventSink
from crowdfund.guards import AccessGuard, GuardChain
from crowdfund.ledger import CampaignLedger, CampaignLockService
from crowdfund.payout.memory import InMemoryPayoutRail
from crowdfund.storage.memory import InMemoryStorage

OWNER = "0xowner"
ALICE = "0xalice"
BOB = "0xbob"
BENEFACTOR = "0x742d35Cc6634C0532925a3b844Bc9e7595f5e4a0"


class YieldingStorage(InMemoryStorage):
    """InMemoryStorage that yields to the event loop on every read and write."""

    async def get(self, collection, key):
        await asyncio.sleep(0)
        return await super().get(collection, key)

    async def save(self, collection, key, data):
        await asyncio.sleep(0)
        await super().save(collection, key, data)

    async def update(self, collection, key, data):
        await asyncio.sleep(0)
        return await super().update(collection, key, data)


class BlockingSink(InMemoryEventSink):
    """Event sink whose deliveries wait until `release()` is called."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = asyncio.Event()
        self._gate = asyncio.Event()

    async def publish(self, event):
        self.entered.set()
        await self._gate.wait()
        await super().publish(event)

    def release(self) -> None:
        self._gate.set()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def clock():
    return ManualClock(start=0)


@pytest.fixture
def rail():
    return InMemoryPayoutRail(custody=10**30)


@pytest.fixture
def sink():
    return InMemoryEventSink()


def build_ledger(storage, rail, clock, sink=None, **kwargs) -> CampaignLedger:
    guards = kwargs.pop(
        "guards",
        GuardChain([AccessGuard(LedgerAction.END, AuthorizationPolicy.OWNER_ONLY, owner=OWNER)]),
    )
    locks = kwargs.pop(
        "locks", CampaignLockService(storage, ttl=60, retry_count=3, retry_delay=0.01)
    )
    return CampaignLedger(
        storage,
        rail,
        clock=clock,
        event_sink=sink,
        guards=guards,
        locks=locks,
        **kwargs,
    )


@pytest.fixture
def ledger(storage, rail, clock, sink):
    return build_ledger(storage, rail, clock, sink)
