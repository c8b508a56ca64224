"""
Unit tests for the campaign ledger.

Covers the create/donate/end lifecycle, precondition ordering and the
all-or-nothing guarantee of every operation.
"""

import asyncio
from datetime import timedelta

import pytest

from conftest import ALICE, BENEFACTOR, BOB, OWNER, BlockingSink, build_ledger
from crowdfund.core.exceptions import (
    AmountOverflowError,
    CampaignAlreadySettledError,
    CampaignClosedError,
    CampaignStillOpenError,
    ConfigurationError,
    InvalidIndexError,
    NoBenefactorError,
    NotAuthorizedError,
    NothingToSettleError,
    ValidationError,
)
from crowdfund.core.types import ZERO_ADDRESS, CampaignStatus, max_amount
from crowdfund.events.types import EventType
from crowdfund.ledger import CampaignLedger, CampaignLockService
from crowdfund.payout.memory import InMemoryPayoutRail


async def create(ledger, creator=ALICE, benefactor=BENEFACTOR, goal=100, duration=1000):
    return await ledger.create(creator, "Roof repair", "New roof for the hall", benefactor, goal, duration)


class TestCreate:
    """Tests for campaign creation."""

    @pytest.mark.asyncio
    async def test_first_campaign_gets_index_zero(self, ledger):
        assert await create(ledger) == 0
        assert await create(ledger) == 1
        assert await ledger.campaign_count() == 2

    @pytest.mark.asyncio
    async def test_initial_state(self, ledger, clock):
        clock.set(500)
        index = await create(ledger, goal=250, duration=1000)

        campaign = await ledger.campaign_at(index)
        assert campaign.creator == ALICE
        assert campaign.name == "Roof repair"
        assert campaign.benefactor == BENEFACTOR
        assert campaign.goal == 250
        assert campaign.amount_raised == 0
        assert campaign.ended is False
        assert campaign.created_at == 500

    @pytest.mark.asyncio
    async def test_deadline_is_relative_to_now(self, ledger, clock):
        clock.set(1_700_000_000)
        index = await create(ledger, duration=3600)

        campaign = await ledger.campaign_at(index)
        assert campaign.deadline == 1_700_003_600
        assert await ledger.status_of(index) == CampaignStatus.OPEN

    @pytest.mark.asyncio
    async def test_timedelta_duration(self, ledger, clock):
        index = await create(ledger, duration=timedelta(days=1))
        campaign = await ledger.campaign_at(index)
        assert campaign.deadline == 86400

    @pytest.mark.asyncio
    async def test_empty_text_is_accepted(self, ledger):
        index = await ledger.create(ALICE, "", "", BENEFACTOR, 0, 10)
        campaign = await ledger.campaign_at(index)
        assert campaign.name == ""
        assert campaign.description == ""

    @pytest.mark.asyncio
    async def test_negative_duration_rejected(self, ledger):
        with pytest.raises(ValidationError):
            await create(ledger, duration=-1)
        assert await ledger.campaign_count() == 0

    @pytest.mark.asyncio
    async def test_float_goal_rejected(self, ledger):
        with pytest.raises(ValidationError):
            await create(ledger, goal=10.5)

    @pytest.mark.asyncio
    async def test_emits_campaign_created(self, ledger, sink):
        index = await create(ledger)
        await ledger.flush_events()

        events = sink.of_type(EventType.CAMPAIGN_CREATED)
        assert len(events) == 1
        assert events[0].caller == ALICE
        assert events[0].campaign.index == index
        assert events[0].campaign.benefactor == BENEFACTOR


class TestDonate:
    """Tests for donations."""

    @pytest.mark.asyncio
    async def test_donations_accumulate(self, ledger, clock):
        index = await create(ledger)

        clock.set(10)
        assert await ledger.donate(BOB, index, 40) == 40
        clock.set(20)
        assert await ledger.donate(ALICE, index, 70) == 110
        assert await ledger.balance_of(index) == 110

    @pytest.mark.asyncio
    async def test_goal_is_not_a_cap(self, ledger):
        index = await create(ledger, goal=100)
        await ledger.donate(BOB, index, 500)
        assert await ledger.balance_of(index) == 500

    @pytest.mark.asyncio
    async def test_invalid_index(self, ledger):
        for _ in range(3):
            await create(ledger)

        with pytest.raises(InvalidIndexError) as exc_info:
            await ledger.donate(BOB, 5, 10)
        assert exc_info.value.index == 5
        assert exc_info.value.count == 3

    @pytest.mark.asyncio
    async def test_negative_index(self, ledger):
        await create(ledger)
        with pytest.raises(InvalidIndexError):
            await ledger.donate(BOB, -1, 10)

    @pytest.mark.asyncio
    async def test_closed_at_deadline(self, ledger, clock):
        index = await create(ledger, duration=1000)

        clock.set(999)
        await ledger.donate(BOB, index, 1)

        clock.set(1000)
        with pytest.raises(CampaignClosedError):
            await ledger.donate(BOB, index, 1)
        assert await ledger.balance_of(index) == 1

    @pytest.mark.asyncio
    async def test_zero_duration_is_closed_immediately(self, ledger):
        index = await create(ledger, duration=0)
        with pytest.raises(CampaignClosedError):
            await ledger.donate(BOB, index, 1)

    @pytest.mark.asyncio
    async def test_overflow_leaves_balance_unchanged(self, storage, rail, clock):
        ledger = build_ledger(storage, rail, clock, amount_bits=128)
        index = await create(ledger)
        ceiling = max_amount(128)

        await ledger.donate(BOB, index, ceiling - 10)
        with pytest.raises(AmountOverflowError) as exc_info:
            await ledger.donate(ALICE, index, 20)

        assert exc_info.value.current == ceiling - 10
        assert await ledger.balance_of(index) == ceiling - 10

        # Exactly filling the domain is allowed
        assert await ledger.donate(ALICE, index, 10) == ceiling

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [-1, 1.5, True, "10", None])
    async def test_invalid_values_rejected(self, ledger, value):
        index = await create(ledger)
        with pytest.raises(ValidationError):
            await ledger.donate(BOB, index, value)
        assert await ledger.balance_of(index) == 0

    @pytest.mark.asyncio
    async def test_value_beyond_domain_rejected(self, storage, rail, clock):
        ledger = build_ledger(storage, rail, clock, amount_bits=128)
        index = await create(ledger)
        with pytest.raises(ValidationError):
            await ledger.donate(BOB, index, 2**128)

    @pytest.mark.asyncio
    async def test_emits_donation(self, ledger, sink):
        index = await create(ledger)
        await ledger.donate(BOB, index, 25)
        await ledger.flush_events()

        events = sink.of_type(EventType.DONATION)
        assert len(events) == 1
        assert (events[0].caller, events[0].value, events[0].index) == (BOB, 25, index)


class TestEnd:
    """Tests for settlement."""

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, ledger, clock, rail, sink):
        index = await create(ledger, goal=100, duration=1000)

        clock.set(10)
        await ledger.donate(BOB, index, 40)
        assert await ledger.balance_of(index) == 40
        clock.set(20)
        await ledger.donate(ALICE, index, 70)
        assert await ledger.balance_of(index) == 110

        clock.set(1001)
        receipt = await ledger.end(OWNER, index)

        assert receipt.amount == 110
        assert receipt.benefactor == BENEFACTOR
        assert receipt.transaction_id is not None
        assert rail.balance_of(BENEFACTOR) == 110

        campaign = await ledger.campaign_at(index)
        assert campaign.amount_raised == 0
        assert campaign.ended is True
        assert campaign.goal == 100
        assert await ledger.status_of(index) == CampaignStatus.SETTLED

        await ledger.flush_events()
        ended = sink.of_type(EventType.CAMPAIGN_ENDED)
        assert len(ended) == 1
        assert ended[0].amount == 110

        clock.set(1002)
        with pytest.raises(CampaignAlreadySettledError):
            await ledger.end(OWNER, index)
        assert rail.balance_of(BENEFACTOR) == 110

    @pytest.mark.asyncio
    async def test_donate_after_settlement_is_closed(self, ledger, clock):
        index = await create(ledger, duration=100)
        await ledger.donate(BOB, index, 5)
        clock.set(100)
        await ledger.end(OWNER, index)

        with pytest.raises(CampaignClosedError):
            await ledger.donate(BOB, index, 5)

    @pytest.mark.asyncio
    async def test_still_open(self, ledger, clock):
        index = await create(ledger, duration=1000)
        await ledger.donate(BOB, index, 5)

        clock.set(999)
        with pytest.raises(CampaignStillOpenError):
            await ledger.end(OWNER, index)

        clock.set(1000)
        receipt = await ledger.end(OWNER, index)
        assert receipt.amount == 5

    @pytest.mark.asyncio
    async def test_not_authorized(self, ledger, clock):
        index = await create(ledger)
        await ledger.donate(BOB, index, 5)
        clock.set(2000)

        with pytest.raises(NotAuthorizedError) as exc_info:
            await ledger.end(ALICE, index)
        assert exc_info.value.caller == ALICE
        assert exc_info.value.action == "end"

        campaign = await ledger.campaign_at(index)
        assert campaign.ended is False
        assert campaign.amount_raised == 5

    @pytest.mark.asyncio
    async def test_bounds_checked_before_authorization(self, ledger):
        with pytest.raises(InvalidIndexError):
            await ledger.end(ALICE, 0)

    @pytest.mark.asyncio
    async def test_authorization_checked_before_deadline(self, ledger):
        index = await create(ledger)
        with pytest.raises(NotAuthorizedError):
            await ledger.end(ALICE, index)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("benefactor", [None, "", "   ", ZERO_ADDRESS])
    async def test_no_benefactor(self, ledger, clock, benefactor):
        index = await create(ledger, benefactor=benefactor)
        await ledger.donate(BOB, index, 5)
        clock.set(2000)

        with pytest.raises(NoBenefactorError):
            await ledger.end(OWNER, index)
        assert await ledger.balance_of(index) == 5

    @pytest.mark.asyncio
    async def test_nothing_to_settle(self, ledger, clock):
        index = await create(ledger)
        clock.set(2000)

        with pytest.raises(NothingToSettleError):
            await ledger.end(OWNER, index)
        campaign = await ledger.campaign_at(index)
        assert campaign.ended is False

    @pytest.mark.asyncio
    async def test_settlement_only_touches_its_campaign(self, ledger, clock):
        first = await create(ledger)
        second = await create(ledger)
        await ledger.donate(BOB, first, 10)
        await ledger.donate(BOB, second, 20)
        clock.set(2000)

        await ledger.end(OWNER, first)

        other = await ledger.campaign_at(second)
        assert other.ended is False
        assert other.amount_raised == 20

    @pytest.mark.asyncio
    async def test_end_without_guards_is_open(self, storage, rail, clock):
        ledger = build_ledger(storage, rail, clock, guards=None)
        index = await create(ledger)
        await ledger.donate(BOB, index, 5)
        clock.set(2000)

        receipt = await ledger.end(BOB, index)
        assert receipt.amount == 5


class TestQueries:
    """Tests for read-only queries."""

    @pytest.mark.asyncio
    async def test_campaigns_by_creator(self, ledger):
        await create(ledger, creator=ALICE)
        await create(ledger, creator=BOB)
        await create(ledger, creator=ALICE)

        mine = await ledger.campaigns_by_creator(ALICE)
        assert [c.index for c in mine] == [0, 2]
        assert await ledger.campaigns_by_creator("0xnobody") == []

    @pytest.mark.asyncio
    async def test_campaigns_in_creation_order(self, ledger):
        for _ in range(12):
            await create(ledger)

        campaigns = await ledger.campaigns()
        assert [c.index for c in campaigns] == list(range(12))

    @pytest.mark.asyncio
    async def test_campaign_at_out_of_range(self, ledger):
        with pytest.raises(InvalidIndexError):
            await ledger.campaign_at(0)
        with pytest.raises(InvalidIndexError):
            await ledger.balance_of(0)

    @pytest.mark.asyncio
    async def test_status_transitions(self, ledger, clock):
        index = await create(ledger, duration=100)
        await ledger.donate(BOB, index, 1)
        assert await ledger.status_of(index) == CampaignStatus.OPEN

        clock.set(100)
        assert await ledger.status_of(index) == CampaignStatus.AWAITING_SETTLEMENT

        await ledger.end(OWNER, index)
        assert await ledger.status_of(index) == CampaignStatus.SETTLED

    @pytest.mark.asyncio
    async def test_settled_record_keeps_history(self, ledger, clock):
        index = await create(ledger, goal=300, duration=50)
        await ledger.donate(BOB, index, 7)
        clock.set(60)
        await ledger.end(OWNER, index)

        campaign = await ledger.campaign_at(index)
        assert campaign.creator == ALICE
        assert campaign.benefactor == BENEFACTOR
        assert campaign.goal == 300
        assert campaign.deadline == 50


class TestEventSinkFailures:
    """Notification failures never roll back state."""

    @pytest.mark.asyncio
    async def test_failing_sink_does_not_undo_donation(self, storage, clock):
        class BrokenSink:
            async def publish(self, event):
                raise RuntimeError("indexer down")

        ledger = build_ledger(storage, InMemoryPayoutRail(custody=100), clock, BrokenSink())
        index = await create(ledger)
        await ledger.donate(BOB, index, 30)
        assert await ledger.balance_of(index) == 30

        clock.set(2000)
        receipt = await ledger.end(OWNER, index)
        assert receipt.amount == 30
        assert (await ledger.campaign_at(index)).ended is True
        await ledger.flush_events()
        assert ledger.pending_events == 0

    @pytest.mark.asyncio
    async def test_blocking_sink_does_not_delay_operations(self, storage, rail, clock):
        sink = BlockingSink()
        ledger = build_ledger(storage, rail, clock, sink)

        index = await asyncio.wait_for(create(ledger), timeout=1)
        assert await asyncio.wait_for(ledger.donate(BOB, index, 30), timeout=1) == 30
        clock.set(2000)
        receipt = await asyncio.wait_for(ledger.end(OWNER, index), timeout=1)

        assert receipt.amount == 30
        assert rail.balance_of(BENEFACTOR) == 30
        assert ledger.pending_events == 3
        assert sink.events == []

        sink.release()
        await ledger.flush_events()

        assert ledger.pending_events == 0
        assert [e.type for e in sink.events] == [
            EventType.CAMPAIGN_CREATED,
            EventType.DONATION,
            EventType.CAMPAIGN_ENDED,
        ]


class TestConstruction:
    def test_lock_ttl_must_exceed_transfer_timeout(self, storage, rail):
        with pytest.raises(ConfigurationError, match="must exceed transfer timeout"):
            CampaignLedger(
                storage,
                rail,
                locks=CampaignLockService(storage, ttl=30),
                transfer_timeout=30.0,
            )

    def test_defaults_are_consistent(self, storage, rail):
        ledger = CampaignLedger(storage, rail)
        assert ledger.pending_events == 0
        assert CampaignLockService(storage).ttl == 60
