"""
Campaign ledger.

An append-only sequence of campaigns stored in the unified
StorageBackend, with the create/donate/end lifecycle and its invariants:

- indices are assigned in creation order and never reused
- amount_raised only grows through donate, and is zeroed once by end
- ended only moves False -> True, through a successful end
- any failed operation leaves stored state exactly as it found it

Events are published on background tasks once a change is committed, so
a slow or failing sink never delays or undoes an operation.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from crowdfund.core.clock import Clock, SystemClock
from crowdfund.core.exceptions import (
    AmountOverflowError,
    CampaignAlreadySettledError,
    CampaignBusyError,
    CampaignClosedError,
    CampaignStillOpenError,
    ConfigurationError,
    InvalidIndexError,
    NoBenefactorError,
    NotAuthorizedError,
    NothingToSettleError,
    ReentrantCallError,
    TransferFailedError,
    ValidationError,
)
from crowdfund.core.logging import get_logger
from crowdfund.core.types import (
    DEFAULT_AMOUNT_BITS,
    Campaign,
    CampaignStatus,
    DurationType,
    LedgerAction,
    SettlementReceipt,
    checked_add,
    duration_seconds,
    is_amount,
    is_null_identity,
)
from crowdfund.events.types import CampaignCreated, CampaignEnded, Donation, LedgerEvent
from crowdfund.guards.access import AccessGuard
from crowdfund.guards.base import CallContext, GuardChain
from crowdfund.ledger.lock import (
    CREATE_LOCK,
    SETTLEMENT_LOCK,
    CampaignLockService,
    campaign_lock_key,
)

if TYPE_CHECKING:
    from crowdfund.core.config import Config
    from crowdfund.events.sinks import EventSink
    from crowdfund.payout.base import PayoutRail
    from crowdfund.storage.base import StorageBackend


class CampaignLedger:
    """
    Fundraising ledger using StorageBackend.

    Every mutating call takes the caller identity as already
    authenticated by the surrounding boundary layer.
    """

    COLLECTION = "campaigns"

    def __init__(
        self,
        storage: StorageBackend,
        payout_rail: PayoutRail,
        clock: Clock | None = None,
        event_sink: EventSink | None = None,
        guards: GuardChain | None = None,
        locks: CampaignLockService | None = None,
        amount_bits: int = DEFAULT_AMOUNT_BITS,
        transfer_timeout: float = 30.0,
    ) -> None:
        """
        Initialize ledger.

        Args:
            storage: The unified storage backend (InMemory, Redis, etc.)
            payout_rail: Rail that pays settled funds to benefactors
            clock: Time source for deadlines (default: wall clock)
            event_sink: Where notifications go (default: none)
            guards: Authorization guards (default: every caller allowed)
            locks: Lock service (default: built on `storage`)
            amount_bits: Width of the amount domain
            transfer_timeout: Seconds to wait for the payout rail
        """
        self._storage = storage
        self._rail = payout_rail
        self._clock = clock or SystemClock()
        self._sink = event_sink
        self._guards = guards or GuardChain()
        self._locks = locks or CampaignLockService(storage)
        self._amount_bits = amount_bits
        self._transfer_timeout = transfer_timeout
        self._logger = get_logger("ledger")
        self._deliveries: set[asyncio.Task[None]] = set()

        # Settlement holds its locks across the payout call
        if self._locks.ttl <= transfer_timeout:
            raise ConfigurationError(
                f"Lock TTL ({self._locks.ttl}s) must exceed transfer timeout ({transfer_timeout}s)"
            )

    @classmethod
    def from_config(
        cls,
        config: Config,
        storage: StorageBackend,
        payout_rail: PayoutRail,
        clock: Clock | None = None,
        event_sink: EventSink | None = None,
    ) -> CampaignLedger:
        """Build a ledger whose guards and locks follow `config`."""
        guards = GuardChain(
            [
                AccessGuard(
                    LedgerAction.CREATE, config.create_policy, config.owner, config.allowlist
                ),
                AccessGuard(LedgerAction.END, config.end_policy, config.owner, config.allowlist),
            ]
        )
        locks = CampaignLockService(
            storage,
            ttl=config.lock_ttl,
            retry_count=config.lock_retry_count,
            retry_delay=config.lock_retry_delay,
        )
        return cls(
            storage,
            payout_rail,
            clock=clock,
            event_sink=event_sink,
            guards=guards,
            locks=locks,
            amount_bits=config.amount_bits,
            transfer_timeout=config.transfer_timeout,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(
        self,
        caller: str,
        name: str,
        description: str,
        benefactor: str | None,
        goal: int,
        duration: DurationType,
    ) -> int:
        """
        Register a new campaign.

        Args:
            caller: Identity creating the campaign
            name: Campaign name
            description: Campaign description
            benefactor: Identity that receives the funds at settlement
            goal: Target amount (stored, not enforced)
            duration: Seconds from now until the deadline

        Returns:
            Index of the new campaign

        Raises:
            NotAuthorizedError: If the creation policy rejects the caller
            ValidationError: If an argument is malformed
            CampaignBusyError: If the creation lock cannot be acquired
        """
        await self._authorize(caller, LedgerAction.CREATE)

        if not isinstance(name, str) or not isinstance(description, str):
            raise ValidationError("name and description must be strings")
        if benefactor is not None and not isinstance(benefactor, str):
            raise ValidationError("benefactor must be a string or None")
        if not is_amount(goal, self._amount_bits):
            raise ValidationError(f"Invalid goal: {goal!r}", details={"goal": repr(goal)})

        seconds = duration_seconds(duration)
        if isinstance(seconds, bool) or not isinstance(seconds, int) or seconds < 0:
            raise ValidationError(f"Invalid duration: {duration!r}")

        async with self._locks.hold(
            CREATE_LOCK, CampaignBusyError("Campaign creation is busy, retry later")
        ):
            index = await self._storage.count(self.COLLECTION)
            now = self._clock.now()
            campaign = Campaign(
                index=index,
                creator=caller,
                name=name,
                description=description,
                benefactor=benefactor,
                goal=goal,
                deadline=now + seconds,
                created_at=now,
            )
            await self._storage.save(self.COLLECTION, self._key(index), campaign.to_dict())

        self._logger.info(
            f"Campaign {index} created by {caller} (goal {goal}, deadline {campaign.deadline})"
        )
        self._emit(CampaignCreated(caller=caller, campaign=campaign, timestamp=now))
        return index

    async def donate(self, caller: str, index: int, value: int) -> int:
        """
        Credit a donation to a campaign.

        The value must already be in custody; this only does the accounting.

        Returns:
            The campaign balance after the donation

        Raises:
            ValidationError: If value is not an amount
            InvalidIndexError: If no campaign exists at index
            CampaignClosedError: If the deadline has passed
            CampaignAlreadySettledError: If the campaign has paid out
            AmountOverflowError: If the balance would overflow
            CampaignBusyError: If the campaign lock cannot be acquired
        """
        if not is_amount(value, self._amount_bits):
            raise ValidationError(f"Invalid donation value: {value!r}", details={"index": index})

        # Fail fast before contending for the lock
        self._check_donation(await self._load(index), value)

        async with self._locks.hold(
            campaign_lock_key(index),
            CampaignBusyError(f"Campaign {index} is busy, retry later", index=index),
        ):
            campaign = await self._load(index)
            new_total = self._check_donation(campaign, value)
            await self._storage.update(
                self.COLLECTION, self._key(index), {"amount_raised": str(new_total)}
            )
            now = self._clock.now()

        self._logger.info(f"Donation of {value} to campaign {index} from {caller}")
        self._emit(Donation(caller=caller, value=value, index=index, timestamp=now))
        return new_total

    async def end(self, caller: str, index: int) -> SettlementReceipt:
        """
        Settle a campaign and pay its balance to the benefactor.

        The record is marked ended and zeroed before the payout rail is
        called. If the payout fails, times out, or is cancelled, the
        record is restored exactly and the campaign stays eligible.

        Returns:
            Settlement receipt

        Raises:
            InvalidIndexError: If no campaign exists at index
            NotAuthorizedError: If the settlement policy rejects the caller
            CampaignAlreadySettledError: If the campaign has already paid out
            CampaignStillOpenError: If the deadline has not passed
            NoBenefactorError: If the benefactor cannot receive funds
            NothingToSettleError: If the balance is zero
            ReentrantCallError: If any settlement is already in progress
            TransferFailedError: If the payout did not complete
        """
        campaign = await self._load(index)
        await self._authorize(caller, LedgerAction.END, index)
        self._check_settlement(campaign)

        async with self._locks.hold(
            SETTLEMENT_LOCK,
            ReentrantCallError("A settlement is already in progress", index=index),
            retry_count=0,
        ):
            async with self._locks.hold(
                campaign_lock_key(index),
                CampaignBusyError(f"Campaign {index} is busy, retry later", index=index),
            ):
                campaign = await self._load(index)
                self._check_settlement(campaign)
                receipt = await self._settle(campaign)
                now = self._clock.now()

        self._logger.info(
            f"Campaign {index} settled by {caller}: {receipt.amount} to {receipt.benefactor}"
        )
        self._emit(
            CampaignEnded(
                index=index,
                benefactor=receipt.benefactor,
                amount=receipt.amount,
                timestamp=now,
                transaction_id=receipt.transaction_id,
            )
        )
        return receipt

    async def _settle(self, campaign: Campaign) -> SettlementReceipt:
        """Apply settlement effects, call the payout rail, roll back on failure."""
        index = campaign.index
        benefactor = campaign.benefactor or ""
        amount = campaign.amount_raised

        settled = campaign.copy(ended=True, amount_raised=0)
        await self._storage.save(self.COLLECTION, self._key(index), settled.to_dict())

        try:
            result = await asyncio.wait_for(
                self._rail.transfer(benefactor, amount, f"campaign:{index}"),
                timeout=self._transfer_timeout,
            )
        except asyncio.TimeoutError:
            await self._restore(campaign)
            self._logger.error(f"Payout for campaign {index} timed out, rolled back")
            raise TransferFailedError(
                f"Payout timed out after {self._transfer_timeout}s",
                index=index,
                recipient=benefactor,
                amount=amount,
            ) from None
        except asyncio.CancelledError:
            await self._restore(campaign)
            self._logger.warning(f"Settlement of campaign {index} cancelled, rolled back")
            raise
        except Exception as e:
            await self._restore(campaign)
            self._logger.error(f"Payout for campaign {index} raised {e!r}, rolled back")
            raise TransferFailedError(
                f"Payout failed: {e}",
                index=index,
                recipient=benefactor,
                amount=amount,
            ) from e

        if not result.success:
            await self._restore(campaign)
            self._logger.error(f"Payout for campaign {index} rejected: {result.error}")
            raise TransferFailedError(
                f"Payout rejected: {result.error}",
                index=index,
                recipient=benefactor,
                amount=amount,
                details=result.metadata,
            )

        return SettlementReceipt(
            index=index,
            benefactor=benefactor,
            amount=amount,
            transaction_id=result.transaction_id,
        )

    async def _restore(self, campaign: Campaign) -> None:
        await self._storage.save(self.COLLECTION, self._key(campaign.index), campaign.to_dict())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def campaign_count(self) -> int:
        """Number of campaigns ever created."""
        return await self._storage.count(self.COLLECTION)

    async def campaign_at(self, index: int) -> Campaign:
        """Get the campaign at index."""
        return await self._load(index)

    async def balance_of(self, index: int) -> int:
        """Current balance of the campaign at index."""
        campaign = await self._load(index)
        return campaign.amount_raised

    async def status_of(self, index: int) -> CampaignStatus:
        """Lifecycle state of the campaign at index, as of now."""
        campaign = await self._load(index)
        return campaign.status_at(self._clock.now())

    async def campaigns(self) -> list[Campaign]:
        """All campaigns in creation order."""
        raw_results = await self._storage.query(self.COLLECTION)
        return self._ordered(raw_results)

    async def campaigns_by_creator(self, creator: str) -> list[Campaign]:
        """All campaigns registered by `creator`, in creation order."""
        raw_results = await self._storage.query(self.COLLECTION, filters={"creator": creator})
        return self._ordered(raw_results)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _key(index: int) -> str:
        return str(index)

    @staticmethod
    def _ordered(raw_results: list[dict]) -> list[Campaign]:
        campaigns = [Campaign.from_dict(d) for d in raw_results]
        campaigns.sort(key=lambda c: c.index)
        return campaigns

    async def _load(self, index: int) -> Campaign:
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise InvalidIndexError(index, await self.campaign_count())

        data = await self._storage.get(self.COLLECTION, self._key(index))
        if not data:
            raise InvalidIndexError(index, await self.campaign_count())
        return Campaign.from_dict(data)

    async def _authorize(self, caller: str, action: LedgerAction, index: int | None = None) -> None:
        result = await self._guards.check(CallContext(caller=caller, action=action, index=index))
        if not result.allowed:
            self._logger.debug(f"{result.guard_name} rejected {caller}: {result.reason}")
            raise NotAuthorizedError(caller, action.value, result.reason or "denied", index=index)

    def _check_donation(self, campaign: Campaign, value: int) -> int:
        """Validate a donation against current state and return the new balance."""
        index = campaign.index
        if self._clock.now() >= campaign.deadline:
            raise CampaignClosedError(
                f"Campaign {index} closed at {campaign.deadline}", index=index
            )
        if campaign.ended:
            raise CampaignAlreadySettledError(f"Campaign {index} already settled", index=index)

        new_total = checked_add(campaign.amount_raised, value, self._amount_bits)
        if new_total is None:
            raise AmountOverflowError(
                f"Donation of {value} would overflow campaign {index} balance",
                index=index,
                current=campaign.amount_raised,
                value=value,
            )
        return new_total

    def _check_settlement(self, campaign: Campaign) -> None:
        index = campaign.index
        if campaign.ended:
            raise CampaignAlreadySettledError(f"Campaign {index} already settled", index=index)
        if self._clock.now() < campaign.deadline:
            raise CampaignStillOpenError(
                f"Campaign {index} open until {campaign.deadline}", index=index
            )
        if is_null_identity(campaign.benefactor):
            raise NoBenefactorError(f"Campaign {index} has no benefactor", index=index)
        if campaign.amount_raised <= 0:
            raise NothingToSettleError(f"Campaign {index} has nothing to settle", index=index)

    def _emit(self, event: LedgerEvent) -> None:
        """Hand an event to the sink without waiting for delivery."""
        if self._sink is None:
            return
        task = asyncio.create_task(self._deliver(self._sink, event))
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)

    async def _deliver(self, sink: EventSink, event: LedgerEvent) -> None:
        try:
            await sink.publish(event)
        except Exception as e:
            self._logger.warning(f"Event sink failed for {event.type.value}: {e}")

    @property
    def pending_events(self) -> int:
        """Number of events still being delivered."""
        return len(self._deliveries)

    async def flush_events(self) -> None:
        """Wait until every emitted event has been delivered or has failed."""
        while self._deliveries:
            await asyncio.gather(*self._deliveries, return_exceptions=True)
