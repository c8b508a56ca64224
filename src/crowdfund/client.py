"""CrowdFund - Main entry point wiring the ledger to its collaborators."""

from __future__ import annotations

import asyncio
from typing import Any

from crowdfund.core.clock import Clock
from crowdfund.core.config import Config
from crowdfund.core.exceptions import ConfigurationError, ValidationError
from crowdfund.core.logging import configure_logging, get_logger
from crowdfund.core.types import (
    Campaign,
    CampaignStatus,
    DurationType,
    SettlementReceipt,
    is_amount,
)
from crowdfund.events.sinks import CompositeEventSink, EventSink, LoggingEventSink
from crowdfund.events.webhook import WebhookEventSink
from crowdfund.ledger import CampaignLedger
from crowdfund.payout.base import PayoutRail
from crowdfund.payout.http_rail import HttpPayoutRail
from crowdfund.payout.memory import InMemoryPayoutRail
from crowdfund.storage import StorageBackend, get_storage


class CrowdFund:
    """
    Main client for the crowdfund ledger.

    Builds storage, payout rail, event sinks and the ledger from a Config
    (or from CROWDFUND_* environment variables), and acts as the boundary
    layer for in-process callers.
    """

    def __init__(
        self,
        config: Config | None = None,
        storage: StorageBackend | None = None,
        payout_rail: PayoutRail | None = None,
        event_sink: EventSink | None = None,
        clock: Clock | None = None,
        **overrides: Any,
    ) -> None:
        """
        Initialize client.

        Args:
            config: Ledger configuration (default: Config.from_env(**overrides))
            storage: Storage backend (default: from config.storage_backend)
            payout_rail: Payout rail (default: HTTP if payout_url set, else in-memory)
            event_sink: Event sink (default: logging, plus webhook if webhook_url set)
            clock: Time source (default: wall clock)
            **overrides: Config overrides when config is not given
        """
        self._config = config or Config.from_env(**overrides)

        configure_logging(level=self._config.log_level)
        self._logger = get_logger("client")
        self._logger.info(
            f"Initializing crowdfund ledger (storage: {self._config.storage_backend}, "
            f"end policy: {self._config.end_policy.value})"
        )

        self._storage = storage or self._build_storage()
        self._rail = payout_rail or self._build_rail()
        self._sink = event_sink or self._build_sink()
        self._ledger = CampaignLedger.from_config(
            self._config,
            self._storage,
            self._rail,
            clock=clock,
            event_sink=self._sink,
        )

    def _build_storage(self) -> StorageBackend:
        kwargs: dict[str, Any] = {}
        if self._config.storage_backend == "redis" and self._config.redis_url:
            kwargs["redis_url"] = self._config.redis_url
        try:
            return get_storage(self._config.storage_backend, **kwargs)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    def _build_rail(self) -> PayoutRail:
        if self._config.payout_url:
            return HttpPayoutRail(self._config.payout_url, timeout=self._config.transfer_timeout)
        return InMemoryPayoutRail()

    def _build_sink(self) -> EventSink:
        sink = CompositeEventSink([LoggingEventSink()])
        if self._config.webhook_url:
            sink.add(WebhookEventSink(self._config.webhook_url))
        return sink

    @property
    def config(self) -> Config:
        return self._config

    @property
    def ledger(self) -> CampaignLedger:
        return self._ledger

    @property
    def payout_rail(self) -> PayoutRail:
        return self._rail

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    async def __aenter__(self) -> CrowdFund:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Deliver pending events, then close the rail, sinks and storage."""
        await self._ledger.flush_events()
        await self._rail.close()
        await self._sink.close()
        await self._storage.close()

    async def health_check(self) -> bool:
        return await self._storage.health_check()

    async def create_campaign(
        self,
        caller: str,
        name: str,
        description: str,
        benefactor: str | None,
        goal: int,
        duration: DurationType,
    ) -> int:
        """Register a campaign. Returns its index."""
        return await self._ledger.create(caller, name, description, benefactor, goal, duration)

    async def donate(self, caller: str, index: int, value: int) -> int:
        """
        Donate to a campaign.

        Funds enter custody first and the ledger is credited second; a
        donation the ledger rejects is refunded. Once started the credit
        runs to completion even if this call is cancelled, and custody
        follows its outcome, so custody always covers the recorded balance.

        Returns:
            The new campaign balance
        """
        if not is_amount(value, self._config.amount_bits):
            raise ValidationError(f"Invalid donation value: {value!r}", details={"index": index})

        await self._rail.deposit(caller, value)
        credit = asyncio.create_task(self._ledger.donate(caller, index, value))
        try:
            return await asyncio.shield(credit)
        except asyncio.CancelledError:
            await asyncio.wait([credit])
            if credit.cancelled() or credit.exception() is not None:
                await self._rail.refund(caller, value)
            raise
        except Exception:
            await self._rail.refund(caller, value)
            raise

    async def end_campaign(self, caller: str, index: int) -> SettlementReceipt:
        """Settle a campaign and pay out its balance."""
        return await self._ledger.end(caller, index)

    async def campaign_count(self) -> int:
        return await self._ledger.campaign_count()

    async def get_campaign(self, index: int) -> Campaign:
        return await self._ledger.campaign_at(index)

    async def get_balance(self, index: int) -> int:
        return await self._ledger.balance_of(index)

    async def get_status(self, index: int) -> CampaignStatus:
        return await self._ledger.status_of(index)

    async def list_campaigns(self, creator: str | None = None) -> list[Campaign]:
        """All campaigns, or only those registered by `creator`."""
        if creator is None:
            return await self._ledger.campaigns()
        return await self._ledger.campaigns_by_creator(creator)
