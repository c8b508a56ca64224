"""Tests for CampaignLockService."""

import asyncio

import pytest

from crowdfund.core.exceptions import CampaignBusyError, ReentrantCallError
from crowdfund.ledger.lock import (
    CREATE_LOCK,
    SETTLEMENT_LOCK,
    CampaignLockService,
    campaign_lock_key,
)
from crowdfund.storage.memory import InMemoryStorage


@pytest.fixture
def memory_storage():
    """Provides memory storage."""
    return InMemoryStorage()


@pytest.fixture
def lock_service(memory_storage):
    """Provides lock service."""
    return CampaignLockService(memory_storage, retry_count=1, retry_delay=0.01)


def test_lock_keys_are_distinct():
    keys = {CREATE_LOCK, SETTLEMENT_LOCK, campaign_lock_key(0), campaign_lock_key(1)}
    assert len(keys) == 4


@pytest.mark.asyncio
async def test_acquire_and_release_lock(lock_service):
    """Test basic lock acquire and release."""
    key = campaign_lock_key(1)

    lock_token = await lock_service.acquire(key)
    assert lock_token is not None
    assert isinstance(lock_token, str)

    # Try to acquire again, should retry and return None eventually
    assert await lock_service.acquire(key) is None

    released = await lock_service.release(key, lock_token)
    assert released is True

    lock_token_3 = await lock_service.acquire(key)
    assert lock_token_3 is not None
    await lock_service.release(key, lock_token_3)


@pytest.mark.asyncio
async def test_lock_ttl(memory_storage):
    """Test that locks expire after TTL."""
    service = CampaignLockService(memory_storage, ttl=1)
    key = campaign_lock_key(2)

    lock_token = await service.acquire(key)
    assert lock_token is not None

    assert await service.acquire(key, retry_count=0) is None

    # Wait for TTL to expire
    await asyncio.sleep(1.1)

    lock_token_3 = await service.acquire(key, retry_count=0)
    assert lock_token_3 is not None
    await service.release(key, lock_token_3)


@pytest.mark.asyncio
async def test_retry_mechanism(memory_storage):
    """Test that retry mechanism waits and acquires if lock is freed."""
    service = CampaignLockService(memory_storage, retry_count=10, retry_delay=0.05)
    key = campaign_lock_key(3)

    lock_token = await service.acquire(key)

    async def delayed_release():
        await asyncio.sleep(0.1)
        await service.release(key, lock_token)

    release_task = asyncio.create_task(delayed_release())

    lock_token_2 = await service.acquire(key)
    assert lock_token_2 is not None

    await release_task
    await service.release(key, lock_token_2)


@pytest.mark.asyncio
async def test_token_ownership(lock_service):
    """Test that a lock cannot be released with a wrong token."""
    key = campaign_lock_key(4)

    lock_token = await lock_service.acquire(key)
    assert lock_token is not None

    assert await lock_service.release(key, "wrong-token") is False

    # Lock is still held, so another acquire should fail
    assert await lock_service.acquire(key, retry_count=0) is None

    assert await lock_service.release(key, lock_token) is True


@pytest.mark.asyncio
async def test_hold_releases_on_exception(lock_service, memory_storage):
    with pytest.raises(RuntimeError):
        async with lock_service.hold(SETTLEMENT_LOCK, ReentrantCallError("busy")):
            raise RuntimeError("payout exploded")

    token = await memory_storage.acquire_lock(SETTLEMENT_LOCK)
    assert token is not None


@pytest.mark.asyncio
async def test_hold_raises_given_error_when_held(lock_service):
    async with lock_service.hold(SETTLEMENT_LOCK, ReentrantCallError("busy")):
        with pytest.raises(ReentrantCallError):
            async with lock_service.hold(
                SETTLEMENT_LOCK, ReentrantCallError("busy"), retry_count=0
            ):
                pass


@pytest.mark.asyncio
async def test_hold_on_distinct_keys(lock_service):
    async with lock_service.hold(campaign_lock_key(0), CampaignBusyError("busy", index=0)):
        async with lock_service.hold(
            campaign_lock_key(1), CampaignBusyError("busy", index=1)
        ) as token:
            assert token
