"""
Campaign Lock Service.

Serializes mutations on a single campaign, campaign creation, and
settlement across the whole ledger. Locks live in the storage backend,
so with Redis the same guarantees hold across processes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from crowdfund.core.exceptions import LedgerError
    from crowdfund.storage.base import StorageBackend

logger = logging.getLogger(__name__)

CREATE_LOCK = "lock:campaigns:create"
SETTLEMENT_LOCK = "lock:settlement"


def campaign_lock_key(index: int) -> str:
    """Lock key guarding one campaign record."""
    return f"lock:campaign:{index}"


class CampaignLockService:
    """
    Service for managing ledger locks (mutexes).

    Implements a token-owned lock pattern using the storage backend.
    """

    def __init__(
        self,
        storage: StorageBackend,
        ttl: int = 60,
        retry_count: int = 3,
        retry_delay: float = 0.05,
    ) -> None:
        """
        Initialize lock service.

        Args:
            storage: Storage backend (Redis/Memory)
            ttl: Lock time-to-live in seconds
            retry_count: Default number of retries if a lock is held
            retry_delay: Delay between retries in seconds
        """
        self._storage = storage
        self._ttl = ttl
        self._retry_count = retry_count
        self._retry_delay = retry_delay

    @property
    def ttl(self) -> int:
        return self._ttl

    async def acquire(self, key: str, retry_count: int | None = None) -> str | None:
        """
        Acquire a lock.

        Args:
            key: Lock key
            retry_count: Retries if the lock is held (None uses the default)

        Returns:
            lock_token (str) if successful, None if failed
        """
        retries = self._retry_count if retry_count is None else retry_count

        for i in range(retries + 1):
            token = await self._storage.acquire_lock(key, self._ttl)
            if token:
                logger.debug(f"Acquired {key} (token: {token[:8]}...)")
                return token

            if i < retries:
                logger.debug(f"{key} held, retrying in {self._retry_delay}s...")
                await asyncio.sleep(self._retry_delay)

        if retries:
            logger.warning(f"Failed to acquire {key} after {retries} retries")
        return None

    async def release(self, key: str, token: str) -> bool:
        """
        Release a previously acquired lock.

        Returns:
            True if released, False if not found or token mismatch
        """
        result = await self._storage.release_lock(key, token)
        if result:
            logger.debug(f"Released {key}")
        else:
            logger.warning(f"Lock {key} was not held by token {token[:8]}... at release")
        return result

    @asynccontextmanager
    async def hold(
        self,
        key: str,
        busy_error: LedgerError,
        retry_count: int | None = None,
    ) -> AsyncIterator[str]:
        """
        Hold a lock for the duration of the block.

        Raises `busy_error` if the lock cannot be acquired. The lock is
        released on every exit path, including exceptions and cancellation.
        """
        token = await self.acquire(key, retry_count=retry_count)
        if token is None:
            raise busy_error
        try:
            yield token
        finally:
            await self.release(key, token)
