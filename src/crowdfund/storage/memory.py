"""
Process-local campaign store.

The default backend. Campaign records and ledger locks live in plain
dicts, so everything is gone when the process exits; use it for tests,
demos and single-process deployments.
"""

from __future__ import annotations

import time
import uuid
from copy import deepcopy
from typing import Any

from crowdfund.storage.base import StorageBackend, register_storage_backend


class InMemoryStorage(StorageBackend):
    """
    Campaign records and ledger locks held in memory.

    Every read hands out a deep copy, so a caller editing a campaign dict
    cannot change the ledger without going through `save` or `update`.
    Lock expiry uses the monotonic clock, independent of the ledger's
    deadline clock.
    """

    def __init__(self) -> None:
        # collection -> key -> record
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        # lock key -> (token, monotonic expiry)
        self._locks: dict[str, tuple[str, float]] = {}

    def _records(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    async def save(
        self,
        collection: str,
        key: str,
        data: dict[str, Any],
    ) -> None:
        self._records(collection)[key] = deepcopy(data)

    async def get(
        self,
        collection: str,
        key: str,
    ) -> dict[str, Any] | None:
        record = self._records(collection).get(key)
        return deepcopy(record) if record is not None else None

    async def delete(
        self,
        collection: str,
        key: str,
    ) -> bool:
        return self._records(collection).pop(key, None) is not None

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Matching records in insertion order, i.e. campaign creation order."""
        matches = []
        for key, record in self._records(collection).items():
            if filters and any(record.get(field) != want for field, want in filters.items()):
                continue
            match = deepcopy(record)
            match["_key"] = key
            matches.append(match)

        end = None if limit is None else offset + limit
        return matches[offset:end]

    async def update(
        self,
        collection: str,
        key: str,
        data: dict[str, Any],
    ) -> bool:
        record = self._records(collection).get(key)
        if record is None:
            return False
        record.update(deepcopy(data))
        return True

    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        if filters:
            return len(await self.query(collection, filters))
        return len(self._records(collection))

    async def clear(self, collection: str) -> int:
        records = self._records(collection)
        dropped = len(records)
        records.clear()
        return dropped

    async def acquire_lock(
        self,
        key: str,
        ttl: int = 30,
    ) -> str | None:
        """Take the lock unless another token holds it and its TTL has not run out."""
        now = time.monotonic()
        holder = self._locks.get(key)
        if holder is not None and holder[1] > now:
            return None

        token = uuid.uuid4().hex
        self._locks[key] = (token, now + ttl)
        return token

    async def release_lock(
        self,
        key: str,
        token: str,
    ) -> bool:
        """Drop the lock, but only for the token that took it."""
        holder = self._locks.get(key)
        if holder is None or holder[0] != token:
            return False
        del self._locks[key]
        return True


register_storage_backend("memory", InMemoryStorage)
