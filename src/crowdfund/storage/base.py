"""
Where campaign records and ledger locks are kept.

The ledger stores one JSON-serializable record per campaign index in the
`campaigns` collection and coordinates writers through expiring locks
owned by a random token. Backends are looked up by name so the
`CROWDFUND_STORAGE_BACKEND` setting can pick one.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class StorageBackend(ABC):
    """
    Record store plus lock service behind a campaign ledger.

    Records must come back exactly as saved (campaign amounts are
    decimal strings, so no precision is lost). A lock is held by whoever
    has its token until it is released or its TTL runs out.
    """

    @abstractmethod
    async def save(
        self,
        collection: str,
        key: str,
        data: dict[str, Any],
    ) -> None:
        """
        Write a whole record, replacing any previous version.

        Args:
            collection: Record group, e.g. "campaigns"
            key: Record key (the campaign index as a string)
            data: JSON-serializable record
        """
        ...

    @abstractmethod
    async def get(
        self,
        collection: str,
        key: str,
    ) -> dict[str, Any] | None:
        """Read one record, or None if the key was never saved."""
        ...

    @abstractmethod
    async def delete(
        self,
        collection: str,
        key: str,
    ) -> bool:
        """Remove a record. Returns False if it did not exist."""
        ...

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """
        Scan a collection, keeping records whose fields equal `filters`.

        Each result carries its key under "_key". Order is backend
        specific; the ledger sorts by campaign index itself.
        """
        ...

    @abstractmethod
    async def update(
        self,
        collection: str,
        key: str,
        data: dict[str, Any],
    ) -> bool:
        """
        Merge `data` into an existing record.

        Returns:
            False, without writing, if the record does not exist
        """
        ...

    @abstractmethod
    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        """Number of records, optionally only those matching `filters`."""
        ...

    @abstractmethod
    async def clear(self, collection: str) -> int:
        """Drop every record in a collection and return how many there were."""
        ...

    @abstractmethod
    async def acquire_lock(
        self,
        key: str,
        ttl: int = 30,
    ) -> str | None:
        """
        Acquire a lock that expires after `ttl` seconds.

        Returns:
            Unique ownership token if acquired, None if already held
        """
        ...

    @abstractmethod
    async def release_lock(
        self,
        key: str,
        token: str,
    ) -> bool:
        """
        Release a lock if `token` still owns it.

        Returns:
            True if released, False if not held or owned by another token
        """
        ...

    async def health_check(self) -> bool:
        """Whether the backend can currently serve the ledger."""
        return True

    async def close(self) -> None:
        """Release any connections held by the backend."""
        return None


# name -> backend class, filled in as backend modules are imported
_STORAGE_BACKENDS: dict[str, type[StorageBackend]] = {}


def register_storage_backend(name: str, backend_class: type[StorageBackend]) -> None:
    """Make a backend selectable by `name`."""
    _STORAGE_BACKENDS[name] = backend_class


def get_storage_backend(name: str) -> type[StorageBackend] | None:
    """Backend class registered under `name`, if any."""
    return _STORAGE_BACKENDS.get(name)


def list_storage_backends() -> list[str]:
    """Names accepted by `get_storage`."""
    return list(_STORAGE_BACKENDS.keys())
