"""
Configuration management for the crowdfund ledger.

Handles loading configuration from environment variables and validation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any

from crowdfund.core.types import (
    DEFAULT_AMOUNT_BITS,
    MIN_AMOUNT_BITS,
    AuthorizationPolicy,
)


def _get_env_var(name: str, default: str | None = None, required: bool = False) -> str | None:
    """Get environment variable with optional default."""
    value = os.environ.get(name, default)
    if required and not value:
        raise ValueError(f"Required environment variable {name} is not set")
    return value


def _parse_allowlist(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Config:
    """Ledger configuration."""

    # Authorization
    owner: str | None = None
    create_policy: AuthorizationPolicy = AuthorizationPolicy.OPEN
    end_policy: AuthorizationPolicy = AuthorizationPolicy.OWNER_ONLY
    allowlist: tuple[str, ...] = ()

    # Amount domain width in bits
    amount_bits: int = DEFAULT_AMOUNT_BITS

    # Persistence
    storage_backend: str = "memory"
    redis_url: str | None = None

    # Timeouts (seconds)
    transfer_timeout: float = 30.0
    lock_ttl: int = 60
    lock_retry_count: int = 3
    lock_retry_delay: float = 0.05

    # External collaborators
    payout_url: str | None = None
    webhook_url: str | None = None

    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.amount_bits < MIN_AMOUNT_BITS:
            raise ValueError(f"amount_bits must be at least {MIN_AMOUNT_BITS}")
        if self.transfer_timeout <= 0:
            raise ValueError("transfer_timeout must be positive")
        if self.lock_ttl <= 0:
            raise ValueError("lock_ttl must be positive")
        # Settlement holds its locks across the payout call
        if self.lock_ttl <= self.transfer_timeout:
            raise ValueError("lock_ttl must exceed transfer_timeout")
        if self.lock_retry_count < 0:
            raise ValueError("lock_retry_count must not be negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> Config:
        """Load configuration from environment variables."""
        owner = overrides.get("owner") or _get_env_var("CROWDFUND_OWNER")

        create_policy = overrides.get("create_policy") or _get_env_var(
            "CROWDFUND_CREATE_POLICY", default=AuthorizationPolicy.OPEN.value
        )
        end_policy = overrides.get("end_policy") or _get_env_var(
            "CROWDFUND_END_POLICY", default=AuthorizationPolicy.OWNER_ONLY.value
        )
        if isinstance(create_policy, str):
            create_policy = AuthorizationPolicy.from_string(create_policy)
        if isinstance(end_policy, str):
            end_policy = AuthorizationPolicy.from_string(end_policy)

        allowlist = overrides.get("allowlist")
        if allowlist is None:
            allowlist = _parse_allowlist(_get_env_var("CROWDFUND_ALLOWLIST"))

        amount_bits = overrides.get("amount_bits") or int(
            _get_env_var("CROWDFUND_AMOUNT_BITS", default=str(DEFAULT_AMOUNT_BITS))  # type: ignore
        )

        storage_backend = overrides.get("storage_backend") or _get_env_var(
            "CROWDFUND_STORAGE_BACKEND", default="memory"
        )
        redis_url = overrides.get("redis_url") or _get_env_var("CROWDFUND_REDIS_URL")

        transfer_timeout = overrides.get("transfer_timeout") or float(
            _get_env_var("CROWDFUND_TRANSFER_TIMEOUT", default=str(cls.transfer_timeout))  # type: ignore
        )
        lock_ttl = overrides.get("lock_ttl") or int(
            _get_env_var("CROWDFUND_LOCK_TTL", default=str(cls.lock_ttl))  # type: ignore
        )

        log_level = overrides.get("log_level") or _get_env_var(
            "CROWDFUND_LOG_LEVEL", default="INFO"
        )

        return cls(
            owner=owner,
            create_policy=create_policy,
            end_policy=end_policy,
            allowlist=tuple(allowlist),
            amount_bits=amount_bits,
            storage_backend=storage_backend,  # type: ignore
            redis_url=redis_url,
            transfer_timeout=transfer_timeout,
            lock_ttl=lock_ttl,
            lock_retry_count=overrides.get("lock_retry_count", cls.lock_retry_count),
            lock_retry_delay=overrides.get("lock_retry_delay", cls.lock_retry_delay),
            payout_url=overrides.get("payout_url") or _get_env_var("CROWDFUND_PAYOUT_URL"),
            webhook_url=overrides.get("webhook_url") or _get_env_var("CROWDFUND_WEBHOOK_URL"),
            log_level=log_level,  # type: ignore
        )

    def with_updates(self, **updates: Any) -> Config:
        """Create a new Config with updated values."""
        current = {f.name: getattr(self, f.name) for f in fields(self)}
        current.update(updates)
        return Config(**current)
