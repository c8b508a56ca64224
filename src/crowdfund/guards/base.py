"""
Guard base classes and chain.

Guards decide whether a caller may perform a ledger action.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from crowdfund.core.types import LedgerAction


@dataclass
class GuardResult:
    """
    Result of a guard check.

    Attributes:
        allowed: Whether the call is allowed
        reason: Human-readable reason (especially when blocked)
        guard_name: Name of the guard that produced this result
        metadata: Additional context data
    """

    allowed: bool
    reason: str | None = None
    guard_name: str = ""
    metadata: dict[str, Any] | None = None

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.allowed


@dataclass
class CallContext:
    """Everything a guard may inspect about an incoming call."""

    caller: str
    action: LedgerAction
    index: int | None = None


class Guard(ABC):
    """Abstract base class for call guards."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this guard."""
        ...

    @abstractmethod
    async def check(self, context: CallContext) -> GuardResult:
        """Check if the call should be allowed."""
        ...


class GuardChain:
    """
    Chain of guards executed in sequence.

    Returns the first failure, or success if all pass.
    """

    def __init__(self, guards: list[Guard] | None = None) -> None:
        self._guards = list(guards or [])

    def add(self, guard: Guard) -> GuardChain:
        self._guards.append(guard)
        return self

    def __len__(self) -> int:
        return len(self._guards)

    async def check(self, context: CallContext) -> GuardResult:
        for guard in self._guards:
            result = await guard.check(context)
            if not result.allowed:
                return result
        return GuardResult(allowed=True, guard_name="chain")
