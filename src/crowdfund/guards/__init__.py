"""
Guards module - Authorization checks for ledger actions.

Example:
    >>> from crowdfund.guards import AccessGuard, GuardChain
    >>> from crowdfund.core.types import AuthorizationPolicy, LedgerAction
    >>>
    >>> chain = GuardChain([
    ...     AccessGuard(LedgerAction.CREATE, AuthorizationPolicy.OPEN),
    ...     AccessGuard(LedgerAction.END, AuthorizationPolicy.OWNER_ONLY, owner="0xowner"),
    ... ])
"""

from crowdfund.guards.access import AccessGuard
from crowdfund.guards.base import (
    CallContext,
    Guard,
    GuardChain,
    GuardResult,
)

__all__ = [
    "AccessGuard",
    "CallContext",
    "Guard",
    "GuardChain",
    "GuardResult",
]
