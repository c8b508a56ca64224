"""
AccessGuard - Controls which callers may perform an action.

One guard instance covers one action. The policy decides who passes:
- open: every caller
- owner_only: only the ledger owner
- allowlist: the owner plus explicitly listed callers
"""

from __future__ import annotations

from crowdfund.core.exceptions import ConfigurationError
from crowdfund.core.types import AuthorizationPolicy, LedgerAction
from crowdfund.guards.base import CallContext, Guard, GuardResult


class AccessGuard(Guard):
    """Authorization guard for a single ledger action."""

    def __init__(
        self,
        action: LedgerAction,
        policy: AuthorizationPolicy = AuthorizationPolicy.OPEN,
        owner: str | None = None,
        allowlist: list[str] | tuple[str, ...] | None = None,
    ) -> None:
        """
        Initialize AccessGuard.

        Args:
            action: The action this guard protects
            policy: Authorization policy
            owner: Ledger owner identity (required unless policy is open)
            allowlist: Additional callers admitted under the allowlist policy

        Raises:
            ConfigurationError: If an owner-gated policy has no owner
        """
        if policy == AuthorizationPolicy.OWNER_ONLY and not owner:
            raise ConfigurationError(
                f"Policy '{policy.value}' for '{action.value}' requires an owner"
            )
        if policy == AuthorizationPolicy.ALLOWLIST and not owner and not allowlist:
            raise ConfigurationError(
                f"Policy '{policy.value}' for '{action.value}' requires an owner or allowlist"
            )

        self._action = action
        self._policy = policy
        self._owner = owner.lower() if owner else None
        self._allowed = {caller.lower() for caller in (allowlist or [])}

    @property
    def name(self) -> str:
        return f"access:{self._action.value}"

    @property
    def policy(self) -> AuthorizationPolicy:
        return self._policy

    @property
    def action(self) -> LedgerAction:
        return self._action

    def allow(self, caller: str) -> None:
        """Add a caller to the allowlist."""
        self._allowed.add(caller.lower())

    def revoke(self, caller: str) -> None:
        """Remove a caller from the allowlist."""
        self._allowed.discard(caller.lower())

    def _permits(self, caller: str) -> bool:
        if self._policy == AuthorizationPolicy.OPEN:
            return True

        caller_lower = caller.lower()
        if self._owner is not None and caller_lower == self._owner:
            return True

        return self._policy == AuthorizationPolicy.ALLOWLIST and caller_lower in self._allowed

    async def check(self, context: CallContext) -> GuardResult:
        """Check if the caller may perform this guard's action."""
        if context.action != self._action:
            return GuardResult(allowed=True, guard_name=self.name)

        if self._permits(context.caller):
            return GuardResult(
                allowed=True,
                guard_name=self.name,
                metadata={"policy": self._policy.value},
            )

        if self._policy == AuthorizationPolicy.OWNER_ONLY:
            reason = "caller is not the ledger owner"
        else:
            reason = "caller is not on the allowlist"
        return GuardResult(
            allowed=False,
            reason=reason,
            guard_name=self.name,
            metadata={"policy": self._policy.value},
        )
