"""
Retry Strategies using Tenacity.

Standard retry policy for outbound notification delivery. Payouts are
never retried here: a failed payout rolls the ledger back and the caller
decides whether to resubmit.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from crowdfund.core.logging import get_logger

logger = get_logger("resilience")

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def is_transient_error(exception: BaseException) -> bool:
    """Check if exception is a transient network or server-side error."""
    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code in RETRYABLE_STATUS_CODES
    return isinstance(exception, httpx.TransportError)


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(f"Retrying delivery... (attempt {retry_state.attempt_number} failed: {error})")


async def execute_with_retry(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    attempts: int = 3,
    wait: float = 1.0,
    **kwargs: Any,
) -> Any:
    """
    Execute an async function, retrying transient errors.

    Args:
        func: Coroutine function to call
        attempts: Total attempts including the first
        wait: Base of the exponential backoff in seconds (capped at 16s)

    Returns:
        Whatever `func` returns. The last error is re-raised once
        attempts are exhausted; non-transient errors are raised at once.
    """
    async for attempt in AsyncRetrying(
        retry=retry_if_exception(is_transient_error),
        wait=wait_exponential(multiplier=wait, max=16),
        stop=stop_after_attempt(attempts),
        reraise=True,
        before_sleep=_log_retry,
    ):
        with attempt:
            return await func(*args, **kwargs)
