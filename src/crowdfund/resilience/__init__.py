"""
Resilience layer for outbound calls.
"""

from .retry import RETRYABLE_STATUS_CODES, execute_with_retry, is_transient_error

__all__ = [
    "RETRYABLE_STATUS_CODES",
    "execute_with_retry",
    "is_transient_error",
]
