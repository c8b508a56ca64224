"""
Webhook event sink.

POSTs each event as JSON to a subscriber URL. When a signing key is
configured the raw body is signed with Ed25519 and the base64 signature
sent in the `x-crowdfund-signature` header, so subscribers can verify
the event came from this ledger. Transient failures (connection errors,
5xx and 429 responses) are retried with exponential backoff.
"""

from __future__ import annotations

import base64
import json

import httpx
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from crowdfund.core.logging import get_logger
from crowdfund.events.sinks import EventSink
from crowdfund.events.types import LedgerEvent
from crowdfund.resilience.retry import execute_with_retry

SIGNATURE_HEADER = "x-crowdfund-signature"


class WebhookEventSink(EventSink):
    """Deliver events to an HTTP endpoint."""

    def __init__(
        self,
        url: str,
        signing_key: Ed25519PrivateKey | None = None,
        timeout: float = 10.0,
        max_attempts: int = 3,
        retry_wait: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize webhook sink.

        Args:
            url: Subscriber endpoint
            signing_key: Optional Ed25519 key used to sign each body
            timeout: Request timeout in seconds
            max_attempts: Delivery attempts on transient errors
            retry_wait: Base backoff between attempts in seconds
            transport: Optional httpx transport (used by tests)
        """
        self._url = url
        self._signing_key = signing_key
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._retry_wait = retry_wait
        self._transport = transport
        self._logger = get_logger("events.webhook")
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._http_client

    def sign(self, body: bytes) -> str | None:
        """Return the base64 signature for `body`, or None without a key."""
        if self._signing_key is None:
            return None
        return base64.b64encode(self._signing_key.sign(body)).decode("utf-8")

    async def publish(self, event: LedgerEvent) -> None:
        body = json.dumps(event.to_dict(), separators=(",", ":")).encode("utf-8")
        headers = {"content-type": "application/json"}
        signature = self.sign(body)
        if signature:
            headers[SIGNATURE_HEADER] = signature

        await execute_with_retry(
            self._deliver,
            body,
            headers,
            attempts=self._max_attempts,
            wait=self._retry_wait,
        )
        self._logger.debug(f"Delivered {event.type.value} to {self._url}")

    async def _deliver(self, body: bytes, headers: dict[str, str]) -> None:
        client = await self._get_client()
        response = await client.post(self._url, content=body, headers=headers)
        response.raise_for_status()

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
