"""
HttpPayoutRail - payouts executed by an external payment service.

POSTs a payout request and treats anything other than a 2xx response
with a transaction id as failure. No retries: the ledger rolls back and
the caller decides whether to resubmit.
"""

from __future__ import annotations

from typing import Any

import httpx

from crowdfund.core.logging import get_logger
from crowdfund.core.types import TransferResult
from crowdfund.payout.base import PayoutRail


class HttpPayoutRail(PayoutRail):
    """Payout rail talking to a REST payout endpoint."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize HTTP payout rail.

        Args:
            base_url: Payout service base URL
            timeout: Request timeout in seconds
            api_key: Optional bearer token
            transport: Optional httpx transport (used by tests)
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._api_key = api_key
        self._transport = transport
        self._logger = get_logger("payout.http")
        self._http_client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "http"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else None
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def transfer(
        self,
        recipient: str,
        amount: int,
        reference: str,
    ) -> TransferResult:
        client = await self._get_client()
        body = {"recipient": recipient, "amount": str(amount), "reference": reference}
        self._logger.debug(f"POST {self._base_url}/payouts ({reference})")

        try:
            response = await client.post("/payouts", json=body)
            response.raise_for_status()
            data: dict[str, Any] = response.json()
        except httpx.HTTPStatusError as e:
            return TransferResult(
                success=False,
                recipient=recipient,
                amount=amount,
                error=f"Payout service returned {e.response.status_code}",
                metadata={"status_code": e.response.status_code},
            )
        except (httpx.HTTPError, ValueError) as e:
            return TransferResult(
                success=False,
                recipient=recipient,
                amount=amount,
                error=f"Payout request failed: {e}",
            )

        transaction_id = data.get("id") or data.get("transactionId")
        if not transaction_id:
            return TransferResult(
                success=False,
                recipient=recipient,
                amount=amount,
                error="Payout service response missing transaction id",
                metadata={"response": data},
            )

        return TransferResult(
            success=True,
            recipient=recipient,
            amount=amount,
            transaction_id=str(transaction_id),
            metadata={"reference": reference, "state": data.get("state")},
        )
