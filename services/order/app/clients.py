"""
Order Service — payment client
"""

import logging

import httpx

from services.shared.contracts import PaymentRequest, PaymentResult
from services.shared.errors import ServiceUnavailableError
from services.shared.tracing import trace_headers

logger = logging.getLogger(__name__)


class HTTPPaymentClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def process_payment(self, req: PaymentRequest) -> PaymentResult:
        """POST the payment. Declines come back as results; outages raise."""
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(
                    f"{self._base_url}/commands/payments",
                    json=req.model_dump(mode="json"),
                    headers=trace_headers(),
                )
        except httpx.HTTPError as e:
            logger.error("Payment service unreachable: %s", e)
            raise ServiceUnavailableError(f"Payment service unavailable: {e}") from e

        try:
            body = resp.json()
        except ValueError as e:
            raise ServiceUnavailableError(
                f"Payment service returned {resp.status_code} without a JSON body"
            ) from e
        if not isinstance(body, dict) or "success" not in body:
            raise ServiceUnavailableError(f"Payment service returned {resp.status_code}: {body}")
        return PaymentResult.model_validate(body)
