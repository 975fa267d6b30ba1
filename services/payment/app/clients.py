"""
Payment Service — inventory client

HTTP call to the inventory service's reserve command. Business rejections
come back as a ReservationResult with ``success=False``; only transport
problems and unreadable answers raise.
"""

import logging

import httpx

from services.shared.contracts import ReservationResult
from services.shared.errors import ServiceUnavailableError
from services.shared.tracing import trace_headers

logger = logging.getLogger(__name__)


class HTTPInventoryClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def reserve(self, product_id: int, quantity: int) -> ReservationResult:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(
                    f"{self._base_url}/commands/inventory/reserve",
                    json={"product_id": product_id, "quantity": quantity},
                    headers=trace_headers(),
                )
        except httpx.HTTPError as e:
            logger.error("Inventory service unreachable: %s", e)
            raise ServiceUnavailableError(f"Inventory service unavailable: {e}") from e

        try:
            body = resp.json()
        except ValueError as e:
            raise ServiceUnavailableError(
                f"Inventory service returned {resp.status_code} without a JSON body"
            ) from e
        if not isinstance(body, dict) or "success" not in body:
            raise ServiceUnavailableError(
                f"Inventory service returned {resp.status_code}: {body}"
            )
        return ReservationResult.model_validate(body)
