"""
Payment Service — simulated external gateway

Stands in for a real card processor: a short network delay followed by an
approve/decline decision. Success rate and latency are deployment settings.
"""

import asyncio
import logging
import random

logger = logging.getLogger(__name__)


class SimulatedPaymentGateway:
    def __init__(
        self,
        success_rate: float = 0.95,
        latency: float = 0.1,
        rng: random.Random | None = None,
    ) -> None:
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError("success_rate must be within [0, 1]")
        self.success_rate = success_rate
        self.latency = latency
        self._rng = rng or random.Random()

    async def charge(self, transaction_id: str, amount, payment_method: str) -> bool:
        """Return True when the charge is approved. An interrupted wait is a decline."""
        try:
            await asyncio.sleep(self.latency)
        except asyncio.CancelledError:
            # The decline answers the cancellation request
            asyncio.current_task().uncancel()
            logger.warning("Gateway call for %s interrupted", transaction_id)
            return False
        approved = self._rng.random() < self.success_rate
        logger.info(
            "Gateway %s %s %s via %s",
            "approved" if approved else "declined",
            transaction_id,
            amount,
            payment_method,
        )
        return approved
