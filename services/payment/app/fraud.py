"""
Payment Service — fraud detection and risk scoring

Both checks run after a payment has been committed and only leave their
verdicts in Redis; they never block or alter the payment itself.
"""

import asyncio
import logging
from decimal import Decimal

import redis.asyncio as aioredis

from services.shared import cache

logger = logging.getLogger(__name__)

FRAUD_AMOUNT_THRESHOLD = Decimal("10000.00")
HIGH_AMOUNT_RISK_THRESHOLD = Decimal("5000")
HIGH_AMOUNT_RISK = 30
CREDIT_CARD_RISK = 10
DEFAULT_METHOD_RISK = 20


class FraudDetector:
    FRAUD_CHECK_DELAY = 0.8
    RISK_SCORE_DELAY = 0.4

    def __init__(self, redis: aioredis.Redis, latency_scale: float = 1.0) -> None:
        self._redis = redis
        self._latency_scale = latency_scale

    async def _pause(self, seconds: float) -> None:
        await asyncio.sleep(seconds * self._latency_scale)

    async def perform_fraud_check(self, order_id: int, amount: Decimal) -> bool:
        """Flag large amounts. Returns True when the payment looks legitimate."""
        await self._pause(self.FRAUD_CHECK_DELAY)

        flagged = Decimal(amount) > FRAUD_AMOUNT_THRESHOLD
        verdict = "FLAGGED" if flagged else "APPROVED"
        await self._redis.set(cache.fraud_check_key(order_id), verdict, ex=cache.FRAUD_RESULT_TTL)
        await cache.increment(self._redis, cache.fraud_count_key(order_id), cache.FRAUD_COUNT_TTL)

        logger.info("Fraud check for order %s: %s", order_id, verdict)
        return not flagged

    async def calculate_risk_score(self, order_id: int, amount: Decimal, payment_method: str) -> int:
        await self._pause(self.RISK_SCORE_DELAY)

        score = 0
        if Decimal(amount) > HIGH_AMOUNT_RISK_THRESHOLD:
            score += HIGH_AMOUNT_RISK

        method_key = cache.risk_method_key(payment_method)
        method_risk = await self._redis.get(method_key)
        if method_risk is None:
            method_score = CREDIT_CARD_RISK if payment_method == "CREDIT_CARD" else DEFAULT_METHOD_RISK
            await self._redis.set(method_key, str(method_score), ex=cache.RISK_METHOD_TTL)
        else:
            method_score = int(method_risk)
        score += method_score

        await self._redis.set(cache.risk_score_key(order_id), str(score), ex=cache.RISK_SCORE_TTL)
        logger.info("Risk score for order %s: %s", order_id, score)
        return score
