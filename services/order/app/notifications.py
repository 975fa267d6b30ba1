"""
Order Service — post-completion notifications

Email, SMS and audit entries for a completed order. All three are simulated:
they wait a little and record a receipt in Redis.
"""

import asyncio
import logging
import time

import redis.asyncio as aioredis

from services.shared import cache

from .models import Order

logger = logging.getLogger(__name__)


class OrderNotifier:
    EMAIL_DELAY = 0.5
    SMS_DELAY = 0.3
    AUDIT_DELAY = 0.1

    def __init__(self, redis: aioredis.Redis, latency_scale: float = 1.0) -> None:
        self._redis = redis
        self._latency_scale = latency_scale

    async def _pause(self, seconds: float) -> None:
        await asyncio.sleep(seconds * self._latency_scale)

    async def send_email_notification(self, order: Order) -> None:
        await self._pause(self.EMAIL_DELAY)
        await self._redis.set(
            cache.email_notification_key(order.id), "SENT", ex=cache.NOTIFICATION_TTL
        )
        logger.info("Email notification sent for order %s", order.id)

    async def send_sms_notification(self, order: Order) -> str:
        await self._pause(self.SMS_DELAY)
        await self._redis.set(
            cache.sms_notification_key(order.id), "DELIVERED", ex=cache.NOTIFICATION_TTL
        )
        message = f"SMS sent for order {order.id}"
        logger.info(message)
        return message

    async def log_order_event(self, order_id: int, event: str, details: str) -> None:
        await self._pause(self.AUDIT_DELAY)
        millis = int(time.time() * 1000)
        await cache.set_json(
            self._redis,
            cache.audit_key(order_id, millis),
            {"event": event, "details": details, "timestamp": millis},
            cache.AUDIT_TTL,
        )
        logger.info("Audit logged: %s for order %s", event, order_id)
