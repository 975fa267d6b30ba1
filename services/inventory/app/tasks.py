"""
Inventory Service — background maintenance

Run through the SideEffectDispatcher after a reservation has been committed.
Each job opens its own session because the request that triggered it has
usually finished (and closed its session) by the time the job runs.
"""

import asyncio
import json
import logging
import time
from datetime import date

import redis.asyncio as aioredis
from sqlalchemy.orm import sessionmaker

from services.shared import cache

from . import queries

logger = logging.getLogger(__name__)


class InventoryMaintenance:
    RESTOCK_DELAY = 0.2
    ANALYTICS_DELAY = 0.6
    SUPPLIER_DELAY = 0.3

    def __init__(
        self,
        session_factory: sessionmaker,
        redis: aioredis.Redis,
        latency_scale: float = 1.0,
    ) -> None:
        self._session_factory = session_factory
        self._redis = redis
        self._latency_scale = latency_scale

    async def _pause(self, seconds: float) -> None:
        await asyncio.sleep(seconds * self._latency_scale)

    async def schedule_restock_notification(self, product_id: int, threshold: int) -> bool:
        """Record a pending restock when available stock drops below ``threshold``."""
        await self._pause(self.RESTOCK_DELAY)

        async with self._session_factory() as session:
            record = await queries.load_record(session, product_id)

        if record is None or record.quantity_available >= threshold:
            return False

        await cache.set_json(
            self._redis,
            cache.restock_notification_key(product_id),
            {
                "productId": product_id,
                "currentStock": record.quantity_available,
                "threshold": threshold,
                "status": "PENDING",
            },
            cache.RESTOCK_TTL,
        )
        await cache.increment(self._redis, cache.RESTOCK_COUNT_KEY)
        logger.info("Restock notification scheduled for product %s", product_id)
        return True

    async def update_inventory_analytics(self, product_id: int) -> str:
        await self._pause(self.ANALYTICS_DELAY)

        async with self._session_factory() as session:
            record = await queries.load_record(session, product_id)

        if record is None:
            return f"Product not found: {product_id}"

        total_stock = record.quantity_available + record.reserved_quantity
        turnover = record.reserved_quantity / total_stock if total_stock else 0.0

        await cache.set_json(
            self._redis,
            cache.analytics_key(product_id),
            {
                "productId": product_id,
                "turnoverRate": round(turnover, 2),
                "totalStock": total_stock,
                "lastUpdated": int(time.time() * 1000),
            },
            cache.ANALYTICS_TTL,
        )

        daily_key = cache.analytics_daily_key(date.today())
        await self._redis.hincrby(daily_key, "products_analyzed", 1)
        await self._redis.expire(daily_key, cache.ANALYTICS_DAILY_TTL)

        summary = f"Analytics updated for product {product_id} (turnover: {turnover:.1%})"
        logger.info(summary)
        return summary

    async def notify_supplier_low_stock(self, product_id: int, supplier_email: str) -> None:
        await self._pause(self.SUPPLIER_DELAY)

        millis = int(time.time() * 1000)
        payload = {
            "productId": product_id,
            "supplierEmail": supplier_email,
            "type": "LOW_STOCK",
            "timestamp": millis,
        }
        await cache.set_json(
            self._redis,
            cache.supplier_notification_key(product_id, millis),
            payload,
            cache.SUPPLIER_NOTIFICATION_TTL,
        )

        history_key = cache.supplier_history_key(supplier_email)
        await self._redis.lpush(history_key, json.dumps(payload))
        await self._redis.expire(history_key, cache.SUPPLIER_HISTORY_TTL)
        logger.info("Supplier %s notified for product %s", supplier_email, product_id)
