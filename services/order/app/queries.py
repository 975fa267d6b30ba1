"""
Order Service — query handlers

Order snapshots are cached under ``order:{id}`` for 24 hours. Both the write
path and the read-through path cache what the store returns, so a hit and a
miss yield the same snapshot.
"""

import logging

import redis.asyncio as aioredis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from services.shared import cache
from services.shared.schema import orders_tbl

from .models import Order

logger = logging.getLogger(__name__)


async def load_order(session: AsyncSession, order_id: int) -> Order | None:
    result = await session.execute(select(orders_tbl).where(orders_tbl.c.id == order_id))
    row = result.fetchone()
    if not row:
        return None
    return Order.model_validate(dict(row._mapping))


async def cache_order(redis: aioredis.Redis, order: Order) -> None:
    await cache.set_json(
        redis, cache.order_key(order.id), order.model_dump(mode="json"), cache.ORDER_SNAPSHOT_TTL
    )


async def get_order(session: AsyncSession, redis: aioredis.Redis, order_id: int) -> Order | None:
    """Cache first, then the store. Unknown ids are not cached."""
    cached = await cache.get_json(redis, cache.order_key(order_id))
    if cached is not None:
        logger.debug("Order %s served from cache", order_id)
        return Order.model_validate(cached)

    logger.debug("Order %s not cached, reading store", order_id)
    order = await load_order(session, order_id)
    if order is not None:
        await cache_order(redis, order)
    return order
