"""
Inventory Service — query handlers (read side)
"""

import logging

import redis.asyncio as aioredis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from services.shared import cache
from services.shared.schema import inventory_tbl

from .models import InventoryRecord

logger = logging.getLogger(__name__)


async def load_record(session: AsyncSession, product_id: int) -> InventoryRecord | None:
    """Read straight from the store, bypassing the cache."""
    result = await session.execute(
        select(inventory_tbl).where(inventory_tbl.c.product_id == product_id)
    )
    row = result.fetchone()
    if not row:
        return None
    return InventoryRecord(
        product_id=row.product_id,
        product_name=row.product_name,
        quantity_available=row.quantity_available,
        reserved_quantity=row.reserved_quantity,
        unit_price=row.unit_price,
    )


async def get_inventory(
    session: AsyncSession,
    redis: aioredis.Redis,
    product_id: int,
) -> InventoryRecord | None:
    """
    Cache-first lookup of one product.

    Hits are served from ``inventory:product:{id}``; misses go to the store and
    populate the cache for 10 minutes. Missing products are not cached.
    """
    key = cache.inventory_product_key(product_id)
    cached = await cache.get_json(redis, key)
    if cached is not None:
        logger.debug("Inventory %s served from cache", product_id)
        return InventoryRecord.model_validate(cached)

    record = await load_record(session, product_id)
    if record is not None:
        await cache.set_json(
            redis, key, record.model_dump(mode="json"), cache.INVENTORY_SNAPSHOT_TTL
        )
    return record
