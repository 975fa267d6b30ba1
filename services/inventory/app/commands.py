"""
Inventory Service — command handlers (write side)

Reservation is the only operation that mutates stock. It is a single
conditional UPDATE:

    UPDATE inventory
       SET quantity_available = quantity_available - :q,
           reserved_quantity  = reserved_quantity  + :q
     WHERE product_id = :p AND quantity_available >= :q

The store evaluates the predicate and applies the change in one step, so two
concurrent reservations for the same product can never both pass the check
against the same stock. When the UPDATE matches nothing we read the row once
to tell "no such product" apart from "not enough stock".
"""

import logging
from datetime import datetime, timezone

import redis.asyncio as aioredis
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from services.shared import cache
from services.shared.dispatcher import SideEffectDispatcher
from services.shared.errors import (
    FulfillmentError,
    InsufficientStockError,
    ProductNotFoundError,
    ValidationFailure,
)
from services.shared.schema import inventory_tbl

from . import queries
from .models import InventoryRecord, ReservationResult
from .tasks import InventoryMaintenance

logger = logging.getLogger(__name__)

RESTOCK_THRESHOLD = 10
SUPPLIER_NOTIFY_QUANTITY = 5
SUPPLIER_EMAIL = "supplier@example.com"


async def _check_negative_cache(redis: aioredis.Redis, product_id: int, quantity: int) -> None:
    verdict = await redis.get(cache.inventory_check_key(product_id))
    if verdict == cache.NOT_FOUND:
        raise ProductNotFoundError(product_id, cached=True)
    if verdict == cache.INSUFFICIENT:
        raise InsufficientStockError(product_id, quantity)


async def reserve_stock(
    session: AsyncSession,
    redis: aioredis.Redis,
    product_id: int,
    quantity: int,
) -> InventoryRecord:
    """
    Reserve ``quantity`` units and return the record as it stands afterwards.

    1. Negative-verdict cache short-circuits clearly doomed requests
    2. Atomic conditional UPDATE
    3. On no match, classify the failure and cache the verdict
    4. On success, drop the stale negative verdict and the query snapshot
    """
    if quantity <= 0:
        raise ValidationFailure(f"Quantity must be positive, got {quantity}")

    await _check_negative_cache(redis, product_id, quantity)
    check_key = cache.inventory_check_key(product_id)

    result = await session.execute(
        update(inventory_tbl)
        .where(
            inventory_tbl.c.product_id == product_id,
            inventory_tbl.c.quantity_available >= quantity,
        )
        .values(
            quantity_available=inventory_tbl.c.quantity_available - quantity,
            reserved_quantity=inventory_tbl.c.reserved_quantity + quantity,
            updated_at=datetime.now(timezone.utc),
        )
    )

    if result.rowcount == 0:
        await session.rollback()
        record = await queries.load_record(session, product_id)
        if record is None:
            await redis.set(check_key, cache.NOT_FOUND, ex=cache.NOT_FOUND_TTL)
            raise ProductNotFoundError(product_id)
        await redis.set(check_key, cache.INSUFFICIENT, ex=cache.INSUFFICIENT_TTL)
        raise InsufficientStockError(product_id, quantity, record.quantity_available)

    record = await queries.load_record(session, product_id)
    await session.commit()

    await redis.set(
        cache.inventory_reserved_key(product_id), str(quantity), ex=cache.RESERVATION_TTL
    )
    await redis.delete(check_key, cache.inventory_product_key(product_id))
    return record


async def reserve_inventory(
    session: AsyncSession,
    redis: aioredis.Redis,
    dispatcher: SideEffectDispatcher,
    maintenance: InventoryMaintenance,
    product_id: int,
    quantity: int,
) -> ReservationResult:
    """Reserve stock and report the outcome as a result instead of raising."""
    try:
        record = await reserve_stock(session, redis, product_id, quantity)
    except FulfillmentError as e:
        logger.info("Reservation of %s x %s rejected: %s", product_id, quantity, e)
        return ReservationResult(
            success=False, message=str(e), product_id=product_id, error=e.kind
        )

    logger.info(
        "Reserved %s x %s (remaining=%s)", product_id, quantity, record.quantity_available
    )
    _trigger_maintenance(dispatcher, maintenance, product_id, quantity)

    return ReservationResult(
        success=True,
        message="Inventory reserved successfully",
        product_id=product_id,
        reserved_quantity=quantity,
        unit_price=record.unit_price,
        total_amount=record.unit_price * quantity,
        remaining_available=record.quantity_available,
    )


def _trigger_maintenance(
    dispatcher: SideEffectDispatcher,
    maintenance: InventoryMaintenance,
    product_id: int,
    reserved_quantity: int,
) -> None:
    dispatcher.dispatch(
        f"restock-check:{product_id}",
        maintenance.schedule_restock_notification,
        product_id,
        RESTOCK_THRESHOLD,
    )
    dispatcher.dispatch(
        f"analytics:{product_id}",
        maintenance.update_inventory_analytics,
        product_id,
    )
    if reserved_quantity > SUPPLIER_NOTIFY_QUANTITY:
        dispatcher.dispatch(
            f"supplier-notification:{product_id}",
            maintenance.notify_supplier_low_stock,
            product_id,
            SUPPLIER_EMAIL,
        )
