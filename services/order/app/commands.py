"""
Order Service — order coordination

process_order drives one order through the whole chain:

    ┌─────────────────────────────────────────────────────────────┐
    │ 1. total = UNIT_PRICE × quantity                            │
    │ 2. insert order CREATED, cache snapshot, bump customer count │
    │ 3. payment service (reserves stock, then charges)           │
    │    ├─ ok   → COMPLETED, refresh cache, dispatch side effects │
    │    └─ fail → PAYMENT_FAILED, refresh cache                   │
    └─────────────────────────────────────────────────────────────┘

Nothing raised along the way escapes: the caller always gets an OrderResult,
and an order that made it into the store is always left in a terminal status.
Redis only holds derived data here, so a failed cache write is logged and the
order carries on.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy import insert, update
from sqlalchemy.ext.asyncio import AsyncSession

from services.shared import cache
from services.shared.contracts import PaymentRequest, PaymentResult
from services.shared.dispatcher import SideEffectDispatcher
from services.shared.errors import ErrorKind
from services.shared.schema import orders_tbl

from .models import CreateOrderRequest, Order, OrderResult, OrderStatus
from .notifications import OrderNotifier
from .queries import cache_order, load_order

logger = logging.getLogger(__name__)

# Flat price used for order totals; the inventory's own unit price is not consulted here.
UNIT_PRICE = Decimal("100.00")


class PaymentClient(Protocol):
    async def process_payment(self, req: PaymentRequest) -> PaymentResult: ...


async def _create_order(session: AsyncSession, req: CreateOrderRequest, total: Decimal) -> Order:
    now = datetime.now(timezone.utc)
    result = await session.execute(
        insert(orders_tbl).values(
            customer_name=req.customer_name,
            product_id=req.product_id,
            quantity=req.quantity,
            total_amount=total,
            status=OrderStatus.CREATED.value,
            created_at=now,
            updated_at=now,
        )
    )
    order_id = result.inserted_primary_key[0]
    await session.commit()
    return await load_order(session, order_id)


async def _refresh_snapshot(redis: aioredis.Redis, order: Order) -> None:
    try:
        await cache_order(redis, order)
    except RedisError:
        logger.warning("Could not cache snapshot of order %s", order.id, exc_info=True)


async def _count_customer_order(redis: aioredis.Redis, customer_name: str) -> None:
    try:
        await cache.increment(
            redis, cache.customer_orders_key(customer_name), cache.CUSTOMER_COUNTER_TTL
        )
    except RedisError:
        logger.warning("Could not count order for customer %s", customer_name, exc_info=True)


async def _finalize(
    session: AsyncSession,
    redis: aioredis.Redis,
    order: Order,
    status: OrderStatus,
) -> Order:
    """Move a CREATED order to a terminal status and refresh its snapshot."""
    if not order.status.can_transition_to(status):
        raise ValueError(f"Order {order.id} cannot move from {order.status.value} to {status.value}")

    await session.execute(
        update(orders_tbl)
        .where(
            orders_tbl.c.id == order.id,
            orders_tbl.c.status == OrderStatus.CREATED.value,
        )
        .values(status=status.value, updated_at=datetime.now(timezone.utc))
    )
    await session.commit()

    order = await load_order(session, order.id)
    await _refresh_snapshot(redis, order)
    logger.info("Order %s is now %s", order.id, order.status.value)
    return order


async def _abandon(session: AsyncSession, redis: aioredis.Redis, order: Order) -> None:
    """Best effort: never leave an order CREATED after an unexpected fault."""
    try:
        await session.rollback()
        await _finalize(session, redis, order, OrderStatus.PAYMENT_FAILED)
    except Exception:
        logger.exception("Could not mark order %s as PAYMENT_FAILED", order.id)


async def process_order(
    session: AsyncSession,
    redis: aioredis.Redis,
    payments: PaymentClient,
    dispatcher: SideEffectDispatcher,
    notifier: OrderNotifier,
    req: CreateOrderRequest,
) -> OrderResult:
    logger.info(
        "Starting order processing for customer %s, product %s, quantity %s",
        req.customer_name, req.product_id, req.quantity,
    )
    order: Order | None = None
    try:
        total = UNIT_PRICE * req.quantity

        order = await _create_order(session, req, total)
        logger.info("Order %s created with total %s", order.id, order.total_amount)
        await _refresh_snapshot(redis, order)
        await _count_customer_order(redis, req.customer_name)

        payment = await payments.process_payment(
            PaymentRequest(
                order_id=order.id,
                product_id=req.product_id,
                quantity=req.quantity,
                amount=total,
                payment_method=req.payment_method,
            )
        )

        if not payment.success:
            logger.warning("Payment failed for order %s: %s", order.id, payment.message)
            order = await _finalize(session, redis, order, OrderStatus.PAYMENT_FAILED)
            return OrderResult(
                success=False,
                message=f"Order failed: {payment.message}",
                order_id=order.id,
                status=order.status,
                total_amount=order.total_amount,
                error=payment.error or ErrorKind.UNEXPECTED_FAILURE,
            )

        order = await _finalize(session, redis, order, OrderStatus.COMPLETED)
    except Exception as e:
        logger.exception("Order processing failed")
        if order is not None and order.status is OrderStatus.CREATED:
            await _abandon(session, redis, order)
        return OrderResult(
            success=False,
            message=f"Order processing error: {e}",
            order_id=order.id if order is not None else None,
            error=ErrorKind.UNEXPECTED_FAILURE,
        )

    _trigger_post_processing(dispatcher, notifier, order)

    return OrderResult(
        success=True,
        message="Order processed successfully",
        order_id=order.id,
        status=order.status,
        total_amount=order.total_amount,
        payment_transaction_id=payment.transaction_id,
    )


def _trigger_post_processing(
    dispatcher: SideEffectDispatcher, notifier: OrderNotifier, order: Order
) -> None:
    logger.info("Triggering post-processing for order %s", order.id)
    dispatcher.dispatch(f"email:{order.id}", notifier.send_email_notification, order)
    dispatcher.dispatch(f"sms:{order.id}", notifier.send_sms_notification, order)
    dispatcher.dispatch(
        f"audit:{order.id}",
        notifier.log_order_event,
        order.id,
        "ORDER_COMPLETED",
        "Order successfully processed and payment confirmed",
    )
