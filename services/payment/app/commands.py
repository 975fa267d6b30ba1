"""
Payment Service — command handlers

    process_payment
      1. reserve inventory (inventory service)    ── fail ─▶ no payment row
      2. insert payment PENDING + transaction id
      3. simulated gateway call
      4. PENDING ─▶ COMPLETED | FAILED
      5. on COMPLETED: fraud check + risk scoring in the background

A fault after step 2 still moves the row to FAILED, so no payment is left
PENDING once process_payment returns.

A reservation that succeeded in step 1 stays committed even when the gateway
declines in step 3. Nothing releases it; the stock remains reserved for an
order that ends up PAYMENT_FAILED.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import insert, update
from sqlalchemy.ext.asyncio import AsyncSession

from services.shared.contracts import ReservationResult
from services.shared.dispatcher import SideEffectDispatcher
from services.shared.errors import ErrorKind
from services.shared.schema import payments_tbl

from .fraud import FraudDetector
from .gateway import SimulatedPaymentGateway
from .models import PaymentRequest, PaymentResult, PaymentStatus

logger = logging.getLogger(__name__)


class InventoryClient(Protocol):
    async def reserve(self, product_id: int, quantity: int) -> ReservationResult: ...


async def _create_payment(session: AsyncSession, req: PaymentRequest, transaction_id: str) -> int:
    now = datetime.now(timezone.utc)
    result = await session.execute(
        insert(payments_tbl).values(
            order_id=req.order_id,
            amount=req.amount,
            payment_method=req.payment_method,
            status=PaymentStatus.PENDING.value,
            transaction_id=transaction_id,
            created_at=now,
            updated_at=now,
        )
    )
    await session.commit()
    return result.inserted_primary_key[0]


async def _set_status(session: AsyncSession, payment_id: int, status: PaymentStatus) -> None:
    await session.execute(
        update(payments_tbl)
        .where(
            payments_tbl.c.id == payment_id,
            payments_tbl.c.status == PaymentStatus.PENDING.value,
        )
        .values(status=status.value, updated_at=datetime.now(timezone.utc))
    )
    await session.commit()


async def _abandon(session: AsyncSession, payment_id: int) -> None:
    """Best effort: a recorded payment never stays PENDING after a fault."""
    try:
        await session.rollback()
        await _set_status(session, payment_id, PaymentStatus.FAILED)
    except Exception:
        logger.exception("Could not mark payment %s as FAILED", payment_id)


async def process_payment(
    session: AsyncSession,
    inventory: InventoryClient,
    gateway: SimulatedPaymentGateway,
    dispatcher: SideEffectDispatcher,
    fraud: FraudDetector,
    req: PaymentRequest,
) -> PaymentResult:
    logger.info(
        "Processing payment for order %s: %s via %s", req.order_id, req.amount, req.payment_method
    )
    payment_id: int | None = None
    transaction_id: str | None = None
    try:
        reservation = await inventory.reserve(req.product_id, req.quantity)
        if not reservation.success:
            return PaymentResult(
                success=False,
                message=f"Failed to reserve inventory: {reservation.message}",
                error=reservation.error or ErrorKind.UNEXPECTED_FAILURE,
            )

        transaction_id = str(uuid.uuid4())
        payment_id = await _create_payment(session, req, transaction_id)

        approved = await gateway.charge(transaction_id, req.amount, req.payment_method)
        status = PaymentStatus.COMPLETED if approved else PaymentStatus.FAILED
        await _set_status(session, payment_id, status)

        if not approved:
            logger.warning(
                "Payment %s for order %s declined; reservation of %s x %s is kept",
                payment_id, req.order_id, req.product_id, req.quantity,
            )
            return PaymentResult(
                success=False,
                message="Payment processing failed",
                payment_id=payment_id,
                transaction_id=transaction_id,
                amount=req.amount,
                status=status,
                error=ErrorKind.GATEWAY_FAILURE,
            )
    except Exception as e:
        logger.exception("Payment for order %s failed unexpectedly", req.order_id)
        if payment_id is None:
            return PaymentResult(
                success=False,
                message=f"Payment processing error: {e}",
                error=ErrorKind.UNEXPECTED_FAILURE,
            )
        await _abandon(session, payment_id)
        return PaymentResult(
            success=False,
            message=f"Payment processing error: {e}",
            payment_id=payment_id,
            transaction_id=transaction_id,
            amount=req.amount,
            status=PaymentStatus.FAILED,
            error=ErrorKind.UNEXPECTED_FAILURE,
        )

    dispatcher.dispatch(
        f"fraud-check:{req.order_id}", fraud.perform_fraud_check, req.order_id, req.amount
    )
    dispatcher.dispatch(
        f"risk-score:{req.order_id}",
        fraud.calculate_risk_score,
        req.order_id,
        req.amount,
        req.payment_method,
    )

    return PaymentResult(
        success=True,
        message="Payment processed successfully",
        payment_id=payment_id,
        transaction_id=transaction_id,
        amount=req.amount,
        status=status,
    )
