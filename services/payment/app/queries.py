"""
Payment Service — query handlers
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from services.shared.schema import payments_tbl

from .models import Payment


async def get_payment(session: AsyncSession, payment_id: int) -> Payment | None:
    result = await session.execute(select(payments_tbl).where(payments_tbl.c.id == payment_id))
    row = result.fetchone()
    if not row:
        return None
    return Payment.model_validate(dict(row._mapping))


async def list_payments_for_order(session: AsyncSession, order_id: int) -> list[Payment]:
    result = await session.execute(
        select(payments_tbl)
        .where(payments_tbl.c.order_id == order_id)
        .order_by(payments_tbl.c.id.asc())
    )
    return [Payment.model_validate(dict(row._mapping)) for row in result.fetchall()]
