"""
Payment Service — stored payment model

Request and result bodies live in ``services.shared.contracts`` because the
order service sends and reads them too.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from services.shared.contracts import PaymentRequest, PaymentResult, PaymentStatus

__all__ = ["Payment", "PaymentRequest", "PaymentResult", "PaymentStatus"]


class Payment(BaseModel):
    id: int
    order_id: int
    amount: Decimal
    payment_method: str
    status: PaymentStatus
    transaction_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
