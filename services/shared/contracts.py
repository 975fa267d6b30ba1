"""
Request / result bodies that cross a service boundary.

    order ──PaymentRequest──▶ payment ──(product_id, quantity)──▶ inventory
          ◀──PaymentResult───         ◀──ReservationResult──────

Both sides of each hop validate against the same model. Nothing in here
knows about tables or sessions.
"""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from services.shared.errors import ErrorKind


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ReservationResult(BaseModel):
    """Outcome of a reservation attempt. Failures carry an ``error`` kind."""
    success: bool
    message: str
    product_id: int | None = None
    reserved_quantity: int | None = None
    unit_price: Decimal | None = None
    total_amount: Decimal | None = None
    remaining_available: int | None = None
    error: ErrorKind | None = None


class PaymentRequest(BaseModel):
    order_id: int
    product_id: int
    quantity: int = Field(gt=0)
    amount: Decimal = Field(ge=0)
    payment_method: str = Field(min_length=1)


class PaymentResult(BaseModel):
    success: bool
    message: str
    payment_id: int | None = None
    transaction_id: str | None = None
    amount: Decimal | None = None
    status: PaymentStatus | None = None
    error: ErrorKind | None = None
