"""
Order Service — order snapshot and request / response models

Status transitions:
    CREATED → COMPLETED       (reservation and payment succeeded)
    CREATED → PAYMENT_FAILED  (reservation or payment failed)
Both outcomes are terminal.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from services.shared.errors import ErrorKind


class OrderStatus(str, Enum):
    CREATED = "CREATED"
    COMPLETED = "COMPLETED"
    PAYMENT_FAILED = "PAYMENT_FAILED"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.CREATED

    def can_transition_to(self, target: "OrderStatus") -> bool:
        return self is OrderStatus.CREATED and target.is_terminal


class Order(BaseModel):
    id: int
    customer_name: str
    product_id: int
    quantity: int
    total_amount: Decimal
    status: OrderStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CreateOrderRequest(BaseModel):
    customer_name: str = Field(min_length=1, max_length=100)
    product_id: int
    quantity: int = Field(gt=0)
    payment_method: str = Field(min_length=1, max_length=50)


class OrderResult(BaseModel):
    success: bool
    message: str
    order_id: int | None = None
    status: OrderStatus | None = None
    total_amount: Decimal | None = None
    payment_transaction_id: str | None = None
    error: ErrorKind | None = None
