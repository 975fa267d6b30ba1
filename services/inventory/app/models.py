"""
Inventory Service — request / response models
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from services.shared.contracts import ReservationResult

__all__ = ["InventoryRecord", "ReserveRequest", "ReservationResult"]


class InventoryRecord(BaseModel):
    product_id: int
    product_name: str
    quantity_available: int
    reserved_quantity: int
    unit_price: Decimal


class ReserveRequest(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
