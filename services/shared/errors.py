"""
Shared error taxonomy.

Services raise these internally and convert them into structured failure
results at their command boundary; nothing here crosses an HTTP hop as an
exception.
"""

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    GATEWAY_FAILURE = "GATEWAY_FAILURE"
    VALIDATION_FAILURE = "VALIDATION_FAILURE"
    UNEXPECTED_FAILURE = "UNEXPECTED_FAILURE"


class FulfillmentError(Exception):
    kind = ErrorKind.UNEXPECTED_FAILURE


class NotFoundError(FulfillmentError):
    kind = ErrorKind.NOT_FOUND


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: int, cached: bool = False):
        self.product_id = product_id
        suffix = " (cached result)" if cached else ""
        super().__init__(f"Product not found{suffix}")


class InsufficientStockError(FulfillmentError):
    kind = ErrorKind.INSUFFICIENT_STOCK

    def __init__(self, product_id: int, requested: int, available: int | None = None):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        if available is None:
            super().__init__("Insufficient inventory (cached result)")
        else:
            super().__init__(
                f"Insufficient inventory available: requested={requested}, available={available}"
            )


class ValidationFailure(FulfillmentError):
    kind = ErrorKind.VALIDATION_FAILURE


class ServiceUnavailableError(FulfillmentError):
    """A downstream service could not be reached or answered garbage."""
