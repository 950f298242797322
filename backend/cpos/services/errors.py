"""Error taxonomy shared by the sale orchestrator and the stock ledger.

Every error carries the HTTP status an adapter should answer with and whether
the caller may retry the same request unchanged. Only persistence failures are
retryable: conflicts and missing references need new input first.
"""

from __future__ import annotations


class EngineError(RuntimeError):
    """Base class for failures raised by the sale and inventory engine."""

    status_code = 500
    retryable = False


class ValidationError(EngineError):
    """Malformed or missing input; raised before any write is attempted."""

    status_code = 400


class InvalidTransition(ValidationError):
    """The requested sale status is not one of the known lifecycle states."""


class NotFoundError(EngineError):
    """A referenced entity does not exist."""

    status_code = 404


class ProductNotFound(NotFoundError):
    """A product is missing or inactive."""


class SaleNotFound(NotFoundError):
    """The sale does not exist."""


class CustomerNotFound(NotFoundError):
    """The customer referenced by a sale does not exist."""


class StockRecordNotFound(NotFoundError):
    """No stock record exists for the product at the requested location."""


class ConflictError(EngineError):
    """The request contradicts the current state of the store."""

    status_code = 409


class InsufficientStock(ConflictError):
    """A sale-driven decrement would take a stock quantity below zero."""

    def __init__(self, product_id: str, location: str, available: int, requested: int) -> None:
        super().__init__(
            f"Insufficient stock for product {product_id} at '{location}': "
            f"available {available}, requested {requested}"
        )
        self.product_id = product_id
        self.location = location
        self.available = available
        self.requested = requested


class DuplicateStockRecord(ConflictError):
    """A second stock record was requested for the same product and location."""


class PersistenceFailure(EngineError):
    """The backing store was unavailable or aborted the transaction."""

    status_code = 500
    retryable = True


class ConcurrentModification(PersistenceFailure):
    """Another unit of work changed the same row first."""
