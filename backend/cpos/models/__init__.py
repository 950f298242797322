"""Expose SQLAlchemy models for convenient imports."""

from .catalog import Customer, Product, User
from .inventory import InventoryAuditEntry, StockOperation, StockRecord
from .lookups import (
    DEFAULT_PAYMENT_METHODS,
    PaymentMethod,
    PaymentStatus,
    PaymentStatusName,
    SaleStatus,
    SaleStatusName,
)
from .operational_metric import OperationalMetricEvent
from .sales import Sale, SaleItem

__all__ = [
    "Customer",
    "Product",
    "User",
    "InventoryAuditEntry",
    "StockOperation",
    "StockRecord",
    "DEFAULT_PAYMENT_METHODS",
    "PaymentMethod",
    "PaymentStatus",
    "PaymentStatusName",
    "SaleStatus",
    "SaleStatusName",
    "OperationalMetricEvent",
    "Sale",
    "SaleItem",
]
