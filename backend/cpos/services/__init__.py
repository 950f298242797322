"""Service layer holding the sale and inventory business rules."""

from .catalog import CatalogReader, ProductSnapshot
from .customers import CustomerAggregate
from .errors import (
    ConcurrentModification,
    ConflictError,
    CustomerNotFound,
    DuplicateStockRecord,
    EngineError,
    InsufficientStock,
    InvalidTransition,
    NotFoundError,
    PersistenceFailure,
    ProductNotFound,
    SaleNotFound,
    StockRecordNotFound,
    ValidationError,
)
from .inventory_audit import InventoryAuditLog
from .observability import MetricOutcome, ObservabilityService
from .sale_ledger import SaleLedger
from .sale_lifecycle import StockEffect, effect_for
from .sales import SaleTransactionService
from .stock_ledger import StockLedger
from .unit_of_work import unit_of_work

__all__ = [
    "CatalogReader",
    "ProductSnapshot",
    "CustomerAggregate",
    "ConcurrentModification",
    "ConflictError",
    "CustomerNotFound",
    "DuplicateStockRecord",
    "EngineError",
    "InsufficientStock",
    "InvalidTransition",
    "NotFoundError",
    "PersistenceFailure",
    "ProductNotFound",
    "SaleNotFound",
    "StockRecordNotFound",
    "ValidationError",
    "InventoryAuditLog",
    "MetricOutcome",
    "ObservabilityService",
    "SaleLedger",
    "StockEffect",
    "effect_for",
    "SaleTransactionService",
    "StockLedger",
    "unit_of_work",
]
