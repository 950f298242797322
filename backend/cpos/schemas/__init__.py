"""Expose Pydantic schemas for convenient imports."""

from .common import PaginatedResponse
from .inventory import (
    InventoryAuditEntryRead,
    InventoryAuditListResponse,
    StockAdjustRequest,
    StockLevelsUpdate,
    StockRecordRead,
)
from .sales import (
    LookupRead,
    SaleCreate,
    SaleItemInput,
    SaleItemRead,
    SaleRead,
    SalesOverview,
    SaleStatusUpdate,
)

__all__ = [
    "PaginatedResponse",
    "InventoryAuditEntryRead",
    "InventoryAuditListResponse",
    "StockAdjustRequest",
    "StockLevelsUpdate",
    "StockRecordRead",
    "LookupRead",
    "SaleCreate",
    "SaleItemInput",
    "SaleItemRead",
    "SaleRead",
    "SalesOverview",
    "SaleStatusUpdate",
]
