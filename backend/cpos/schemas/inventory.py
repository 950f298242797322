from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.inventory import StockOperation
from .common import PaginatedResponse


def _strip_location(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


class StockAdjustRequest(BaseModel):
    operation: StockOperation
    quantity: int = Field(..., ge=0)
    location: Optional[str] = Field(default=None, max_length=100)
    reason: Optional[str] = Field(default=None, max_length=255)

    @field_validator("location", "reason")
    @classmethod
    def _strip_optional(cls, value: Optional[str]) -> Optional[str]:
        return _strip_location(value)


class StockLevelsUpdate(BaseModel):
    quantity: int = Field(..., ge=0)
    min_quantity: int = Field(default=0, ge=0)
    max_quantity: Optional[int] = Field(default=None, ge=0)
    location: Optional[str] = Field(default=None, max_length=100)

    @field_validator("location")
    @classmethod
    def _strip_optional(cls, value: Optional[str]) -> Optional[str]:
        return _strip_location(value)

    @model_validator(mode="after")
    def _check_thresholds(self) -> "StockLevelsUpdate":
        if self.max_quantity is not None and self.max_quantity < self.min_quantity:
            raise ValueError("max_quantity must not be lower than min_quantity")
        return self


class StockRecordRead(BaseModel):
    id: UUID
    product_id: UUID
    location: str
    quantity: int
    min_quantity: int
    max_quantity: Optional[int]
    last_updated: datetime

    model_config = ConfigDict(from_attributes=True)


class InventoryAuditEntryRead(BaseModel):
    id: int
    product_id: UUID
    stock_record_id: UUID
    location: str
    operation: StockOperation
    quantity: int
    previous_quantity: int
    new_quantity: int
    reason: str
    user_id: UUID
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InventoryAuditListResponse(PaginatedResponse[InventoryAuditEntryRead]):
    pass
