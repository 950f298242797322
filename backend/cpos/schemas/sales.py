from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SaleItemInput(BaseModel):
    product_id: UUID
    quantity: int = Field(..., gt=0)
    unit_price: Optional[Decimal] = Field(default=None, ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)


class SaleCreate(BaseModel):
    items: Sequence[SaleItemInput]
    payment_method_id: UUID
    payment_status_id: UUID
    sale_status_id: UUID
    customer_id: Optional[UUID] = None
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("notes")
    @classmethod
    def _strip_optional(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None


class SaleStatusUpdate(BaseModel):
    sale_status_id: UUID
    payment_status_id: Optional[UUID] = None


class LookupRead(BaseModel):
    id: UUID
    name: str

    model_config = ConfigDict(from_attributes=True)


class SaleItemRead(BaseModel):
    id: int
    product_id: UUID
    line_number: int
    quantity: int
    unit_price: Decimal
    discount: Decimal
    tax_amount: Decimal
    total_price: Decimal

    model_config = ConfigDict(from_attributes=True)


class SaleRead(BaseModel):
    id: UUID
    customer_id: Optional[UUID]
    user_id: UUID
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    loyalty_points_awarded: int
    payment_method: LookupRead
    payment_status: LookupRead
    sale_status: LookupRead
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime
    items: Sequence[SaleItemRead]

    model_config = ConfigDict(from_attributes=True)


class SalesOverview(BaseModel):
    total_sales: int = Field(..., ge=0)
    total_revenue: Decimal
    total_customers: int = Field(..., ge=0)
    average_sale: Decimal
