"""Small lookup tables referenced by sales (payment method, payment and sale status)."""

from __future__ import annotations

import enum

from sqlalchemy import Boolean, Column, DateTime, String, func

from ..database import Base
from ..db_types import GUID, new_guid


class SaleStatusName(str, enum.Enum):
    """Closed set of sale lifecycle states."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatusName(str, enum.Enum):
    """Payment states seeded into ``payment_statuses``."""

    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


DEFAULT_PAYMENT_METHODS = ("cash", "card", "check", "other")


class PaymentMethod(Base):
    """Payment method accepted at the register."""

    __tablename__ = "payment_methods"

    id = Column("payment_method_id", GUID(), primary_key=True, default=new_guid)
    name = Column(String(50), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class PaymentStatus(Base):
    """Payment status attached to a sale."""

    __tablename__ = "payment_statuses"

    id = Column("payment_status_id", GUID(), primary_key=True, default=new_guid)
    name = Column(String(50), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class SaleStatus(Base):
    """Sale status row; ``name`` must match a :class:`SaleStatusName` value."""

    __tablename__ = "sale_statuses"

    id = Column("sale_status_id", GUID(), primary_key=True, default=new_guid)
    name = Column(String(50), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
