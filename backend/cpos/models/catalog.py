"""Reference entities a sale points at: users, customers and catalog products."""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, new_guid


class User(Base):
    """Represents an operator account that creates sales and adjusts stock."""

    __tablename__ = "users"

    id = Column("user_id", GUID(), primary_key=True, default=new_guid)
    email = Column(String(255), nullable=False, unique=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    role = Column(String(50), nullable=False, default="user")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Customer(Base):
    """Customer record holding the purchase aggregates kept by the sale engine."""

    __tablename__ = "customers"
    __table_args__ = (
        CheckConstraint("loyalty_points >= 0", name="ck_customers_loyalty_points_non_negative"),
        CheckConstraint("total_purchases >= 0", name="ck_customers_total_purchases_non_negative"),
    )

    id = Column("customer_id", GUID(), primary_key=True, default=new_guid)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    phone = Column(String(20), nullable=True)
    # Derived aggregates, only written by the sale orchestrator.
    loyalty_points = Column(Integer, nullable=False, default=0)
    total_purchases = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    sales = relationship("Sale", back_populates="customer")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Product(Base):
    """Represents a sellable item in the catalog."""

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        CheckConstraint("cost >= 0", name="ck_products_cost_non_negative"),
        CheckConstraint("tax_rate >= 0", name="ck_products_tax_rate_non_negative"),
    )

    id = Column("product_id", GUID(), primary_key=True, default=new_guid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    sku = Column(String(100), nullable=True, unique=True)
    barcode = Column(String(100), nullable=True, unique=True)
    price = Column(Numeric(12, 2), nullable=False)
    cost = Column(Numeric(12, 2), nullable=False, default=0)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    stock_records = relationship(
        "StockRecord",
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


Index("products_active_idx", Product.is_active)
