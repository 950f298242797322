"""Models representing sale headers and their line items."""

from __future__ import annotations

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, new_guid


class Sale(Base):
    """Represents a point of sale transaction."""

    __tablename__ = "sales"
    __table_args__ = (
        CheckConstraint("subtotal >= 0", name="ck_sales_subtotal_non_negative"),
        CheckConstraint("tax_amount >= 0", name="ck_sales_tax_non_negative"),
        CheckConstraint("discount_amount >= 0", name="ck_sales_discount_non_negative"),
        CheckConstraint("total_amount >= 0", name="ck_sales_total_non_negative"),
        CheckConstraint(
            "loyalty_points_awarded >= 0", name="ck_sales_loyalty_points_non_negative"
        ),
    )

    id = Column("sale_id", GUID(), primary_key=True, default=new_guid)
    customer_id = Column(
        GUID(),
        ForeignKey("customers.customer_id", ondelete="SET NULL"),
        nullable=True,
    )
    user_id = Column(GUID(), ForeignKey("users.user_id"), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False)
    # Points credited to the customer while the sale is completed.
    loyalty_points_awarded = Column(Integer, nullable=False, default=0)
    payment_method_id = Column(
        GUID(), ForeignKey("payment_methods.payment_method_id"), nullable=False
    )
    payment_status_id = Column(
        GUID(), ForeignKey("payment_statuses.payment_status_id"), nullable=False
    )
    sale_status_id = Column(GUID(), ForeignKey("sale_statuses.sale_status_id"), nullable=False)
    notes = Column(Text, nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}

    customer = relationship("Customer", back_populates="sales")
    user = relationship("User")
    payment_method = relationship("PaymentMethod")
    payment_status = relationship("PaymentStatus")
    sale_status = relationship("SaleStatus")
    items = relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SaleItem.line_number",
    )


Index("sales_created_at_idx", Sale.created_at)
Index("sales_customer_idx", Sale.customer_id)
Index("sales_user_idx", Sale.user_id)
Index("sales_sale_status_idx", Sale.sale_status_id)
Index("sales_payment_status_idx", Sale.payment_status_id)


class SaleItem(Base):
    """Line item of a sale; a price snapshot that is never recomputed."""

    __tablename__ = "sale_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_sale_items_unit_price_non_negative"),
        CheckConstraint("discount >= 0", name="ck_sale_items_discount_non_negative"),
        CheckConstraint("tax_amount >= 0", name="ck_sale_items_tax_non_negative"),
        CheckConstraint("total_price >= 0", name="ck_sale_items_total_non_negative"),
    )

    id = Column("sale_item_id", Integer, primary_key=True, autoincrement=True)
    sale_id = Column(
        GUID(),
        ForeignKey("sales.sale_id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id = Column(GUID(), ForeignKey("products.product_id"), nullable=False)
    line_number = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_price = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    sale = relationship("Sale", back_populates="items")
    product = relationship("Product")


Index("sale_items_sale_idx", SaleItem.sale_id)
Index("sale_items_product_idx", SaleItem.product_id)
