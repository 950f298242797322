"""Stock quantities per product and location, and their append-only audit trail."""

from __future__ import annotations

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..db_types import GUID, new_guid


class StockOperation(str, enum.Enum):
    """Kinds of quantity change recorded in the audit log."""

    ADD = "add"
    SUBTRACT = "subtract"
    SET = "set"


STOCK_OPERATION_ENUM = SAEnum(
    StockOperation,
    name="stock_operation_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=False,
    validate_strings=True,
)


class StockRecord(Base):
    """Quantity on hand for one product at one location."""

    __tablename__ = "stock_records"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_stock_records_quantity_non_negative"),
        CheckConstraint(
            "min_quantity >= 0", name="ck_stock_records_min_quantity_non_negative"
        ),
        CheckConstraint(
            "max_quantity IS NULL OR max_quantity >= 0",
            name="ck_stock_records_max_quantity_non_negative",
        ),
        UniqueConstraint("product_id", "location", name="uq_stock_records_product_location"),
    )

    id = Column("stock_record_id", GUID(), primary_key=True, default=new_guid)
    product_id = Column(
        GUID(),
        ForeignKey("products.product_id", ondelete="CASCADE"),
        nullable=False,
    )
    location = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    # Soft thresholds for alerting; never enforced against ``quantity``.
    min_quantity = Column(Integer, nullable=False, default=0)
    max_quantity = Column(Integer, nullable=True)
    last_updated = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    product = relationship("Product", back_populates="stock_records")


Index("stock_records_quantity_idx", StockRecord.quantity)


class InventoryAuditEntry(Base):
    """Immutable record of a single stock quantity change."""

    __tablename__ = "inventory_audit_entries"

    id = Column("audit_entry_id", Integer, primary_key=True, autoincrement=True)
    product_id = Column(GUID(), ForeignKey("products.product_id", ondelete="CASCADE"), nullable=False)
    stock_record_id = Column(
        GUID(),
        ForeignKey("stock_records.stock_record_id", ondelete="CASCADE"),
        nullable=False,
    )
    location = Column(String(100), nullable=False)
    operation = Column(STOCK_OPERATION_ENUM, nullable=False)
    quantity = Column(Integer, nullable=False)
    previous_quantity = Column(Integer, nullable=False)
    new_quantity = Column(Integer, nullable=False)
    reason = Column(Text, nullable=False)
    user_id = Column(GUID(), ForeignKey("users.user_id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    product = relationship("Product")
    stock_record = relationship("StockRecord")
    user = relationship("User")


Index("inventory_audit_product_idx", InventoryAuditEntry.product_id, InventoryAuditEntry.id)
