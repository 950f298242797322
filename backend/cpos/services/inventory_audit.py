"""Append-only trail of stock quantity changes."""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from .. import models
from .catalog import CatalogReader
from .errors import ValidationError

MAX_PAGE_SIZE = 200


class InventoryAuditLog:
    """Query surface over ``inventory_audit_entries``.

    Entries are only ever written by :class:`~.stock_ledger.StockLedger`, in
    the same unit of work as the quantity change they describe.
    """

    @staticmethod
    def _append(
        db: Session,
        record: models.StockRecord,
        *,
        operation: models.StockOperation,
        amount: int,
        previous_quantity: int,
        new_quantity: int,
        reason: str,
        actor_id: str,
    ) -> models.InventoryAuditEntry:
        entry = models.InventoryAuditEntry(
            product_id=str(record.product_id),
            stock_record_id=str(record.id),
            location=record.location,
            operation=operation,
            quantity=amount,
            previous_quantity=previous_quantity,
            new_quantity=new_quantity,
            reason=reason,
            user_id=str(actor_id),
        )
        db.add(entry)
        return entry

    @staticmethod
    def list_entries(
        db: Session,
        product_id: str,
        *,
        page: int = 1,
        limit: int = 10,
        location: Optional[str] = None,
    ) -> Tuple[Sequence[models.InventoryAuditEntry], int]:
        if page < 1:
            raise ValidationError("page must be greater than or equal to 1")
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

        CatalogReader.ensure_exists(db, product_id)

        query = db.query(models.InventoryAuditEntry).filter(
            models.InventoryAuditEntry.product_id == str(product_id)
        )
        if location:
            query = query.filter(models.InventoryAuditEntry.location == location)

        total = query.count()
        entries = (
            query.order_by(models.InventoryAuditEntry.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return entries, total
