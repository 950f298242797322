"""Per product and location stock quantities with audited, serialized updates."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from time import perf_counter
from typing import Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..config import default_stock_location
from .catalog import CatalogReader
from .errors import (
    DuplicateStockRecord,
    EngineError,
    InsufficientStock,
    PersistenceFailure,
    StockRecordNotFound,
    ValidationError,
)
from .inventory_audit import InventoryAuditLog
from .observability import MetricOutcome, ObservabilityService
from .unit_of_work import unit_of_work

LOGGER = logging.getLogger(__name__)

MANUAL_ADJUSTMENT_REASON = "Manual stock update"
LEVELS_UPDATE_REASON = "Stock levels update"


class StockLedger:
    """Owns ``stock_records``; every quantity change writes one audit entry.

    ``adjust_stock`` and ``update_levels`` open their own unit of work; the
    other mutators run inside the caller's and never commit.
    Rows are read ``FOR UPDATE`` and carry a version counter, so a concurrent
    writer either waits for the lock or fails at flush instead of overwriting.
    """

    @staticmethod
    def _resolve_location(location: Optional[str]) -> str:
        if location is None or not location.strip():
            return default_stock_location()
        return location.strip()

    @staticmethod
    def _parse_operation(operation: models.StockOperation | str) -> models.StockOperation:
        if isinstance(operation, models.StockOperation):
            return operation
        try:
            return models.StockOperation(str(operation).strip().lower())
        except ValueError as exc:
            raise ValidationError(
                "Valid operation is required (add, subtract, set)"
            ) from exc

    @staticmethod
    def _validate_amount(operation: models.StockOperation, amount: int) -> int:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError("Stock quantity must be a whole number")
        if amount < 0:
            raise ValidationError("Stock quantity must not be negative")
        if amount == 0 and operation is not models.StockOperation.SET:
            raise ValidationError(f"Quantity to {operation.value} must be greater than zero")
        return amount

    @staticmethod
    def _lock_record(
        db: Session, product_id: str, location: str
    ) -> Optional[models.StockRecord]:
        return (
            db.query(models.StockRecord)
            .filter(
                models.StockRecord.product_id == str(product_id),
                models.StockRecord.location == location,
            )
            .with_for_update()
            .populate_existing()
            .first()
        )

    @classmethod
    def _get_or_create(cls, db: Session, product_id: str, location: str) -> models.StockRecord:
        record = cls._lock_record(db, product_id, location)
        if record is not None:
            return record

        record = models.StockRecord(
            product_id=str(product_id),
            location=location,
            quantity=0,
            min_quantity=0,
        )
        db.add(record)
        try:
            db.flush()
        except IntegrityError as exc:
            raise DuplicateStockRecord(
                f"A stock record for product {product_id} at '{location}' already exists"
            ) from exc
        return record

    @staticmethod
    def _apply(
        db: Session,
        record: models.StockRecord,
        *,
        operation: models.StockOperation,
        amount: int,
        new_quantity: int,
        reason: str,
        actor_id: str,
    ) -> models.StockRecord:
        if new_quantity < 0:
            raise InsufficientStock(str(record.product_id), record.location, record.quantity, amount)

        previous_quantity = record.quantity
        record.quantity = new_quantity
        record.last_updated = datetime.now(timezone.utc)
        InventoryAuditLog._append(
            db,
            record,
            operation=operation,
            amount=amount,
            previous_quantity=previous_quantity,
            new_quantity=new_quantity,
            reason=reason,
            actor_id=actor_id,
        )
        db.flush()
        return record

    @classmethod
    def adjust(
        cls,
        db: Session,
        product_id: str,
        operation: models.StockOperation | str,
        amount: int,
        *,
        actor_id: str,
        location: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> models.StockRecord:
        """Manual correction; ``subtract`` clamps at zero instead of failing."""

        op = cls._parse_operation(operation)
        amount = cls._validate_amount(op, amount)
        CatalogReader.ensure_exists(db, product_id)

        record = cls._get_or_create(db, product_id, cls._resolve_location(location))
        if op is models.StockOperation.ADD:
            new_quantity = record.quantity + amount
        elif op is models.StockOperation.SUBTRACT:
            new_quantity = max(0, record.quantity - amount)
        else:
            new_quantity = amount

        return cls._apply(
            db,
            record,
            operation=op,
            amount=amount,
            new_quantity=new_quantity,
            reason=reason or MANUAL_ADJUSTMENT_REASON,
            actor_id=actor_id,
        )

    @classmethod
    def decrement_for_sale(
        cls,
        db: Session,
        product_id: str,
        amount: int,
        *,
        actor_id: str,
        reason: str,
        location: Optional[str] = None,
    ) -> models.StockRecord:
        """Sale fulfillment; rejects rather than clamps when stock is short."""

        amount = cls._validate_amount(models.StockOperation.SUBTRACT, amount)
        resolved_location = cls._resolve_location(location)
        record = cls._lock_record(db, product_id, resolved_location)
        available = record.quantity if record is not None else 0
        if record is None or available < amount:
            raise InsufficientStock(str(product_id), resolved_location, available, amount)

        return cls._apply(
            db,
            record,
            operation=models.StockOperation.SUBTRACT,
            amount=amount,
            new_quantity=available - amount,
            reason=reason,
            actor_id=actor_id,
        )

    @classmethod
    def restock(
        cls,
        db: Session,
        product_id: str,
        amount: int,
        *,
        actor_id: str,
        reason: str,
        location: Optional[str] = None,
    ) -> models.StockRecord:
        """Return units to stock, creating the record if it has disappeared."""

        amount = cls._validate_amount(models.StockOperation.ADD, amount)
        record = cls._get_or_create(db, product_id, cls._resolve_location(location))
        return cls._apply(
            db,
            record,
            operation=models.StockOperation.ADD,
            amount=amount,
            new_quantity=record.quantity + amount,
            reason=reason,
            actor_id=actor_id,
        )

    @classmethod
    def adjust_stock(
        cls,
        db: Session,
        product_id: str,
        data: schemas.StockAdjustRequest,
        *,
        actor_id: str,
    ) -> models.StockRecord:
        start = perf_counter()
        tags = {"operation": data.operation.value}
        try:
            with unit_of_work(db, operation="Stock adjustment"):
                record = cls.adjust(
                    db,
                    str(product_id),
                    data.operation,
                    data.quantity,
                    actor_id=actor_id,
                    location=data.location,
                    reason=data.reason,
                )
        except PersistenceFailure as exc:
            ObservabilityService.record_failure(
                db,
                "inventory.stock.persistence_failed",
                outcome=MetricOutcome.ERROR,
                reason=str(exc),
                tags=tags,
                duration_ms=(perf_counter() - start) * 1000,
            )
            raise
        except EngineError as exc:
            LOGGER.info("Stock adjustment for product %s rejected: %s", product_id, exc)
            ObservabilityService.record_failure(
                db,
                "inventory.stock.rejected",
                outcome=MetricOutcome.REJECTED,
                reason=str(exc),
                tags=tags,
                duration_ms=(perf_counter() - start) * 1000,
            )
            raise

        LOGGER.info(
            "Stock for product %s at '%s' is now %s after %s",
            product_id,
            record.location,
            record.quantity,
            data.operation.value,
        )
        ObservabilityService.record_event(
            db,
            "inventory.stock.adjusted",
            MetricOutcome.SUCCESS,
            duration_ms=(perf_counter() - start) * 1000,
            tags=tags,
            metadata={"product_id": str(product_id), "quantity": record.quantity},
        )
        return record

    @classmethod
    def update_levels(
        cls,
        db: Session,
        product_id: str,
        data: schemas.StockLevelsUpdate,
        *,
        actor_id: str,
    ) -> models.StockRecord:
        """Create or overwrite a stock record, thresholds included."""

        with unit_of_work(db, operation="Stock levels update"):
            CatalogReader.ensure_exists(db, str(product_id))
            record = cls._get_or_create(db, str(product_id), cls._resolve_location(data.location))
            record.min_quantity = data.min_quantity
            record.max_quantity = data.max_quantity
            cls._apply(
                db,
                record,
                operation=models.StockOperation.SET,
                amount=data.quantity,
                new_quantity=data.quantity,
                reason=LEVELS_UPDATE_REASON,
                actor_id=actor_id,
            )

        return record

    @classmethod
    def get_record(
        cls, db: Session, product_id: str, location: Optional[str] = None
    ) -> Optional[models.StockRecord]:
        return (
            db.query(models.StockRecord)
            .filter(
                models.StockRecord.product_id == str(product_id),
                models.StockRecord.location == cls._resolve_location(location),
            )
            .first()
        )

    @classmethod
    def read_record(
        cls, db: Session, product_id: str, location: Optional[str] = None
    ) -> models.StockRecord:
        CatalogReader.ensure_exists(db, product_id)
        record = cls.get_record(db, product_id, location)
        if record is None:
            raise StockRecordNotFound(
                f"No stock record for product {product_id} at '{cls._resolve_location(location)}'"
            )
        return record

    @staticmethod
    def low_stock(db: Session) -> Sequence[models.StockRecord]:
        """Records at or below their minimum threshold, lowest quantity first."""

        return (
            db.query(models.StockRecord)
            .filter(models.StockRecord.quantity <= models.StockRecord.min_quantity)
            .order_by(
                models.StockRecord.quantity.asc(),
                models.StockRecord.product_id.asc(),
                models.StockRecord.location.asc(),
            )
            .all()
        )
