"""Persistence of sale headers and line items, plus the lookup tables they use."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from .. import models
from .errors import InvalidTransition, SaleNotFound, ValidationError
from .sale_lifecycle import parse_status
from .unit_of_work import unit_of_work

LOGGER = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class SaleLedger:
    """Reads and writes ``sales`` / ``sale_items``; never commits on its own."""

    @staticmethod
    def _active_lookup(db: Session, model, lookup_id) -> Optional[object]:
        if lookup_id is None:
            return None
        row = db.query(model).filter(model.id == str(lookup_id)).first()
        if row is None or not row.is_active:
            return None
        return row

    @classmethod
    def resolve_payment_method(cls, db: Session, payment_method_id) -> models.PaymentMethod:
        method = cls._active_lookup(db, models.PaymentMethod, payment_method_id)
        if method is None:
            raise ValidationError(f"Payment method {payment_method_id} is not valid")
        return method

    @classmethod
    def resolve_payment_status(cls, db: Session, payment_status_id) -> models.PaymentStatus:
        payment_status = cls._active_lookup(db, models.PaymentStatus, payment_status_id)
        if payment_status is None:
            raise ValidationError(f"Payment status {payment_status_id} is not valid")
        return payment_status

    @classmethod
    def resolve_sale_status(
        cls, db: Session, sale_status_id
    ) -> tuple[models.SaleStatus, models.SaleStatusName]:
        """Return the status row and its lifecycle name.

        Raises :class:`InvalidTransition` for ids that are unknown, inactive or
        whose name is outside the lifecycle.
        """

        sale_status = cls._active_lookup(db, models.SaleStatus, sale_status_id)
        if sale_status is None:
            raise InvalidTransition(f"Sale status {sale_status_id} is not valid")
        return sale_status, parse_status(sale_status.name)

    @staticmethod
    def insert(db: Session, header: models.Sale, items: Iterable[models.SaleItem]) -> models.Sale:
        for line_number, item in enumerate(items, start=1):
            item.line_number = line_number
            header.items.append(item)
        db.add(header)
        db.flush()
        return header

    @staticmethod
    def lock(db: Session, sale_id: str) -> models.Sale:
        sale = (
            db.query(models.Sale)
            .filter(models.Sale.id == str(sale_id))
            .with_for_update()
            .populate_existing()
            .first()
        )
        if sale is None:
            raise SaleNotFound(f"Sale {sale_id} not found")
        return sale

    @staticmethod
    def get(db: Session, sale_id: str) -> models.Sale:
        sale = (
            db.query(models.Sale)
            .options(
                selectinload(models.Sale.items),
                selectinload(models.Sale.customer),
                selectinload(models.Sale.payment_method),
                selectinload(models.Sale.payment_status),
                selectinload(models.Sale.sale_status),
            )
            .filter(models.Sale.id == str(sale_id))
            .first()
        )
        if sale is None:
            raise SaleNotFound(f"Sale {sale_id} not found")
        return sale

    @staticmethod
    def overview(
        db: Session,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> dict[str, object]:
        query = db.query(
            func.count(models.Sale.id),
            func.coalesce(func.sum(models.Sale.total_amount), 0),
        )
        if start is not None:
            query = query.filter(models.Sale.created_at >= start)
        if end is not None:
            query = query.filter(models.Sale.created_at <= end)
        total_sales, total_revenue = query.one()

        total_sales = int(total_sales or 0)
        total_revenue = Decimal(str(total_revenue or 0)).quantize(CENTS, rounding=ROUND_HALF_UP)
        average = (
            (total_revenue / total_sales).quantize(CENTS, rounding=ROUND_HALF_UP)
            if total_sales
            else Decimal("0.00")
        )
        total_customers = db.query(func.count(models.Customer.id)).scalar() or 0
        return {
            "total_sales": total_sales,
            "total_revenue": total_revenue,
            "total_customers": int(total_customers),
            "average_sale": average,
        }

    @staticmethod
    def seed_lookups(db: Session) -> None:
        """Insert the default payment methods and statuses into empty tables."""

        seeds = (
            (models.PaymentMethod, models.DEFAULT_PAYMENT_METHODS),
            (models.PaymentStatus, [status.value for status in models.PaymentStatusName]),
            (models.SaleStatus, [status.value for status in models.SaleStatusName]),
        )
        with unit_of_work(db, operation="Lookup seeding"):
            for model, names in seeds:
                if db.query(model.id).first() is not None:
                    continue
                LOGGER.info("Seeding %s with %s", model.__tablename__, ", ".join(names))
                db.add_all(model(name=name) for name in names)
