"""Sale capture and status transitions with their stock and customer effects."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from time import perf_counter
from typing import Any, Optional, Sequence

from sqlalchemy.orm import Session

from .. import models, schemas
from .catalog import CatalogReader, ProductSnapshot
from .customers import CustomerAggregate
from .errors import EngineError, InvalidTransition, PersistenceFailure, ValidationError
from .observability import MetricOutcome, ObservabilityService
from .sale_ledger import SaleLedger
from .sale_lifecycle import StockEffect, counts_against_stock, effect_for, parse_status
from .stock_ledger import StockLedger
from .unit_of_work import unit_of_work

LOGGER = logging.getLogger(__name__)

CENTS = Decimal("0.01")
HUNDRED = Decimal("100")

SALE_REASON = "sale"
COMPLETION_REASON = "sale completion"
REVERSAL_REASON = "sale reversal"


@dataclass(frozen=True)
class PricedLine:
    product_id: str
    quantity: int
    unit_price: Decimal
    discount: Decimal
    item_total: Decimal
    tax_amount: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class SaleTotals:
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal


class SaleTransactionService:
    """Orchestrates sale writes so stock, sale rows and customer aggregates move together."""

    @staticmethod
    def _normalize_decimal(value: Decimal, quantum: Decimal = CENTS) -> Decimal:
        return Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)

    @classmethod
    def price_lines(
        cls,
        items: Sequence[schemas.SaleItemInput],
        products: dict[str, ProductSnapshot],
        order_discount: Decimal,
    ) -> tuple[list[PricedLine], SaleTotals]:
        """Price every line from the request and the catalog snapshot.

        The unit price is the requested one when given, else the catalog
        price; the tax rate always comes from the catalog.
        """

        lines: list[PricedLine] = []
        for item in items:
            product = products[str(item.product_id)]
            source_price = item.unit_price if item.unit_price is not None else product.price
            unit_price = cls._normalize_decimal(source_price)
            item_total = cls._normalize_decimal(unit_price * item.quantity)
            tax_amount = cls._normalize_decimal(item_total * product.tax_rate / HUNDRED)
            discount = cls._normalize_decimal(item.discount or 0)
            if discount > item_total:
                raise ValidationError(
                    f"Discount for product {product.id} exceeds the line total"
                )
            lines.append(
                PricedLine(
                    product_id=product.id,
                    quantity=item.quantity,
                    unit_price=unit_price,
                    discount=discount,
                    item_total=item_total,
                    tax_amount=tax_amount,
                    total_price=item_total - discount,
                )
            )

        subtotal = sum((line.item_total for line in lines), Decimal("0.00"))
        tax = sum((line.tax_amount for line in lines), Decimal("0.00"))
        discount = cls._normalize_decimal(order_discount or 0) + sum(
            (line.discount for line in lines), Decimal("0.00")
        )
        total = max(Decimal("0.00"), subtotal + tax - discount)
        return lines, SaleTotals(
            subtotal=subtotal,
            tax_amount=tax,
            discount_amount=discount,
            total_amount=cls._normalize_decimal(total),
        )

    @staticmethod
    def _validate_items(items: Sequence[schemas.SaleItemInput]) -> None:
        if not items:
            raise ValidationError("A sale must include at least one item")
        for item in items:
            if item.quantity is None or item.quantity <= 0:
                raise ValidationError("Item quantity must be greater than zero")

    @staticmethod
    def _apply_effects(db: Session, sale: models.Sale, *, reason: str, actor_id: str) -> None:
        # Lines are locked in product order so concurrent sales acquire rows alike.
        for item in sorted(sale.items, key=lambda line: (str(line.product_id), line.line_number)):
            StockLedger.decrement_for_sale(
                db, str(item.product_id), item.quantity, actor_id=actor_id, reason=reason
            )
        if sale.customer_id is not None:
            sale.loyalty_points_awarded = CustomerAggregate.apply_purchase(
                db, str(sale.customer_id), Decimal(sale.total_amount)
            )

    @staticmethod
    def _reverse_effects(db: Session, sale: models.Sale, *, actor_id: str) -> None:
        for item in sorted(sale.items, key=lambda line: (str(line.product_id), line.line_number)):
            StockLedger.restock(
                db, str(item.product_id), item.quantity, actor_id=actor_id, reason=REVERSAL_REASON
            )
        if sale.customer_id is not None:
            CustomerAggregate.reverse_purchase(
                db,
                str(sale.customer_id),
                Decimal(sale.total_amount),
                sale.loyalty_points_awarded or 0,
            )
            sale.loyalty_points_awarded = 0

    @staticmethod
    def _record_failure(
        db: Session, prefix: str, exc: EngineError, tags: dict[str, Any], start: float
    ) -> None:
        persistence = isinstance(exc, PersistenceFailure)
        ObservabilityService.record_failure(
            db,
            f"{prefix}.persistence_failed" if persistence else f"{prefix}.rejected",
            outcome=MetricOutcome.ERROR if persistence else MetricOutcome.REJECTED,
            reason=str(exc),
            tags={**tags, "error": type(exc).__name__},
            duration_ms=(perf_counter() - start) * 1000,
        )

    @classmethod
    def create_sale(
        cls, db: Session, data: schemas.SaleCreate, *, actor_id: str
    ) -> models.Sale:
        start = perf_counter()
        tags: dict[str, Any] = {
            "has_customer": data.customer_id is not None,
            "items": len(data.items or ()),
        }

        try:
            with unit_of_work(db, operation="Sale creation"):
                cls._validate_items(data.items)
                payment_method = SaleLedger.resolve_payment_method(db, data.payment_method_id)
                payment_status = SaleLedger.resolve_payment_status(db, data.payment_status_id)
                try:
                    sale_status, status_name = SaleLedger.resolve_sale_status(
                        db, data.sale_status_id
                    )
                except InvalidTransition as exc:
                    raise ValidationError(str(exc)) from exc
                customer_id = str(data.customer_id) if data.customer_id is not None else None
                CustomerAggregate.ensure_exists(db, customer_id)
                products = CatalogReader.snapshots(db, [item.product_id for item in data.items])

                lines, totals = cls.price_lines(data.items, products, data.discount_amount)
                tags["status"] = status_name.value

                sale = models.Sale(
                    customer_id=customer_id,
                    user_id=str(actor_id),
                    subtotal=totals.subtotal,
                    tax_amount=totals.tax_amount,
                    discount_amount=totals.discount_amount,
                    total_amount=totals.total_amount,
                    payment_method=payment_method,
                    payment_status=payment_status,
                    sale_status=sale_status,
                    notes=data.notes,
                )
                SaleLedger.insert(
                    db,
                    sale,
                    [
                        models.SaleItem(
                            product_id=line.product_id,
                            quantity=line.quantity,
                            unit_price=line.unit_price,
                            discount=line.discount,
                            tax_amount=line.tax_amount,
                            total_price=line.total_price,
                        )
                        for line in lines
                    ],
                )
                if counts_against_stock(status_name):
                    cls._apply_effects(db, sale, reason=SALE_REASON, actor_id=actor_id)
                sale_id = str(sale.id)
        except EngineError as exc:
            LOGGER.info("Sale rejected: %s", exc)
            cls._record_failure(db, "pos.sale", exc, tags, start)
            raise

        LOGGER.info("Sale %s captured for %s", sale_id, totals.total_amount)
        ObservabilityService.record_event(
            db,
            "pos.sale.captured",
            MetricOutcome.SUCCESS,
            duration_ms=(perf_counter() - start) * 1000,
            tags=tags,
            metadata={"sale_id": sale_id, "total": str(totals.total_amount)},
        )
        return SaleLedger.get(db, sale_id)

    @classmethod
    def transition_status(
        cls,
        db: Session,
        sale_id: str,
        data: schemas.SaleStatusUpdate,
        *,
        actor_id: str,
    ) -> models.Sale:
        """Move a sale to another status, applying or reversing its effects.

        Only transitions into or out of ``completed`` touch stock and the
        customer aggregates, so repeating a transition never double-counts.
        """

        start = perf_counter()
        tags: dict[str, Any] = {}

        try:
            with unit_of_work(db, operation="Sale status update"):
                sale = SaleLedger.lock(db, str(sale_id))
                current = parse_status(sale.sale_status.name)
                new_status, new_name = SaleLedger.resolve_sale_status(db, data.sale_status_id)
                effect = effect_for(current, new_name)
                tags.update(
                    {"from": current.value, "to": new_name.value, "effect": effect.value}
                )

                if data.payment_status_id is not None:
                    sale.payment_status = SaleLedger.resolve_payment_status(
                        db, data.payment_status_id
                    )

                if effect is StockEffect.APPLY:
                    cls._apply_effects(db, sale, reason=COMPLETION_REASON, actor_id=actor_id)
                elif effect is StockEffect.REVERSE:
                    cls._reverse_effects(db, sale, actor_id=actor_id)

                sale.sale_status = new_status
        except EngineError as exc:
            LOGGER.info("Status update for sale %s rejected: %s", sale_id, exc)
            cls._record_failure(db, "pos.sale.transition", exc, tags, start)
            raise

        LOGGER.info(
            "Sale %s moved from %s to %s (%s)",
            sale_id,
            tags["from"],
            tags["to"],
            tags["effect"],
        )
        ObservabilityService.record_event(
            db,
            "pos.sale.transitioned",
            MetricOutcome.SUCCESS,
            duration_ms=(perf_counter() - start) * 1000,
            tags=tags,
            metadata={"sale_id": str(sale_id)},
        )
        return SaleLedger.get(db, str(sale_id))

    @staticmethod
    def get_sale(db: Session, sale_id: str) -> models.Sale:
        return SaleLedger.get(db, str(sale_id))

    @staticmethod
    def sales_overview(
        db: Session,
        *,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> schemas.SalesOverview:
        return schemas.SalesOverview(**SaleLedger.overview(db, start=start_date, end=end_date))
